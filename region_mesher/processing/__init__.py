"""
Processing modules for Region Mesher.

Includes:
- Geometry normalization
- Area classification
- Grid tessellation
- Mesh assembly per style
"""

from .normalizer import (
    NormalizeResult,
    normalize_ring,
    normalize_polygon,
    normalize_geometry,
    normalize_features,
    region_from_document,
)
from .area_classifier import (
    Classification,
    Strategy,
    ring_area_km2,
    polygon_area_km2,
    tier_for_area,
    classify,
)
from .grid_tessellator import (
    TessellationCell,
    cell_size_degrees,
    generate_cells,
    tessellate,
)
from .mesh_assembler import (
    AssemblyResult,
    assemble,
    assemble_filled,
    assemble_outline,
    assemble_pin,
    build_pin_mesh,
    pin_anchor,
)

__all__ = [
    'NormalizeResult',
    'normalize_ring',
    'normalize_polygon',
    'normalize_geometry',
    'normalize_features',
    'region_from_document',
    'Classification',
    'Strategy',
    'ring_area_km2',
    'polygon_area_km2',
    'tier_for_area',
    'classify',
    'TessellationCell',
    'cell_size_degrees',
    'generate_cells',
    'tessellate',
    'AssemblyResult',
    'assemble',
    'assemble_filled',
    'assemble_outline',
    'assemble_pin',
    'build_pin_mesh',
    'pin_anchor',
]
