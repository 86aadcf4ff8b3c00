"""
Data models for Region Mesher.
"""

from .geometry import Point2D, BBox, RingSet
from .region import Region, Style, TessellationMethod, AreaTier
from .mesh import MeshArtifact, MeshBuilder, Material, Primitive, merge_artifacts

__all__ = [
    'Point2D', 'BBox', 'RingSet',
    'Region', 'Style', 'TessellationMethod', 'AreaTier',
    'MeshArtifact', 'MeshBuilder', 'Material', 'Primitive', 'merge_artifacts',
]
