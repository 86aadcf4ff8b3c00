"""
Utility functions for Region Mesher.
"""

from .math_utils import (
    normalize_angle,
    clamp,
    quat_from_axis_angle,
    quat_from_unit_vectors,
    quat_multiply,
    quat_rotate,
    quat_slerp,
)
from .polygon_utils import (
    close_ring,
    is_closed,
    polygon_signed_area,
    ring_vertex_centroid,
    unwrap_longitudes,
)
from .triangulation import (
    TriangulationError,
    flatten,
    triangulate,
    triangulate_ring_set,
    validate_triangulation,
)

__all__ = [
    'normalize_angle',
    'clamp',
    'quat_from_axis_angle',
    'quat_from_unit_vectors',
    'quat_multiply',
    'quat_rotate',
    'quat_slerp',
    'close_ring',
    'is_closed',
    'polygon_signed_area',
    'ring_vertex_centroid',
    'unwrap_longitudes',
    'TriangulationError',
    'flatten',
    'triangulate',
    'triangulate_ring_set',
    'validate_triangulation',
]
