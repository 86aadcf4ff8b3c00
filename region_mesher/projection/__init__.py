"""
Projection module for Region Mesher.

Provides the sphere projection used for display and the normal
computation that goes with it.
"""

from .sphere import SphereProjector, compute_vertex_normals, face_normal


def create_projector(radius: float, elevation: float = 1.0) -> SphereProjector:
    """
    Factory function to create the display projector.

    Args:
        radius: Globe radius
        elevation: Multiplier lifting geometry above the globe surface

    Returns:
        SphereProjector at radius * elevation
    """
    return SphereProjector(radius * elevation)


__all__ = [
    'SphereProjector',
    'compute_vertex_normals',
    'face_normal',
    'create_projector',
]
