"""
Sphere projection for Region Mesher.

Maps (lat, lng) in degrees onto a sphere of given radius using the
globe convention shared with the precomputed GLB assets:

    phi   = (90 - lat) in radians   (polar angle from +Y)
    theta = (180 + lng) in radians  (azimuth)

    x = -r * sin(phi) * cos(theta)
    y =  r * cos(phi)
    z =  r * sin(phi) * sin(theta)

The ±180 longitude seam lies on the -X half of the XY plane;
(lat 0, lng -90) projects onto +Z.
"""

from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple
import math

from ..models.geometry import Point2D
from ..utils.math_utils import Vec3, vec_add, vec_cross, vec_normalize, vec_sub


class SphereProjector:
    """
    Projects geographic coordinates onto a sphere.

    Attributes:
        radius: Sphere radius in scene units
    """

    def __init__(self, radius: float):
        if radius <= 0:
            raise ValueError("radius must be positive")
        self.radius = radius

    def project(self, lat: float, lon: float) -> Vec3:
        """
        Project latitude/longitude (degrees) to a 3D position.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees

        Returns:
            (x, y, z) on the sphere
        """
        phi = math.radians(90.0 - lat)
        theta = math.radians(180.0 + lon)

        sin_phi = math.sin(phi)
        x = -self.radius * sin_phi * math.cos(theta)
        y = self.radius * math.cos(phi)
        z = self.radius * sin_phi * math.sin(theta)

        return (x, y, z)

    def project_point(self, point: Point2D) -> Vec3:
        """Project a (lng, lat) point."""
        return self.project(point.y, point.x)

    def project_many(self, points: Iterable[Point2D]) -> List[Vec3]:
        """Project a sequence of (lng, lat) points, preserving order."""
        return [self.project(p.y, p.x) for p in points]

    def unproject(self, x: float, y: float, z: float) -> Tuple[float, float]:
        """
        Convert a 3D position back to geographic coordinates.

        The point does not need to lie exactly on the sphere; only its
        direction is used.

        Returns:
            (lat, lon) tuple in degrees, lon in [-180, 180]
        """
        r = math.sqrt(x * x + y * y + z * z)
        if r == 0.0:
            raise ValueError("Cannot unproject the origin")

        phi = math.acos(max(-1.0, min(1.0, y / r)))
        theta = math.atan2(z, -x)

        lat = 90.0 - math.degrees(phi)
        lon = math.degrees(theta) - 180.0
        if lon < -180.0:
            lon += 360.0
        return (lat, lon)


def compute_vertex_normals(
    vertices: Sequence[Vec3],
    indices: Sequence[int],
    weld_decimals: Optional[int] = None
) -> List[Vec3]:
    """
    Derive per-vertex normals from triangle topology.

    Face normals (unnormalized, so larger faces weigh more) are summed
    into each of their three vertices and the sums normalized.
    Vertices not used by any triangle get a zero normal.

    With weld_decimals set, vertices whose positions agree to that many
    decimals pool their sums, so buffers concatenated from separately
    triangulated pieces shade continuously across the shared edges.

    Args:
        vertices: 3D positions
        indices: Flat triangle index list
        weld_decimals: Rounding used to match coincident positions
            (None = every vertex stands alone)

    Returns:
        One unit normal per vertex
    """
    if weld_decimals is None:
        keys = list(range(len(vertices)))
    else:
        keys = [tuple(round(c, weld_decimals) for c in v) for v in vertices]

    sums: Dict[Hashable, Vec3] = {}

    for t in range(0, len(indices) - 2, 3):
        a, b, c = indices[t], indices[t + 1], indices[t + 2]
        face = vec_cross(
            vec_sub(vertices[b], vertices[a]),
            vec_sub(vertices[c], vertices[a]),
        )
        for i in (a, b, c):
            sums[keys[i]] = vec_add(sums.get(keys[i], (0.0, 0.0, 0.0)), face)

    return [vec_normalize(sums.get(key, (0.0, 0.0, 0.0))) for key in keys]


def face_normal(a: Vec3, b: Vec3, c: Vec3) -> Vec3:
    """Unit normal of triangle (a, b, c) by the right-hand rule."""
    return vec_normalize(vec_cross(vec_sub(b, a), vec_sub(c, a)))
