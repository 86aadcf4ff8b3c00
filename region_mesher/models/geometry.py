"""
Core geometry types for Region Mesher.

Provides Point2D, BBox, and RingSet classes used throughout
the pipeline for representing region boundaries in (lng, lat) space.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence


@dataclass(frozen=True, slots=True)
class Point2D:
    """2D point in geographic space (x = longitude, y = latitude, degrees)."""
    x: float
    y: float


@dataclass(slots=True)
class BBox:
    """Axis-aligned bounding box in (lng, lat) degrees."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        """Longitude span in degrees."""
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        """Latitude span in degrees."""
        return self.max_y - self.min_y

    @staticmethod
    def from_points(points: Sequence[Point2D]) -> 'BBox':
        """Create bbox from a list of points."""
        if not points:
            raise ValueError("Cannot create BBox from empty point list")

        xs = [p.x for p in points]
        ys = [p.y for p in points]
        return BBox(min(xs), min(ys), max(xs), max(ys))


Ring = List[Point2D]


@dataclass
class RingSet:
    """
    One polygon of a region: an outer boundary plus optional holes.

    Attributes:
        outer_ring: Closed list of Point2D forming the outer boundary
        holes: Closed inner rings
        bbox: Cached bounding box of the outer ring

    Ring invariant (enforced by the normalizer):
        - every ring has at least 4 points
        - the first point equals the last point
    """
    outer_ring: Ring
    holes: List[Ring] = field(default_factory=list)
    _bbox: Optional[BBox] = field(default=None, repr=False)

    @property
    def rings(self) -> List[Ring]:
        """Outer ring followed by holes."""
        return [self.outer_ring] + list(self.holes)

    @property
    def bbox(self) -> BBox:
        """Get or compute bounding box."""
        if self._bbox is None:
            self._bbox = BBox.from_points(self.outer_ring)
        return self._bbox

    @property
    def vertex_count(self) -> int:
        """Total number of points including holes."""
        count = len(self.outer_ring)
        for hole in self.holes:
            count += len(hole)
        return count

    @property
    def has_holes(self) -> bool:
        return len(self.holes) > 0

    @staticmethod
    def from_coordinates(coords: Sequence[Sequence[Sequence[float]]]) -> 'RingSet':
        """Build from GeoJSON polygon coordinates (no validation)."""
        rings = [[Point2D(float(c[0]), float(c[1])) for c in ring] for ring in coords]
        return RingSet(outer_ring=rings[0], holes=rings[1:])
