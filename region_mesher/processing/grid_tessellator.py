"""
Grid tessellation for Region Mesher.

Splits large polygons into square cells before triangulation so that
no single triangle spans a large arc of the globe (flat triangles
between far-apart points cut through the sphere).

Steps:
1. Unwrap longitudes of rings crossing the antimeridian
2. Lay a uniform grid of square cells over the outer ring's bbox
3. Clip the polygon against each cell (holes subtracted)
4. Keep every non-degenerate piece as its own RingSet
"""

from dataclasses import dataclass
from typing import Iterator, List, Tuple
import logging
import math

from shapely.geometry import Polygon, box
from shapely.geometry.base import BaseGeometry
from shapely.prepared import prep

from ..models.geometry import BBox, Point2D, Ring, RingSet
from ..utils.polygon_utils import crosses_antimeridian, unwrap_longitudes
from ..config import GRID_MAX_ABS_LATITUDE, KM_PER_DEGREE, MIN_CELL_AREA_DEG2

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TessellationCell:
    """One square grid cell in (lng, lat) degrees."""
    bbox: BBox
    side_km: float

    def to_shapely(self) -> Polygon:
        return box(self.bbox.min_x, self.bbox.min_y, self.bbox.max_x, self.bbox.max_y)


def cell_size_degrees(bbox: BBox, cell_side_km: float) -> Tuple[float, float]:
    """
    Convert a cell side in km to (lng, lat) extents in degrees.

    Latitude uses a constant km per degree. Longitude is measured along
    the bbox edge nearest the equator, with latitude clamped so cells
    stay finite near the poles.

    Returns:
        (cell_width_deg, cell_height_deg)
    """
    if cell_side_km <= 0:
        raise ValueError("cell_side_km must be positive")

    cell_height = cell_side_km / KM_PER_DEGREE

    if bbox.min_y <= 0.0 <= bbox.max_y:
        ref_lat = 0.0
    else:
        ref_lat = min(abs(bbox.min_y), abs(bbox.max_y))
    ref_lat = min(ref_lat, GRID_MAX_ABS_LATITUDE)

    cell_width = cell_side_km / (KM_PER_DEGREE * math.cos(math.radians(ref_lat)))
    return (cell_width, cell_height)


def generate_cells(bbox: BBox, cell_side_km: float) -> List[TessellationCell]:
    """
    Cover a bbox with a grid of square cells.

    The grid is centered on the bbox and extends past it where the
    bbox size is not a whole number of cells.

    Args:
        bbox: Area to cover, in degrees
        cell_side_km: Cell side length

    Returns:
        Cells in row-major order (south to north, west to east)
    """
    cell_w, cell_h = cell_size_degrees(bbox, cell_side_km)

    columns = max(1, math.ceil(bbox.width / cell_w))
    rows = max(1, math.ceil(bbox.height / cell_h))

    x0 = bbox.min_x - (columns * cell_w - bbox.width) / 2.0
    y0 = bbox.min_y - (rows * cell_h - bbox.height) / 2.0

    cells = []
    for row in range(rows):
        min_y = y0 + row * cell_h
        for col in range(columns):
            min_x = x0 + col * cell_w
            cells.append(TessellationCell(
                BBox(min_x, min_y, min_x + cell_w, min_y + cell_h),
                cell_side_km,
            ))

    return cells


def tessellate(ring_set: RingSet, cell_side_km: float) -> List[RingSet]:
    """
    Split a polygon into grid-cell pieces.

    Args:
        ring_set: Polygon to split
        cell_side_km: Grid cell side

    Returns:
        Sub-polygons, each a valid RingSet. Empty if the polygon has no
        area even after repair.
    """
    ring_set = unwrap_ring_set(ring_set)
    polygon = to_shapely(ring_set)

    if not polygon.is_valid:
        logger.debug("Repairing invalid polygon with buffer(0)")
        polygon = polygon.buffer(0)

    if polygon.is_empty or polygon.area <= MIN_CELL_AREA_DEG2:
        logger.warning("Polygon has no area after repair, skipping tessellation")
        return []

    cells = generate_cells(ring_set.bbox, cell_side_km)
    prepared = prep(polygon)

    pieces: List[RingSet] = []
    clipped = 0
    inside = 0

    for cell in cells:
        cell_geom = cell.to_shapely()
        if not prepared.intersects(cell_geom):
            continue

        if prepared.contains(cell_geom):
            inside += 1
            pieces.append(from_shapely(cell_geom))
            continue

        clipped += 1
        for part in _iter_polygons(polygon.intersection(cell_geom)):
            if part.area <= MIN_CELL_AREA_DEG2:
                continue
            pieces.append(from_shapely(part))

    logger.debug(
        f"Tessellated into {len(pieces)} pieces "
        f"({len(cells)} cells, {inside} inside, {clipped} clipped)"
    )

    return pieces


def unwrap_ring_set(ring_set: RingSet) -> RingSet:
    """
    Make a polygon continuous across the antimeridian.

    The outer ring is unwrapped; each hole is unwrapped and then moved
    by whole turns to sit within the outer ring's longitude range.
    Polygons that do not cross the seam are returned unchanged.
    """
    rings = ring_set.rings
    if not any(crosses_antimeridian(r) for r in rings):
        return ring_set

    outer = unwrap_longitudes(ring_set.outer_ring)
    outer_mid = (min(p.x for p in outer) + max(p.x for p in outer)) / 2.0

    holes: List[Ring] = []
    for hole in ring_set.holes:
        hole = unwrap_longitudes(hole)
        hole_mid = (min(p.x for p in hole) + max(p.x for p in hole)) / 2.0
        shift = 360.0 * round((outer_mid - hole_mid) / 360.0)
        if shift:
            hole = [Point2D(p.x + shift, p.y) for p in hole]
        holes.append(hole)

    logger.debug("Unwrapped polygon crossing the antimeridian")
    return RingSet(outer_ring=outer, holes=holes)


def to_shapely(ring_set: RingSet) -> Polygon:
    """Convert a RingSet to a shapely Polygon."""
    return Polygon(
        [(p.x, p.y) for p in ring_set.outer_ring],
        [[(p.x, p.y) for p in hole] for hole in ring_set.holes],
    )


def from_shapely(polygon: Polygon) -> RingSet:
    """Convert a shapely Polygon to a closed RingSet."""
    outer = [Point2D(x, y) for x, y in polygon.exterior.coords]
    holes = [
        [Point2D(x, y) for x, y in interior.coords]
        for interior in polygon.interiors
    ]
    return RingSet(outer_ring=outer, holes=holes)


def _iter_polygons(geometry: BaseGeometry) -> Iterator[Polygon]:
    """Yield the polygonal parts of a clipping result."""
    if geometry.is_empty:
        return
    if geometry.geom_type == 'Polygon':
        yield geometry
    elif hasattr(geometry, 'geoms'):
        # MultiPolygon or GeometryCollection; lines and points are dropped
        for part in geometry.geoms:
            yield from _iter_polygons(part)
