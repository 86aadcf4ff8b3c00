"""
Polygon utilities for Region Mesher.

Provides ring closure helpers, planar signed area,
vertex-average centroids and longitude unwrapping for rings that
cross the antimeridian.
"""

from typing import List, Sequence, Tuple

from ..models.geometry import Point2D


def is_closed(ring: Sequence[Point2D]) -> bool:
    """Check if the first point equals the last point."""
    return len(ring) > 1 and ring[0].x == ring[-1].x and ring[0].y == ring[-1].y


def close_ring(ring: Sequence[Point2D]) -> List[Point2D]:
    """
    Return a closed copy of a ring.

    Appends the first point when the ring is not already closed; a
    closed ring is returned unchanged (as a new list).
    """
    result = list(ring)
    if result and not is_closed(result):
        result.append(result[0])
    return result


def open_ring(ring: Sequence[Point2D]) -> List[Point2D]:
    """Return the ring without its closing duplicate point."""
    if is_closed(ring):
        return list(ring[:-1])
    return list(ring)


def polygon_signed_area(ring: Sequence[Point2D]) -> float:
    """
    Compute signed area using shoelace formula.

    Args:
        ring: List of polygon vertices (closed or open)

    Returns:
        Signed area (positive = CCW, negative = CW)
    """
    n = len(ring)
    if n < 3:
        return 0.0

    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += ring[i].x * ring[j].y
        area -= ring[j].x * ring[i].y

    return area / 2.0


def ring_vertex_centroid(rings: Sequence[Sequence[Point2D]]) -> Tuple[float, float]:
    """
    Unweighted average of every vertex of every ring.

    Closing points are counted like any other vertex.

    Returns:
        (lat, lng) of the average

    Raises:
        ValueError: If the rings contain no points
    """
    total_lng = 0.0
    total_lat = 0.0
    count = 0

    for ring in rings:
        for p in ring:
            total_lng += p.x
            total_lat += p.y
            count += 1

    if count == 0:
        raise ValueError("Cannot compute centroid of empty rings")

    return (total_lat / count, total_lng / count)


def crosses_antimeridian(ring: Sequence[Point2D]) -> bool:
    """True if consecutive points jump by more than 180 degrees of longitude."""
    for a, b in zip(ring, ring[1:]):
        if abs(b.x - a.x) > 180.0:
            return True
    return False


def unwrap_longitudes(ring: Sequence[Point2D]) -> List[Point2D]:
    """
    Make longitudes continuous along a ring.

    Each jump larger than 180 degrees is treated as a crossing of the
    ±180 seam and the following points are shifted by ±360 so the ring
    stays contiguous. Resulting longitudes may leave [-180, 180].
    """
    if not ring:
        return []

    result = [ring[0]]
    offset = 0.0
    prev_raw = ring[0].x

    for p in ring[1:]:
        delta = p.x - prev_raw
        if delta > 180.0:
            offset -= 360.0
        elif delta < -180.0:
            offset += 360.0
        prev_raw = p.x
        result.append(Point2D(p.x + offset, p.y))

    return result
