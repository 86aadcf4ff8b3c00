"""
Triangulation utilities for Region Mesher.

Provides ear clipping triangulation over a flattened ring set: the
outer ring and its holes are concatenated into one coordinate list,
with hole start offsets marking where each hole begins. Holes are
bridged into the outer ring before clipping.

Winding convention:
    - Outer ring is clipped counter-clockwise
    - Holes are bridged clockwise
    - Emitted triangles are CCW in (lng, lat)
"""

from typing import Dict, List, Optional, Sequence, Set, Tuple
import logging

from ..models.geometry import Point2D, RingSet
from ..config import COLLINEAR_EPSILON
from .polygon_utils import open_ring, polygon_signed_area

logger = logging.getLogger(__name__)

# Relative tolerance applied to the squared extent of the input
_RELATIVE_EPSILON = 1e-14


class TriangulationError(Exception):
    """Raised when triangulation fails."""
    pass


def flatten(rings: Sequence[Sequence[Point2D]]) -> Tuple[List[float], List[int], int]:
    """
    Flatten rings into a single coordinate list.

    Closing duplicate points are dropped. The first ring is the outer
    boundary; every following ring is a hole.

    Args:
        rings: Outer ring followed by hole rings

    Returns:
        (coords, hole_indices, dimensions) where coords is
        [lng0, lat0, lng1, lat1, ...], hole_indices holds the vertex
        index at which each hole starts, and dimensions is 2
    """
    coords: List[float] = []
    hole_indices: List[int] = []
    vertex_count = 0

    for ring_idx, ring in enumerate(rings):
        points = open_ring(ring)
        if ring_idx > 0:
            hole_indices.append(vertex_count)
        for p in points:
            coords.append(p.x)
            coords.append(p.y)
        vertex_count += len(points)

    return (coords, hole_indices, 2)


def triangulate(
    coords: Sequence[float],
    hole_indices: Sequence[int] = (),
    dimensions: int = 2
) -> List[int]:
    """
    Triangulate a flattened polygon with holes.

    Args:
        coords: Flat coordinate list (see flatten())
        hole_indices: Vertex index where each hole starts
        dimensions: Components per vertex (only the first two are used)

    Returns:
        Flat list of vertex indices, three per triangle. Empty when the
        outer ring is degenerate (fewer than 3 distinct points, zero area
        or collinear-only).

    Raises:
        TriangulationError: If no ear can be clipped and the fallback fails
    """
    if dimensions < 2:
        raise ValueError("dimensions must be at least 2")

    n = len(coords) // dimensions
    if n < 3:
        return []

    xs = [coords[i * dimensions] for i in range(n)]
    ys = [coords[i * dimensions + 1] for i in range(n)]

    extent = max(max(xs) - min(xs), max(ys) - min(ys))
    eps = max(COLLINEAR_EPSILON, extent * extent * _RELATIVE_EPSILON)

    starts = [0] + list(hole_indices)
    ends = list(hole_indices) + [n]

    outer = _clean_ring(list(range(starts[0], ends[0])), xs, ys, eps)
    outer_area = _ring_area(outer, xs, ys)
    if len(outer) < 3 or abs(outer_area) <= eps:
        logger.warning(
            f"Skipping degenerate outer ring ({ends[0] - starts[0]} vertices, "
            f"area {outer_area:.3e})"
        )
        return []

    if outer_area < 0:
        outer.reverse()

    holes: List[List[int]] = []
    for hole_no, (start, end) in enumerate(zip(starts[1:], ends[1:]), 1):
        hole = _clean_ring(list(range(start, end)), xs, ys, eps)
        hole_area = _ring_area(hole, xs, ys)
        if len(hole) < 3 or abs(hole_area) <= eps:
            logger.warning(f"Skipping degenerate hole {hole_no}")
            continue
        if hole_area > 0:
            hole.reverse()
        holes.append(hole)

    merged = outer
    # Rightmost holes first so later bridges may attach to earlier holes
    for hole in sorted(holes, key=lambda h: max(xs[i] for i in h), reverse=True):
        merged = _bridge_hole(merged, hole, xs, ys)

    return _earclip(merged, xs, ys, eps)


def triangulate_ring_set(ring_set: RingSet) -> Tuple[List[Point2D], List[int]]:
    """
    Triangulate a ring set.

    Args:
        ring_set: Outer ring plus holes

    Returns:
        (vertices, indices) where vertices are the flattened points
        (closing duplicates removed) and indices reference them
    """
    coords, hole_indices, dims = flatten(ring_set.rings)
    indices = triangulate(coords, hole_indices, dims)
    vertices = [Point2D(coords[i], coords[i + 1]) for i in range(0, len(coords), dims)]
    return (vertices, indices)


def validate_triangulation(
    vertices: Sequence[Point2D],
    indices: Sequence[int],
    expected_area: Optional[float] = None
) -> List[str]:
    """
    Validate triangulation result.

    Args:
        vertices: List of vertices
        indices: Flat triangle index list
        expected_area: Expected polygon area (optional)

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    if not indices:
        errors.append("No triangles generated")
        return errors

    if len(indices) % 3 != 0:
        errors.append(f"Index count {len(indices)} is not a multiple of 3")
        return errors

    n = len(vertices)

    for i, idx in enumerate(indices):
        if idx < 0 or idx >= n:
            errors.append(f"Index {i} is out of range: {idx}")

    if errors:
        return errors

    total_area = 0.0
    for t in range(0, len(indices), 3):
        a, b, c = indices[t], indices[t + 1], indices[t + 2]
        area = _triangle_area(vertices[a], vertices[b], vertices[c])
        if abs(area) < 1e-15:
            errors.append(f"Triangle {t // 3} is degenerate (zero area)")
        total_area += abs(area)

    if expected_area is not None:
        if abs(total_area - expected_area) > expected_area * 0.01:  # 1% tolerance
            errors.append(
                f"Total triangulated area {total_area:.6f} differs from "
                f"expected {expected_area:.6f}"
            )

    return errors


def _triangle_area(v0: Point2D, v1: Point2D, v2: Point2D) -> float:
    """Compute signed area of triangle."""
    return 0.5 * (
        (v1.x - v0.x) * (v2.y - v0.y) -
        (v2.x - v0.x) * (v1.y - v0.y)
    )


def _cross(xs: List[float], ys: List[float], a: int, b: int, c: int) -> float:
    """Twice the signed area of triangle (a, b, c); positive when CCW."""
    return (xs[b] - xs[a]) * (ys[c] - ys[a]) - (ys[b] - ys[a]) * (xs[c] - xs[a])


def _same_point(xs: List[float], ys: List[float], a: int, b: int) -> bool:
    return xs[a] == xs[b] and ys[a] == ys[b]


def _ring_area(ring: List[int], xs: List[float], ys: List[float]) -> float:
    return polygon_signed_area([Point2D(xs[i], ys[i]) for i in ring])


def _clean_ring(ring: List[int], xs: List[float], ys: List[float], eps: float) -> List[int]:
    """
    Drop repeated and collinear vertices from a ring of vertex indices.

    Repeats until stable, since removing one vertex can make its
    neighbor collinear.
    """
    changed = True
    while changed and len(ring) >= 3:
        changed = False
        result: List[int] = []
        n = len(ring)
        for i in range(n):
            prev_v = result[-1] if result else ring[i - 1]
            curr_v = ring[i]
            next_v = ring[(i + 1) % n]
            if _same_point(xs, ys, prev_v, curr_v):
                changed = True
                continue
            if abs(_cross(xs, ys, prev_v, curr_v, next_v)) <= eps:
                changed = True
                continue
            result.append(curr_v)
        ring = result

    return ring


def _point_in_triangle(
    xs: List[float], ys: List[float],
    p: int, a: int, b: int, c: int
) -> bool:
    """Check if point p is inside or on the edges of triangle (a, b, c)."""
    d1 = _cross(xs, ys, a, b, p)
    d2 = _cross(xs, ys, b, c, p)
    d3 = _cross(xs, ys, c, a, p)

    has_neg = (d1 < 0) or (d2 < 0) or (d3 < 0)
    has_pos = (d1 > 0) or (d2 > 0) or (d3 > 0)

    return not (has_neg and has_pos)


def _bridge_hole(
    outer: List[int],
    hole: List[int],
    xs: List[float],
    ys: List[float]
) -> List[int]:
    """
    Create a bridge connecting a hole to the outer ring.

    Finds the rightmost point of the hole and connects it to a visible
    vertex of the (possibly already merged) outer ring.

    Returns:
        Merged vertex index list:
        outer[..bridge] + hole[right..] + hole[..right] + hole[right] + outer[bridge..]
    """
    hole_pos = max(range(len(hole)), key=lambda i: xs[hole[i]])
    hole_vertex = hole[hole_pos]

    outer_pos = _find_visible_vertex(outer, hole_vertex, xs, ys)
    if outer_pos is None:
        raise TriangulationError(
            f"No visible vertex found on outer ring for hole point at "
            f"({xs[hole_vertex]}, {ys[hole_vertex]})"
        )

    merged = outer[:outer_pos + 1]
    for i in range(len(hole)):
        merged.append(hole[(hole_pos + i) % len(hole)])
    merged.append(hole_vertex)
    merged.append(outer[outer_pos])
    merged.extend(outer[outer_pos + 1:])

    return merged


def _find_visible_vertex(
    outer: List[int],
    point: int,
    xs: List[float],
    ys: List[float]
) -> Optional[int]:
    """
    Find a position on the outer ring visible from point.

    Casts a ray to the right (+X), takes the nearest edge it hits and
    that edge's rightmost endpoint. Vertices lying inside the triangle
    (point, hit, endpoint) could block the view; the one making the
    smallest angle with the ray is used instead.

    Returns:
        Position in outer, or None if the ray hits nothing
    """
    hx, hy = xs[point], ys[point]
    n = len(outer)
    best_x = float('inf')
    candidate: Optional[int] = None

    for i in range(n):
        a = outer[i]
        b = outer[(i + 1) % n]
        ay, by = ys[a], ys[b]

        if ay == by:
            continue
        if not ((ay <= hy <= by) or (by <= hy <= ay)):
            continue

        x = xs[a] + (hy - ay) * (xs[b] - xs[a]) / (by - ay)
        if hx <= x < best_x:
            best_x = x
            if x == hx:
                # Hole touches the edge
                return i if ys[a] == hy and xs[a] == hx else (i + 1) % n
            candidate = i if xs[a] > xs[b] else (i + 1) % n

    if candidate is None:
        return None

    cand_v = outer[candidate]
    cx, cy = xs[cand_v], ys[cand_v]

    # Triangle (hole point, ray hit, candidate) given as coordinates
    tri = ((hx, hy), (best_x, hy), (cx, cy))
    best_pos = candidate
    best_tan = float('inf')

    for i in range(n):
        v = outer[i]
        vx, vy = xs[v], ys[v]
        if i == candidate or not (hx <= vx <= cx):
            continue
        if vx == hx and vy == hy:
            continue
        if not _coords_in_triangle(vx, vy, tri):
            continue

        dx = vx - hx
        tan = abs(hy - vy) / dx if dx > 0 else float('inf')
        prev_v = outer[i - 1]
        next_v = outer[(i + 1) % n]
        if not _locally_inside(xs, ys, prev_v, v, next_v, point):
            continue
        if tan < best_tan or (tan == best_tan and vx > xs[outer[best_pos]]):
            best_tan = tan
            best_pos = i

    return best_pos


def _coords_in_triangle(
    px: float, py: float,
    tri: Tuple[Tuple[float, float], Tuple[float, float], Tuple[float, float]]
) -> bool:
    (ax, ay), (bx, by), (cx, cy) = tri
    d1 = (bx - ax) * (py - ay) - (by - ay) * (px - ax)
    d2 = (cx - bx) * (py - by) - (cy - by) * (px - bx)
    d3 = (ax - cx) * (py - cy) - (ay - cy) * (px - cx)
    has_neg = (d1 < 0) or (d2 < 0) or (d3 < 0)
    has_pos = (d1 > 0) or (d2 > 0) or (d3 > 0)
    return not (has_neg and has_pos)


def _locally_inside(
    xs: List[float], ys: List[float],
    prev_v: int, v: int, next_v: int, target: int
) -> bool:
    """Check if the diagonal v -> target starts inside the polygon at v."""
    if _cross(xs, ys, prev_v, v, next_v) >= 0:
        return (_cross(xs, ys, v, next_v, target) >= 0 and
                _cross(xs, ys, prev_v, v, target) >= 0)
    return (_cross(xs, ys, v, next_v, target) >= 0 or
            _cross(xs, ys, prev_v, v, target) >= 0)


def _earclip(poly: List[int], xs: List[float], ys: List[float], eps: float) -> List[int]:
    """
    Clip ears from a CCW polygon given as vertex indices.

    The polygon may contain repeated vertex indices where holes were
    bridged in. Works on positions in poly through a circular linked
    list; only reflex (or flat) vertices are tested for containment.
    """
    count = len(poly)
    if count < 3:
        return []

    prev = [(i - 1) % count for i in range(count)]
    nxt = [(i + 1) % count for i in range(count)]
    removed = [False] * count
    triangles: List[int] = []

    def cross_at(i: int) -> float:
        return _cross(xs, ys, poly[prev[i]], poly[i], poly[nxt[i]])

    reflex: Set[int] = {i for i in range(count) if cross_at(i) <= eps}

    def update(i: int) -> None:
        if cross_at(i) <= eps:
            reflex.add(i)
        else:
            reflex.discard(i)

    def unlink(i: int) -> None:
        p, q = prev[i], nxt[i]
        nxt[p] = q
        prev[q] = p
        removed[i] = True
        reflex.discard(i)
        update(p)
        update(q)

    def is_ear(i: int) -> bool:
        if i in reflex:
            return False
        a, b, c = poly[prev[i]], poly[i], poly[nxt[i]]
        for j in reflex:
            if j == prev[i] or j == nxt[i]:
                continue
            v = poly[j]
            if _same_point(xs, ys, v, a) or _same_point(xs, ys, v, b) or _same_point(xs, ys, v, c):
                continue
            if _point_in_triangle(xs, ys, v, a, b, c):
                return False
        return True

    remaining = count
    ear = 0
    stop = ear
    stalled_passes = 0

    while remaining > 3:
        if is_ear(ear):
            triangles.extend((poly[prev[ear]], poly[ear], poly[nxt[ear]]))
            next_ear = nxt[ear]
            unlink(ear)
            remaining -= 1
            ear = next_ear
            stop = ear
            stalled_passes = 0
            continue

        ear = nxt[ear]
        if ear != stop:
            continue

        # Full pass without an ear
        stalled_passes += 1
        if stalled_passes == 1:
            remaining = _filter_flat(ear, poly, xs, ys, eps, prev, nxt, removed, unlink, remaining)
            ear = _first_alive(removed)
            if ear is None:
                break
            stop = ear
            continue

        # Fallback: clip any convex vertex
        clipped = False
        i = ear
        for _ in range(remaining):
            if cross_at(i) > eps:
                triangles.extend((poly[prev[i]], poly[i], poly[nxt[i]]))
                next_ear = nxt[i]
                unlink(i)
                remaining -= 1
                ear = next_ear
                stop = ear
                clipped = True
                break
            i = nxt[i]

        if not clipped:
            raise TriangulationError(
                f"Failed to find ear in polygon with {remaining} remaining vertices"
            )

    if remaining == 3:
        i = _first_alive(removed)
        if i is not None and cross_at(i) > eps:
            triangles.extend((poly[prev[i]], poly[i], poly[nxt[i]]))

    return triangles


def _filter_flat(
    start: int,
    poly: List[int],
    xs: List[float],
    ys: List[float],
    eps: float,
    prev: List[int],
    nxt: List[int],
    removed: List[bool],
    unlink,
    remaining: int
) -> int:
    """Unlink duplicate and collinear positions; returns the new count."""
    i = start
    checked = 0
    while remaining > 3 and checked < remaining:
        p, q = prev[i], nxt[i]
        flat = (
            _same_point(xs, ys, poly[i], poly[q]) or
            abs(_cross(xs, ys, poly[p], poly[i], poly[q])) <= eps
        )
        if flat:
            unlink(i)
            remaining -= 1
            i = p
            checked = 0
        else:
            i = q
            checked += 1
    return remaining


def _first_alive(removed: List[bool]) -> Optional[int]:
    for i, gone in enumerate(removed):
        if not gone:
            return i
    return None
