"""
Area classification for Region Mesher.

Computes the spherical area of a polygon and decides how it should
be tessellated:
- SMALL polygons are triangulated directly
- LARGE polygons are split into a fine grid first
- VERY_LARGE polygons are split into a coarse grid first

The area formula is the ring-area approximation on a sphere of mean
Earth radius (the same one GeoJSON area tools use), so thresholds
line up with areas reported elsewhere.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
import math

from ..models.geometry import Point2D, RingSet
from ..models.region import AreaTier, TessellationMethod
from ..config import EARTH_RADIUS_M, PipelineConfig, DEFAULT_CONFIG


class Strategy(Enum):
    """How a polygon is turned into triangles."""
    DIRECT = "direct"
    GRID = "grid"


@dataclass
class Classification:
    """Result of classifying one polygon."""
    area_km2: float
    tier: AreaTier
    strategy: Strategy
    cell_side_km: Optional[float] = None  # None for DIRECT

    @property
    def uses_grid(self) -> bool:
        return self.strategy is Strategy.GRID


def ring_area_m2(ring: Sequence[Point2D]) -> float:
    """
    Unsigned spherical area of a ring in square meters.

    Args:
        ring: Closed or open ring of (lng, lat) points

    Returns:
        Area in m² (0 for fewer than 3 points)
    """
    n = len(ring)
    if n <= 2:
        return 0.0

    total = 0.0
    for i in range(n):
        if i == n - 2:
            lower, middle, upper = n - 2, n - 1, 0
        elif i == n - 1:
            lower, middle, upper = n - 1, 0, 1
        else:
            lower, middle, upper = i, i + 1, i + 2

        p1 = ring[lower]
        p2 = ring[middle]
        p3 = ring[upper]
        total += (math.radians(p3.x) - math.radians(p1.x)) * math.sin(math.radians(p2.y))

    return abs(total * EARTH_RADIUS_M * EARTH_RADIUS_M / 2.0)


def ring_area_km2(ring: Sequence[Point2D]) -> float:
    """Unsigned spherical area of a ring in square kilometers."""
    return ring_area_m2(ring) / 1_000_000.0


def polygon_area_km2(ring_set: RingSet) -> float:
    """Outer ring area minus hole areas, in square kilometers."""
    area = ring_area_km2(ring_set.outer_ring)
    for hole in ring_set.holes:
        area -= ring_area_km2(hole)
    return max(area, 0.0)


def tier_for_area(area_km2: float, config: PipelineConfig = DEFAULT_CONFIG) -> AreaTier:
    """
    Map an area to its tier.

    Boundaries: below small_area_max_km2 is SMALL, up to and including
    large_area_max_km2 is LARGE, above is VERY_LARGE.
    """
    if area_km2 < config.small_area_max_km2:
        return AreaTier.SMALL
    if area_km2 <= config.large_area_max_km2:
        return AreaTier.LARGE
    return AreaTier.VERY_LARGE


def classify(
    ring_set: RingSet,
    method: TessellationMethod = TessellationMethod.AUTO,
    config: PipelineConfig = DEFAULT_CONFIG
) -> Classification:
    """
    Classify a polygon and pick its tessellation strategy.

    Args:
        ring_set: Polygon to classify (only the outer ring is measured)
        method: Override (EARCUT forces direct, GRID forces grid)
        config: Thresholds and cell sizes

    Returns:
        Classification
    """
    area = ring_area_km2(ring_set.outer_ring)
    tier = tier_for_area(area, config)

    if method is TessellationMethod.EARCUT:
        return Classification(area, tier, Strategy.DIRECT)

    if tier is AreaTier.SMALL and method is not TessellationMethod.GRID:
        return Classification(area, tier, Strategy.DIRECT)

    if tier is AreaTier.VERY_LARGE:
        cell_side = config.very_large_cell_side_km
    else:
        # LARGE, or SMALL forced onto the grid
        cell_side = config.large_cell_side_km

    return Classification(area, tier, Strategy.GRID, cell_side)
