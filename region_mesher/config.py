"""
Configuration constants for Region Mesher.

Contains all tunable parameters for region conversion, including
area thresholds, grid cell sizes, marker dimensions, cache policy
and animation timing.
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# GLOBE
# =============================================================================

# Default globe radius (scene units)
DEFAULT_RADIUS = 100.0

# Mean Earth radius used for spherical area (meters)
EARTH_RADIUS_M = 6371008.8

# Kilometers per degree of latitude
KM_PER_DEGREE = 111.32

# Grid decomposition clamps latitude to this value when converting
# cell widths to degrees of longitude
GRID_MAX_ABS_LATITUDE = 85.0

# =============================================================================
# AREA TIERS
# =============================================================================

# Polygons below this area (km²) are triangulated directly
SMALL_AREA_MAX_KM2 = 200_000.0

# Polygons above this area (km²) use the coarse grid
LARGE_AREA_MAX_KM2 = 1_000_000.0

# Grid cell side for LARGE polygons (km), allowed range and default
LARGE_CELL_SIDE_MIN_KM = 20.0
LARGE_CELL_SIDE_MAX_KM = 30.0
LARGE_CELL_SIDE_KM = 20.0

# Grid cell side for VERY_LARGE polygons (km), allowed range and default
VERY_LARGE_CELL_SIDE_MIN_KM = 75.0
VERY_LARGE_CELL_SIDE_MAX_KM = 100.0
VERY_LARGE_CELL_SIDE_KM = 75.0

# Clipped cells smaller than this (square degrees) are discarded
MIN_CELL_AREA_DEG2 = 1e-12

# =============================================================================
# TRIANGULATION
# =============================================================================

# Twice-area threshold below which three points count as collinear
# (square degrees)
COLLINEAR_EPSILON = 1e-18

# Vertices of adjacent grid pieces closer than this many decimals share
# one normal
NORMAL_WELD_DECIMALS = 6

# =============================================================================
# PIN MARKER (scene units)
# =============================================================================

PIN_STICK_RADIUS = 0.1
PIN_STICK_HEIGHT = 4.0
PIN_BALL_RADIUS = 1.5
PIN_BASE_RADIUS = 0.5
PIN_BASE_HEIGHT = 0.2
PIN_SECTIONS = 16

# =============================================================================
# CACHE
# =============================================================================

# Computed regions are persisted when they took at least this long...
PERSIST_MIN_SECONDS = 2.0

# ...or produced at least this many vertices
PERSIST_MIN_VERTICES = 50_000

# Radius the precomputed GLB assets were authored at
PRECOMPUTED_ASSET_RADIUS = DEFAULT_RADIUS

# Default persistent store file
DEFAULT_CACHE_DB = "mesh_cache.sqlite3"

# =============================================================================
# ROTATION
# =============================================================================

# Rotation animation length (seconds)
ROTATION_DURATION_S = 0.8

# Frame interval used when the controller drives itself (seconds)
ROTATION_FRAME_INTERVAL_S = 1.0 / 60.0

# Regions above this area (km²) attach geometry without waiting for
# the rotation to finish
IMMEDIATE_ATTACH_AREA_KM2 = 1_000_000.0

# Coordinate that the identity orientation faces
REFERENCE_LAT = 0.0
REFERENCE_LNG = -90.0


# =============================================================================
# RUNTIME CONFIGURATION
# =============================================================================

@dataclass
class PipelineConfig:
    """
    Runtime configuration for the region conversion pipeline.

    This class holds all configurable parameters that can be
    adjusted per-run via CLI arguments or programmatically.
    """

    # Globe
    radius: float = DEFAULT_RADIUS

    # Area tiers
    small_area_max_km2: float = SMALL_AREA_MAX_KM2
    large_area_max_km2: float = LARGE_AREA_MAX_KM2
    large_cell_side_km: float = LARGE_CELL_SIDE_KM
    very_large_cell_side_km: float = VERY_LARGE_CELL_SIDE_KM

    # Sources (directories or http(s) base URLs)
    regions_base: str = "./country"
    assets_base: Optional[str] = "./data"
    centers_path: Optional[str] = None
    allow_list_path: Optional[str] = None

    # Cache
    cache_db: Optional[str] = DEFAULT_CACHE_DB
    persist_min_seconds: float = PERSIST_MIN_SECONDS
    persist_min_vertices: int = PERSIST_MIN_VERTICES
    precomputed_asset_radius: float = PRECOMPUTED_ASSET_RADIUS

    # Rotation
    rotation_duration_s: float = ROTATION_DURATION_S
    frame_interval_s: float = ROTATION_FRAME_INTERVAL_S
    immediate_attach_area_km2: float = IMMEDIATE_ATTACH_AREA_KM2

    # Output
    color: str = "red"
    output_dir: str = "./output"
    verbose: bool = False

    def __post_init__(self):
        """Validate configuration values."""
        if self.radius <= 0:
            raise ValueError("radius must be positive")

        if not (0 < self.small_area_max_km2 < self.large_area_max_km2):
            raise ValueError(
                "area thresholds must satisfy 0 < small_area_max_km2 < large_area_max_km2"
            )

        if not (LARGE_CELL_SIDE_MIN_KM <= self.large_cell_side_km <= LARGE_CELL_SIDE_MAX_KM):
            raise ValueError(
                f"large_cell_side_km must be between {LARGE_CELL_SIDE_MIN_KM} "
                f"and {LARGE_CELL_SIDE_MAX_KM}"
            )

        if not (VERY_LARGE_CELL_SIDE_MIN_KM <= self.very_large_cell_side_km
                <= VERY_LARGE_CELL_SIDE_MAX_KM):
            raise ValueError(
                f"very_large_cell_side_km must be between {VERY_LARGE_CELL_SIDE_MIN_KM} "
                f"and {VERY_LARGE_CELL_SIDE_MAX_KM}"
            )

        if self.persist_min_seconds < 0:
            raise ValueError("persist_min_seconds must be non-negative")

        if self.persist_min_vertices < 0:
            raise ValueError("persist_min_vertices must be non-negative")

        if self.precomputed_asset_radius <= 0:
            raise ValueError("precomputed_asset_radius must be positive")

        if self.rotation_duration_s <= 0:
            raise ValueError("rotation_duration_s must be positive")

        if self.frame_interval_s <= 0:
            raise ValueError("frame_interval_s must be positive")


# Default configuration instance
DEFAULT_CONFIG = PipelineConfig()
