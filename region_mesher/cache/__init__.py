"""
Caching for Region Mesher.
"""

from .mesh_cache import (
    CacheEntry,
    CacheKey,
    CacheStats,
    CacheTier,
    ComputationCancelledError,
    MeshCache,
)

__all__ = [
    'CacheEntry',
    'CacheKey',
    'CacheStats',
    'CacheTier',
    'ComputationCancelledError',
    'MeshCache',
]
