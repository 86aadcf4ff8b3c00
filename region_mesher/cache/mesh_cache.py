"""
Multi-tier mesh cache for Region Mesher.

Lookup order for a key:
1. MEMORY: artifacts already built in this process
2. PERSISTENT: sqlite store surviving between runs
3. PRECOMPUTED: GLB asset shipped for allow-listed regions (FILLED only)
4. COMPUTED: run the supplied computation

Concurrent requests for the same key share one lookup/computation.
Failures are never cached: the error reaches every waiter and the
next request tries again. Store and asset failures are logged and the
lookup continues with the next tier.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Awaitable, Callable, Dict, FrozenSet, Iterable, Optional, Sequence, Tuple
import asyncio
import logging
import time

import aiohttp

from ..models.mesh import Material, MeshArtifact
from ..models.region import Style, TessellationMethod
from ..io.asset_loader import AssetLoadError, load_asset
from ..io.allow_list import load_allow_list
from ..io.mesh_store import MeshStore, MeshStoreError
from ..config import (
    PipelineConfig,
    PERSIST_MIN_SECONDS,
    PERSIST_MIN_VERTICES,
    PRECOMPUTED_ASSET_RADIUS,
)

logger = logging.getLogger(__name__)

ComputeFn = Callable[[], Awaitable[Sequence[MeshArtifact]]]


class ComputationCancelledError(Exception):
    """Raised in requests that joined a computation whose owner was cancelled."""
    pass


class CacheTier(Enum):
    """Where a cache entry was obtained from."""
    MEMORY = "memory"
    PERSISTENT = "persistent"
    PRECOMPUTED = "precomputed"
    COMPUTED = "computed"


@dataclass(frozen=True)
class CacheKey:
    """
    Identity of a cached result.

    Use CacheKey.create() to get the canonical form: the region id is
    lower-cased and the method is AUTO for styles that do not tessellate.
    """
    region_id: str
    style: Style
    radius: float
    method: TessellationMethod = TessellationMethod.AUTO

    @classmethod
    def create(
        cls,
        region_id: str,
        style: Style,
        radius: float,
        method: TessellationMethod = TessellationMethod.AUTO
    ) -> 'CacheKey':
        if style is not Style.FILLED:
            method = TessellationMethod.AUTO
        return cls(region_id.strip().lower(), style, float(radius), method)

    def as_string(self) -> str:
        """Stable string form used as the persistent store key."""
        return f"{self.region_id}|{self.style.value}|{self.radius!r}|{self.method.value}"


@dataclass(frozen=True)
class CacheEntry:
    """Artifacts for one key plus bookkeeping."""
    key: CacheKey
    artifacts: Tuple[MeshArtifact, ...]
    tier: CacheTier
    vertex_count: int = 0
    index_count: int = 0
    size_bytes: Optional[int] = None
    compute_seconds: float = 0.0

    @classmethod
    def build(
        cls,
        key: CacheKey,
        artifacts: Iterable[MeshArtifact],
        tier: CacheTier,
        compute_seconds: float = 0.0,
        size_bytes: Optional[int] = None
    ) -> 'CacheEntry':
        artifacts = tuple(artifacts)
        return cls(
            key=key,
            artifacts=artifacts,
            tier=tier,
            vertex_count=sum(a.vertex_count() for a in artifacts),
            index_count=sum(len(a.indices) for a in artifacts),
            size_bytes=size_bytes,
            compute_seconds=compute_seconds,
        )


@dataclass
class CacheStats:
    """Counters describing cache behaviour."""
    hits: Dict[CacheTier, int] = field(
        default_factory=lambda: {tier: 0 for tier in CacheTier if tier is not CacheTier.COMPUTED}
    )
    misses: int = 0
    computes: int = 0
    failures: int = 0
    coalesced: int = 0
    persisted: int = 0

    def total_hits(self) -> int:
        return sum(self.hits.values())

    def to_dict(self) -> Dict[str, int]:
        result = {f"{tier.value}_hits": count for tier, count in self.hits.items()}
        result.update({
            'misses': self.misses,
            'computes': self.computes,
            'failures': self.failures,
            'coalesced': self.coalesced,
            'persisted': self.persisted,
        })
        return result


class MeshCache:
    """
    Cache of region artifacts across memory, disk and shipped assets.

    All methods must be called from the event loop thread; blocking
    I/O is delegated to worker threads by the store and asset loader.
    """

    def __init__(
        self,
        store: Optional[MeshStore] = None,
        allow_list: FrozenSet[str] = frozenset(),
        assets_base: Optional[str] = None,
        asset_radius: float = PRECOMPUTED_ASSET_RADIUS,
        persist_min_seconds: float = PERSIST_MIN_SECONDS,
        persist_min_vertices: int = PERSIST_MIN_VERTICES,
        material: Optional[Material] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.store = store
        self.allow_list = frozenset(code.lower() for code in allow_list)
        self.assets_base = assets_base
        self.asset_radius = asset_radius
        self.persist_min_seconds = persist_min_seconds
        self.persist_min_vertices = persist_min_vertices
        self.material = material
        self.session = session

        self._memory: Dict[CacheKey, CacheEntry] = {}
        self._in_flight: Dict[CacheKey, asyncio.Future] = {}
        self._stats = CacheStats()

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        allow_list: Optional[FrozenSet[str]] = None,
        session: Optional[aiohttp.ClientSession] = None
    ) -> 'MeshCache':
        """
        Create a cache wired to the store, assets and allow-list named in config.

        Raises:
            AllowListError: If no allow-list is given and the configured one
                cannot be read
        """
        if allow_list is None:
            allow_list = load_allow_list(config.allow_list_path)
        store = MeshStore(config.cache_db) if config.cache_db else None
        return cls(
            store=store,
            allow_list=allow_list,
            assets_base=config.assets_base,
            asset_radius=config.precomputed_asset_radius,
            persist_min_seconds=config.persist_min_seconds,
            persist_min_vertices=config.persist_min_vertices,
            material=Material(color=config.color),
            session=session,
        )

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def peek(self, key: CacheKey) -> Optional[CacheEntry]:
        """Memory-tier lookup without touching stats or other tiers."""
        return self._memory.get(key)

    async def get_or_compute(self, key: CacheKey, compute: ComputeFn) -> CacheEntry:
        """
        Return the entry for key, computing it on a full miss.

        Args:
            key: Canonical cache key
            compute: Coroutine factory producing the artifacts

        Returns:
            CacheEntry whose tier tells where the artifacts came from

        Raises:
            Whatever compute raises (shared by all concurrent waiters)
            ComputationCancelledError: In joined requests when the request
                that started the computation is cancelled
        """
        entry = self._memory.get(key)
        if entry is not None:
            self._stats.hits[CacheTier.MEMORY] += 1
            logger.debug(f"Memory hit for {key.as_string()}")
            return replace(entry, tier=CacheTier.MEMORY)

        pending = self._in_flight.get(key)
        if pending is not None:
            self._stats.coalesced += 1
            logger.debug(f"Joining in-flight request for {key.as_string()}")
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            entry = await self._resolve(key, compute)
        except asyncio.CancelledError:
            # Joined requests see a regular error
            future.set_exception(ComputationCancelledError(
                f"Computation of {key.as_string()} was cancelled"
            ))
            future.exception()
            raise
        except Exception as e:
            self._stats.failures += 1
            future.set_exception(e)
            # Mark retrieved so an unawaited future does not log a warning
            future.exception()
            raise
        else:
            future.set_result(entry)
            return entry
        finally:
            del self._in_flight[key]

    async def _resolve(self, key: CacheKey, compute: ComputeFn) -> CacheEntry:
        entry = await self._load_persistent(key)
        if entry is None:
            entry = await self._load_precomputed(key)

        if entry is not None:
            self._stats.hits[entry.tier] += 1
            self._memory[key] = entry
            return entry

        self._stats.misses += 1
        logger.info(f"Cache miss for {key.as_string()}, computing")

        start = time.perf_counter()
        artifacts = tuple(await compute())
        elapsed = time.perf_counter() - start
        self._stats.computes += 1

        entry = CacheEntry.build(key, artifacts, CacheTier.COMPUTED, compute_seconds=elapsed)
        self._memory[key] = entry

        if self.should_persist(entry):
            size_bytes = await self._save_persistent(entry)
            if size_bytes is not None:
                entry = replace(entry, size_bytes=size_bytes)
                self._memory[key] = entry

        logger.info(
            f"Computed {key.as_string()} in {elapsed:.2f}s "
            f"({entry.vertex_count} vertices)"
        )
        return entry

    async def _load_persistent(self, key: CacheKey) -> Optional[CacheEntry]:
        if self.store is None:
            return None

        try:
            artifacts = await self.store.aget(key.as_string())
        except MeshStoreError as e:
            logger.warning(f"Persistent cache read failed, continuing: {e}")
            return None

        if artifacts is None:
            return None

        logger.info(f"Loaded {key.as_string()} from persistent cache")
        return CacheEntry.build(key, artifacts, CacheTier.PERSISTENT)

    async def _load_precomputed(self, key: CacheKey) -> Optional[CacheEntry]:
        if (key.style is not Style.FILLED or
                key.region_id not in self.allow_list or
                not self.assets_base):
            return None

        try:
            artifact = await load_asset(
                key.region_id,
                self.assets_base,
                self.asset_radius,
                material=self.material,
                session=self.session,
            )
        except AssetLoadError as e:
            logger.warning(f"Precomputed asset unavailable, continuing: {e}")
            return None

        if key.radius != artifact.radius:
            artifact = await asyncio.to_thread(artifact.reproject, key.radius)

        return CacheEntry.build(key, (artifact,), CacheTier.PRECOMPUTED)

    def should_persist(self, entry: CacheEntry) -> bool:
        """
        Decide whether a computed entry is worth writing to disk.

        True for allow-listed regions, slow computations and large meshes.
        """
        if self.store is None:
            return False
        return (
            entry.key.region_id in self.allow_list or
            entry.compute_seconds >= self.persist_min_seconds or
            entry.vertex_count >= self.persist_min_vertices
        )

    async def _save_persistent(self, entry: CacheEntry) -> Optional[int]:
        try:
            size_bytes = await self.store.aput(entry.key.as_string(), entry.artifacts)
        except MeshStoreError as e:
            logger.warning(f"Persistent cache write failed, continuing: {e}")
            return None

        self._stats.persisted += 1
        logger.debug(f"Persisted {entry.key.as_string()} ({size_bytes} bytes)")
        return size_bytes

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def invalidate(self, key: CacheKey) -> bool:
        """
        Drop a key from memory and the persistent store.

        Returns:
            True if the key was present in either tier
        """
        removed = self._memory.pop(key, None) is not None

        if self.store is not None:
            try:
                removed = await self.store.adelete(key.as_string()) or removed
            except MeshStoreError as e:
                logger.warning(f"Persistent cache delete failed: {e}")

        return removed

    async def clear(self, persistent: bool = False) -> None:
        """Empty the memory tier, and the persistent store if requested."""
        self._memory.clear()
        if persistent and self.store is not None:
            try:
                await self.store.aclear()
            except MeshStoreError as e:
                logger.warning(f"Persistent cache clear failed: {e}")

    def stats(self) -> CacheStats:
        """Snapshot of the counters."""
        return replace(self._stats, hits=dict(self._stats.hits))

    def __len__(self) -> int:
        return len(self._memory)

    def __contains__(self, key: object) -> bool:
        return key in self._memory
