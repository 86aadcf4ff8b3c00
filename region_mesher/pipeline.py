"""
Region conversion pipeline for Region Mesher.

Ties normalization output, classification, tessellation and assembly
together behind the mesh cache:

    Region -> cache lookup -> (miss) assemble in a worker thread
           -> ConversionResult
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import asyncio
import logging

from .cache.mesh_cache import CacheKey, CacheTier, MeshCache
from .config import PipelineConfig, DEFAULT_CONFIG
from .models.mesh import MeshArtifact
from .models.region import AreaTier, Region
from .processing.area_classifier import Strategy, classify, polygon_area_km2
from .processing.mesh_assembler import AssemblyResult, assemble
from .processing.normalizer import first_feature_ring_sets

logger = logging.getLogger(__name__)


class ConversionError(Exception):
    """Raised when a region yields no renderable geometry."""
    pass


@dataclass
class ConversionResult:
    """
    Outcome of converting one region.

    Attributes:
        region_id: Region code
        artifacts: Renderable geometry
        area_km2: Area of the first polygon
        tier: Area tier of the first polygon
        strategy: Tessellation strategy of the first polygon
        sub_polygon_count: Pieces triangulated (None when served from cache)
        cache_tier: Where the artifacts came from
        compute_seconds: Time spent computing (0 for cache hits)
        diagnostics: Normalization and assembly messages
    """
    region_id: str
    artifacts: Tuple[MeshArtifact, ...]
    area_km2: Optional[float] = None
    tier: Optional[AreaTier] = None
    strategy: Optional[Strategy] = None
    sub_polygon_count: Optional[int] = None
    cache_tier: Optional[CacheTier] = None
    compute_seconds: float = 0.0
    diagnostics: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.artifacts) > 0

    @property
    def vertex_count(self) -> int:
        return sum(a.vertex_count() for a in self.artifacts)

    @property
    def triangle_count(self) -> int:
        return sum(a.triangle_count() for a in self.artifacts)


def first_feature_area_km2(region: Region) -> float:
    """Area of every polygon of the first feature, holes subtracted."""
    return sum(polygon_area_km2(rs) for rs in first_feature_ring_sets(region))


class RegionPipeline:
    """
    Converts Regions into artifacts, consulting the cache first.

    Attributes:
        config: Pipeline configuration
        cache: Shared mesh cache
    """

    def __init__(self, config: PipelineConfig = DEFAULT_CONFIG, cache: Optional[MeshCache] = None):
        self.config = config
        self.cache = cache if cache is not None else MeshCache()

    def cache_key(self, region: Region) -> CacheKey:
        """Canonical key for a region request."""
        return CacheKey.create(
            region.region_id,
            region.style,
            self.config.radius * region.elevation,
            region.method,
        )

    def build_artifacts(self, region: Region) -> AssemblyResult:
        """
        Compute artifacts without touching the cache.

        Synchronous and CPU-bound; convert() runs it in a worker thread.

        Raises:
            ConversionError: If the region has no usable geometry
        """
        if region.is_empty:
            raise ConversionError(
                f"Region {region.region_id!r} has no valid polygons"
                + (f" ({len(region.diagnostics)} diagnostics)" if region.diagnostics else "")
            )

        result = assemble(region, self.config)

        if not result.artifacts:
            raise ConversionError(
                f"Region {region.region_id!r} produced no {region.style.value} geometry"
            )

        for artifact in result.artifacts:
            errors = artifact.validate()
            if errors:
                raise ConversionError(
                    f"Invalid artifact for {region.region_id!r}: {errors[0]}"
                )

        return result

    async def convert(self, region: Region) -> ConversionResult:
        """
        Convert a region through the cache.

        Concurrent calls for the same key share a single computation.

        Raises:
            ConversionError: If the region has no usable geometry
        """
        key = self.cache_key(region)
        assemblies: List[AssemblyResult] = []

        async def compute() -> Tuple[MeshArtifact, ...]:
            assembly = await asyncio.to_thread(self.build_artifacts, region)
            assemblies.append(assembly)
            return tuple(assembly.artifacts)

        logger.info(f"Converting {region.region_id} ({region.style.value}, {region.method.value})")
        entry = await self.cache.get_or_compute(key, compute)

        result = ConversionResult(
            region_id=region.region_id,
            artifacts=entry.artifacts,
            cache_tier=entry.tier,
            compute_seconds=entry.compute_seconds if entry.tier is CacheTier.COMPUTED else 0.0,
            diagnostics=list(region.diagnostics),
        )

        if not region.is_empty:
            classification = classify(region.ring_sets[0], region.method, self.config)
            result.area_km2 = classification.area_km2
            result.tier = classification.tier
            result.strategy = classification.strategy

        if assemblies:
            assembly = assemblies[0]
            result.sub_polygon_count = assembly.sub_polygon_count
            result.diagnostics.extend(assembly.warnings)

        logger.info(
            f"{region.region_id}: {len(result.artifacts)} artifact(s), "
            f"{result.vertex_count} vertices from {entry.tier.value}"
        )
        return result
