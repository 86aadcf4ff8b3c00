"""
Globe session for Region Mesher.

A GlobeSession is the interactive front of the library: it owns the
cache, the rotation controller, the scene collaborator and the list of
objects currently on display. Selecting a region:

1. Looks up the region's center (unknown codes fail without touching
   the display)
2. Detaches whatever was shown before
3. Loads the region document and starts turning the globe
4. Converts the region through the cached pipeline
5. Attaches the artifacts, right away for very large regions and
   after the rotation for the rest

Only the latest selection may attach geometry. Each highlight() bumps
a generation counter and results belonging to an older generation are
discarded.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol, Union
import asyncio
import itertools
import logging

from .cache.mesh_cache import MeshCache
from .config import PipelineConfig, DEFAULT_CONFIG
from .io.center_table import CenterNotFoundError, CenterTable
from .io.region_loader import RegionLoadError, load_region_document
from .models.mesh import MeshArtifact
from .models.region import Style, TessellationMethod
from .pipeline import ConversionError, ConversionResult, RegionPipeline, first_feature_area_km2
from .processing.normalizer import region_from_document
from .rotation import RegionRotationController

logger = logging.getLogger(__name__)

DocumentLoader = Callable[[str], Awaitable[Dict[str, Any]]]


class SceneTarget(Protocol):
    """Rendering collaborator receiving artifacts."""

    def add(self, artifact: MeshArtifact) -> str:
        """Attach an artifact and return a unique object id."""
        ...

    def remove(self, object_id: str) -> bool:
        """Detach an object. Returns False if it was not attached."""
        ...


class InMemoryScene:
    """
    Scene that just records attached artifacts.

    Useful for headless runs and tests.
    """

    def __init__(self):
        self.objects: Dict[str, MeshArtifact] = {}
        self._ids = itertools.count(1)

    def add(self, artifact: MeshArtifact) -> str:
        object_id = f"{artifact.region_id}-{artifact.style.value}-{next(self._ids)}"
        self.objects[object_id] = artifact
        return object_id

    def remove(self, object_id: str) -> bool:
        return self.objects.pop(object_id, None) is not None

    def __len__(self) -> int:
        return len(self.objects)


@dataclass
class HighlightResult:
    """Outcome of one highlight() call."""
    region_id: str
    style: Style
    success: bool
    reason: Optional[str] = None
    object_ids: List[str] = field(default_factory=list)
    conversion: Optional[ConversionResult] = None
    stale: bool = False
    attached_immediately: bool = False


class GlobeSession:
    """
    Region selection state for one globe.

    Attributes:
        scene: Rendering collaborator
        centers: Region center lookup
        config: Pipeline configuration
        cache: Mesh cache shared by every conversion of this session
        pipeline: Region conversion pipeline
        rotation: Globe rotation controller
        display_scale: Scale applied to the displayed geometry

    Without an explicit center table the one at config.centers_path is
    loaded; without an explicit cache one is built from config, using
    the configured allow-list.
    """

    def __init__(
        self,
        scene: SceneTarget,
        centers: Optional[CenterTable] = None,
        config: PipelineConfig = DEFAULT_CONFIG,
        cache: Optional[MeshCache] = None,
        rotation: Optional[RegionRotationController] = None,
        document_loader: Optional[DocumentLoader] = None,
        drive_rotation: bool = True
    ):
        self.scene = scene
        self.centers = centers if centers is not None else _load_centers(config)
        self.config = config
        self.cache = cache if cache is not None else MeshCache.from_config(config)
        self.pipeline = RegionPipeline(config, self.cache)
        self.rotation = rotation or RegionRotationController(
            duration=config.rotation_duration_s,
            frame_interval=config.frame_interval_s,
        )
        self.document_loader = document_loader or self._load_document
        self.drive_rotation = drive_rotation
        self.display_scale = 1.0

        self._displayed: List[str] = []
        self._generation = 0
        self._closed = False

    @property
    def displayed(self) -> List[str]:
        """Object ids currently attached by this session."""
        return list(self._displayed)

    @property
    def generation(self) -> int:
        return self._generation

    async def _load_document(self, code: str) -> Dict[str, Any]:
        return await load_region_document(code, self.config.regions_base, self.cache.session)

    async def highlight(
        self,
        code: str,
        style: Union[str, Style] = Style.FILLED,
        method: Optional[TessellationMethod] = None
    ) -> HighlightResult:
        """
        Select a region and display it in the given style.

        Never raises for data or conversion problems; the returned
        result carries success=False and a reason instead.

        Args:
            code: Region code
            style: Rendering style
            method: Tessellation override (None = use the document's)

        Returns:
            HighlightResult
        """
        style = Style.parse(style)

        if self._closed:
            return HighlightResult(code, style, False, reason="session closed")

        try:
            target = self.centers.lookup(code)
        except CenterNotFoundError:
            logger.error(f"No center coordinate for region {code!r}")
            return HighlightResult(code, style, False, reason=f"unknown region {code!r}")

        self.detach_all()
        self.display_scale = 1.0

        self._generation += 1
        generation = self._generation

        try:
            document = await self.document_loader(code)
        except RegionLoadError as e:
            logger.error(f"Highlight of {code} failed: {e}")
            return HighlightResult(code, style, False, reason=str(e))

        if generation != self._generation:
            logger.debug(f"Dropping stale selection {code} after load")
            return HighlightResult(code, style, False, reason="superseded", stale=True)

        try:
            region = region_from_document(code, document, style, method)
            immediate = first_feature_area_km2(region) > self.config.immediate_attach_area_km2
        except Exception as e:
            logger.exception(f"Could not read region document for {code}: {e}")
            return HighlightResult(code, style, False, reason=f"invalid region document: {e}")

        animation = self.rotation.rotate_to(target)
        if self.drive_rotation:
            self.rotation.ensure_running()

        try:
            conversion = await self.pipeline.convert(region)
        except ConversionError as e:
            logger.error(f"Highlight of {code} failed: {e}")
            return HighlightResult(code, style, False, reason=str(e))
        except Exception as e:
            logger.exception(f"Highlight of {code} failed unexpectedly: {e}")
            return HighlightResult(code, style, False, reason=str(e))

        if not immediate:
            # Returns on completion or supersession alike
            await asyncio.wait({animation.completed})

        if generation != self._generation:
            logger.debug(f"Dropping stale result for {code}")
            return HighlightResult(
                code, style, False, reason="superseded", conversion=conversion, stale=True
            )

        object_ids = self._attach(conversion.artifacts)
        logger.info(f"Highlighted {code} ({style.value}): {len(object_ids)} object(s)")

        return HighlightResult(
            code,
            style,
            True,
            object_ids=object_ids,
            conversion=conversion,
            attached_immediately=immediate,
        )

    def _attach(self, artifacts: Iterable[MeshArtifact]) -> List[str]:
        object_ids = [self.scene.add(artifact) for artifact in artifacts]
        self._displayed.extend(object_ids)
        return object_ids

    def detach_all(self) -> int:
        """
        Remove every object this session attached.

        Returns:
            Number of objects the scene actually removed
        """
        removed = 0
        for object_id in self._displayed:
            if self.scene.remove(object_id):
                removed += 1
            else:
                logger.debug(f"Scene no longer had object {object_id}")
        self._displayed = []
        return removed

    def clear(self) -> None:
        """Detach everything and invalidate any pending selection."""
        self._generation += 1
        self.detach_all()

    async def close(self) -> None:
        """Tear down: clear the display and stop the rotation driver."""
        if self._closed:
            return
        self._closed = True
        self.clear()
        await self.rotation.close()
        logger.debug("Globe session closed")


def _load_centers(config: PipelineConfig) -> CenterTable:
    if not config.centers_path:
        raise ValueError("No center table given and config.centers_path is not set")
    return CenterTable.load(config.centers_path)
