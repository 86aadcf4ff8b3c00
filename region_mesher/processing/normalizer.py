"""
Geometry normalization for Region Mesher.

Turns GeoJSON-style geometries into validated RingSets:
- Unclosed rings are closed by repeating their first point
- Coordinates with fewer than 2 components are dropped
- Rings left with fewer than 4 points are dropped
- A polygon whose outer ring is dropped is dropped entirely

Only Polygon and MultiPolygon geometries are supported. Anything else
is reported and skipped so the remaining features still convert.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from ..models.geometry import Point2D, Ring, RingSet
from ..models.region import Region, Style, TessellationMethod
from ..utils.polygon_utils import close_ring

logger = logging.getLogger(__name__)

MIN_RING_POINTS = 4

SUPPORTED_GEOMETRY_TYPES = ('Polygon', 'MultiPolygon')


@dataclass
class NormalizeResult:
    """Result of normalizing a feature collection."""
    ring_sets: List[RingSet]
    diagnostics: List[str] = field(default_factory=list)
    # Index into ring_sets where each feature's polygons start
    feature_offsets: List[int] = field(default_factory=list)


def normalize_ring(
    coords: Sequence[Sequence[float]],
    diagnostics: Optional[List[str]] = None,
    label: str = "ring"
) -> Optional[Ring]:
    """
    Convert raw coordinates into a closed ring.

    Args:
        coords: Sequence of [lng, lat, ...] positions
        diagnostics: Optional list collecting messages
        label: Name used in messages

    Returns:
        Closed ring, or None if fewer than 4 points remain after closing
    """
    points: List[Point2D] = []
    dropped = 0

    if not _is_sequence(coords):
        _report(diagnostics, f"{label}: not a coordinate list, dropped")
        return None

    for c in coords:
        if not _is_sequence(c) or len(c) < 2:
            dropped += 1
            continue
        try:
            points.append(Point2D(float(c[0]), float(c[1])))
        except (TypeError, ValueError):
            dropped += 1

    if dropped:
        _report(diagnostics, f"{label}: dropped {dropped} malformed coordinate(s)")

    ring = close_ring(points)
    if len(ring) < MIN_RING_POINTS:
        _report(diagnostics, f"{label}: only {len(ring)} points after closing, dropped")
        return None

    return ring


def normalize_polygon(
    coords: Sequence[Sequence[Sequence[float]]],
    diagnostics: Optional[List[str]] = None,
    label: str = "polygon"
) -> Optional[RingSet]:
    """
    Normalize one polygon's rings.

    Returns:
        RingSet, or None if the outer ring is invalid
    """
    if not _is_sequence(coords) or not coords:
        _report(diagnostics, f"{label}: no rings")
        return None

    outer = normalize_ring(coords[0], diagnostics, f"{label} outer ring")
    if outer is None:
        return None

    holes: List[Ring] = []
    for i, hole_coords in enumerate(coords[1:], 1):
        hole = normalize_ring(hole_coords, diagnostics, f"{label} hole {i}")
        if hole is not None:
            holes.append(hole)

    return RingSet(outer_ring=outer, holes=holes)


def normalize_geometry(
    geometry: Optional[Dict[str, Any]],
    diagnostics: Optional[List[str]] = None,
    label: str = "geometry"
) -> List[RingSet]:
    """
    Normalize a Polygon or MultiPolygon geometry.

    Args:
        geometry: GeoJSON geometry object
        diagnostics: Optional list collecting messages
        label: Name used in messages

    Returns:
        List of RingSets (empty for unsupported or invalid geometry)
    """
    if not geometry:
        _report(diagnostics, f"{label}: missing geometry")
        return []
    if not isinstance(geometry, dict):
        _report(diagnostics, f"{label}: geometry is not an object")
        return []

    geom_type = geometry.get('type')
    coordinates = geometry.get('coordinates') or []
    if not _is_sequence(coordinates):
        _report(diagnostics, f"{label}: coordinates are not a list")
        return []

    if geom_type == 'Polygon':
        polygons = [coordinates]
    elif geom_type == 'MultiPolygon':
        polygons = list(coordinates)
    else:
        _report(diagnostics, f"{label}: unsupported geometry type {geom_type!r}")
        return []

    ring_sets: List[RingSet] = []
    for i, polygon in enumerate(polygons):
        ring_set = normalize_polygon(polygon, diagnostics, f"{label} polygon {i}")
        if ring_set is not None:
            ring_sets.append(ring_set)

    return ring_sets


def normalize_features(features: Sequence[Dict[str, Any]]) -> NormalizeResult:
    """
    Normalize every feature of a collection.

    Args:
        features: GeoJSON features (each with a 'geometry' member)

    Returns:
        NormalizeResult with all RingSets in feature order
    """
    diagnostics: List[str] = []
    ring_sets: List[RingSet] = []
    offsets: List[int] = []

    for i, feature in enumerate(features):
        offsets.append(len(ring_sets))
        geometry = feature.get('geometry') if isinstance(feature, dict) else None
        ring_sets.extend(normalize_geometry(geometry, diagnostics, f"feature {i}"))

    logger.debug(
        f"Normalized {len(features)} features into {len(ring_sets)} polygons "
        f"({len(diagnostics)} diagnostics)"
    )

    return NormalizeResult(ring_sets=ring_sets, diagnostics=diagnostics, feature_offsets=offsets)


def region_from_document(
    code: str,
    document: Dict[str, Any],
    style: Style = Style.FILLED,
    method: Optional[TessellationMethod] = None,
    elevation: float = 1.0
) -> Region:
    """
    Build a Region from a region document.

    The document's meshMethod is used unless an explicit method is
    given. A bare geometry or a single Feature is accepted in place of
    a FeatureCollection.

    Args:
        code: Region identifier
        document: Parsed region document
        style: Requested rendering style
        method: Tessellation override (None = use document)
        elevation: Radius multiplier

    Returns:
        Region (possibly empty; callers decide whether that is an error)
    """
    features = _extract_features(document)
    result = normalize_features(features)
    properties = document if isinstance(document, dict) else {}

    if method is None:
        method = TessellationMethod.from_document(properties.get('meshMethod'))

    return Region(
        region_id=code,
        ring_sets=result.ring_sets,
        style=style,
        method=method,
        name=properties.get('name'),
        elevation=elevation,
        features=features,
        diagnostics=result.diagnostics,
    )


def first_feature_ring_sets(region: Region) -> List[RingSet]:
    """Normalized polygons of the region's first feature."""
    if not region.features:
        return list(region.ring_sets[:1])
    first = region.features[0]
    return normalize_geometry(first.get('geometry') if isinstance(first, dict) else None)


def _extract_features(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    if not isinstance(document, dict):
        _report(None, "region document is not an object")
        return []
    doc_type = document.get('type')
    if 'features' in document:
        features = document.get('features') or []
        if not _is_sequence(features):
            _report(None, "region document features are not a list")
            return []
        return list(features)
    if doc_type == 'Feature':
        return [document]
    if doc_type in SUPPORTED_GEOMETRY_TYPES:
        return [{'type': 'Feature', 'geometry': document, 'properties': {}}]
    return []


def _report(diagnostics: Optional[List[str]], message: str) -> None:
    logger.warning(message)
    if diagnostics is not None:
        diagnostics.append(message)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))
