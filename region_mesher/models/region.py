"""
Region data model for Region Mesher.

Provides the Region record and the enums used to select rendering
style and tessellation strategy.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .geometry import RingSet


class Style(Enum):
    """Rendering style requested for a region."""
    FILLED = "filled"
    OUTLINE = "outline"
    PIN = "pin"

    @classmethod
    def parse(cls, value: Union[str, 'Style']) -> 'Style':
        """
        Parse a style name.

        Accepts enum values plus the legacy names used by older region
        documents ("mesh", "lines").

        Raises:
            ValueError: If the name is not a known style
        """
        if isinstance(value, Style):
            return value

        name = value.lower().strip()
        aliases = {
            'mesh': cls.FILLED,
            'lines': cls.OUTLINE,
            'line': cls.OUTLINE,
        }
        if name in aliases:
            return aliases[name]
        return cls(name)


class TessellationMethod(Enum):
    """
    Tessellation strategy override.

    AUTO: pick by area tier.
    EARCUT: always triangulate the polygon directly.
    GRID: always split into grid cells first.
    """
    AUTO = "auto"
    EARCUT = "earcut"
    GRID = "grid"

    @classmethod
    def from_document(cls, value: Optional[str]) -> 'TessellationMethod':
        """
        Map a region document's meshMethod field to a method.

        "turf" is the historical name for grid tessellation.
        Unknown or missing values fall back to AUTO.
        """
        if not value or not isinstance(value, str):
            return cls.AUTO

        value = value.lower().strip()
        if value == 'earcut':
            return cls.EARCUT
        if value in ('turf', 'grid'):
            return cls.GRID
        if value == 'auto':
            return cls.AUTO
        return cls.AUTO


class AreaTier(Enum):
    """Size class of a polygon, used to pick tessellation parameters."""
    SMALL = "small"
    LARGE = "large"
    VERY_LARGE = "very_large"


@dataclass
class Region:
    """
    A named geographic area ready for conversion.

    Attributes:
        region_id: Region code (e.g. "fr"), case-normalized by the cache
        ring_sets: Normalized polygons of the region
        style: Requested rendering style
        method: Tessellation override
        name: Optional display name from the source document
        elevation: Multiplier applied to the projection radius
        features: Raw GeoJSON features (kept for the pin centroid)
        diagnostics: Messages collected while normalizing
    """
    region_id: str
    ring_sets: List[RingSet] = field(default_factory=list)
    style: Style = Style.FILLED
    method: TessellationMethod = TessellationMethod.AUTO
    name: Optional[str] = None
    elevation: float = 1.0
    features: List[Dict[str, Any]] = field(default_factory=list)
    diagnostics: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when no valid geometry survived normalization."""
        return len(self.ring_sets) == 0
