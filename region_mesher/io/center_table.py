"""
Region center table for Region Mesher.

Maps region codes to the coordinate the globe turns to when the
region is selected. The table is a JSON object whose values are either
{"lat": ..., "lng": ...} or [lat, lng].
"""

from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Tuple
import json
import logging

logger = logging.getLogger(__name__)


class CenterNotFoundError(KeyError):
    """Raised when a region code has no center coordinate."""
    pass


class CenterTable:
    """
    Read-only lookup of region centers.

    Codes are matched case-insensitively.
    """

    def __init__(self, centers: Mapping[str, Tuple[float, float]]):
        self._centers: Dict[str, Tuple[float, float]] = {
            code.lower(): (float(lat), float(lng))
            for code, (lat, lng) in centers.items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CenterTable':
        """
        Build a table from decoded JSON.

        Entries that are neither a lat/lng object nor a two-element
        list are skipped with a warning.
        """
        centers: Dict[str, Tuple[float, float]] = {}
        for code, value in data.items():
            try:
                centers[code] = _parse_center(value)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping center entry {code!r}: {e}")
        return cls(centers)

    @classmethod
    def load(cls, path: str) -> 'CenterTable':
        """
        Load a table from a JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not a JSON object
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Center table not found: {path}")

        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Center table {path} must be a JSON object")

        table = cls.from_dict(data)
        logger.info(f"Loaded {len(table)} region centers from {path}")
        return table

    def lookup(self, code: str) -> Tuple[float, float]:
        """
        Get (lat, lng) for a region code.

        Raises:
            CenterNotFoundError: If the code is unknown
        """
        try:
            return self._centers[code.lower()]
        except KeyError:
            raise CenterNotFoundError(code) from None

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code.lower() in self._centers

    def __len__(self) -> int:
        return len(self._centers)

    def __iter__(self) -> Iterator[str]:
        return iter(self._centers)


def _parse_center(value: Any) -> Tuple[float, float]:
    if isinstance(value, dict):
        return (float(value['lat']), float(value['lng']))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return (float(value[0]), float(value[1]))
    raise ValueError(f"unsupported center value {value!r}")
