"""
Precomputed region allow-list for Region Mesher.

Lists the region codes that have a precomputed GLB asset. These are
also always persisted after computation since they are the expensive
ones. The list is a JSON array of lower-case codes; a default copy
ships with the package.
"""

from importlib import resources
from pathlib import Path
from typing import Any, FrozenSet, Optional
import json
import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_ALLOW_LIST_RESOURCE = 'precomputed_regions.json'

_CODE_PATTERN = re.compile(r'^[a-z0-9_-]+$')


class AllowListError(Exception):
    """Raised when an allow-list file is malformed."""
    pass


def parse_allow_list(data: Any, source: str = "<memory>") -> FrozenSet[str]:
    """
    Validate decoded allow-list data.

    Codes are lower-cased; duplicates are ignored.

    Raises:
        AllowListError: If data is not a list of code strings
    """
    if not isinstance(data, list):
        raise AllowListError(f"Allow-list {source} must be a JSON array")

    codes = set()
    for i, entry in enumerate(data):
        if not isinstance(entry, str):
            raise AllowListError(f"Allow-list {source} entry {i} is not a string: {entry!r}")
        code = entry.strip().lower()
        if not _CODE_PATTERN.match(code):
            raise AllowListError(f"Allow-list {source} entry {i} is not a region code: {entry!r}")
        codes.add(code)

    return frozenset(codes)


def load_allow_list(path: Optional[str] = None) -> FrozenSet[str]:
    """
    Load an allow-list file, or the packaged default when path is None.

    Raises:
        AllowListError: If the file is missing or malformed
    """
    if path is None:
        text = resources.files('region_mesher.data').joinpath(
            DEFAULT_ALLOW_LIST_RESOURCE
        ).read_text(encoding='utf-8')
        source = f"<default {DEFAULT_ALLOW_LIST_RESOURCE}>"
    else:
        file_path = Path(path)
        if not file_path.exists():
            raise AllowListError(f"Allow-list not found: {path}")
        text = file_path.read_text(encoding='utf-8')
        source = path

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AllowListError(f"Allow-list {source} is not valid JSON: {e}") from e

    codes = parse_allow_list(data, source)
    logger.debug(f"Loaded {len(codes)} allow-listed regions from {source}")
    return codes
