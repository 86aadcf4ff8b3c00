"""
Region document loader for Region Mesher.

Region documents are GeoJSON feature collections stored as
{base}/{code}.json, optionally carrying a display name and a
meshMethod hint ("earcut" or "turf").
"""

from typing import Any, Dict, Optional
import asyncio
import json
import logging

import aiohttp

from ..models.region import Region, Style, TessellationMethod
from ..processing.normalizer import region_from_document
from .source import fetch_bytes, resolve_location

logger = logging.getLogger(__name__)


class RegionLoadError(Exception):
    """Raised when a region document cannot be fetched or parsed."""
    pass


def region_location(code: str, base: str) -> str:
    """Location of a region document."""
    return resolve_location(base, f"{code.lower()}.json")


def parse_region_document(data: bytes, location: str = "<memory>") -> Dict[str, Any]:
    """
    Decode a region document.

    Raises:
        RegionLoadError: If the content is not a JSON object
    """
    try:
        document = json.loads(data.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise RegionLoadError(f"Invalid region document {location}: {e}") from e

    if not isinstance(document, dict):
        raise RegionLoadError(
            f"Invalid region document {location}: expected an object, "
            f"got {type(document).__name__}"
        )

    return document


async def load_region_document(
    code: str,
    base: str,
    session: Optional[aiohttp.ClientSession] = None
) -> Dict[str, Any]:
    """
    Fetch and decode the document for a region code.

    Args:
        code: Region code
        base: Directory or http(s) base URL
        session: Optional shared aiohttp session

    Returns:
        Parsed document

    Raises:
        RegionLoadError: On any fetch or decode failure
    """
    location = region_location(code, base)
    logger.info(f"Loading region document: {location}")

    try:
        data = await fetch_bytes(location, session)
    except (OSError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise RegionLoadError(f"Cannot load region {code!r} from {location}: {e}") from e

    return parse_region_document(data, location)


async def load_region(
    code: str,
    base: str,
    style: Style = Style.FILLED,
    method: Optional[TessellationMethod] = None,
    elevation: float = 1.0,
    session: Optional[aiohttp.ClientSession] = None
) -> Region:
    """
    Fetch a region document and normalize it into a Region.

    Raises:
        RegionLoadError: On any fetch or decode failure
    """
    document = await load_region_document(code, base, session)
    region = region_from_document(code, document, style, method, elevation)

    logger.info(
        f"Region {code}: {len(region.features)} features, "
        f"{len(region.ring_sets)} polygons"
    )
    return region
