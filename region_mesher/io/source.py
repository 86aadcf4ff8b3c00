"""
Location helpers for Region Mesher.

Region documents and precomputed assets live under a base that is
either a local directory or an http(s) URL. Files are read in a worker
thread; URLs are fetched with aiohttp.
"""

from pathlib import Path
from typing import Optional
import asyncio
import logging

import aiohttp

logger = logging.getLogger(__name__)

# Seconds before an HTTP fetch is abandoned
HTTP_TIMEOUT_S = 30.0


def is_url(location: str) -> bool:
    """True for http(s) locations."""
    return location.startswith(('http://', 'https://'))


def resolve_location(base: str, filename: str) -> str:
    """
    Join a base directory or URL with a file name.

    Args:
        base: Directory path or http(s) base URL
        filename: File name such as "fr.json"

    Returns:
        Full path or URL
    """
    if is_url(base):
        return f"{base.rstrip('/')}/{filename}"
    return str(Path(base) / filename)


async def fetch_bytes(
    location: str,
    session: Optional[aiohttp.ClientSession] = None,
    timeout: float = HTTP_TIMEOUT_S
) -> bytes:
    """
    Read the raw content of a file or URL.

    Args:
        location: File path or http(s) URL
        session: Optional shared aiohttp session (one is created if None)
        timeout: HTTP timeout in seconds

    Returns:
        Content bytes

    Raises:
        FileNotFoundError: If a local file does not exist
        aiohttp.ClientError: On HTTP failure (including non-2xx status)
        asyncio.TimeoutError: If the request times out
    """
    if not is_url(location):
        path = Path(location)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {location}")
        return await asyncio.to_thread(path.read_bytes)

    logger.debug(f"GET {location}")
    client_timeout = aiohttp.ClientTimeout(total=timeout)

    if session is not None:
        async with session.get(location, timeout=client_timeout) as response:
            response.raise_for_status()
            return await response.read()

    async with aiohttp.ClientSession(timeout=client_timeout) as own_session:
        async with own_session.get(location) as response:
            response.raise_for_status()
            return await response.read()
