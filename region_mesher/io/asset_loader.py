"""
Precomputed asset loader for Region Mesher.

Some regions ship with a precomputed GLB mesh at {base}/{code}.glb.
Loading one is much cheaper than tessellating a country-sized polygon.
The asset is decoded with trimesh and converted into a FILLED artifact.
"""

from typing import Optional
import asyncio
import io
import logging

import aiohttp
import numpy as np
import trimesh

from ..models.mesh import Material, MeshArtifact, MeshBuilder, Primitive
from ..models.region import Style
from .source import fetch_bytes, resolve_location

logger = logging.getLogger(__name__)


class AssetLoadError(Exception):
    """Raised when a precomputed asset cannot be fetched or decoded."""
    pass


def asset_location(code: str, base: str) -> str:
    """Location of a region's precomputed asset."""
    return resolve_location(base, f"{code.lower()}.glb")


def decode_glb(
    data: bytes,
    region_id: str,
    radius: float,
    material: Optional[Material] = None
) -> MeshArtifact:
    """
    Convert GLB bytes into a FILLED artifact.

    All meshes in the file are flattened into one triangle mesh with
    their node transforms applied. Materials stored in the file are
    ignored: the artifact carries the given material, so precomputed
    and computed geometry of a region render alike.

    Args:
        data: GLB content
        region_id: Region the asset belongs to
        radius: Radius the asset was authored at
        material: Material to attach (default red, double-sided)

    Returns:
        MeshArtifact

    Raises:
        AssetLoadError: If the content is not a usable triangle mesh
    """
    try:
        mesh = trimesh.load(io.BytesIO(data), file_type='glb', force='mesh')
    except Exception as e:
        # trimesh raises a variety of types for corrupt files
        raise AssetLoadError(f"Cannot decode GLB for {region_id!r}: {e}") from e

    if not isinstance(mesh, trimesh.Trimesh) or len(mesh.faces) == 0:
        raise AssetLoadError(f"GLB for {region_id!r} contains no triangles")

    vertices = np.asarray(mesh.vertices, dtype=float)
    faces = np.asarray(mesh.faces, dtype=np.int64)
    normals = np.asarray(mesh.vertex_normals, dtype=float)

    builder = MeshBuilder(
        vertices=[tuple(v) for v in vertices.tolist()],
        indices=faces.reshape(-1).tolist(),
        normals=[tuple(n) for n in normals.tolist()],
    )

    return builder.build(
        region_id=region_id,
        style=Style.FILLED,
        radius=radius,
        primitive=Primitive.TRIANGLES,
        material=material or Material(),
    )


async def load_asset(
    code: str,
    base: str,
    radius: float,
    material: Optional[Material] = None,
    session: Optional[aiohttp.ClientSession] = None
) -> MeshArtifact:
    """
    Fetch and decode a region's precomputed asset.

    Args:
        code: Region code
        base: Directory or http(s) base URL
        radius: Radius the asset was authored at
        material: Material to attach
        session: Optional shared aiohttp session

    Returns:
        MeshArtifact at the asset radius

    Raises:
        AssetLoadError: On any fetch or decode failure
    """
    location = asset_location(code, base)
    logger.info(f"Loading precomputed asset: {location}")

    try:
        data = await fetch_bytes(location, session)
    except (OSError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise AssetLoadError(f"Cannot fetch asset for {code!r} from {location}: {e}") from e

    artifact = await asyncio.to_thread(decode_glb, data, code.lower(), radius, material)
    logger.info(
        f"Loaded asset for {code}: {artifact.vertex_count()} vertices, "
        f"{artifact.triangle_count()} triangles"
    )
    return artifact
