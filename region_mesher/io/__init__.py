"""
I/O modules for Region Mesher.

Includes:
- Region document and precomputed asset loading
- Persistent mesh store
- Center table and allow-list data
- OBJ export
"""

from .source import is_url, resolve_location, fetch_bytes
from .region_loader import (
    RegionLoadError,
    region_location,
    parse_region_document,
    load_region_document,
    load_region,
)
from .asset_loader import AssetLoadError, asset_location, decode_glb, load_asset
from .mesh_store import MeshStore, MeshStoreError, serialize_artifacts, deserialize_artifacts
from .center_table import CenterTable, CenterNotFoundError
from .allow_list import AllowListError, load_allow_list, parse_allow_list
from .obj_exporter import ExportStats, export_obj, validate_obj_file

__all__ = [
    'is_url',
    'resolve_location',
    'fetch_bytes',
    'RegionLoadError',
    'region_location',
    'parse_region_document',
    'load_region_document',
    'load_region',
    'AssetLoadError',
    'asset_location',
    'decode_glb',
    'load_asset',
    'MeshStore',
    'MeshStoreError',
    'serialize_artifacts',
    'deserialize_artifacts',
    'CenterTable',
    'CenterNotFoundError',
    'AllowListError',
    'load_allow_list',
    'parse_allow_list',
    'ExportStats',
    'export_obj',
    'validate_obj_file',
]
