"""
Persistent mesh store for Region Mesher.

A small sqlite key/value store holding serialized artifacts between
runs. Values are JSON arrays of MeshArtifact.to_dict() records.

Schema (current version 2):
    mesh_data(key TEXT PRIMARY KEY, value TEXT, size_bytes INTEGER,
              created_at REAL)

The schema version is tracked with PRAGMA user_version and upgraded
when the store is opened. Every read and write runs in its own
connection and transaction, so the async wrappers can hand them to a
worker thread.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import asyncio
import json
import logging
import sqlite3
import time

from ..models.mesh import MeshArtifact

logger = logging.getLogger(__name__)


class MeshStoreError(Exception):
    """Raised when the persistent store cannot be read or written."""
    pass


# Index i upgrades the schema from version i to version i + 1
MIGRATIONS: List[Tuple[str, ...]] = [
    (
        "CREATE TABLE IF NOT EXISTS mesh_data ("
        " key TEXT PRIMARY KEY,"
        " value TEXT NOT NULL)",
    ),
    (
        "ALTER TABLE mesh_data ADD COLUMN size_bytes INTEGER NOT NULL DEFAULT 0",
        "ALTER TABLE mesh_data ADD COLUMN created_at REAL NOT NULL DEFAULT 0",
    ),
]

SCHEMA_VERSION = len(MIGRATIONS)


def serialize_artifacts(artifacts: Sequence[MeshArtifact]) -> str:
    """Encode artifacts as a compact JSON string."""
    return json.dumps([a.to_dict() for a in artifacts], separators=(',', ':'))


def deserialize_artifacts(value: str) -> Tuple[MeshArtifact, ...]:
    """
    Decode a JSON string written by serialize_artifacts().

    Raises:
        ValueError: If the value is not a list of artifact records
    """
    records = json.loads(value)
    if not isinstance(records, list):
        raise ValueError("Stored value is not a list")
    try:
        return tuple(MeshArtifact.from_dict(r) for r in records)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed artifact record: {e}") from e


class MeshStore:
    """
    sqlite-backed artifact store.

    Attributes:
        path: Database file (":memory:" is not supported since every
            operation opens its own connection)
    """

    def __init__(self, path: str):
        self.path = str(path)
        self._ready = False

    def _connect(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(self.path, timeout=10.0)
        except sqlite3.Error as e:
            raise MeshStoreError(f"Cannot open mesh store {self.path}: {e}") from e

    def open(self) -> int:
        """
        Create the database if needed and apply pending migrations.

        Returns:
            Schema version after upgrading

        Raises:
            MeshStoreError: If the database cannot be opened or upgraded
        """
        parent = Path(self.path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise MeshStoreError(f"Cannot create directory for mesh store {self.path}: {e}") from e

        conn = self._connect()
        try:
            version = conn.execute("PRAGMA user_version").fetchone()[0]
            if version > SCHEMA_VERSION:
                raise MeshStoreError(
                    f"Mesh store {self.path} has schema version {version}, "
                    f"newer than supported {SCHEMA_VERSION}"
                )

            for target in range(version, SCHEMA_VERSION):
                with conn:
                    for statement in MIGRATIONS[target]:
                        conn.execute(statement)
                    conn.execute(f"PRAGMA user_version = {target + 1}")
                logger.info(f"Upgraded mesh store {self.path} to schema version {target + 1}")

            self._ready = True
            return SCHEMA_VERSION
        except sqlite3.Error as e:
            raise MeshStoreError(f"Cannot upgrade mesh store {self.path}: {e}") from e
        finally:
            conn.close()

    def _ensure_open(self) -> None:
        if not self._ready:
            self.open()

    def get(self, key: str) -> Optional[Tuple[MeshArtifact, ...]]:
        """
        Read the artifacts stored under a key.

        Returns:
            Artifacts, or None if the key is absent

        Raises:
            MeshStoreError: On database errors or undecodable values
        """
        self._ensure_open()
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT value FROM mesh_data WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise MeshStoreError(f"Cannot read {key!r} from {self.path}: {e}") from e
        finally:
            conn.close()

        if row is None:
            return None

        try:
            return deserialize_artifacts(row[0])
        except ValueError as e:
            raise MeshStoreError(f"Corrupt entry {key!r} in {self.path}: {e}") from e

    def put(self, key: str, artifacts: Sequence[MeshArtifact]) -> int:
        """
        Store artifacts under a key, replacing any previous value.

        Returns:
            Serialized size in bytes

        Raises:
            MeshStoreError: On database errors
        """
        self._ensure_open()
        value = serialize_artifacts(artifacts)
        size_bytes = len(value.encode('utf-8'))

        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO mesh_data (key, value, size_bytes, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    (key, value, size_bytes, time.time()),
                )
        except sqlite3.Error as e:
            raise MeshStoreError(f"Cannot write {key!r} to {self.path}: {e}") from e
        finally:
            conn.close()

        logger.debug(f"Stored {key!r} ({size_bytes} bytes)")
        return size_bytes

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        self._ensure_open()
        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute("DELETE FROM mesh_data WHERE key = ?", (key,))
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise MeshStoreError(f"Cannot delete {key!r} from {self.path}: {e}") from e
        finally:
            conn.close()

    def clear(self) -> None:
        """Remove every entry."""
        self._ensure_open()
        conn = self._connect()
        try:
            with conn:
                conn.execute("DELETE FROM mesh_data")
        except sqlite3.Error as e:
            raise MeshStoreError(f"Cannot clear {self.path}: {e}") from e
        finally:
            conn.close()

    def keys(self) -> List[str]:
        """All stored keys, sorted."""
        self._ensure_open()
        conn = self._connect()
        try:
            rows = conn.execute("SELECT key FROM mesh_data ORDER BY key").fetchall()
        except sqlite3.Error as e:
            raise MeshStoreError(f"Cannot list keys of {self.path}: {e}") from e
        finally:
            conn.close()
        return [r[0] for r in rows]

    def size_of(self, key: str) -> Optional[int]:
        """Serialized size recorded for a key, or None if absent."""
        self._ensure_open()
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT size_bytes FROM mesh_data WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise MeshStoreError(f"Cannot read {key!r} from {self.path}: {e}") from e
        finally:
            conn.close()
        return row[0] if row else None

    # Async wrappers: sqlite calls run in a worker thread

    async def aget(self, key: str) -> Optional[Tuple[MeshArtifact, ...]]:
        return await asyncio.to_thread(self.get, key)

    async def aput(self, key: str, artifacts: Sequence[MeshArtifact]) -> int:
        return await asyncio.to_thread(self.put, key, list(artifacts))

    async def adelete(self, key: str) -> bool:
        return await asyncio.to_thread(self.delete, key)

    async def aclear(self) -> None:
        await asyncio.to_thread(self.clear)

    def __repr__(self) -> str:
        return f"MeshStore({self.path!r})"
