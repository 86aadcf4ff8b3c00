"""Tests for the sqlite artifact store."""
import asyncio
import sqlite3

import pytest

from region_mesher.io.mesh_store import (
    MIGRATIONS,
    SCHEMA_VERSION,
    MeshStore,
    MeshStoreError,
    serialize_artifacts,
)

from test_mesh_model import triangle_artifact


class TestMeshStore:
    """Tests for MeshStore."""

    def test_put_get(self, store_path):
        store = MeshStore(store_path)
        artifacts = (triangle_artifact(), triangle_artifact(region_id="de"))

        size = store.put("fr|filled|100.0|auto", artifacts)

        assert size > 0
        assert store.size_of("fr|filled|100.0|auto") == size
        assert store.get("fr|filled|100.0|auto") == artifacts

    def test_missing_key(self, store_path):
        assert MeshStore(store_path).get("nope") is None

    def test_creates_parent_directory(self, store_path):
        MeshStore(store_path).open()
        assert store_path.exists()

    def test_unusable_directory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = MeshStore(blocker / "sub" / "cache.sqlite3")

        with pytest.raises(MeshStoreError):
            store.open()
        with pytest.raises(MeshStoreError):
            store.get("fr|filled|100.0|auto")

    def test_replace(self, store_path):
        store = MeshStore(store_path)
        store.put("k", [triangle_artifact(100.0)])
        store.put("k", [triangle_artifact(50.0)])
        assert store.get("k")[0].radius == 50.0
        assert store.keys() == ["k"]

    def test_delete_and_clear(self, store_path):
        store = MeshStore(store_path)
        store.put("a", [triangle_artifact()])
        store.put("b", [triangle_artifact()])

        assert store.delete("a")
        assert not store.delete("a")
        assert store.keys() == ["b"]

        store.clear()
        assert store.keys() == []

    def test_survives_reopen(self, store_path):
        MeshStore(store_path).put("k", [triangle_artifact()])
        assert MeshStore(store_path).get("k") == (triangle_artifact(),)

    def test_corrupt_value(self, store_path):
        store = MeshStore(store_path)
        store.open()
        conn = sqlite3.connect(str(store_path))
        with conn:
            conn.execute("INSERT INTO mesh_data (key, value) VALUES ('bad', '{\"x\": 1}')")
        conn.close()

        with pytest.raises(MeshStoreError):
            store.get("bad")

    def test_async_wrappers(self, store_path):
        store = MeshStore(store_path)

        async def run():
            await store.aput("k", [triangle_artifact()])
            found = await store.aget("k")
            removed = await store.adelete("k")
            await store.aclear()
            return found, removed

        found, removed = asyncio.run(run())
        assert found == (triangle_artifact(),)
        assert removed


class TestMigrations:
    """Tests for schema upgrades."""

    def test_fresh_store_at_latest_version(self, store_path):
        assert MeshStore(store_path).open() == SCHEMA_VERSION
        conn = sqlite3.connect(str(store_path))
        assert conn.execute("PRAGMA user_version").fetchone()[0] == SCHEMA_VERSION
        conn.close()

    def test_upgrade_from_first_version(self, store_path):
        store_path.parent.mkdir(parents=True)
        conn = sqlite3.connect(str(store_path))
        with conn:
            for statement in MIGRATIONS[0]:
                conn.execute(statement)
            conn.execute(
                "INSERT INTO mesh_data (key, value) VALUES (?, ?)",
                ("old", serialize_artifacts([triangle_artifact()])),
            )
            conn.execute("PRAGMA user_version = 1")
        conn.close()

        store = MeshStore(store_path)
        assert store.open() == SCHEMA_VERSION
        assert store.get("old") == (triangle_artifact(),)
        assert store.size_of("old") == 0

    def test_newer_schema_rejected(self, store_path):
        store_path.parent.mkdir(parents=True)
        conn = sqlite3.connect(str(store_path))
        conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION + 1}")
        conn.close()

        with pytest.raises(MeshStoreError):
            MeshStore(store_path).open()
