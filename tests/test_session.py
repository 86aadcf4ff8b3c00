"""Tests for region selection on a globe session."""
import asyncio
import json

import pytest
import trimesh

from region_mesher.config import PipelineConfig
from region_mesher.io.center_table import CenterTable
from region_mesher.io.region_loader import RegionLoadError
from region_mesher.models.region import Style
from region_mesher.session import GlobeSession, InMemoryScene

from conftest import square_coords
from test_mesh_model import triangle_artifact


CENTERS = CenterTable({
    "sq": (45.25, 10.25),
    "ho": (40.5, 20.5),
    "vl": (7.5, 10.0),
    "empty": (0.0, 0.0),
    "gone": (1.0, 1.0),
})


@pytest.fixture
def documents(small_square_document, holed_document, very_large_document):
    return {
        "sq": small_square_document,
        "ho": holed_document,
        "vl": very_large_document,
        "empty": {"type": "FeatureCollection", "features": []},
    }


def make_loader(documents, delay=0.01):
    async def load(code):
        await asyncio.sleep(delay)
        try:
            return documents[code.lower()]
        except KeyError:
            raise RegionLoadError(f"Cannot load region {code!r}") from None
    return load


def make_session(config, documents, **kwargs):
    return GlobeSession(
        InMemoryScene(),
        CENTERS,
        config,
        document_loader=make_loader(documents),
        **kwargs,
    )


class TestHighlight:
    """Tests for GlobeSession.highlight()."""

    def test_success(self, test_config, documents):

        async def run():
            session = make_session(test_config, documents)
            result = await session.highlight("SQ")
            await session.close()
            return session, result

        session, result = asyncio.run(run())
        assert result.success
        assert result.style is Style.FILLED
        assert len(result.object_ids) == 1
        assert not result.attached_immediately
        assert result.conversion.cache_tier.value == "computed"

    def test_waits_for_rotation(self, test_config, documents):

        async def run():
            session = make_session(test_config, documents)
            result = await session.highlight("sq", "outline")
            active = session.rotation.active
            orientation = session.rotation.orientation
            expected = session.rotation.orientation_for(CENTERS.lookup("sq"))
            await session.close()
            return result, active, orientation, expected

        result, active, orientation, expected = asyncio.run(run())
        assert result.success
        assert active is None
        assert orientation == expected

    def test_replaces_previous_selection(self, test_config, documents):

        async def run():
            session = make_session(test_config, documents)
            first = await session.highlight("sq")
            second = await session.highlight("ho", Style.OUTLINE)
            objects = dict(session.scene.objects)
            displayed = session.displayed
            await session.close()
            return first, second, objects, displayed

        first, second, objects, displayed = asyncio.run(run())
        assert first.success and second.success
        assert set(objects) == set(second.object_ids)
        assert displayed == second.object_ids
        assert all(a.region_id == "ho" for a in objects.values())
        assert len(objects) == 3

    def test_unknown_region_keeps_display(self, test_config, documents):

        async def run():
            session = make_session(test_config, documents)
            shown = await session.highlight("sq")
            missing = await session.highlight("zz")
            objects = set(session.scene.objects)
            await session.close()
            return shown, missing, objects

        shown, missing, objects = asyncio.run(run())
        assert not missing.success
        assert "zz" in missing.reason
        assert objects == set(shown.object_ids)

    def test_load_failure_reported(self, test_config, documents):

        async def run():
            session = make_session(test_config, documents)
            result = await session.highlight("gone")
            await session.close()
            return session, result

        session, result = asyncio.run(run())
        assert not result.success
        assert "gone" in result.reason
        assert len(session.scene) == 0

    def test_empty_region_reported(self, test_config, documents):

        async def run():
            session = make_session(test_config, documents)
            result = await session.highlight("empty")
            await session.close()
            return session, result

        session, result = asyncio.run(run())
        assert not result.success
        assert "no valid polygons" in result.reason
        assert len(session.scene) == 0

    def test_latest_selection_wins(self, test_config, documents):

        async def run():
            session = make_session(test_config, documents)
            results = await asyncio.gather(
                session.highlight("sq"),
                session.highlight("ho"),
            )
            objects = dict(session.scene.objects)
            await session.close()
            return results, objects

        (older, newer), objects = asyncio.run(run())
        assert older.stale and not older.success
        assert newer.success
        assert set(objects) == set(newer.object_ids)
        assert all(a.region_id == "ho" for a in objects.values())

    def test_very_large_attached_immediately(self, tmp_path, documents):
        config = PipelineConfig(
            cache_db=None,
            assets_base=None,
            rotation_duration_s=30.0,
            output_dir=str(tmp_path),
        )

        async def run():
            session = make_session(config, documents)
            result = await asyncio.wait_for(session.highlight("vl", Style.OUTLINE), timeout=10.0)
            still_rotating = session.rotation.active is not None
            await session.close()
            return result, still_rotating

        result, still_rotating = asyncio.run(run())
        assert result.success
        assert result.attached_immediately
        assert still_rotating

    def test_second_highlight_uses_cache(self, test_config, documents):

        async def run():
            session = make_session(test_config, documents)
            await session.highlight("sq")
            again = await session.highlight("sq")
            await session.close()
            return again

        again = asyncio.run(run())
        assert again.success
        assert again.conversion.cache_tier.value == "memory"


class TestSessionLifecycle:

    def test_clear(self, test_config, documents):

        async def run():
            session = make_session(test_config, documents)
            await session.highlight("sq")
            session.clear()
            remaining = len(session.scene)
            await session.close()
            return remaining

        assert asyncio.run(run()) == 0

    def test_closed_session_refuses(self, test_config, documents):

        async def run():
            session = make_session(test_config, documents)
            await session.close()
            return await session.highlight("sq")

        result = asyncio.run(run())
        assert not result.success
        assert result.reason == "session closed"

    def test_scene_object_ids(self):
        scene = InMemoryScene()

        first = scene.add(triangle_artifact())
        second = scene.add(triangle_artifact())
        assert first != second
        assert first.startswith("fr-filled-")
        assert scene.remove(first)
        assert not scene.remove(first)


class TestMalformedDocuments:
    """Malformed region documents fail or degrade without raising."""

    def test_malformed_feature_before_valid_one(self, test_config, documents):
        documents["xx"] = {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "geometry": {
                    "type": "Polygon", "coordinates": [[0, 0], [1, 0], [1, 1], [0, 0]],
                }},
                {"type": "Feature", "geometry": {
                    "type": "Polygon", "coordinates": [square_coords(1, 1, 0.5)],
                }},
            ],
        }
        centers = CenterTable({"xx": (1.25, 1.25)})

        async def run():
            session = GlobeSession(
                InMemoryScene(), centers, test_config, document_loader=make_loader(documents)
            )
            result = await session.highlight("xx")
            await session.close()
            return result

        result = asyncio.run(run())
        assert result.success
        assert not result.attached_immediately
        assert len(result.object_ids) == 1
        assert result.conversion.diagnostics

    def test_document_that_is_not_an_object(self, test_config, documents):
        documents["sq"] = ["not", "a", "document"]

        async def run():
            session = make_session(test_config, documents)
            result = await session.highlight("sq")
            await session.close()
            return session, result

        session, result = asyncio.run(run())
        assert not result.success
        assert "no valid polygons" in result.reason
        assert len(session.scene) == 0


class TestSessionFromConfig:
    """Sessions built only from a PipelineConfig."""

    @pytest.fixture
    def configured(self, tmp_path):
        assets = tmp_path / "assets"
        assets.mkdir()
        box = trimesh.creation.box(extents=[2.0, 2.0, 2.0])
        (assets / "sq.glb").write_bytes(box.export(file_type="glb"))

        allow_list = tmp_path / "allow.json"
        allow_list.write_text(json.dumps(["sq"]))
        centers = tmp_path / "centers.json"
        centers.write_text(json.dumps({"sq": [45.25, 10.25], "ho": [40.5, 20.5]}))

        return PipelineConfig(
            assets_base=str(assets),
            allow_list_path=str(allow_list),
            centers_path=str(centers),
            cache_db=None,
            rotation_duration_s=0.05,
            frame_interval_s=0.005,
            output_dir=str(tmp_path),
        )

    def test_precomputed_asset_for_allow_listed_region(self, configured, documents):

        async def run():
            session = GlobeSession(InMemoryScene(), config=configured,
                                   document_loader=make_loader(documents))
            filled = await session.highlight("sq")
            other = await session.highlight("ho")
            await session.close()
            return session, filled, other

        session, filled, other = asyncio.run(run())
        assert "sq" in session.cache.allow_list
        assert filled.success
        assert filled.conversion.cache_tier.value == "precomputed"
        assert filled.conversion.artifacts[0].triangle_count() == 12
        assert other.success
        assert other.conversion.cache_tier.value == "computed"

    def test_centers_loaded_from_config(self, configured):
        session = GlobeSession(InMemoryScene(), config=configured)
        assert session.centers.lookup("SQ") == (45.25, 10.25)
        assert "ho" in session.centers

    def test_centers_required(self, test_config):
        with pytest.raises(ValueError):
            GlobeSession(InMemoryScene(), config=test_config)
