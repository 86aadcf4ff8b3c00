"""Tests for region, center, allow-list, asset and OBJ I/O."""
import asyncio
import json

import pytest
import trimesh

from region_mesher.io.allow_list import AllowListError, load_allow_list, parse_allow_list
from region_mesher.io.asset_loader import AssetLoadError, asset_location, decode_glb
from region_mesher.io.center_table import CenterNotFoundError, CenterTable
from region_mesher.io.obj_exporter import export_obj, validate_obj_file
from region_mesher.io.region_loader import (
    RegionLoadError,
    load_region,
    parse_region_document,
    region_location,
)
from region_mesher.io.source import is_url, resolve_location
from region_mesher.models.mesh import Material
from region_mesher.models.region import Style
from region_mesher.processing.mesh_assembler import assemble
from region_mesher.processing.normalizer import region_from_document


class TestAllowList:
    """Tests for the precomputed region allow-list."""

    def test_packaged_default(self):
        codes = load_allow_list()
        assert len(codes) == 41
        assert {"fr", "us", "ru", "br", "id"} <= codes

    def test_codes_lowercased(self):
        assert parse_allow_list(["FR", " de "]) == frozenset({"fr", "de"})

    def test_not_a_list(self):
        with pytest.raises(AllowListError):
            parse_allow_list({"fr": True})

    def test_non_string_entry(self):
        with pytest.raises(AllowListError):
            parse_allow_list(["fr", 3])

    def test_bad_code(self):
        with pytest.raises(AllowListError):
            parse_allow_list(["../etc"])

    def test_file(self, tmp_path):
        path = tmp_path / "allow.json"
        path.write_text(json.dumps(["fr", "de"]))
        assert load_allow_list(str(path)) == frozenset({"fr", "de"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(AllowListError):
            load_allow_list(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "allow.json"
        path.write_text("[fr")
        with pytest.raises(AllowListError):
            load_allow_list(str(path))


class TestCenterTable:
    """Tests for region center lookup."""

    def test_both_formats(self):
        table = CenterTable.from_dict({
            "fr": {"lat": 46.2, "lng": 2.2},
            "de": [51.2, 10.4],
            "xx": "nowhere",
        })
        assert len(table) == 2
        assert table.lookup("FR") == (46.2, 2.2)
        assert table.lookup("de") == (51.2, 10.4)
        assert "xx" not in table

    def test_unknown_code(self):
        table = CenterTable({"fr": (46.2, 2.2)})
        with pytest.raises(CenterNotFoundError):
            table.lookup("zz")
        with pytest.raises(KeyError):
            table.lookup("zz")

    def test_load(self, tmp_path):
        path = tmp_path / "centers.json"
        path.write_text(json.dumps({"fr": [46.2, 2.2]}))
        table = CenterTable.load(str(path))
        assert list(table) == ["fr"]

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CenterTable.load(str(tmp_path / "nope.json"))

    def test_load_not_object(self, tmp_path):
        path = tmp_path / "centers.json"
        path.write_text("[]")
        with pytest.raises(ValueError):
            CenterTable.load(str(path))


class TestLocations:

    def test_file_location(self, tmp_path):
        assert region_location("FR", str(tmp_path)) == str(tmp_path / "fr.json")

    def test_url_location(self):
        assert is_url("https://example.org/country")
        assert asset_location("FR", "https://example.org/data/") == "https://example.org/data/fr.glb"
        assert resolve_location("http://h/c", "fr.json") == "http://h/c/fr.json"


class TestRegionLoader:
    """Tests for fetching and decoding region documents."""

    def test_load(self, regions_dir):
        region = asyncio.run(load_region("SQ", str(regions_dir), Style.OUTLINE))
        assert region.region_id == "SQ"
        assert region.style is Style.OUTLINE
        assert region.name == "Small Square"
        assert len(region.ring_sets) == 1

    def test_missing(self, regions_dir):
        with pytest.raises(RegionLoadError):
            asyncio.run(load_region("zz", str(regions_dir)))

    def test_broken_json(self, regions_dir):
        with pytest.raises(RegionLoadError):
            asyncio.run(load_region("broken", str(regions_dir)))

    def test_not_an_object(self):
        with pytest.raises(RegionLoadError):
            parse_region_document(b"[1, 2, 3]")


class TestAssetDecoding:

    def test_invalid_bytes(self):
        with pytest.raises(AssetLoadError):
            decode_glb(b"definitely not a glb", "fr", 100.0)

    def test_transform_applied_and_material_replaced(self):
        scene = trimesh.Scene()
        scene.add_geometry(
            trimesh.creation.box(extents=[2.0, 2.0, 2.0]),
            transform=trimesh.transformations.translation_matrix([10.0, 0.0, 0.0]),
        )
        data = scene.export(file_type="glb")

        artifact = decode_glb(data, "fr", 100.0, Material(color="green", double_sided=False))

        xs = [v[0] for v in artifact.vertices]
        assert min(xs) == pytest.approx(9.0)
        assert max(xs) == pytest.approx(11.0)
        assert artifact.triangle_count() == 12
        assert artifact.material == Material(color="green", double_sided=False)
        assert artifact.validate() == []


class TestObjExport:
    """Tests for OBJ export."""

    def test_filled_and_outline(self, tmp_path, holed_document):
        filled = assemble(region_from_document("ho", holed_document)).artifacts
        outline = assemble(region_from_document("ho", holed_document, Style.OUTLINE)).artifacts
        path = tmp_path / "out" / "ho.obj"

        stats = export_obj(list(filled) + list(outline), str(path), comment="test")

        assert path.exists()
        assert stats.total_groups == 4
        assert stats.total_lines == 3
        assert stats.total_faces == filled[0].triangle_count()
        assert stats.total_normals == filled[0].vertex_count()
        assert validate_obj_file(str(path)) == []

        lines = path.read_text().splitlines()
        loops = [line.split()[1:] for line in lines if line.startswith("l ")]
        assert all(loop[0] == loop[-1] for loop in loops)

    def test_combined_segments(self, tmp_path, holed_document):
        region = region_from_document("ho", holed_document, Style.OUTLINE)
        artifacts = assemble(region, combine_outlines=True).artifacts
        path = tmp_path / "segments.obj"

        stats = export_obj(artifacts, str(path))

        assert stats.total_lines == 12
        assert validate_obj_file(str(path)) == []

    def test_validate_missing(self, tmp_path):
        errors = validate_obj_file(str(tmp_path / "nope.obj"))
        assert errors and "does not exist" in errors[0]

    def test_validate_bad_reference(self, tmp_path):
        path = tmp_path / "bad.obj"
        path.write_text("v 0 0 0\nv 1 0 0\nf 1 2 3\n")
        errors = validate_obj_file(str(path))
        assert any("only 2 vertices" in e for e in errors)
