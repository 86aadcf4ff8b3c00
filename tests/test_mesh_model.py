"""Tests for MeshBuilder and MeshArtifact."""
import pytest

from region_mesher.models.mesh import (
    Material,
    MeshArtifact,
    MeshBuilder,
    Primitive,
    merge_artifacts,
)
from region_mesher.models.region import Style
from region_mesher.utils.math_utils import vec_length


def triangle_artifact(radius=100.0, region_id="fr", style=Style.FILLED):
    builder = MeshBuilder()
    builder.add_vertex(radius, 0.0, 0.0)
    builder.add_vertex(0.0, radius, 0.0)
    builder.add_vertex(0.0, 0.0, radius)
    builder.add_triangle(0, 1, 2)
    builder.normals = [(1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)]
    return builder.build(region_id, style, radius)


class TestMeshBuilder:

    def test_add_vertex_returns_index(self):
        builder = MeshBuilder()
        assert builder.add_vertex(0, 0, 0) == 0
        assert builder.add_vertex(1, 0, 0) == 1
        assert builder.vertex_count() == 2

    def test_merge_offsets_indices(self):
        a = MeshBuilder(vertices=[(0, 0, 0), (1, 0, 0), (0, 1, 0)], indices=[0, 1, 2])
        b = MeshBuilder(vertices=[(0, 0, 1), (1, 0, 1), (0, 1, 1)], indices=[0, 1, 2])
        a.merge(b)
        assert a.indices == [0, 1, 2, 3, 4, 5]
        assert len(a.vertices) == 6


class TestMeshArtifact:
    """Tests for the immutable artifact."""

    def test_counts(self):
        artifact = triangle_artifact()
        assert artifact.vertex_count() == 3
        assert artifact.triangle_count() == 1
        assert not artifact.is_empty()

    def test_frozen(self):
        artifact = triangle_artifact()
        with pytest.raises(AttributeError):
            artifact.radius = 5.0

    def test_validate_bad_index(self):
        artifact = MeshArtifact(
            region_id="x",
            style=Style.FILLED,
            radius=1.0,
            primitive=Primitive.TRIANGLES,
            vertices=((0, 0, 0), (1, 0, 0), (0, 1, 0)),
            indices=(0, 1, 7),
        )
        errors = artifact.validate()
        assert len(errors) == 1
        assert "invalid vertex index 7" in errors[0]

    def test_validate_segments_need_pairs(self):
        artifact = MeshArtifact(
            region_id="x",
            style=Style.OUTLINE,
            radius=1.0,
            primitive=Primitive.LINE_SEGMENTS,
            vertices=((0, 0, 0), (1, 0, 0)),
            indices=(0, 1, 0),
        )
        assert any("multiple of 2" in e for e in artifact.validate())

    def test_line_loop_has_no_triangles(self):
        artifact = MeshArtifact(
            region_id="x",
            style=Style.OUTLINE,
            radius=1.0,
            primitive=Primitive.LINE_LOOP,
            vertices=((0, 0, 1), (1, 0, 0), (0, 1, 0)),
        )
        assert artifact.triangle_count() == 0
        assert artifact.validate() == []

    def test_reproject_scales(self):
        artifact = triangle_artifact(100.0)
        scaled = artifact.reproject(250.0)
        assert scaled.radius == 250.0
        for v in scaled.vertices:
            assert vec_length(v) == pytest.approx(250.0)
        assert scaled.normals == artifact.normals
        assert artifact.radius == 100.0

    def test_reproject_same_radius_returns_self(self):
        artifact = triangle_artifact()
        assert artifact.reproject(100.0) is artifact

    def test_reproject_pin_keeps_marker_size(self):
        artifact = MeshArtifact(
            region_id="x",
            style=Style.PIN,
            radius=100.0,
            primitive=Primitive.TRIANGLES,
            vertices=((100.0, 0.0, 0.0), (107.0, 0.0, 0.0), (100.0, 1.0, 0.0)),
            indices=(0, 1, 2),
            position=(100.0, 0.0, 0.0),
            orientation=(0.0, 0.0, 0.0, 1.0),
        )
        moved = artifact.reproject(200.0)
        assert moved.position == (200.0, 0.0, 0.0)
        assert moved.vertices[1] == (207.0, 0.0, 0.0)

    def test_dict_record(self):
        artifact = triangle_artifact()
        restored = MeshArtifact.from_dict(artifact.to_dict())
        assert restored == artifact

    def test_from_dict_malformed(self):
        record = triangle_artifact().to_dict()
        record["vertices"] = [[0.0, 1.0]]
        with pytest.raises(ValueError):
            MeshArtifact.from_dict(record)


class TestMergeArtifacts:

    def test_merge(self):
        merged = merge_artifacts([triangle_artifact(), triangle_artifact()])
        assert merged.vertex_count() == 6
        assert merged.indices == (0, 1, 2, 3, 4, 5)
        assert merged.validate() == []

    def test_single_returned_as_is(self):
        artifact = triangle_artifact()
        assert merge_artifacts([artifact]) is artifact

    def test_incompatible_radius(self):
        with pytest.raises(ValueError):
            merge_artifacts([triangle_artifact(100.0), triangle_artifact(50.0)])

    def test_empty(self):
        with pytest.raises(ValueError):
            merge_artifacts([])

    def test_first_material_kept(self):
        a = triangle_artifact()
        b = triangle_artifact()
        merged = merge_artifacts([a, b])
        assert merged.material == Material()
