"""Tests for sphere projection and vector helpers."""
import math

import pytest

from region_mesher.models.geometry import Point2D
from region_mesher.projection import (
    SphereProjector,
    compute_vertex_normals,
    create_projector,
    face_normal,
)
from region_mesher.utils.math_utils import vec_length, vec_normalize


class TestSphereProjector:
    """Tests for the lat/lng to XYZ mapping."""

    def test_reference_faces_plus_z(self):
        assert SphereProjector(100).project(0.0, -90.0) == pytest.approx((0.0, 0.0, 100.0), abs=1e-9)

    def test_prime_meridian_on_plus_x(self):
        assert SphereProjector(100).project(0.0, 0.0) == pytest.approx((100.0, 0.0, 0.0), abs=1e-9)

    def test_seam_on_minus_x(self):
        assert SphereProjector(1).project(0.0, 180.0) == pytest.approx((-1.0, 0.0, 0.0), abs=1e-9)
        assert SphereProjector(1).project(0.0, -180.0) == pytest.approx((-1.0, 0.0, 0.0), abs=1e-9)

    def test_north_pole_up(self):
        assert SphereProjector(50).project(90.0, 123.0) == pytest.approx((0.0, 50.0, 0.0), abs=1e-9)

    def test_points_on_sphere(self):
        projector = SphereProjector(100)
        for lat, lng in [(45.2, 10.2), (-33.9, 151.2), (64.1, -21.9)]:
            assert vec_length(projector.project(lat, lng)) == pytest.approx(100.0)

    def test_project_point_uses_lng_lat(self):
        projector = SphereProjector(10)
        assert projector.project_point(Point2D(30.0, 20.0)) == projector.project(20.0, 30.0)

    def test_unproject(self):
        projector = SphereProjector(100)
        lat, lng = projector.unproject(*projector.project(48.85, 2.35))
        assert lat == pytest.approx(48.85)
        assert lng == pytest.approx(2.35)

    def test_invalid_radius(self):
        with pytest.raises(ValueError):
            SphereProjector(0)

    def test_create_projector_with_elevation(self):
        assert create_projector(100.0, 1.05).radius == pytest.approx(105.0)


class TestNormals:

    def test_face_normal_right_hand(self):
        n = face_normal((0, 0, 0), (1, 0, 0), (0, 1, 0))
        assert n == pytest.approx((0.0, 0.0, 1.0))

    def test_vertex_normals_shared(self):
        vertices = [(0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0)]
        normals = compute_vertex_normals(vertices, [0, 1, 2, 0, 2, 3])
        for n in normals:
            assert n == pytest.approx((0.0, 0.0, 1.0))

    def test_unused_vertex_zero(self):
        vertices = [(0, 0, 0), (1, 0, 0), (0, 1, 0), (5, 5, 5)]
        normals = compute_vertex_normals(vertices, [0, 1, 2])
        assert normals[3] == (0.0, 0.0, 0.0)
        assert math.isclose(vec_length(normals[0]), 1.0)

    def test_welded_pieces_share_normals(self):
        # Two separately indexed triangles meeting along a folded edge
        vertices = [
            (0, 0, 0), (1, 0, 0), (0, 1, 0),
            (1, 0, 0), (1, 1, 1), (0, 1, 0),
        ]
        indices = [0, 1, 2, 3, 4, 5]

        apart = compute_vertex_normals(vertices, indices)
        assert apart[1] != apart[3]

        welded = compute_vertex_normals(vertices, indices, weld_decimals=6)
        expected = vec_normalize((-1.0, -1.0, 2.0))
        assert welded[1] == pytest.approx(expected)
        assert welded[3] == pytest.approx(expected)
        assert welded[2] == pytest.approx(welded[5])
        assert welded[0] == pytest.approx((0.0, 0.0, 1.0))
        assert welded[4] == pytest.approx(vec_normalize((-1.0, -1.0, 1.0)))
