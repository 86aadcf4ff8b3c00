"""Tests for ear clipping triangulation."""
import pytest

from region_mesher.models.geometry import Point2D, RingSet
from region_mesher.utils.polygon_utils import polygon_signed_area
from region_mesher.utils.triangulation import (
    flatten,
    triangulate,
    triangulate_ring_set,
    validate_triangulation,
)

from conftest import square_coords


def triangles(vertices, indices):
    return [
        (vertices[indices[i]], vertices[indices[i + 1]], vertices[indices[i + 2]])
        for i in range(0, len(indices), 3)
    ]


def total_area(vertices, indices):
    return sum(polygon_signed_area(list(t)) for t in triangles(vertices, indices))


class TestFlatten:

    def test_closing_points_dropped(self):
        rs = RingSet.from_coordinates([square_coords(0, 0, 4), square_coords(1, 1, 2)])
        coords, holes, dims = flatten(rs.rings)
        assert dims == 2
        assert len(coords) == 16
        assert holes == [4]


class TestTriangulate:
    """Tests for triangulate() and triangulate_ring_set()."""

    def test_square(self):
        rs = RingSet.from_coordinates([square_coords(0, 0, 1)])
        vertices, indices = triangulate_ring_set(rs)
        assert len(vertices) == 4
        assert len(indices) == 6
        assert validate_triangulation(vertices, indices, expected_area=1.0) == []

    def test_square_with_hole(self):
        rs = RingSet.from_coordinates([square_coords(0, 0, 4), square_coords(1, 1, 2)])
        vertices, indices = triangulate_ring_set(rs)
        assert len(indices) // 3 == 8
        assert total_area(vertices, indices) == pytest.approx(12.0)

    def test_concave_l_shape(self):
        coords = [[0, 0], [2, 0], [2, 1], [1, 1], [1, 2], [0, 2], [0, 0]]
        vertices, indices = triangulate_ring_set(RingSet.from_coordinates([coords]))
        assert len(indices) // 3 == 4
        assert total_area(vertices, indices) == pytest.approx(3.0)

    def test_output_ccw_for_cw_input(self):
        coords = list(reversed(square_coords(0, 0, 1)))
        vertices, indices = triangulate_ring_set(RingSet.from_coordinates([coords]))
        for tri in triangles(vertices, indices):
            assert polygon_signed_area(list(tri)) > 0

    def test_output_ccw_with_hole(self):
        rs = RingSet.from_coordinates([square_coords(0, 0, 4), square_coords(1, 1, 2)])
        vertices, indices = triangulate_ring_set(rs)
        for tri in triangles(vertices, indices):
            assert polygon_signed_area(list(tri)) > 0

    def test_collinear_ring_yields_nothing(self):
        assert triangulate([0, 0, 1, 0, 2, 0]) == []

    def test_too_few_points(self):
        assert triangulate([0, 0, 1, 1]) == []

    def test_small_coordinates(self):
        size = 1e-4
        rs = RingSet.from_coordinates([square_coords(10.0, 45.0, size)])
        vertices, indices = triangulate_ring_set(rs)
        assert len(indices) == 6
        assert total_area(vertices, indices) == pytest.approx(size * size, rel=1e-3)

    def test_degenerate_hole_ignored(self):
        outer = square_coords(0, 0, 4)
        hole = [[1, 1], [2, 1], [3, 1], [1, 1]]
        vertices, indices = triangulate_ring_set(RingSet.from_coordinates([outer, hole]))
        assert total_area(vertices, indices) == pytest.approx(16.0)


class TestValidateTriangulation:

    def test_no_triangles(self):
        assert validate_triangulation([Point2D(0, 0)], []) == ["No triangles generated"]

    def test_out_of_range(self):
        vertices = [Point2D(0, 0), Point2D(1, 0), Point2D(0, 1)]
        errors = validate_triangulation(vertices, [0, 1, 5])
        assert errors and "out of range" in errors[0]

    def test_area_mismatch(self):
        vertices = [Point2D(0, 0), Point2D(1, 0), Point2D(0, 1)]
        errors = validate_triangulation(vertices, [0, 1, 2], expected_area=1.0)
        assert any("differs" in e for e in errors)
