"""Pytest configuration and shared fixtures."""
import json
from pathlib import Path

import pytest

from region_mesher.config import PipelineConfig


def square_coords(lng, lat, size):
    """Closed CCW square ring with its south-west corner at (lng, lat)."""
    return [
        [lng, lat],
        [lng + size, lat],
        [lng + size, lat + size],
        [lng, lat + size],
        [lng, lat],
    ]


def rect_coords(min_lng, min_lat, max_lng, max_lat):
    return [
        [min_lng, min_lat],
        [max_lng, min_lat],
        [max_lng, max_lat],
        [min_lng, max_lat],
        [min_lng, min_lat],
    ]


def feature_collection(*geometries, **extra):
    doc = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {}, "geometry": g}
            for g in geometries
        ],
    }
    doc.update(extra)
    return doc


@pytest.fixture
def small_square_document():
    """Half-degree square in Europe (SMALL tier)."""
    return feature_collection(
        {"type": "Polygon", "coordinates": [square_coords(10.0, 45.0, 0.5)]},
        name="Small Square",
    )


@pytest.fixture
def large_document():
    """About 370 000 km² near the equator (LARGE tier)."""
    return feature_collection(
        {"type": "Polygon", "coordinates": [rect_coords(0.0, 0.0, 6.0, 5.0)]},
        name="Large Block",
    )


@pytest.fixture
def very_large_document():
    """About 3.7 million km² near the equator (VERY_LARGE tier)."""
    return feature_collection(
        {"type": "Polygon", "coordinates": [rect_coords(0.0, 0.0, 20.0, 15.0)]},
        name="Very Large Block",
    )


@pytest.fixture
def holed_document():
    """Square with a square hole, as a MultiPolygon plus a second island."""
    outer = square_coords(20.0, 40.0, 1.0)
    hole = square_coords(20.25, 40.25, 0.5)
    island = square_coords(22.0, 40.0, 0.2)
    return feature_collection(
        {"type": "MultiPolygon", "coordinates": [[outer, hole], [island]]},
        name="Holed",
    )


@pytest.fixture
def test_config(tmp_path):
    """Fast configuration without persistent store or assets."""
    return PipelineConfig(
        regions_base=str(tmp_path / "regions"),
        assets_base=None,
        cache_db=None,
        rotation_duration_s=0.05,
        frame_interval_s=0.005,
        output_dir=str(tmp_path / "output"),
    )


@pytest.fixture
def regions_dir(tmp_path, small_square_document, holed_document):
    """Directory with region documents on disk."""
    directory = tmp_path / "regions"
    directory.mkdir()
    (directory / "sq.json").write_text(json.dumps(small_square_document))
    (directory / "ho.json").write_text(json.dumps(holed_document))
    (directory / "broken.json").write_text("{not json")
    return directory


@pytest.fixture
def store_path(tmp_path) -> Path:
    return tmp_path / "cache" / "mesh_cache.sqlite3"
