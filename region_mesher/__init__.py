"""
Region Mesher

Converts geographic boundary polygons (GeoJSON, lat/lng) into 3D
geometry draped on a globe: filled surfaces, outline loops and pin
markers. Repeated requests are served from a memory, sqlite or
precomputed-asset cache.

Can be used as:
- CLI tool: python -m region_mesher.main
- Library: GlobeSession / RegionPipeline
"""

__version__ = "0.3.0"
__author__ = "Region Mesher Team"
