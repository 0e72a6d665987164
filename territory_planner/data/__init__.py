"""
Tile geometry documents.
"""

from .tile_geometry import (
    Point,
    TileGeometry,
    TileGeometryDocument,
    TileGeometryRepository,
    load_tile_geometry,
)

__all__ = ["Point", "TileGeometry", "TileGeometryDocument", "TileGeometryRepository", "load_tile_geometry"]
