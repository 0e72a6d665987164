"""
Tile geometry document models and loading.

The document is JSON::

    {"width": 2000, "height": 1500,
     "tiles": [{"id": 0, "polygon": [{"x": 10, "y": 20}, ...]}, ...]}

Points may also be given as ``[x, y]`` pairs. Negative or duplicate tile
ids are treated as a corrupt source and fail validation at load time.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel, Field, model_validator

from ..core.geometry import Tile

logger = structlog.get_logger()


class Point(BaseModel):
    """Polygon vertex."""

    model_config = {"frozen": True}

    x: float
    y: float

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, data: Any) -> Any:
        """Accept [x, y] pairs as well as {"x": .., "y": ..} objects."""
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                raise ValueError(f"Point needs 2 coordinates, got {len(data)}")
            return {"x": data[0], "y": data[1]}
        return data


class TileGeometry(BaseModel):
    """One tile of the geometry document."""

    id: int = Field(..., ge=0, description="Stable tile id")
    polygon: List[Point] = Field(default_factory=list, description="Ordered vertices, closed implicitly")

    def to_tile(self) -> Tile:
        return Tile(id=self.id, polygon=[(p.x, p.y) for p in self.polygon])


class TileGeometryDocument(BaseModel):
    """Map dimensions and tile polygons."""

    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    tiles: List[TileGeometry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "TileGeometryDocument":
        seen = set()
        duplicates = set()
        for tile in self.tiles:
            if tile.id in seen:
                duplicates.add(tile.id)
            seen.add(tile.id)
        if duplicates:
            raise ValueError(f"Duplicate tile ids: {sorted(duplicates)}")
        return self

    def to_tiles(self) -> List[Tile]:
        return [tile.to_tile() for tile in self.tiles]


def load_tile_geometry(path: Union[str, Path]) -> TileGeometryDocument:
    """
    Load and validate a geometry document.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the document is malformed
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    document = TileGeometryDocument.model_validate(raw)
    logger.info("Loaded tile geometry", path=str(path), tiles=len(document.tiles))
    return document


class TileGeometryRepository:
    """Caches parsed geometry documents; geometry is static for a session."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        if path is None:
            from ..config import settings

            path = settings.geometry_path
        self.path = Path(path)
        self._cache: Optional[TileGeometryDocument] = None

    def load(self) -> TileGeometryDocument:
        if self._cache is None:
            self._cache = load_tile_geometry(self.path)
        return self._cache

    def invalidate_cache(self) -> None:
        self._cache = None

    def summary(self) -> Dict[str, Any]:
        document = self.load()
        return {"path": str(self.path), "width": document.width, "height": document.height, "tiles": len(document.tiles)}
