"""
Tile geometry.

Tiles are polygons given as ordered vertex lists, closed implicitly
(the last vertex connects back to the first).
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

Point = Tuple[float, float]


@dataclass
class Tile:
    """A polygonal map cell with a stable integer id.

    The polygon is stored as an ``(n, 2)`` float array. The bounding box is
    derived once at construction since geometry is static for a session.
    """

    id: int
    polygon: np.ndarray
    min_x: float = field(init=False)
    min_y: float = field(init=False)
    max_x: float = field(init=False)
    max_y: float = field(init=False)

    def __post_init__(self):
        polygon = np.asarray(self.polygon, dtype=float)
        if polygon.size == 0:
            polygon = polygon.reshape(0, 2)
        if polygon.ndim != 2 or polygon.shape[1] != 2:
            raise ValueError(f"Tile {self.id}: polygon must be a list of [x, y] points")
        self.polygon = polygon

        if len(polygon):
            self.min_x, self.min_y = (float(v) for v in polygon.min(axis=0))
            self.max_x, self.max_y = (float(v) for v in polygon.max(axis=0))
        else:
            self.min_x = self.min_y = self.max_x = self.max_y = 0.0

    @property
    def is_degenerate(self) -> bool:
        """Fewer than 3 vertices; such tiles never border anything."""
        return len(self.polygon) < 3

    @property
    def bbox(self) -> Tuple[float, float, float, float]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def edges(self) -> Tuple[np.ndarray, np.ndarray]:
        """Edge start and end points, wrapping last vertex to first."""
        return self.polygon, np.roll(self.polygon, -1, axis=0)

    @property
    def centroid(self) -> Point:
        return polygon_centroid(self.polygon)


def bboxes_overlap(a: Tile, b: Tile, slack: float = 10.0) -> bool:
    """Overlap test on both axes with each box expanded by ``slack``."""
    x_overlap = not (a.max_x < b.min_x - slack or b.max_x < a.min_x - slack)
    y_overlap = not (a.max_y < b.min_y - slack or b.max_y < a.min_y - slack)
    return x_overlap and y_overlap


def polygon_centroid(polygon: Sequence[Point]) -> Point:
    """
    Area centroid of a simple polygon using the shoelace formula.

    Falls back to the vertex mean when the polygon has no area.

    Args:
        polygon: Ordered vertices

    Returns:
        (x, y) centroid
    """
    pts = np.asarray(polygon, dtype=float)
    if len(pts) == 0:
        raise ValueError("Cannot take the centroid of an empty polygon")

    x, y = pts[:, 0], pts[:, 1]
    xn, yn = np.roll(x, -1), np.roll(y, -1)
    cross = x * yn - xn * y
    area = cross.sum() / 2

    if abs(area) < 1e-12:
        return float(x.mean()), float(y.mean())

    cx = ((x + xn) * cross).sum() / (6 * area)
    cy = ((y + yn) * cross).sum() / (6 * area)
    return float(cx), float(cy)


def point_in_polygon(point: Point, polygon: Sequence[Point]) -> bool:
    """Ray casting point-in-polygon test."""
    px, py = point
    pts = [(float(p[0]), float(p[1])) for p in polygon]
    inside = False

    j = len(pts) - 1
    for i in range(len(pts)):
        xi, yi = pts[i]
        xj, yj = pts[j]
        if (yi > py) != (yj > py) and px < (xj - xi) * (py - yi) / (yj - yi) + xi:
            inside = not inside
        j = i

    return inside


def tile_at(point: Point, tiles: Iterable[Tile]) -> Optional[Tile]:
    """Return the first tile whose polygon contains ``point``."""
    px, py = point
    for tile in tiles:
        if tile.is_degenerate:
            continue
        if not (tile.min_x <= px <= tile.max_x and tile.min_y <= py <= tile.max_y):
            continue
        if point_in_polygon(point, tile.polygon):
            return tile
    return None
