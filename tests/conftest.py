"""Shared fixtures: a 3x3 grid of square tiles and a two-alliance roster."""

import pytest

from territory_planner.core.alliances import Alliance, AllianceRoster
from territory_planner.core.geometry import Tile

TILE_SIZE = 100


def square(tile_id, col, row, size=TILE_SIZE, offset_x=0.0, offset_y=0.0):
    """Axis aligned square tile at grid position (col, row)."""
    x = col * size + offset_x
    y = row * size + offset_y
    return Tile(id=tile_id, polygon=[(x, y), (x + size, y), (x + size, y + size), (x, y + size)])


@pytest.fixture
def grid_tiles():
    """
    3x3 grid, ids by row::

        0 1 2
        3 4 5
        6 7 8
    """
    return [square(row * 3 + col, col, row) for row in range(3) for col in range(3)]


@pytest.fixture
def roster():
    return AllianceRoster(
        [
            Alliance(id="red", name="Red", color="#E74C3C"),
            Alliance(id="blue", name="Blue", color="#3498DB"),
        ]
    )
