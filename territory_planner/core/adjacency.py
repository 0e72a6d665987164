"""
Tile adjacency from raw polygon geometry.

Two tiles are adjacent when they share an edge: some edge of one polygon has
at least two of its four endpoint-to-endpoint distances to some edge of the
other polygon below the proximity threshold. A padded bounding box test
rejects most pairs before any edge is compared.
"""

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Sequence, Set

import numpy as np
import structlog

from .geometry import Tile, bboxes_overlap

logger = structlog.get_logger()

DEFAULT_PROXIMITY_THRESHOLD = 5.0
DEFAULT_BBOX_SLACK = 10.0


@dataclass
class AdjacencyGraph:
    """Symmetric mapping from tile id to the ids of its neighbours."""

    neighbors: Dict[int, Set[int]] = field(default_factory=dict)

    def __contains__(self, tile_id: int) -> bool:
        return tile_id in self.neighbors

    def __len__(self) -> int:
        return len(self.neighbors)

    def get_adjacent_tiles(self, tile_id: int) -> Set[int]:
        """Neighbours of a tile (empty for unknown tiles)."""
        return set(self.neighbors.get(tile_id, ()))

    def is_adjacent(self, a: int, b: int) -> bool:
        return b in self.neighbors.get(a, ())

    def is_adjacent_to_owned(self, tile_id: int, owned_tile_ids: AbstractSet[int]) -> bool:
        """Check whether a tile borders any tile in ``owned_tile_ids``."""
        adjacent = self.neighbors.get(tile_id)
        if not adjacent:
            return False
        return not adjacent.isdisjoint(owned_tile_ids)

    def edge_count(self) -> int:
        return sum(len(v) for v in self.neighbors.values()) // 2

    def to_dict(self) -> Dict[int, List[int]]:
        """Sorted, JSON friendly form."""
        return {tile_id: sorted(adj) for tile_id, adj in sorted(self.neighbors.items())}

    @classmethod
    def from_dict(cls, data: Dict[int, Iterable[int]]) -> "AdjacencyGraph":
        """Build a graph from a (possibly one-sided) mapping, symmetrising it."""
        neighbors: Dict[int, Set[int]] = {int(k): set() for k in data}
        for tile_id, adjacent in data.items():
            for other in adjacent:
                neighbors[int(tile_id)].add(int(other))
                neighbors.setdefault(int(other), set()).add(int(tile_id))
        return cls(neighbors=neighbors)


def polygons_share_edge(
    polygon_a: np.ndarray,
    polygon_b: np.ndarray,
    threshold: float = DEFAULT_PROXIMITY_THRESHOLD,
) -> bool:
    """
    Check whether any edge of ``polygon_a`` lies along an edge of ``polygon_b``.

    Every edge of A is compared with every edge of B. An edge pair matches
    when at least 2 of the 4 endpoint distances (start-start, start-end,
    end-start, end-end) are strictly below ``threshold``.

    Args:
        polygon_a: (n, 2) vertex array
        polygon_b: (m, 2) vertex array
        threshold: Proximity threshold in map units

    Returns:
        True if at least one edge pair matches
    """
    if len(polygon_a) < 3 or len(polygon_b) < 3:
        return False

    a_start = polygon_a
    a_end = np.roll(polygon_a, -1, axis=0)
    b_start = polygon_b
    b_end = np.roll(polygon_b, -1, axis=0)

    def close(p: np.ndarray, q: np.ndarray) -> np.ndarray:
        # (n, m) matrix of endpoint distances below the threshold
        d = np.linalg.norm(p[:, None, :] - q[None, :, :], axis=2)
        return (d < threshold).astype(np.int8)

    close_count = (
        close(a_start, b_start)
        + close(a_start, b_end)
        + close(a_end, b_start)
        + close(a_end, b_end)
    )
    return bool(np.any(close_count >= 2))


def build_adjacency(
    tiles: Sequence[Tile],
    threshold: float = DEFAULT_PROXIMITY_THRESHOLD,
    bbox_slack: float = DEFAULT_BBOX_SLACK,
) -> AdjacencyGraph:
    """
    Build the symmetric adjacency graph for a set of tiles.

    Every tile gets an entry, degenerate ones included (with no neighbours).
    Pairs are visited in id order so the result does not depend on the
    order of ``tiles``.

    Args:
        tiles: Tiles with polygons and bounding boxes
        threshold: Endpoint proximity threshold
        bbox_slack: Expansion applied to each bounding box in the prefilter

    Returns:
        AdjacencyGraph covering every tile id
    """
    ordered = sorted(tiles, key=lambda t: t.id)
    neighbors: Dict[int, Set[int]] = {}
    for tile in ordered:
        if tile.id in neighbors:
            raise ValueError(f"Duplicate tile id {tile.id} in geometry")
        neighbors[tile.id] = set()

    candidates = [t for t in ordered if not t.is_degenerate]
    candidate_pairs = 0

    for i in range(len(candidates)):
        tile_a = candidates[i]
        for j in range(i + 1, len(candidates)):
            tile_b = candidates[j]

            if not bboxes_overlap(tile_a, tile_b, bbox_slack):
                continue
            candidate_pairs += 1

            if polygons_share_edge(tile_a.polygon, tile_b.polygon, threshold):
                neighbors[tile_a.id].add(tile_b.id)
                neighbors[tile_b.id].add(tile_a.id)

    graph = AdjacencyGraph(neighbors=neighbors)
    logger.info(
        "Adjacency built",
        tiles=len(ordered),
        degenerate=len(ordered) - len(candidates),
        candidate_pairs=candidate_pairs,
        adjacent_pairs=graph.edge_count(),
    )
    return graph
