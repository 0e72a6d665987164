"""Claim state and tile label data."""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Set, Tuple, Union


@dataclass(frozen=True)
class ClaimInfo:
    """Assignment of a tile to an alliance."""

    alliance_id: str
    alliance_name: str
    color: str
    is_planned: bool = False


ClaimMap = Dict[int, ClaimInfo]


@dataclass
class TileData:
    """User-edited labels of a tile.

    ``number`` is kept as entered (usually a string from a text field); use
    :func:`parse_tile_number` to read it.
    """

    number: Union[str, int, None] = ""
    name: str = ""

    @property
    def parsed_number(self) -> Optional[int]:
        return parse_tile_number(self.number)

    @property
    def is_labeled(self) -> bool:
        return (self.number not in ("", None)) or bool(self.name)


def parse_tile_number(value: Union[str, int, None]) -> Optional[int]:
    """
    Parse a tile number label.

    Integers pass through; strings are stripped and parsed as base-10
    integers. Anything else (empty, non-numeric, fractional) means the tile
    has no number. Zero and negatives parse but are not positive, so rules
    treat them as unnumbered.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    # Whole-string parse: "2.5" and "4a" are unnumbered, not 2 and 4 as a prefix parse gives
    try:
        return int(str(value).strip(), 10)
    except ValueError:
        return None


def owned_tile_ids(claims: Mapping[int, ClaimInfo], alliance_id: Optional[str]) -> Set[int]:
    """Tile ids currently held by ``alliance_id``."""
    if alliance_id is None:
        return set()
    return {tile_id for tile_id, claim in claims.items() if claim.alliance_id == alliance_id}


def territory_by_alliance(claims: Mapping[int, ClaimInfo]) -> Dict[str, List[int]]:
    """Sorted tile ids per alliance id."""
    result: Dict[str, List[int]] = {}
    for tile_id, claim in claims.items():
        result.setdefault(claim.alliance_id, []).append(tile_id)
    return {k: sorted(v) for k, v in sorted(result.items())}


def labeled_tiles(
    tile_data: Mapping[int, TileData], query: str = ""
) -> List[Tuple[int, TileData]]:
    """
    Tiles that carry a number or a name, optionally filtered.

    The filter matches a substring of the number or a case-insensitive
    substring of the name. Results are ordered by parsed number, unnumbered
    tiles first.
    """
    query_lower = query.lower()
    result = []
    for tile_id, data in tile_data.items():
        if not data.is_labeled:
            continue
        if query:
            number_match = data.number not in ("", None) and query in str(data.number)
            name_match = bool(data.name) and query_lower in data.name.lower()
            if not (number_match or name_match):
                continue
        result.append((tile_id, data))

    result.sort(key=lambda item: (item[1].parsed_number or 0, item[0]))
    return result
