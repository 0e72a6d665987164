"""
Claim and clear validation.

Rules for a claim are checked in a fixed order and the first failure is
reported:

1. Admins bypass every rule.
2. The alliance must have moves left today.
3. The tile must not already be claimed.
4. At most ``MAX_NUMBERED_TILES`` numbered tiles may be held; tile #7 does
   not count.
5. Numbered tile N (N > 1) requires owning tile N - 1; tile #7 has no
   prerequisite.
6. Once an alliance holds territory, new tiles must border it.

Failures are returned as :class:`ValidationResult` values, never raised.
"""

from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, Mapping, Optional, Set

from .adjacency import AdjacencyGraph
from .claims import ClaimInfo, TileData, parse_tile_number
from .geometry import Tile

MAX_NUMBERED_TILES = 6
SPECIAL_TILE_NUMBER = 7  # Tile #7 doesn't count toward the limit
MAX_CLAIMS_PER_DAY = 3


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a rule check; ``error`` is a human readable reason."""

    valid: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


VALID = ValidationResult(True)


@dataclass
class ClaimRequest:
    """Everything needed to decide whether a tile can be claimed.

    ``owned_tile_ids`` are the tiles the claiming alliance holds right now.
    ``all_tile_data`` maps tile ids to their labels; tiles without an entry
    are unnumbered.
    """

    tile_id: int
    owned_tile_ids: AbstractSet[int]
    claims: Mapping[int, ClaimInfo]
    adjacency: AdjacencyGraph
    moves_remaining: int
    all_tile_data: Mapping[int, TileData] = field(default_factory=dict)
    tile_data: Optional[TileData] = None
    is_admin: bool = False

    def __post_init__(self):
        if self.tile_data is None:
            self.tile_data = self.all_tile_data.get(self.tile_id)


@dataclass
class ClearRequest:
    """A request by ``alliance_id`` to release a tile."""

    tile_id: int
    claims: Mapping[int, ClaimInfo]
    alliance_id: Optional[str]
    is_admin: bool = False


def _tile_number(data: Optional[TileData]) -> Optional[int]:
    """Positive tile number, or None for unnumbered tiles."""
    if data is None:
        return None
    number = parse_tile_number(data.number)
    if number is None or number <= 0:
        return None
    return number


def count_numbered_tiles(owned_tile_ids: Iterable[int], all_tile_data: Mapping[int, TileData]) -> int:
    """Count owned numbered tiles that count toward the cap."""
    count = 0
    for tile_id in owned_tile_ids:
        number = _tile_number(all_tile_data.get(tile_id))
        if number is not None and number != SPECIAL_TILE_NUMBER:
            count += 1
    return count


def has_numbered_tile(
    owned_tile_ids: Iterable[int], all_tile_data: Mapping[int, TileData], target_number: int
) -> bool:
    """Check whether any owned tile carries ``target_number``."""
    return any(_tile_number(all_tile_data.get(tile_id)) == target_number for tile_id in owned_tile_ids)


def validate_claim(request: ClaimRequest) -> ValidationResult:
    """
    Decide whether ``request.tile_id`` may be claimed.

    Args:
        request: Claim parameters

    Returns:
        ValidationResult for the first failing rule, or a valid result
    """
    if request.is_admin:
        return VALID

    if request.moves_remaining <= 0:
        return ValidationResult(False, "No moves remaining for today")

    existing = request.claims.get(request.tile_id)
    if existing is not None:
        return ValidationResult(False, f"Tile already claimed by {existing.alliance_name}")

    number = _tile_number(request.tile_data)

    if number is not None and number != SPECIAL_TILE_NUMBER:
        owned_numbered = count_numbered_tiles(request.owned_tile_ids, request.all_tile_data)
        if owned_numbered >= MAX_NUMBERED_TILES:
            return ValidationResult(
                False,
                f"Maximum of {MAX_NUMBERED_TILES} numbered tiles reached "
                f"(tile #{SPECIAL_TILE_NUMBER} doesn't count)",
            )

    if number is not None and number > 1 and number != SPECIAL_TILE_NUMBER:
        previous = number - 1
        if not has_numbered_tile(request.owned_tile_ids, request.all_tile_data, previous):
            return ValidationResult(
                False, f"Must own a tile numbered {previous} before claiming tile #{number}"
            )

    if request.owned_tile_ids:
        if not request.adjacency.is_adjacent_to_owned(request.tile_id, request.owned_tile_ids):
            return ValidationResult(False, "Tile must be adjacent to an existing territory")

    return VALID


def validate_clear(request: ClearRequest) -> ValidationResult:
    """Decide whether ``request.alliance_id`` may clear a tile."""
    if request.is_admin:
        return VALID

    claim = request.claims.get(request.tile_id)
    if claim is None:
        return ValidationResult(False, "Tile is not claimed")

    if claim.alliance_id != request.alliance_id:
        return ValidationResult(False, "Can only clear tiles belonging to your alliance")

    return VALID


def get_claimable_tiles(
    tiles: Iterable[Tile],
    owned_tile_ids: AbstractSet[int],
    claims: Mapping[int, ClaimInfo],
    adjacency: AdjacencyGraph,
    moves_remaining: int,
    all_tile_data: Optional[Mapping[int, TileData]] = None,
    is_admin: bool = False,
) -> Set[int]:
    """Ids of every tile that passes :func:`validate_claim`."""
    all_tile_data = all_tile_data if all_tile_data is not None else {}
    claimable = set()
    for tile in tiles:
        result = validate_claim(
            ClaimRequest(
                tile_id=tile.id,
                owned_tile_ids=owned_tile_ids,
                claims=claims,
                adjacency=adjacency,
                moves_remaining=moves_remaining,
                all_tile_data=all_tile_data,
                is_admin=is_admin,
            )
        )
        if result.valid:
            claimable.add(tile.id)
    return claimable
