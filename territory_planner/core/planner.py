"""
What-if planning of claim/clear sequences.

A :class:`PlanningSession` holds an ordered list of planned moves and day
markers on top of the confirmed claim map. Everything shown to the user
(planned territory, per-day quota usage, over-limit warnings) is derived by
replaying that list; nothing derived is stored.

Planned moves are never rejected. Rule violations, including exceeding the
daily claim quota, are reported as advisory annotations so that a plan can
show what would go wrong.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import structlog

from .adjacency import AdjacencyGraph
from .alliances import Alliance, AllianceRoster
from .claim_rules import (
    MAX_CLAIMS_PER_DAY,
    ClaimRequest,
    ValidationResult,
    get_claimable_tiles,
    validate_claim,
)
from .claims import ClaimInfo, ClaimMap, TileData, owned_tile_ids
from .geometry import Tile
from .plan_codec import (
    CLAIM,
    CLEAR,
    DayMarker,
    IdGenerator,
    Move,
    PlanItem,
    decode_plan,
    encode_plan,
    get_plan_param,
    set_plan_param,
)

logger = structlog.get_logger()

Listener = Callable[["PlanningSession"], None]


@dataclass
class RulesContext:
    """Static map data needed to evaluate claim rules while planning."""

    tiles: Sequence[Tile]
    adjacency: AdjacencyGraph
    tile_data: Mapping[int, TileData] = field(default_factory=dict)


@dataclass(frozen=True)
class AnnotatedItem:
    """A sequence item with its derived day accounting.

    For moves, ``claims_today`` is the running number of claims by the move's
    alliance within its day segment (this one included). For day markers,
    ``day_number`` is the day that starts at the marker and ``day_summary``
    holds the claim counts of the day that just ended.
    """

    item: PlanItem
    step_number: int
    day_number: int
    claims_today: int = 0
    is_over_limit: bool = False
    day_summary: Mapping[str, int] = field(default_factory=dict)
    validation: Optional[ValidationResult] = None


def apply_item(claims: ClaimMap, item: PlanItem, roster: AllianceRoster) -> None:
    """
    Apply one item to ``claims`` in place.

    Claims by alliances missing from the roster are skipped. Clears remove
    whatever holds the tile at that point, whoever the move names.
    """
    if isinstance(item, DayMarker):
        return

    if item.action == CLAIM:
        alliance = roster.get(item.alliance_id)
        if alliance is None:
            logger.debug("Skipping planned claim by unknown alliance", alliance_id=item.alliance_id, tile_id=item.tile_id)
            return
        claims[item.tile_id] = ClaimInfo(
            alliance_id=alliance.id,
            alliance_name=alliance.name,
            color=alliance.color,
            is_planned=True,
        )
    elif item.action == CLEAR:
        claims.pop(item.tile_id, None)


def replay(
    base_claims: Mapping[int, ClaimInfo],
    sequence: Sequence[PlanItem],
    roster: AllianceRoster,
    upto: Optional[int] = None,
) -> ClaimMap:
    """
    Replay ``sequence`` over a copy of ``base_claims``.

    Args:
        base_claims: Confirmed claims; never modified
        sequence: Planned items
        roster: Alliance roster used to resolve names and colours
        upto: Last index to apply (inclusive). None applies everything,
            negative values apply nothing.

    Returns:
        New claim map
    """
    claims = dict(base_claims)
    if upto is None:
        items = sequence
    else:
        items = sequence[: max(upto + 1, 0)]
    for item in items:
        apply_item(claims, item, roster)
    return claims


class PlanningSession:
    """
    Planned sequence for one user, plus the alliance planning is done for.

    The planning alliance is the user's own alliance unless another one is
    selected with :meth:`select_planning_alliance`. Every mutation notifies
    subscribers synchronously, after the sequence has been updated.
    """

    def __init__(
        self,
        base_claims: Mapping[int, ClaimInfo],
        roster: AllianceRoster,
        user_alliance_id: Optional[str] = None,
        starting_day: int = 1,
        rules: Optional[RulesContext] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.base_claims: Dict[int, ClaimInfo] = dict(base_claims)
        self.roster = roster
        self.user_alliance_id = user_alliance_id
        self.starting_day = starting_day
        self.rules = rules
        self.is_active = False

        self._id_factory = id_factory or IdGenerator()
        self._sequence: List[PlanItem] = []
        self._selected_alliance_id: Optional[str] = None
        self._listeners: List[Listener] = []

    @classmethod
    def from_encoded(
        cls,
        encoded: Optional[str],
        base_claims: Mapping[int, ClaimInfo],
        roster: AllianceRoster,
        **kwargs,
    ) -> "PlanningSession":
        """Restore a shared plan; a non-empty plan starts in planning mode."""
        session = cls(base_claims, roster, **kwargs)
        items = decode_plan(encoded, session._id_factory)
        if items:
            session._sequence = items
            session.is_active = True
            logger.info("Plan restored", items=len(items))
        return session

    @classmethod
    def from_url(
        cls,
        url: str,
        base_claims: Mapping[int, ClaimInfo],
        roster: AllianceRoster,
        param: str = "plan",
        **kwargs,
    ) -> "PlanningSession":
        return cls.from_encoded(get_plan_param(url, param), base_claims, roster, **kwargs)

    # Subscription

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self, event: str, **context) -> None:
        logger.debug("Plan changed", event_type=event, length=len(self._sequence), **context)
        for listener in list(self._listeners):
            listener(self)

    # State

    @property
    def sequence(self) -> Tuple[PlanItem, ...]:
        return tuple(self._sequence)

    def __len__(self) -> int:
        return len(self._sequence)

    @property
    def planning_alliance(self) -> Optional[Alliance]:
        if self._selected_alliance_id is not None:
            return self.roster.get(self._selected_alliance_id)
        return self.roster.get(self.user_alliance_id)

    @property
    def selected_alliance(self) -> Optional[Alliance]:
        return self.roster.get(self._selected_alliance_id)

    def set_base_claims(self, claims: Mapping[int, ClaimInfo]) -> None:
        """Replace the confirmed claims the plan is replayed over."""
        self.base_claims = dict(claims)
        self._changed("base_claims", claims=len(self.base_claims))

    # Mode

    def enter_planning_mode(self) -> None:
        self.is_active = True
        self._sequence = []
        self._selected_alliance_id = None
        self._changed("enter")

    def exit_planning_mode(self) -> None:
        self.is_active = False
        self._sequence = []
        self._selected_alliance_id = None
        self._changed("exit")

    def select_planning_alliance(self, alliance_id: Optional[str]) -> Optional[Alliance]:
        """Plan for another alliance; unknown ids fall back to the user's own."""
        alliance = self.roster.get(alliance_id)
        self._selected_alliance_id = alliance.id if alliance else None
        return self.planning_alliance

    # Mutations

    def plan_claim(self, tile_id: int) -> Optional[Move]:
        """Append a claim by the planning alliance. No-op without one."""
        alliance = self.planning_alliance
        if alliance is None:
            logger.debug("No planning alliance, claim ignored", tile_id=tile_id)
            return None

        if self.rules is not None:
            result = self.check_claim(tile_id)
            if not result.valid:
                logger.debug("Planned claim breaks a rule", tile_id=tile_id, alliance_id=alliance.id, error=result.error)

        move = Move(id=self._id_factory(), action=CLAIM, tile_id=tile_id, alliance_id=alliance.id)
        self._sequence.append(move)
        self._changed("claim", tile_id=tile_id, alliance_id=alliance.id)
        return move

    def plan_clear(self, tile_id: int) -> Optional[Move]:
        """Append a clear for whoever holds the tile in the plan so far."""
        current = self.planned_claims().get(tile_id)
        if current is None:
            return None

        move = Move(id=self._id_factory(), action=CLEAR, tile_id=tile_id, alliance_id=current.alliance_id)
        self._sequence.append(move)
        self._changed("clear", tile_id=tile_id, alliance_id=current.alliance_id)
        return move

    def add_new_day(self) -> DayMarker:
        marker = DayMarker(id=self._id_factory())
        self._sequence.append(marker)
        self._changed("new_day")
        return marker

    def remove_sequence_item(self, item_id: str) -> bool:
        """Remove one item by id, keeping the order of the rest."""
        remaining = [item for item in self._sequence if item.id != item_id]
        if len(remaining) == len(self._sequence):
            return False
        self._sequence = remaining
        self._changed("remove", item_id=item_id)
        return True

    def undo_last(self) -> Optional[PlanItem]:
        if not self._sequence:
            return None
        item = self._sequence.pop()
        self._changed("undo", item_id=item.id)
        return item

    def clear_all(self) -> None:
        self._sequence = []
        self._changed("clear_all")

    # Derived views

    def planned_claims(self) -> ClaimMap:
        """Confirmed claims with the whole plan applied."""
        return replay(self.base_claims, self._sequence, self.roster)

    def claims_at(self, index: int) -> ClaimMap:
        """Claims after applying items ``0..index``; base claims when negative."""
        return replay(self.base_claims, self._sequence, self.roster, upto=index)

    def planned_claim(self, tile_id: int) -> Optional[ClaimInfo]:
        return self.planned_claims().get(tile_id)

    def is_planned_tile(self, tile_id: int) -> bool:
        """Whether any planned move touches the tile."""
        return any(isinstance(item, Move) and item.tile_id == tile_id for item in self._sequence)

    def annotated_sequence(self) -> List[AnnotatedItem]:
        """
        Sequence with day numbers, quota usage and advisory rule checks.

        Day segments are split at day markers; the first segment is
        ``starting_day``. A claim is over the limit when its alliance's
        running claim count in the segment exceeds ``MAX_CLAIMS_PER_DAY``.
        With a rules context, each claim is also checked against the planned
        state right before it.
        """
        annotated: List[AnnotatedItem] = []
        day_number = self.starting_day
        day_counts: Dict[str, int] = {}
        claims = dict(self.base_claims)

        for index, item in enumerate(self._sequence):
            if isinstance(item, DayMarker):
                summary = dict(day_counts)
                day_number += 1
                day_counts = {}
                annotated.append(
                    AnnotatedItem(item=item, step_number=index + 1, day_number=day_number, day_summary=summary)
                )
                continue

            validation = None
            if item.is_claim:
                if self.rules is not None:
                    validation = self._validate(
                        item.tile_id,
                        item.alliance_id,
                        claims,
                        MAX_CLAIMS_PER_DAY - day_counts.get(item.alliance_id, 0),
                    )
                day_counts[item.alliance_id] = day_counts.get(item.alliance_id, 0) + 1

            claims_today = day_counts.get(item.alliance_id, 0)
            annotated.append(
                AnnotatedItem(
                    item=item,
                    step_number=index + 1,
                    day_number=day_number,
                    claims_today=claims_today,
                    is_over_limit=item.is_claim and claims_today > MAX_CLAIMS_PER_DAY,
                    validation=validation,
                )
            )
            apply_item(claims, item, self.roster)

        return annotated

    def claims_per_day(self) -> Dict[int, Dict[str, int]]:
        """Claim counts per day number per alliance id."""
        result: Dict[int, Dict[str, int]] = {}
        day_number = self.starting_day
        for item in self._sequence:
            if isinstance(item, DayMarker):
                day_number += 1
            elif item.is_claim:
                counts = result.setdefault(day_number, {})
                counts[item.alliance_id] = counts.get(item.alliance_id, 0) + 1
        return result

    @property
    def current_day_number(self) -> int:
        """Day number of the last segment (where new moves land)."""
        return self.starting_day + sum(isinstance(item, DayMarker) for item in self._sequence)

    def moves_remaining(self, alliance_id: Optional[str] = None) -> int:
        """Claims left for an alliance in the last day segment."""
        if alliance_id is None:
            alliance = self.planning_alliance
            if alliance is None:
                return 0
            alliance_id = alliance.id
        today = self.claims_per_day().get(self.current_day_number, {})
        return max(MAX_CLAIMS_PER_DAY - today.get(alliance_id, 0), 0)

    def check_claim(self, tile_id: int) -> ValidationResult:
        """Check a claim by the planning alliance against the planned state."""
        self._require_rules()
        alliance = self.planning_alliance
        if alliance is None:
            return ValidationResult(False, "No alliance to plan for")
        return self._validate(tile_id, alliance.id, self.planned_claims(), self.moves_remaining(alliance.id))

    def claimable_tiles(self) -> Set[int]:
        """Tiles the planning alliance could legally claim next."""
        rules = self._require_rules()
        alliance = self.planning_alliance
        if alliance is None:
            return set()
        claims = self.planned_claims()
        return get_claimable_tiles(
            tiles=rules.tiles,
            owned_tile_ids=owned_tile_ids(claims, alliance.id),
            claims=claims,
            adjacency=rules.adjacency,
            moves_remaining=self.moves_remaining(alliance.id),
            all_tile_data=rules.tile_data,
        )

    def _require_rules(self) -> RulesContext:
        if self.rules is None:
            raise ValueError("PlanningSession was created without a rules context")
        return self.rules

    def _validate(
        self, tile_id: int, alliance_id: str, claims: Mapping[int, ClaimInfo], moves_remaining: int
    ) -> ValidationResult:
        rules = self._require_rules()
        return validate_claim(
            ClaimRequest(
                tile_id=tile_id,
                owned_tile_ids=owned_tile_ids(claims, alliance_id),
                claims=claims,
                adjacency=rules.adjacency,
                moves_remaining=moves_remaining,
                all_tile_data=rules.tile_data,
            )
        )

    # Sharing

    def encode(self) -> str:
        return encode_plan(self._sequence)

    def share_url(self, base_url: str, param: str = "plan") -> str:
        return set_plan_param(base_url, self.encode(), param)


class ShareUrlBinding:
    """Keeps a URL's plan parameter in step with a session's sequence."""

    def __init__(self, session: PlanningSession, url: str, param: str = "plan"):
        self.session = session
        self.param = param
        self.url = set_plan_param(url, session.encode(), param)
        self._unsubscribe = session.subscribe(self._on_change)

    def _on_change(self, session: PlanningSession) -> None:
        self.url = set_plan_param(self.url, session.encode(), self.param)

    def close(self) -> None:
        self._unsubscribe()
