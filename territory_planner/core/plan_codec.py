"""
Plan sequence items and their compact share encoding.

A sequence encodes to a comma separated list of tokens, base64 encoded for
use in a URL query parameter::

    d               day marker
    c:<tile>:<id>   claim of <tile> by alliance <id>
    x:<tile>:<id>   clear of <tile> held by alliance <id>
"""

import base64
import itertools
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import structlog

logger = structlog.get_logger()

CLAIM = "claim"
CLEAR = "clear"

DAY_TOKEN = "d"
ACTION_TAGS = {CLAIM: "c", CLEAR: "x"}
TAG_ACTIONS = {tag: action for action, tag in ACTION_TAGS.items()}
ITEM_DELIMITER = ","
FIELD_DELIMITER = ":"


@dataclass(frozen=True)
class Move:
    """A planned claim or clear of one tile by one alliance."""

    id: str
    action: str
    tile_id: int
    alliance_id: str

    @property
    def is_claim(self) -> bool:
        return self.action == CLAIM


@dataclass(frozen=True)
class DayMarker:
    """Boundary between two simulated days."""

    id: str


PlanItem = Union[Move, DayMarker]


class IdGenerator:
    """Monotonic ``<prefix>-<n>`` ids, scoped to whoever owns the generator."""

    def __init__(self, prefix: str = "seq"):
        self.prefix = prefix
        self._counter = itertools.count()

    def __call__(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


class PlanDecodeError(ValueError):
    """Raised by :func:`parse_plan` for malformed plan strings."""


def same_actions(a: Sequence[PlanItem], b: Sequence[PlanItem]) -> bool:
    """Compare two sequences by order and payload, ignoring item ids."""
    return [_payload(item) for item in a] == [_payload(item) for item in b]


def _payload(item: PlanItem):
    if isinstance(item, DayMarker):
        return (DAY_TOKEN,)
    return (item.action, item.tile_id, item.alliance_id)


def is_encodable_id(alliance_id: str) -> bool:
    """Whether an alliance id can appear in an encoded plan."""
    return bool(alliance_id) and ITEM_DELIMITER not in alliance_id and FIELD_DELIMITER not in alliance_id


def _encode_item(item: PlanItem) -> str:
    if isinstance(item, DayMarker):
        return DAY_TOKEN
    if not is_encodable_id(str(item.alliance_id)):
        raise ValueError(f"Alliance id {item.alliance_id!r} cannot be encoded")
    return FIELD_DELIMITER.join((ACTION_TAGS[item.action], str(item.tile_id), str(item.alliance_id)))


def encode_plan(sequence: Sequence[PlanItem]) -> str:
    """Encode a sequence for sharing; the empty sequence encodes to ``""``."""
    if not sequence:
        return ""
    raw = ITEM_DELIMITER.join(_encode_item(item) for item in sequence)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def parse_plan(encoded: str, id_factory: Optional[Callable[[], str]] = None) -> List[PlanItem]:
    """
    Strict decoder behind :func:`decode_plan`.

    Raises:
        PlanDecodeError: If the string is not valid base64 or any token is malformed
    """
    if not encoded:
        return []
    id_factory = id_factory or IdGenerator()

    try:
        # Unescaped "+" in a pasted URL arrives as a space
        raw = base64.b64decode(encoded.strip().replace(" ", "+"), validate=True).decode("utf-8")
    except ValueError as e:
        # binascii.Error, UnicodeDecodeError and non-ASCII input are all ValueErrors
        raise PlanDecodeError(f"Not a base64 plan string: {e}") from e

    items: List[PlanItem] = []
    for position, token in enumerate(raw.split(ITEM_DELIMITER)):
        if token == DAY_TOKEN:
            items.append(DayMarker(id=id_factory()))
            continue

        fields = token.split(FIELD_DELIMITER)
        if len(fields) != 3:
            raise PlanDecodeError(f"Token {position} has {len(fields)} fields: {token!r}")

        tag, tile_field, alliance_id = fields
        if tag not in TAG_ACTIONS:
            raise PlanDecodeError(f"Token {position} has unknown action {tag!r}")
        if not (tile_field.isascii() and tile_field.isdigit()):
            raise PlanDecodeError(f"Token {position} has invalid tile id {tile_field!r}")
        tile_id = int(tile_field)
        if not alliance_id:
            raise PlanDecodeError(f"Token {position} has no alliance id")

        items.append(Move(id=id_factory(), action=TAG_ACTIONS[tag], tile_id=tile_id, alliance_id=alliance_id))

    return items


def decode_plan(encoded: Optional[str], id_factory: Optional[Callable[[], str]] = None) -> List[PlanItem]:
    """
    Decode a shared plan string.

    Items get fresh ids from ``id_factory``. Malformed input is logged and
    decodes to an empty plan.
    """
    if not encoded:
        return []
    try:
        return parse_plan(encoded, id_factory)
    except PlanDecodeError as e:
        logger.warning("Failed to decode planner state", error=str(e), length=len(encoded))
        return []


def get_plan_param(url: str, param: str = "plan") -> Optional[str]:
    """Value of the plan query parameter, or None when absent."""
    values = parse_qs(urlparse(url).query, keep_blank_values=True).get(param)
    return values[0] if values else None


def set_plan_param(url: str, encoded: Optional[str], param: str = "plan") -> str:
    """Return ``url`` with the plan parameter set, or removed when ``encoded`` is empty."""
    parts = urlparse(url)
    query = [
        (key, value)
        for key, values in parse_qs(parts.query, keep_blank_values=True).items()
        for value in values
        if key != param
    ]
    if encoded:
        query.append((param, encoded))
    return urlunparse(parts._replace(query=urlencode(query)))
