"""Alliance roster with palette colour assignment."""

import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional

import structlog

from .claim_rules import ValidationResult, VALID
from .plan_codec import is_encodable_id

logger = structlog.get_logger()

# Colours are assigned in order as alliances are created
ALLIANCE_COLORS = [
    "#E74C3C",  # Red
    "#3498DB",  # Blue
    "#2ECC71",  # Green
    "#F39C12",  # Orange
    "#9B59B6",  # Purple
    "#1ABC9C",  # Teal
    "#E91E63",  # Pink
    "#00BCD4",  # Cyan
    "#FF5722",  # Deep Orange
    "#8BC34A",  # Light Green
    "#673AB7",  # Deep Purple
    "#FFC107",  # Amber
    "#795548",  # Brown
    "#607D8B",  # Blue Grey
    "#CDDC39",  # Lime
    "#FF9800",  # Orange Alt
    "#03A9F4",  # Light Blue
    "#4CAF50",  # Green Alt
    "#F44336",  # Red Alt
    "#00E676",  # Bright Green
]
NEUTRAL_COLOR = "#f8f9fa"


def palette_color(index: int) -> str:
    """Colour for the ``index``-th alliance; neutral once the palette runs out."""
    if 0 <= index < len(ALLIANCE_COLORS):
        return ALLIANCE_COLORS[index]
    return NEUTRAL_COLOR


@dataclass(frozen=True)
class Alliance:
    id: str
    name: str
    color: str


class AllianceRoster:
    """Alliances of a season, in creation order."""

    def __init__(
        self,
        alliances: Optional[List[Alliance]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._alliances: Dict[str, Alliance] = {}
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        for alliance in alliances or []:
            self.add(alliance)

    def __iter__(self) -> Iterator[Alliance]:
        return iter(self._alliances.values())

    def __len__(self) -> int:
        return len(self._alliances)

    def __contains__(self, alliance_id: str) -> bool:
        return alliance_id in self._alliances

    def get(self, alliance_id: Optional[str]) -> Optional[Alliance]:
        if alliance_id is None:
            return None
        return self._alliances.get(alliance_id)

    def find_by_name(self, name: str) -> Optional[Alliance]:
        key = name.strip().casefold()
        for alliance in self._alliances.values():
            if alliance.name.casefold() == key:
                return alliance
        return None

    def validate_name(self, name: str) -> ValidationResult:
        """Names must be non-blank and unique regardless of case."""
        if not name or not name.strip():
            return ValidationResult(False, "Alliance name is required")
        if self.find_by_name(name) is not None:
            return ValidationResult(False, f"An alliance named {name.strip()!r} already exists")
        return VALID

    def add(self, alliance: Alliance) -> Alliance:
        """Register an existing alliance (e.g. loaded from storage)."""
        if alliance.id in self._alliances:
            raise ValueError(f"Duplicate alliance id {alliance.id}")
        self._check_id(alliance.id)
        result = self.validate_name(alliance.name)
        if not result:
            raise ValueError(result.error)
        self._alliances[alliance.id] = alliance
        return alliance

    @staticmethod
    def _check_id(alliance_id: str) -> None:
        # Ids are written into shared plan strings
        if not is_encodable_id(alliance_id):
            raise ValueError(f"Alliance id {alliance_id!r} must be non-empty and free of ',' and ':'")

    def create(self, name: str) -> Alliance:
        """
        Create an alliance with the next palette colour.

        Callers are expected to check :meth:`validate_name` first; an invalid
        name raises ``ValueError``.
        """
        result = self.validate_name(name)
        if not result:
            raise ValueError(result.error)

        alliance = Alliance(
            id=self._id_factory(),
            name=name.strip(),
            color=palette_color(len(self._alliances)),
        )
        self._check_id(alliance.id)
        self._alliances[alliance.id] = alliance
        logger.info("Alliance created", alliance_id=alliance.id, name=alliance.name, color=alliance.color)
        return alliance
