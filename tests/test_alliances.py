"""Tests for the alliance roster."""

import itertools

import pytest

from territory_planner.core.alliances import (
    ALLIANCE_COLORS, NEUTRAL_COLOR, Alliance, AllianceRoster, palette_color,
)


@pytest.fixture
def empty_roster():
    counter = itertools.count(1)
    return AllianceRoster(id_factory=lambda: f"a{next(counter)}")


class TestAllianceRoster:
    """Test alliance creation and lookup."""

    def test_colors_in_creation_order(self, empty_roster):
        first = empty_roster.create("Wolves")
        second = empty_roster.create("Ravens")

        assert first.color == ALLIANCE_COLORS[0]
        assert second.color == ALLIANCE_COLORS[1]
        assert [a.id for a in empty_roster] == ["a1", "a2"]

    def test_names_unique_ignoring_case(self, empty_roster):
        empty_roster.create("Wolves")
        result = empty_roster.validate_name("  wOLVES ")

        assert not result.valid
        assert "already exists" in result.error
        with pytest.raises(ValueError):
            empty_roster.create("WOLVES")

    def test_blank_name(self, empty_roster):
        assert not empty_roster.validate_name("   ").valid

    def test_name_trimmed(self, empty_roster):
        assert empty_roster.create("  Ravens ").name == "Ravens"

    def test_lookup(self, empty_roster):
        wolves = empty_roster.create("Wolves")
        assert empty_roster.get(wolves.id) == wolves
        assert empty_roster.get("missing") is None
        assert empty_roster.get(None) is None
        assert empty_roster.find_by_name("wolves") == wolves
        assert wolves.id in empty_roster

    def test_palette_exhausted(self, empty_roster):
        for i in range(len(ALLIANCE_COLORS)):
            empty_roster.create(f"Alliance {i}")
        assert empty_roster.create("One too many").color == NEUTRAL_COLOR

    def test_add_existing(self):
        roster = AllianceRoster([Alliance("x", "X", "#000000")])
        with pytest.raises(ValueError):
            roster.add(Alliance("x", "Other", "#000000"))
        with pytest.raises(ValueError):
            roster.add(Alliance("y", "x", "#000000"))
        assert len(roster) == 1

    def test_palette_color(self):
        assert palette_color(0) == "#E74C3C"
        assert palette_color(-1) == NEUTRAL_COLOR

    @pytest.mark.parametrize("alliance_id", ["", "a:b", "a,b"])
    def test_ids_must_be_encodable(self, alliance_id):
        with pytest.raises(ValueError):
            AllianceRoster([Alliance(alliance_id, "X", "#000000")])

    def test_create_rejects_unencodable_id(self):
        roster = AllianceRoster(id_factory=lambda: "bad:id")
        with pytest.raises(ValueError):
            roster.create("Wolves")
        assert len(roster) == 0
