#!/usr/bin/env python3
"""
Replay a shared plan against a tile geometry document.

Prints every step with its day, action, tile and quota warnings, then the
resulting territory per alliance. Alliances in the plan are listed by id
since the roster lives outside this tool.
"""

import sys

import structlog

from territory_planner.config import settings
from territory_planner.core.adjacency import build_adjacency
from territory_planner.core.alliances import Alliance, AllianceRoster, palette_color
from territory_planner.core.claims import territory_by_alliance
from territory_planner.core.plan_codec import DayMarker, Move, decode_plan, get_plan_param
from territory_planner.core.planner import PlanningSession, RulesContext
from territory_planner.core.timeline import current_day
from territory_planner.data.tile_geometry import load_tile_geometry
from territory_planner.utils.log_config import configure_logging

logger = structlog.get_logger()


def replay_plan(geometry_path: str, plan: str, starting_day: int) -> int:
    """Replay ``plan`` (encoded string or share URL) and print the steps."""
    encoded = get_plan_param(plan, settings.plan_url_param) if "://" in plan else plan
    items = decode_plan(encoded)
    if not items:
        print("Plan is empty or could not be decoded")
        return 1

    document = load_tile_geometry(geometry_path)
    tiles = document.to_tiles()
    adjacency = build_adjacency(
        tiles, threshold=settings.adjacency_threshold, bbox_slack=settings.adjacency_bbox_slack
    )

    alliance_ids = sorted({item.alliance_id for item in items if isinstance(item, Move)})
    roster = AllianceRoster(
        [Alliance(id=a, name=a, color=palette_color(i)) for i, a in enumerate(alliance_ids)]
    )

    session = PlanningSession.from_encoded(
        encoded,
        base_claims={},
        roster=roster,
        starting_day=starting_day,
        rules=RulesContext(tiles=tiles, adjacency=adjacency),
    )

    known_tiles = {tile.id for tile in tiles}
    for entry in session.annotated_sequence():
        item = entry.item
        if isinstance(item, DayMarker):
            print(f"--- day {entry.day_number} ---")
            continue

        notes = []
        if item.tile_id not in known_tiles:
            notes.append("unknown tile")
        if entry.is_over_limit:
            notes.append("over daily limit")
        if entry.validation is not None and not entry.validation.valid:
            notes.append(entry.validation.error)
        suffix = f"  [{'; '.join(notes)}]" if notes else ""
        print(f"{entry.step_number:4d}  day {entry.day_number}  {item.action:5s} tile {item.tile_id} ({item.alliance_id}){suffix}")

    print()
    for alliance_id, owned in territory_by_alliance(session.planned_claims()).items():
        print(f"{alliance_id}: {len(owned)} tiles {owned}")
    return 0


def main():
    """Main function."""
    import argparse

    parser = argparse.ArgumentParser(description="Replay a shared territory plan")
    parser.add_argument("plan", help="Encoded plan string or a share URL containing it")
    parser.add_argument("--geometry", default=settings.geometry_path, help="Tile geometry JSON document")
    parser.add_argument("--day", type=int, default=None, help="Starting day number (defaults to today)")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level")

    args = parser.parse_args()

    configure_logging(args.log_level, "console")
    starting_day = args.day if args.day is not None else current_day(season_start=settings.season_start)
    sys.exit(replay_plan(args.geometry, args.plan, starting_day))


if __name__ == "__main__":
    main()
