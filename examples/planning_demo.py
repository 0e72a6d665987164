"""
Example walking through a planned week of claims on a small hex map.
"""

import numpy as np

from territory_planner.core import (
    AllianceRoster, DayMarker, ManualScheduler, PlanningSession, PlaybackController,
    RulesContext, Tile, TileData, build_adjacency,
)
from territory_planner.core.claims import territory_by_alliance


def hex_map(cols, rows, size=40.0):
    """Flat-top hexagons in an offset-column layout."""
    tiles = []
    angles = np.radians(np.arange(0, 360, 60))
    for col in range(cols):
        for row in range(rows):
            cx = col * 1.5 * size
            cy = row * np.sqrt(3) * size + (col % 2) * np.sqrt(3) / 2 * size
            polygon = np.column_stack([cx + size * np.cos(angles), cy + size * np.sin(angles)])
            tiles.append(Tile(id=col * rows + row, polygon=polygon))
    return tiles


def main():
    tiles = hex_map(6, 5)
    adjacency = build_adjacency(tiles)
    print(f"{len(tiles)} tiles, {adjacency.edge_count()} shared edges")

    roster = AllianceRoster()
    wolves = roster.create("Wolves")
    ravens = roster.create("Ravens")

    # A few numbered objective tiles
    tile_data = {7: TileData(number="1"), 8: TileData(number="2"), 13: TileData(number="3")}

    session = PlanningSession(
        base_claims={},
        roster=roster,
        user_alliance_id=wolves.id,
        starting_day=1,
        rules=RulesContext(tiles=tiles, adjacency=adjacency, tile_data=tile_data),
    )
    session.enter_planning_mode()

    for tile_id in (7, 8, 13):
        session.plan_claim(tile_id)
    session.add_new_day()
    session.plan_claim(14)
    session.plan_claim(29)  # not adjacent, flagged below

    session.select_planning_alliance(ravens.id)
    session.plan_claim(0)
    session.plan_claim(1)

    for entry in session.annotated_sequence():
        if isinstance(entry.item, DayMarker):
            print(f"--- day {entry.day_number} ---")
            continue
        problem = entry.validation.error if entry.validation and not entry.validation.valid else ""
        print(f"{entry.step_number:2d} {entry.item.action} {entry.item.tile_id:3d} {problem}")

    print("Share string:", session.encode())

    # Replay on a virtual clock
    scheduler = ManualScheduler()
    playback = PlaybackController(session, scheduler, speed_ms=500)
    playback.play()
    while playback.is_playing:
        frame = playback.frame()
        print(f"step {frame.index}: highlight {frame.highlight_tile_id}, {len(frame.claims)} tiles claimed")
        scheduler.advance(0.5)

    for alliance_id, owned in territory_by_alliance(session.planned_claims()).items():
        print(roster.get(alliance_id).name, owned)


if __name__ == "__main__":
    main()
