"""
Territory claim rules, planning and playback.
"""

from .geometry import Tile, polygon_centroid, point_in_polygon, tile_at
from .adjacency import AdjacencyGraph, build_adjacency
from .claims import ClaimInfo, TileData, parse_tile_number, owned_tile_ids
from .claim_rules import (
    ClaimRequest, ClearRequest, ValidationResult,
    validate_claim, validate_clear, get_claimable_tiles,
)
from .alliances import Alliance, AllianceRoster
from .plan_codec import Move, DayMarker, encode_plan, decode_plan
from .planner import PlanningSession, RulesContext, ShareUrlBinding
from .playback import PlaybackController, PlaybackState, ManualScheduler, AsyncioScheduler
from .timeline import current_day, time_until_next_day, format_time_remaining

__all__ = ['Tile', 'polygon_centroid', 'point_in_polygon', 'tile_at',
           'AdjacencyGraph', 'build_adjacency',
           'ClaimInfo', 'TileData', 'parse_tile_number', 'owned_tile_ids',
           'ClaimRequest', 'ClearRequest', 'ValidationResult',
           'validate_claim', 'validate_clear', 'get_claimable_tiles',
           'Alliance', 'AllianceRoster',
           'Move', 'DayMarker', 'encode_plan', 'decode_plan',
           'PlanningSession', 'RulesContext', 'ShareUrlBinding',
           'PlaybackController', 'PlaybackState', 'ManualScheduler', 'AsyncioScheduler',
           'current_day', 'time_until_next_day', 'format_time_remaining']
