"""
Territory claim rules, planning and playback for tile-based game seasons.
"""

__version__ = "0.1.0"
