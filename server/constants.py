"""
Card and game constants for UNO.

This module is the single source of truth for card point values and the
fixed deck composition. Tunable game settings come from config.py and are
re-exported here so game code has one place to import from.

Standard UNO Scoring:
    - Number cards (0-9): Face value
    - Skip, Reverse, Draw Two: 20 points
    - Wild, Wild Draw Four: 50 points
"""

from config import config


# =============================================================================
# Card Values - Single Source of Truth
# =============================================================================

ACTION_CARD_POINTS: int = 20
WILD_CARD_POINTS: int = 50


# =============================================================================
# Deck Composition
# =============================================================================

DECK_SIZE: int = 108
NUMBER_VALUES: tuple[int, ...] = tuple(range(10))
COPIES_PER_NUMBER: int = 2       # 1-9; zero has a single copy
COPIES_PER_ACTION: int = 2       # per color, for Skip / Reverse / Draw Two
WILDS_PER_KIND: int = 4          # Wild and Wild Draw Four each

DRAW_TWO_AMOUNT: int = 2
DRAW_FOUR_AMOUNT: int = 4


# =============================================================================
# Game Constants
# =============================================================================

MAX_PLAYERS = config.MAX_PLAYERS_PER_ROOM
MIN_PLAYERS = config.MIN_PLAYERS
ROOM_CODE_LENGTH = config.ROOM_CODE_LENGTH
ROOM_MAX_AGE_MINUTES = config.ROOM_MAX_AGE_MINUTES
MAX_NAME_LENGTH = config.MAX_NAME_LENGTH

DEFAULT_TARGET_SCORE = config.game_defaults.target_score
HAND_SIZE = config.game_defaults.hand_size
CATCH_WINDOW_MS = config.game_defaults.catch_window_ms
CATCH_PENALTY_CARDS = config.game_defaults.catch_penalty
