"""Models package for the UNO game server."""

from .events import EventType, GameEvent
from .game_state import CatchWindow, GamePhase, GameState, Player, StackKind

__all__ = [
    "EventType",
    "GameEvent",
    "CatchWindow",
    "GamePhase",
    "GameState",
    "Player",
    "StackKind",
]
