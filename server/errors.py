"""
Error types for the UNO server.

Player mistakes are not exceptions: engine actions return an ActionResult
carrying a RejectReason code. Exceptions are reserved for two things:

    - EngineInvariantError: the engine was driven into a state its own
      control flow should make impossible. Treat as a bug, never show it
      to a player.
    - RoomError subclasses: lobby-level failures raised by room.py and
      turned into error messages by the WebSocket handlers.
"""

from enum import Enum


class RejectReason(str, Enum):
    """Codes for rejected player actions. Sent to clients as-is."""

    PLAYER_NOT_FOUND = "player_not_found"
    NOT_YOUR_TURN = "not_your_turn"
    WRONG_PHASE = "wrong_phase"
    AWAITING_COLOR_CHOICE = "awaiting_color_choice"
    NOT_AWAITING_COLOR_CHOICE = "not_awaiting_color_choice"
    CARD_NOT_IN_HAND = "card_not_in_hand"
    ILLEGAL_PLAY = "illegal_play"
    INVALID_COLOR_CHOICE = "invalid_color_choice"
    NO_DRAWN_CARD = "no_drawn_card"
    ALREADY_DREW = "already_drew"
    CATCH_WINDOW_ABSENT_OR_MISMATCHED = "catch_window_absent_or_mismatched"
    CATCH_WINDOW_EXPIRED = "catch_window_expired"
    CANNOT_DECLARE_LAST_CARD = "cannot_declare_last_card"


class EngineInvariantError(AssertionError):
    """The engine reached a state its callers must never produce."""


class RoomError(Exception):
    """Base exception for lobby/room failures."""

    message = "Room error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        return str(self)


class RoomNotFoundError(RoomError):
    message = "Room not found"


class RoomFullError(RoomError):
    message = "Room is full"


class GameInProgressError(RoomError):
    message = "Game already in progress"


class NameTakenError(RoomError):
    message = "Name already taken in this room"


class NotHostError(RoomError):
    message = "Only the host can do that"


class NotEnoughPlayersError(RoomError):
    message = "Need at least 2 players to start"
