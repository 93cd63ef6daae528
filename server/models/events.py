"""
Event records for UNO game display.

Every successful engine action produces one GameEvent describing what
happened ("Alice played red 7"). The most recent one is kept on the game
state as `last_event` and broadcast to clients.

Events are for display only. They are never read back to decide game
state; the GameState itself is the single source of truth.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class EventType(str, Enum):
    """All possible event types in an UNO game."""

    # Lifecycle events
    ROUND_STARTED = "round_started"
    ROUND_ENDED = "round_ended"
    GAME_OVER = "game_over"

    # Gameplay events
    CARD_PLAYED = "card_played"
    COLOR_CHOSEN = "color_chosen"
    CARDS_DRAWN = "cards_drawn"
    DRAWN_CARD_KEPT = "drawn_card_kept"
    LAST_CARD_CALLED = "last_card_called"
    PLAYER_CAUGHT = "player_caught"

    # Connection events
    PLAYER_DISCONNECTED = "player_disconnected"
    PLAYER_RECONNECTED = "player_reconnected"


@dataclass
class GameEvent:
    """
    A display record of one state transition.

    Attributes:
        event_type: The type of event (from EventType enum).
        message: Human-readable description for the game log.
        player_id: ID of player who triggered the event (if applicable).
        player_name: Display name of that player.
        data: Event-specific payload (card played, scores, etc.).
        timestamp: When the event occurred (UTC).
    """

    event_type: EventType
    message: str
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    data: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Serialize event to dictionary for clients."""
        return {
            "type": self.event_type.value,
            "message": self.message,
            "player_id": self.player_id,
            "player_name": self.player_name,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }
