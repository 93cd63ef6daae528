"""
Game state records for UNO.

GameState is the single instance of truth for one room's game. It is only
ever changed through the action functions in game.py, which work on a copy
and hand back the new state, so a GameState a caller is holding never
changes underneath it.

Turn order is the order of `players`. `direction` is +1 (clockwise, toward
higher indexes) or -1.
"""

import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from cards import Card, Color
from constants import DEFAULT_TARGET_SCORE, DECK_SIZE
from models.events import GameEvent


class GamePhase(str, Enum):
    """
    Phases of an UNO game.

    Flow: STARTING -> PLAYING -> ROUND_END -> PLAYING (next round) ...
    Once any total reaches the target: GAME_OVER
    """

    STARTING = "starting"      # Created, no cards dealt yet
    PLAYING = "playing"        # Round in progress
    ROUND_END = "round_end"    # Someone emptied their hand, scores applied
    GAME_OVER = "game_over"    # Someone reached the target score


class StackKind(str, Enum):
    """Which draw card the pending penalty is built from."""

    DRAW_TWO = "draw_two"
    DRAW_FOUR = "draw_four"


@dataclass
class Player:
    """
    A player's in-game state.

    Attributes:
        id: Unique player identifier (connection id from the transport).
        name: Display name.
        hand: Cards held. Order only matters for rendering.
        score: Cumulative points across rounds.
        connected: Whether the player's connection is live.
        called_last_card: Declared "last card" this turn, before dropping to 1.
    """

    id: str
    name: str
    hand: list[Card] = field(default_factory=list)
    score: int = 0
    connected: bool = True
    called_last_card: bool = False

    def find_card(self, card_id: str) -> Optional[Card]:
        """Find a card in hand by ID."""
        for card in self.hand:
            if card.id == card_id:
                return card
        return None

    def remove_card(self, card_id: str) -> Optional[Card]:
        """Remove and return a card from hand, or None if not held."""
        for i, card in enumerate(self.hand):
            if card.id == card_id:
                return self.hand.pop(i)
        return None


@dataclass
class CatchWindow:
    """
    The open chance to catch a player who reached one card undeclared.

    Attributes:
        target_player_id: Player who can be caught.
        expires_at: Wall-clock deadline in milliseconds. A catch at exactly
            this instant still counts.
    """

    target_player_id: str
    expires_at: int

    def is_expired(self, now_ms: int) -> bool:
        """True only once now_ms is past expires_at; the deadline itself is in time."""
        return now_ms > self.expires_at


@dataclass
class GameState:
    """
    Complete state of one room's game.

    Attributes:
        players: Players in turn order.
        phase: Current game phase.
        current_player_index: Index into players of whose turn it is.
        direction: +1 or -1.
        draw_pile: Face-down pile; draw_pile[-1] is drawn next.
        discard_pile: Face-up pile; discard_pile[-1] is the top card.
        current_color: Color the next card must match (None until a
            starting wild has its color named).
        stacked_draw_count: Pending draw penalty.
        stack_kind: Draw card kind the pending penalty is built from.
        skip_next_player: Next turn advance passes over one player.
        awaiting_color_choice: Current player must name a color for the
            wild on top of the discard pile before anything else happens.
        drawn_card_id: Card the current player just drew and may play.
        catch_window: Open call/catch window, if any.
        round_number: Current round (1-indexed).
        target_score: Total that ends the game.
        last_event: Display record of the most recent transition.
        last_round_scores: Points each player earned in the last round.
        winner_id: Game winner once phase is GAME_OVER.
        room_code: Room this game belongs to.
        host_id: Player who may start the next round.
        game_id: Unique identifier for logging.
        rng: Random source for every shuffle in this game.
    """

    players: list[Player] = field(default_factory=list)
    phase: GamePhase = GamePhase.STARTING
    current_player_index: int = 0
    direction: int = 1
    draw_pile: list[Card] = field(default_factory=list)
    discard_pile: list[Card] = field(default_factory=list)
    current_color: Optional[Color] = None
    stacked_draw_count: int = 0
    stack_kind: Optional[StackKind] = None
    skip_next_player: bool = False
    awaiting_color_choice: bool = False
    drawn_card_id: Optional[str] = None
    catch_window: Optional[CatchWindow] = None
    round_number: int = 1
    target_score: int = DEFAULT_TARGET_SCORE
    last_event: Optional[GameEvent] = None
    last_round_scores: dict[str, int] = field(default_factory=dict)
    winner_id: Optional[str] = None
    room_code: str = ""
    host_id: Optional[str] = None
    game_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    def current_player(self) -> Optional[Player]:
        """Get the player whose turn it currently is."""
        if self.players:
            return self.players[self.current_player_index]
        return None

    def get_player(self, player_id: str) -> Optional[Player]:
        """Find a player by ID."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def player_index(self, player_id: str) -> int:
        """Seat index of a player, or -1 if not in the game."""
        for i, player in enumerate(self.players):
            if player.id == player_id:
                return i
        return -1

    def discard_top(self) -> Optional[Card]:
        """Get the top card of the discard pile (if any)."""
        if self.discard_pile:
            return self.discard_pile[-1]
        return None

    def total_cards(self) -> int:
        """Cards across both piles and every hand. Always DECK_SIZE once dealt."""
        return (
            len(self.draw_pile)
            + len(self.discard_pile)
            + sum(len(p.hand) for p in self.players)
        )

    def is_conserved(self) -> bool:
        return self.total_cards() == DECK_SIZE
