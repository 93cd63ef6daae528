"""
Game flow for UNO.

This module is the turn state machine: every player action is a function
that takes the current GameState and returns an ActionResult. Actions never
change the state they are given. They validate everything first, then work
on a private copy and return it, so a rejected action leaves the caller's
state exactly as it was.

UNO Rules Summary:
    - Each player is dealt 7 cards; one card is flipped to start the discard pile
    - On your turn: play a card matching color, number or kind, or draw one
    - A single drawn card that can be played may be played right away
    - Draw Two / Wild Draw Four stack; the player who cannot add to (or
      deflect) the stack draws all of it
    - Declare "last card" while holding 2 cards, before playing down to 1.
      Forget, and any player can catch you within 3 seconds for +4 cards
    - Empty your hand to win the round and score everyone else's cards
    - First to 500 points wins the game

Phase flow:
    STARTING -> PLAYING -> ROUND_END -> PLAYING (next round) ... -> GAME_OVER

Callers must serialize actions per room (see Room.game_lock); these
functions are synchronous and never wait on anything.
"""

import copy
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from cards import Card, CardKind, Color
from constants import (
    CATCH_PENALTY_CARDS,
    CATCH_WINDOW_MS,
    DEFAULT_TARGET_SCORE,
    HAND_SIZE,
    MIN_PLAYERS,
)
from deck import build_deck, deal_hands, draw_cards, pick_starting_card, shuffle
from errors import RejectReason
from models.events import EventType, GameEvent
from models.game_state import CatchWindow, GamePhase, GameState, Player
from rules import (
    add_to_stack,
    advance_turn,
    apply_effect,
    apply_first_card_effect,
    assign_wild_color,
    can_play,
    clear_stack,
    playable_cards,
)
from scoring import check_game_over, score_round

logger = logging.getLogger(__name__)


Clock = Callable[[], int]


def system_clock() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


@dataclass
class ActionResult:
    """
    Outcome of a player action.

    Attributes:
        ok: Whether the action was accepted.
        state: The game state after the action. For most rejections this is
            the very object that was passed in.
        event: Display record of what happened (accepted actions only).
        reason: Rejection code (rejected actions only).
        message: Human-readable text for either outcome.
        drawn_cards: Cards added to the acting player's hand by a draw.
        can_play_drawn: A single drawn card may be played this turn.
    """

    ok: bool
    state: GameState
    event: Optional[GameEvent] = None
    reason: Optional[RejectReason] = None
    message: str = ""
    drawn_cards: list[Card] = field(default_factory=list)
    can_play_drawn: bool = False

    def to_dict(self) -> dict:
        """Convert to the transport reply shape."""
        if self.ok:
            return {"ok": True, "event": self.event.to_dict() if self.event else None}
        return {"ok": False, "reason": self.reason.value, "message": self.message}


def _reject(state: GameState, reason: RejectReason, message: str) -> ActionResult:
    logger.debug(f"Rejected action in room {state.room_code or '-'}: {reason.value} ({message})")
    return ActionResult(ok=False, state=state, reason=reason, message=message)


def _accept(state: GameState, event: GameEvent, **extra) -> ActionResult:
    state.last_event = event
    return ActionResult(ok=True, state=state, event=event, message=event.message, **extra)


def _event(
    event_type: EventType,
    message: str,
    player: Optional[Player] = None,
    **data,
) -> GameEvent:
    return GameEvent(
        event_type=event_type,
        message=message,
        player_id=player.id if player else None,
        player_name=player.name if player else None,
        data=data,
    )


def _check_turn(
    state: GameState,
    player_id: str,
    allow_color_choice: bool = False,
) -> Optional[ActionResult]:
    """
    Common checks for actions only the current player may take.

    Returns:
        A rejection, or None if the player may act.
    """
    player_index = state.player_index(player_id)
    if player_index == -1:
        return _reject(state, RejectReason.PLAYER_NOT_FOUND, "Player not found")

    if player_index != state.current_player_index:
        return _reject(state, RejectReason.NOT_YOUR_TURN, "Not your turn")

    if state.phase != GamePhase.PLAYING:
        return _reject(state, RejectReason.WRONG_PHASE, "Game is not in playing phase")

    if state.awaiting_color_choice and not allow_color_choice:
        return _reject(state, RejectReason.AWAITING_COLOR_CHOICE, "Must choose a color first")

    return None


# -------------------------------------------------------------------------
# Game Lifecycle
# -------------------------------------------------------------------------

def create_game(
    roster: Iterable[dict],
    target_score: int = DEFAULT_TARGET_SCORE,
    room_code: str = "",
    host_id: Optional[str] = None,
    seed: Optional[int] = None,
) -> GameState:
    """
    Create a new game from the room's player roster.

    Args:
        roster: Players in seat order, each a dict with "id" and "name".
        target_score: Total that ends the game.
        room_code: Room this game belongs to (for logging).
        host_id: Room host. Defaults to the first seat.
        seed: Optional seed for every shuffle in the game.

    Returns:
        GameState in STARTING phase. Call start_round() to deal.

    Raises:
        ValueError: Fewer than two players.
    """
    players = [Player(id=entry["id"], name=entry["name"]) for entry in roster]
    if len(players) < MIN_PLAYERS:
        raise ValueError(f"Need at least {MIN_PLAYERS} players, got {len(players)}")

    return GameState(
        players=players,
        target_score=target_score,
        room_code=room_code,
        host_id=host_id or players[0].id,
        rng=random.Random(seed),
    )


def _deal_round(work: GameState) -> ActionResult:
    """
    Shuffle a fresh deck, deal, flip the starting card and begin play.

    Every round starts with player 0 and clockwise direction before the
    starting card's effect is applied.
    """
    deck = shuffle(build_deck(), work.rng)
    hands, remaining = deal_hands(deck, len(work.players), HAND_SIZE)

    for player, hand in zip(work.players, hands):
        player.hand = hand
        player.called_last_card = False

    start_card, remaining = pick_starting_card(remaining, work.rng)

    work.draw_pile = remaining
    work.discard_pile = [start_card]
    work.current_player_index = 0
    work.direction = 1
    clear_stack(work)
    work.skip_next_player = False
    work.awaiting_color_choice = False
    work.drawn_card_id = None
    work.catch_window = None
    work.last_round_scores = {}
    work.phase = GamePhase.PLAYING

    apply_first_card_effect(start_card, work)

    logger.info(
        f"Room {work.room_code or '-'} round {work.round_number} started "
        f"with {len(work.players)} players, first card {start_card}"
    )
    event = _event(
        EventType.ROUND_STARTED,
        f"Round {work.round_number} started! First card: {start_card}",
        round_number=work.round_number,
        first_card=start_card.to_dict(),
        first_player_id=work.current_player().id,
    )
    return _accept(work, event)


def start_round(state: GameState) -> ActionResult:
    """
    Deal the first round of a newly created game.

    Returns:
        ActionResult with the state in PLAYING phase.
    """
    if state.phase != GamePhase.STARTING:
        return _reject(state, RejectReason.WRONG_PHASE, "Game has already started")
    return _deal_round(copy.deepcopy(state))


def start_next_round(state: GameState) -> ActionResult:
    """
    Start the next round after a round has ended.

    Scores carry over; hands, piles and turn order are rebuilt.
    """
    if state.phase != GamePhase.ROUND_END:
        return _reject(state, RejectReason.WRONG_PHASE, "Round is not over yet")

    work = copy.deepcopy(state)
    work.round_number += 1
    return _deal_round(work)


def _end_round(work: GameState, winner_index: int) -> ActionResult:
    """
    End the round, apply scores and check for game over.

    Args:
        work: Working state (already reflects the winning play).
        winner_index: Seat of the player who emptied their hand.
    """
    work.phase = GamePhase.ROUND_END
    work.catch_window = None
    work.awaiting_color_choice = False
    work.drawn_card_id = None
    work.skip_next_player = False
    clear_stack(work)

    winner = work.players[winner_index]
    result = score_round(work.players, winner_index)
    for player, total in zip(work.players, result.new_totals):
        player.score = total
    work.last_round_scores = {
        player.id: points for player, points in zip(work.players, result.round_scores)
    }
    round_points = result.round_scores[winner_index]

    game_winner_index = check_game_over(work.players, work.target_score)
    if game_winner_index is not None:
        work.phase = GamePhase.GAME_OVER
        game_winner = work.players[game_winner_index]
        work.winner_id = game_winner.id
        logger.info(
            f"Room {work.room_code or '-'} game over: {game_winner.name} "
            f"wins with {game_winner.score} points"
        )
        event = _event(
            EventType.GAME_OVER,
            f"Game Over! {game_winner.name} wins with {game_winner.score} points!",
            game_winner,
            round_scores=work.last_round_scores,
            round_winner_id=winner.id,
        )
        return _accept(work, event)

    logger.info(
        f"Room {work.room_code or '-'} round {work.round_number} won by "
        f"{winner.name} (+{round_points})"
    )
    event = _event(
        EventType.ROUND_ENDED,
        f"{winner.name} wins the round! +{round_points} points",
        winner,
        round_scores=work.last_round_scores,
    )
    return _accept(work, event)


# -------------------------------------------------------------------------
# Call / Catch Window
# -------------------------------------------------------------------------

def _update_catch_window(work: GameState, player: Player, now_ms: int) -> None:
    """
    Open a catch window if the player just reached one card undeclared.

    A window already targeting this player is closed otherwise.
    """
    if len(player.hand) == 1 and not player.called_last_card:
        work.catch_window = CatchWindow(
            target_player_id=player.id,
            expires_at=now_ms + CATCH_WINDOW_MS,
        )
    elif work.catch_window and work.catch_window.target_player_id == player.id:
        work.catch_window = None


def declare_last_card(state: GameState, player_id: str) -> ActionResult:
    """
    Declare "last card" before playing down to one card.

    Only valid on your own turn while holding exactly 2 cards. The
    declaration lasts until your next turn begins.
    """
    player_index = state.player_index(player_id)
    if player_index == -1:
        return _reject(state, RejectReason.PLAYER_NOT_FOUND, "Player not found")

    if state.phase != GamePhase.PLAYING:
        return _reject(state, RejectReason.WRONG_PHASE, "Game is not in playing phase")

    if len(state.players[player_index].hand) != 2:
        return _reject(
            state,
            RejectReason.CANNOT_DECLARE_LAST_CARD,
            "You can only call last card when you have 2 cards",
        )

    if player_index != state.current_player_index:
        return _reject(
            state,
            RejectReason.CANNOT_DECLARE_LAST_CARD,
            "You can only call last card on your turn",
        )

    work = copy.deepcopy(state)
    player = work.players[player_index]
    player.called_last_card = True

    event = _event(EventType.LAST_CARD_CALLED, f"{player.name} called last card!", player)
    return _accept(work, event)


def catch_player(
    state: GameState,
    catcher_id: str,
    target_id: str,
    clock: Clock = system_clock,
) -> ActionResult:
    """
    Catch a player who reached one card without declaring it.

    Succeeds only while a catch window for the target is open. The target
    draws the penalty cards through the normal draw path.

    An expired window is closed as part of the rejection, so the returned
    state differs from the input in that one case.
    """
    window = state.catch_window
    if window is None or window.target_player_id != target_id or catcher_id == target_id:
        return _reject(
            state,
            RejectReason.CATCH_WINDOW_ABSENT_OR_MISMATCHED,
            "Cannot catch this player",
        )

    if window.is_expired(clock()):
        work = copy.deepcopy(state)
        work.catch_window = None
        return _reject(work, RejectReason.CATCH_WINDOW_EXPIRED, "Catch window has expired")

    if state.get_player(catcher_id) is None or state.get_player(target_id) is None:
        return _reject(state, RejectReason.PLAYER_NOT_FOUND, "Player not found")

    work = copy.deepcopy(state)
    catcher = work.get_player(catcher_id)
    target = work.get_player(target_id)

    result = draw_cards(work.draw_pile, work.discard_pile, CATCH_PENALTY_CARDS, work.rng)
    work.draw_pile = result.draw_pile
    work.discard_pile = result.discard_pile
    target.hand.extend(result.cards)
    work.catch_window = None

    event = _event(
        EventType.PLAYER_CAUGHT,
        f"{catcher.name} caught {target.name}! +{len(result.cards)} penalty cards",
        catcher,
        target_id=target.id,
        target_name=target.name,
        count=len(result.cards),
    )
    return _accept(work, event, drawn_cards=result.cards)


# -------------------------------------------------------------------------
# Turn Actions
# -------------------------------------------------------------------------

def play_card(
    state: GameState,
    player_id: str,
    card_id: str,
    chosen_color=None,
    clock: Clock = system_clock,
) -> ActionResult:
    """
    Play a card from the current player's hand.

    A wild played without a color goes face-up and the player must then call
    choose_color(); a Wild Draw Four's penalty is added to the stack
    immediately. Every other play takes full effect and passes the turn.

    Args:
        state: Current game state.
        player_id: Player playing the card.
        card_id: ID of the card in their hand.
        chosen_color: Color for a wild card, if named up front.
        clock: Time source for the catch window.

    Returns:
        ActionResult. Emptying the hand ends the round.
    """
    rejection = _check_turn(state, player_id)
    if rejection:
        return rejection

    player = state.get_player(player_id)
    card = player.find_card(card_id)
    if card is None:
        return _reject(state, RejectReason.CARD_NOT_IN_HAND, "Card not in hand")

    if state.drawn_card_id is not None and card.id != state.drawn_card_id:
        return _reject(
            state,
            RejectReason.ILLEGAL_PLAY,
            "You may only play the card you just drew",
        )

    check = can_play(card, state)
    if not check:
        return _reject(state, RejectReason.ILLEGAL_PLAY, check.reason)

    color: Optional[Color] = None
    if card.is_wild and chosen_color is not None:
        color = Color.parse(chosen_color)
        if color is None:
            return _reject(state, RejectReason.INVALID_COLOR_CHOICE, "Invalid color")

    work = copy.deepcopy(state)
    player_index = work.player_index(player_id)
    player = work.players[player_index]
    card = player.remove_card(card_id)
    work.drawn_card_id = None
    now_ms = clock()

    if card.is_wild and color is None:
        work.discard_pile.append(card)
        work.awaiting_color_choice = True
        if card.kind == CardKind.WILD_DRAW_FOUR:
            add_to_stack(work, card.kind)

        event = _event(
            EventType.CARD_PLAYED,
            f"{player.name} played {card} - choosing color...",
            player,
            card=card.to_dict(),
        )
        if not player.hand:
            work.last_event = event
            return _end_round(work, player_index)

        _update_catch_window(work, player, now_ms)
        return _accept(work, event)

    apply_effect(card, work, color)

    if not player.hand:
        return _end_round(work, player_index)

    _update_catch_window(work, player, now_ms)

    suffix = f" and chose {color.value}" if color else ""
    event = _event(
        EventType.CARD_PLAYED,
        f"{player.name} played {card}{suffix}",
        player,
        card=card.to_dict(),
    )
    advance_turn(work)
    return _accept(work, event)


def choose_color(state: GameState, player_id: str, color) -> ActionResult:
    """
    Name the color for the wild card on top of the discard pile.

    After a played wild this ends the turn. After a wild starting card the
    player goes on to take their turn.
    """
    rejection = _check_turn(state, player_id, allow_color_choice=True)
    if rejection:
        return rejection

    if not state.awaiting_color_choice:
        return _reject(
            state,
            RejectReason.NOT_AWAITING_COLOR_CHOICE,
            "Not awaiting color choice",
        )

    chosen = Color.parse(color)
    if chosen is None:
        return _reject(state, RejectReason.INVALID_COLOR_CHOICE, "Invalid color")

    work = copy.deepcopy(state)
    player_index = work.player_index(player_id)
    player = work.players[player_index]

    assign_wild_color(work.discard_top(), work, chosen)
    work.awaiting_color_choice = False

    event = _event(
        EventType.COLOR_CHOSEN,
        f"{player.name} chose {chosen.value}",
        player,
        color=chosen.value,
    )

    if not player.hand:
        return _end_round(work, player_index)

    advance_turn(work)
    return _accept(work, event)


def draw(state: GameState, player_id: str) -> ActionResult:
    """
    Draw for the current player.

    With a pending stack the player draws all of it and the turn passes.
    Otherwise they draw one card; if that card can be played right away the
    turn stays with them to play it or keep it (keep_drawn_card()).

    Returns:
        ActionResult with drawn_cards and can_play_drawn filled in.
    """
    rejection = _check_turn(state, player_id)
    if rejection:
        return rejection

    if state.drawn_card_id is not None:
        return _reject(state, RejectReason.ALREADY_DREW, "Play or keep the card you drew")

    work = copy.deepcopy(state)
    player = work.get_player(player_id)

    stack_draw = work.stacked_draw_count > 0
    count = work.stacked_draw_count if stack_draw else 1

    result = draw_cards(work.draw_pile, work.discard_pile, count, work.rng)
    work.draw_pile = result.draw_pile
    work.discard_pile = result.discard_pile
    player.hand.extend(result.cards)
    clear_stack(work)

    if work.catch_window and work.catch_window.target_player_id == player.id:
        work.catch_window = None

    can_play_drawn = (
        not stack_draw
        and len(result.cards) == 1
        and bool(can_play(result.cards[0], work))
    )

    drawn = len(result.cards)
    event = _event(
        EventType.CARDS_DRAWN,
        f"{player.name} drew {drawn} card{'s' if drawn != 1 else ''}",
        player,
        count=drawn,
        exhausted=result.exhausted,
    )
    if result.exhausted:
        logger.info(
            f"Room {work.room_code or '-'}: piles exhausted, "
            f"{player.name} drew {drawn} of {count}"
        )

    if can_play_drawn:
        work.drawn_card_id = result.cards[0].id
    else:
        advance_turn(work)

    return _accept(work, event, drawn_cards=result.cards, can_play_drawn=can_play_drawn)


def keep_drawn_card(state: GameState, player_id: str) -> ActionResult:
    """End the turn without playing the card just drawn."""
    rejection = _check_turn(state, player_id)
    if rejection:
        return rejection

    if state.drawn_card_id is None:
        return _reject(state, RejectReason.NO_DRAWN_CARD, "No drawn card to keep")

    work = copy.deepcopy(state)
    player = work.get_player(player_id)
    event = _event(EventType.DRAWN_CARD_KEPT, f"{player.name} kept the drawn card", player)
    advance_turn(work)
    return _accept(work, event)


# -------------------------------------------------------------------------
# Connection Tracking
# -------------------------------------------------------------------------

def handle_disconnect(state: GameState, player_id: str) -> ActionResult:
    """Mark a player as disconnected. Hands and piles are untouched."""
    if state.get_player(player_id) is None:
        return _reject(state, RejectReason.PLAYER_NOT_FOUND, "Player not found")

    work = copy.deepcopy(state)
    player = work.get_player(player_id)
    player.connected = False
    event = _event(EventType.PLAYER_DISCONNECTED, f"{player.name} disconnected", player)
    return _accept(work, event)


def handle_reconnect(state: GameState, old_player_id: str, new_player_id: str) -> ActionResult:
    """
    Re-attach a returning player under their new connection ID.

    Only identity and connectivity change; every reference to the old ID
    (host, catch window) follows the player.
    """
    if state.get_player(old_player_id) is None:
        return _reject(state, RejectReason.PLAYER_NOT_FOUND, "Player not found")

    work = copy.deepcopy(state)
    player = work.get_player(old_player_id)
    player.id = new_player_id
    player.connected = True

    if work.host_id == old_player_id:
        work.host_id = new_player_id
    if work.catch_window and work.catch_window.target_player_id == old_player_id:
        work.catch_window.target_player_id = new_player_id

    event = _event(EventType.PLAYER_RECONNECTED, f"{player.name} reconnected", player)
    return _accept(work, event)


# -------------------------------------------------------------------------
# State Queries
# -------------------------------------------------------------------------

def get_state_for_player(state: GameState, for_player_id: str) -> dict:
    """
    Get the game state as one player may see it.

    The recipient's own hand is shown in full. Everyone else's hand is
    reduced to a count, the draw pile to a count, and the discard pile to
    its top card.

    Args:
        state: Full game state.
        for_player_id: The player who will receive this view.

    Returns:
        Dict suitable for JSON serialization.
    """
    current = state.current_player()
    is_my_turn = current is not None and current.id == for_player_id
    me = state.get_player(for_player_id)

    players_data = []
    for i, player in enumerate(state.players):
        entry = {
            "id": player.id,
            "name": player.name,
            "card_count": len(player.hand),
            "score": player.score,
            "connected": player.connected,
            "called_last_card": player.called_last_card,
            "is_current": i == state.current_player_index,
        }
        if player.id == for_player_id:
            entry["hand"] = [card.to_dict() for card in player.hand]
        players_data.append(entry)

    playable_ids: list[str] = []
    if (
        me is not None
        and is_my_turn
        and state.phase == GamePhase.PLAYING
        and not state.awaiting_color_choice
    ):
        if state.drawn_card_id is not None:
            playable_ids = [state.drawn_card_id]
        else:
            playable_ids = [card.id for card in playable_cards(me.hand, state)]

    top = state.discard_top()
    window = state.catch_window

    return {
        "game_id": state.game_id,
        "room_code": state.room_code,
        "phase": state.phase.value,
        "round_number": state.round_number,
        "target_score": state.target_score,
        "players": players_data,
        "current_player_id": current.id if current else None,
        "host_id": state.host_id,
        "direction": state.direction,
        "current_color": state.current_color.value if state.current_color else None,
        "top_card": top.to_dict() if top else None,
        "draw_pile_count": len(state.draw_pile),
        "stacked_draw_count": state.stacked_draw_count,
        "stack_kind": state.stack_kind.value if state.stack_kind else None,
        "awaiting_color_choice": state.awaiting_color_choice,
        "catch_window": (
            {"target_player_id": window.target_player_id, "expires_at": window.expires_at}
            if window else None
        ),
        "drawn_card_id": state.drawn_card_id if is_my_turn else None,
        "playable_card_ids": playable_ids,
        "last_event": state.last_event.to_dict() if state.last_event else None,
        "last_round_scores": state.last_round_scores,
        "winner_id": state.winner_id,
    }
