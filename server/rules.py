"""
UNO rule validation and card effects.

Rules implemented (one fixed configuration):
    - Stacking: Draw Two stacks on Draw Two, Wild Draw Four on Wild Draw Four
    - A Reverse or Skip may be played onto an active stack; the stack passes
      on unchanged in the new direction
    - No Wild Draw Four challenge
    - Reverse with two players acts as a Skip

The effect functions here change the GameState they are given. game.py only
ever calls them on its private working copy.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from cards import Card, CardKind, Color
from errors import EngineInvariantError
from models.game_state import GameState, StackKind


STACK_LABELS = {
    StackKind.DRAW_TWO: "Draw Two",
    StackKind.DRAW_FOUR: "Wild Draw Four",
}

STACKS_ON: dict[StackKind, CardKind] = {
    StackKind.DRAW_TWO: CardKind.DRAW_TWO,
    StackKind.DRAW_FOUR: CardKind.WILD_DRAW_FOUR,
}


@dataclass(frozen=True)
class PlayCheck:
    """Result of a legality check. Truthy when the card may be played."""

    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = PlayCheck(True)


# -------------------------------------------------------------------------
# Legality
# -------------------------------------------------------------------------

def can_play(card: Card, state: GameState) -> PlayCheck:
    """
    Check if a card may be played on the current discard pile.

    Checked in order:
        1. Active draw stack: only the matching draw card, Reverse or Skip
        2. Wild cards are always playable
        3. Color match, number match, or action kind match
        4. Anything else is rejected

    Args:
        card: Candidate card.
        state: Current game state.

    Returns:
        PlayCheck with a reason when the play is illegal.
    """
    if state.stacked_draw_count > 0:
        if state.stack_kind is not None and card.kind == STACKS_ON[state.stack_kind]:
            return ALLOWED
        if card.kind in (CardKind.REVERSE, CardKind.SKIP):
            return ALLOWED
        stack_label = STACK_LABELS.get(state.stack_kind, "draw card")
        return PlayCheck(
            False,
            f"You must play a {stack_label}, Reverse, Skip, "
            f"or draw {state.stacked_draw_count} cards",
        )

    if card.is_wild:
        return ALLOWED

    if card.color == state.current_color:
        return ALLOWED

    top = state.discard_top()
    if top is not None:
        if card.kind == CardKind.NUMBER and top.kind == CardKind.NUMBER:
            if card.value == top.value:
                return ALLOWED
        elif card.kind != CardKind.NUMBER and card.kind == top.kind:
            return ALLOWED

    color_name = state.current_color.value if state.current_color else "any"
    if top is None:
        needed = "a wild"
    elif top.kind == CardKind.NUMBER:
        needed = f"number ({top.value})"
    else:
        needed = f"type ({top.label() if top.is_wild else top.kind.value})"
    return PlayCheck(False, f"Card must match color ({color_name}) or {needed}")


def playable_cards(hand: list[Card], state: GameState) -> list[Card]:
    """Get every card in a hand that could be played right now."""
    return [card for card in hand if can_play(card, state)]


# -------------------------------------------------------------------------
# Effects
# -------------------------------------------------------------------------

def _skip_effect(state: GameState) -> None:
    state.skip_next_player = True


def _reverse_effect(state: GameState) -> None:
    state.direction *= -1
    if len(state.players) == 2:
        state.skip_next_player = True


def _draw_two_effect(state: GameState) -> None:
    add_to_stack(state, CardKind.DRAW_TWO)


def _draw_four_effect(state: GameState) -> None:
    add_to_stack(state, CardKind.WILD_DRAW_FOUR)


def _no_effect(state: GameState) -> None:
    pass


KIND_EFFECTS: dict[CardKind, Callable[[GameState], None]] = {
    CardKind.NUMBER: _no_effect,
    CardKind.SKIP: _skip_effect,
    CardKind.REVERSE: _reverse_effect,
    CardKind.DRAW_TWO: _draw_two_effect,
    CardKind.WILD: _no_effect,
    CardKind.WILD_DRAW_FOUR: _draw_four_effect,
}

assert set(KIND_EFFECTS) == set(CardKind), "card effect table is not exhaustive"


def add_to_stack(state: GameState, kind: CardKind) -> None:
    """
    Add a draw card's penalty to the pending stack.

    Args:
        state: State to update.
        kind: DRAW_TWO or WILD_DRAW_FOUR.
    """
    if kind == CardKind.DRAW_TWO:
        state.stacked_draw_count += 2
        state.stack_kind = StackKind.DRAW_TWO
    elif kind == CardKind.WILD_DRAW_FOUR:
        state.stacked_draw_count += 4
        state.stack_kind = StackKind.DRAW_FOUR
    else:
        raise EngineInvariantError(f"{kind.value} does not add to the draw stack")


def clear_stack(state: GameState) -> None:
    state.stacked_draw_count = 0
    state.stack_kind = None


def assign_wild_color(card: Card, state: GameState, chosen_color) -> Color:
    """
    Stamp a chosen color onto a wild card and make it the current color.

    Raises:
        EngineInvariantError: If chosen_color is not one of the four colors.
            Callers must validate player input before getting here.
    """
    color = Color.parse(chosen_color)
    if color is None:
        raise EngineInvariantError(
            f"wild card {card.id} finalized without a valid color ({chosen_color!r})"
        )
    card.color = color
    state.current_color = color
    return color


def apply_effect(card: Card, state: GameState, chosen_color=None) -> None:
    """
    Apply the effects of playing a card that has already passed can_play().

    Puts the card on the discard pile, sets the current color and applies
    the kind-specific effect.

    Args:
        card: Card being played (already removed from the player's hand).
        state: Working state to change.
        chosen_color: Color named for a wild card. Required for wilds.

    Raises:
        EngineInvariantError: A wild card arrived without a valid color.
    """
    state.discard_pile.append(card)

    if card.is_wild:
        assign_wild_color(card, state, chosen_color)
    else:
        state.current_color = card.color

    KIND_EFFECTS[card.kind](state)


def apply_first_card_effect(card: Card, state: GameState) -> None:
    """
    Apply the round's flipped starting card.

    Narrower than apply_effect():
        - Wild: no color yet; player 0 names it and play passes on
        - Skip: player 0 is passed over
        - Reverse: direction becomes -1; play starts with player 1 when two
          players remain, otherwise with the last seat
        - Draw Two: a stack of 2 is waiting for player 0, who may add to it,
          deflect it or draw

    Args:
        card: Starting card, already on the discard pile.
        state: Working state with current_player_index at 0.
    """
    count = len(state.players)

    if card.is_wild:
        state.current_color = None
        state.awaiting_color_choice = True
    else:
        state.current_color = card.color

    if card.kind == CardKind.SKIP:
        state.current_player_index = (state.current_player_index + state.direction) % count
    elif card.kind == CardKind.REVERSE:
        state.direction = -1
        state.current_player_index = 1 if count == 2 else count - 1
    elif card.kind == CardKind.DRAW_TWO:
        state.stacked_draw_count = 2
        state.stack_kind = StackKind.DRAW_TWO


# -------------------------------------------------------------------------
# Turn order
# -------------------------------------------------------------------------

def next_player_index(state: GameState) -> int:
    """Index of the seat after the current one in the current direction."""
    return (state.current_player_index + state.direction) % len(state.players)


def advance_turn(state: GameState) -> None:
    """
    Move play to the next player.

    A pending skip moves one seat further and is cleared. The new current
    player starts with no standing "last card" declaration, and any drawn
    card option lapses.
    """
    state.current_player_index = next_player_index(state)

    if state.skip_next_player:
        state.current_player_index = next_player_index(state)
        state.skip_next_player = False

    state.drawn_card_id = None
    state.players[state.current_player_index].called_last_card = False
