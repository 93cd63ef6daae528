"""
Test suite for play legality and card effects.

Covers:
- The legality matrix (color, number, kind, wild)
- Stack restrictions (matching draw card, Reverse, Skip)
- Card effects and turn advancement
- Starting card effects

Run with: pytest test_rules.py -v
"""

import pytest

from cards import Card, CardKind, Color
from errors import EngineInvariantError
from models.game_state import GameState, Player, StackKind
from rules import (
    add_to_stack,
    advance_turn,
    apply_effect,
    apply_first_card_effect,
    can_play,
    playable_cards,
)


def num(color: Color, value: int) -> Card:
    return Card(CardKind.NUMBER, color, value)


def make_state(top: Card, current_color=None, players: int = 3) -> GameState:
    state = GameState(players=[Player(id=f"p{i}", name=f"Player {i}") for i in range(players)])
    state.discard_pile = [top]
    state.current_color = current_color or top.color
    return state


# =============================================================================
# Legality
# =============================================================================

class TestLegalityMatrix:

    def setup_method(self):
        self.state = make_state(num(Color.RED, 5))

    def test_same_color(self):
        assert can_play(num(Color.RED, 9), self.state)

    def test_same_number(self):
        assert can_play(num(Color.BLUE, 5), self.state)

    def test_different_color_and_number(self):
        check = can_play(num(Color.BLUE, 7), self.state)
        assert not check
        assert "red" in check.reason

    def test_wild_always_playable(self):
        assert can_play(Card(CardKind.WILD), self.state)
        assert can_play(Card(CardKind.WILD_DRAW_FOUR), self.state)

    def test_action_matches_color(self):
        assert can_play(Card(CardKind.SKIP, Color.RED), self.state)
        assert not can_play(Card(CardKind.SKIP, Color.GREEN), self.state)

    def test_action_matches_kind(self):
        state = make_state(Card(CardKind.REVERSE, Color.RED))
        assert can_play(Card(CardKind.REVERSE, Color.BLUE), state)
        assert not can_play(Card(CardKind.SKIP, Color.BLUE), state)

    def test_number_does_not_match_action(self):
        state = make_state(Card(CardKind.SKIP, Color.RED))
        assert not can_play(num(Color.BLUE, 5), state)

    def test_colored_wild_sets_color(self):
        wild = Card(CardKind.WILD)
        wild.color = Color.GREEN
        state = make_state(wild, Color.GREEN)
        assert can_play(num(Color.GREEN, 2), state)
        assert not can_play(num(Color.RED, 2), state)

    def test_playable_cards(self):
        hand = [num(Color.RED, 1), num(Color.BLUE, 2), num(Color.YELLOW, 5)]
        assert playable_cards(hand, self.state) == [hand[0], hand[2]]


class TestStackLegality:

    def test_draw_two_stack(self):
        state = make_state(Card(CardKind.DRAW_TWO, Color.RED))
        add_to_stack(state, CardKind.DRAW_TWO)

        assert can_play(Card(CardKind.DRAW_TWO, Color.BLUE), state)
        assert can_play(Card(CardKind.REVERSE, Color.GREEN), state)
        assert can_play(Card(CardKind.SKIP, Color.YELLOW), state)
        assert not can_play(Card(CardKind.WILD_DRAW_FOUR), state)
        assert not can_play(Card(CardKind.WILD), state)

        check = can_play(num(Color.RED, 3), state)
        assert not check
        assert "draw 2 cards" in check.reason

    def test_draw_four_stack(self):
        state = make_state(Card(CardKind.WILD_DRAW_FOUR), Color.BLUE)
        add_to_stack(state, CardKind.WILD_DRAW_FOUR)

        assert can_play(Card(CardKind.WILD_DRAW_FOUR), state)
        assert not can_play(Card(CardKind.DRAW_TWO, Color.BLUE), state)

    def test_stack_accumulates(self):
        state = make_state(Card(CardKind.DRAW_TWO, Color.RED))
        for _ in range(3):
            add_to_stack(state, CardKind.DRAW_TWO)
        assert state.stacked_draw_count == 6
        assert state.stack_kind == StackKind.DRAW_TWO

    def test_only_draw_cards_stack(self):
        state = make_state(num(Color.RED, 1))
        with pytest.raises(EngineInvariantError):
            add_to_stack(state, CardKind.SKIP)


# =============================================================================
# Effects
# =============================================================================

class TestEffects:

    def test_number_passes_to_next(self):
        state = make_state(num(Color.RED, 5))
        apply_effect(num(Color.RED, 6), state)
        advance_turn(state)
        assert state.current_player_index == 1

    def test_skip(self):
        state = make_state(num(Color.RED, 5))
        apply_effect(Card(CardKind.SKIP, Color.RED), state)
        advance_turn(state)
        assert state.current_player_index == 2

    def test_reverse_three_players(self):
        state = make_state(num(Color.RED, 5))
        apply_effect(Card(CardKind.REVERSE, Color.RED), state)
        advance_turn(state)
        assert state.direction == -1
        assert state.current_player_index == 2

    def test_reverse_two_players_acts_as_skip(self):
        state = make_state(num(Color.RED, 5), players=2)
        apply_effect(Card(CardKind.REVERSE, Color.RED), state)
        advance_turn(state)
        assert state.current_player_index == 0

    def test_wild_requires_color(self):
        state = make_state(num(Color.RED, 5))
        with pytest.raises(EngineInvariantError):
            apply_effect(Card(CardKind.WILD), state)

    def test_wild_sets_color(self):
        state = make_state(num(Color.RED, 5))
        wild = Card(CardKind.WILD)
        apply_effect(wild, state, "blue")
        assert state.current_color == Color.BLUE
        assert wild.color == Color.BLUE
        assert state.discard_top() is wild

    def test_advance_turn_resets_declaration(self):
        state = make_state(num(Color.RED, 5))
        state.players[1].called_last_card = True
        advance_turn(state)
        assert state.players[1].called_last_card is False


class TestFirstCardEffect:

    def test_wild_waits_for_color(self):
        state = make_state(Card(CardKind.WILD))
        apply_first_card_effect(state.discard_top(), state)
        assert state.current_color is None
        assert state.awaiting_color_choice
        assert state.current_player_index == 0

    def test_skip_passes_player_zero(self):
        state = make_state(Card(CardKind.SKIP, Color.RED))
        apply_first_card_effect(state.discard_top(), state)
        assert state.current_player_index == 1

    def test_reverse_three_players(self):
        state = make_state(Card(CardKind.REVERSE, Color.RED), players=3)
        apply_first_card_effect(state.discard_top(), state)
        assert state.direction == -1
        assert state.current_player_index == 2

    def test_reverse_two_players(self):
        state = make_state(Card(CardKind.REVERSE, Color.RED), players=2)
        apply_first_card_effect(state.discard_top(), state)
        assert state.current_player_index == 1

    def test_draw_two_seeds_stack(self):
        state = make_state(Card(CardKind.DRAW_TWO, Color.RED))
        apply_first_card_effect(state.discard_top(), state)
        assert state.stacked_draw_count == 2
        assert state.stack_kind == StackKind.DRAW_TWO
        assert state.current_player_index == 0
