"""
Deck management for UNO.

Builds the fixed 108-card deck, shuffles, deals, draws with
reshuffle-from-discard, and picks the round's starting card.

Official 108-card composition:
    - 4 colors (red, yellow, green, blue), each with:
        - One 0
        - Two each of 1-9
        - Two Skip, two Reverse, two Draw Two
    - 4 Wild
    - 4 Wild Draw Four

Pile convention: the END of a list is the top. draw_pile[-1] is the next
card drawn and discard_pile[-1] is the face-up card.

All functions take an optional random.Random so shuffles are reproducible
from a seed. None of them mutate the lists they are given.
"""

import random
from dataclasses import dataclass, field
from typing import Optional

from cards import Card, CardKind, Color
from constants import (
    COPIES_PER_ACTION,
    COPIES_PER_NUMBER,
    HAND_SIZE,
    NUMBER_VALUES,
    WILDS_PER_KIND,
)


def build_deck() -> list[Card]:
    """
    Create the complete 108-card deck in a fixed, unshuffled order.

    Returns:
        List of 108 new Card objects.
    """
    cards: list[Card] = []

    for color in Color:
        for value in NUMBER_VALUES:
            copies = 1 if value == 0 else COPIES_PER_NUMBER
            for _ in range(copies):
                cards.append(Card(CardKind.NUMBER, color, value))

        for kind in (CardKind.SKIP, CardKind.REVERSE, CardKind.DRAW_TWO):
            for _ in range(COPIES_PER_ACTION):
                cards.append(Card(kind, color))

    for kind in (CardKind.WILD, CardKind.WILD_DRAW_FOUR):
        for _ in range(WILDS_PER_KIND):
            cards.append(Card(kind))

    return cards


def shuffle(cards: list[Card], rng: Optional[random.Random] = None) -> list[Card]:
    """
    Shuffle cards with Fisher-Yates.

    Args:
        cards: Cards to shuffle (not modified).
        rng: Random source. Defaults to the module-level generator.

    Returns:
        A new list holding the same cards in uniformly random order.
    """
    randint = rng.randint if rng is not None else random.randint
    shuffled = list(cards)
    for i in range(len(shuffled) - 1, 0, -1):
        j = randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def deal_hands(
    deck: list[Card],
    player_count: int,
    per_player: int = HAND_SIZE,
) -> tuple[list[list[Card]], list[Card]]:
    """
    Deal hands one card at a time around the table.

    Each pass gives one card to every player in seat order, so player 0
    gets the 1st, (n+1)th, (2n+1)th... card off the top.

    Args:
        deck: Shuffled deck (not modified).
        player_count: Number of hands to deal.
        per_player: Cards per hand.

    Returns:
        (hands, remaining_deck)
    """
    remaining = list(deck)
    hands: list[list[Card]] = [[] for _ in range(player_count)]

    for _ in range(per_player):
        for hand in hands:
            if remaining:
                hand.append(remaining.pop())

    return hands, remaining


def reshuffle_discard_pile(
    discard_pile: list[Card],
    rng: Optional[random.Random] = None,
) -> tuple[list[Card], list[Card]]:
    """
    Turn the discard pile (minus its top card) into a new draw pile.

    Wild cards going back into the draw pile lose their chosen color.

    Args:
        discard_pile: Current discard pile (not modified).
        rng: Random source for the shuffle.

    Returns:
        (new_draw_pile, new_discard_pile). If the discard pile holds one card
        or fewer, the draw pile is empty and the discard pile is unchanged.
    """
    if len(discard_pile) <= 1:
        return [], list(discard_pile)

    top_card = discard_pile[-1]
    to_shuffle = discard_pile[:-1]

    for card in to_shuffle:
        if card.is_wild:
            card.color = None

    return shuffle(to_shuffle, rng), [top_card]


@dataclass
class DrawResult:
    """
    Outcome of drawing from the piles.

    Attributes:
        cards: Cards drawn, in draw order.
        draw_pile: Draw pile after drawing.
        discard_pile: Discard pile after any reshuffle.
        requested: How many cards were asked for.
        reshuffled: Whether the discard pile was recycled.
    """

    cards: list[Card] = field(default_factory=list)
    draw_pile: list[Card] = field(default_factory=list)
    discard_pile: list[Card] = field(default_factory=list)
    requested: int = 0
    reshuffled: bool = False

    @property
    def exhausted(self) -> bool:
        """True if the piles ran out before `requested` cards were drawn."""
        return len(self.cards) < self.requested


def draw_cards(
    draw_pile: list[Card],
    discard_pile: list[Card],
    n: int,
    rng: Optional[random.Random] = None,
) -> DrawResult:
    """
    Draw up to n cards, reshuffling the discard pile when the draw pile is empty.

    Drawing stops short when neither pile can supply another card; check
    DrawResult.exhausted.

    Args:
        draw_pile: Current draw pile (not modified).
        discard_pile: Current discard pile (not modified).
        n: Number of cards wanted.
        rng: Random source for any reshuffle.

    Returns:
        DrawResult with the drawn cards and the new piles.
    """
    result = DrawResult(
        draw_pile=list(draw_pile),
        discard_pile=list(discard_pile),
        requested=n,
    )

    for _ in range(n):
        if not result.draw_pile:
            result.draw_pile, result.discard_pile = reshuffle_discard_pile(
                result.discard_pile, rng
            )
            if not result.draw_pile:
                break
            result.reshuffled = True
        result.cards.append(result.draw_pile.pop())

    return result


def pick_starting_card(
    deck: list[Card],
    rng: Optional[random.Random] = None,
) -> tuple[Card, list[Card]]:
    """
    Take the round's first face-up card from the top of the deck.

    A Wild Draw Four is never a valid starting card: it goes back at the
    bottom, the deck is reshuffled and the top card is tried again.

    Args:
        deck: Draw pile after dealing (not modified).
        rng: Random source for reshuffles.

    Returns:
        (start_card, remaining_deck)

    Raises:
        ValueError: If the deck has no card that can start a round.
    """
    if not any(card.kind != CardKind.WILD_DRAW_FOUR for card in deck):
        raise ValueError("deck has no valid starting card")

    remaining = list(deck)
    start_card = remaining.pop()
    while start_card.kind == CardKind.WILD_DRAW_FOUR:
        remaining.insert(0, start_card)
        remaining = shuffle(remaining, rng)
        start_card = remaining.pop()

    return start_card, remaining
