"""
Card model for UNO.

A card is created once when the deck is built and keeps its identity for the
rest of the game: it only moves between the draw pile, a hand and the discard
pile. Kind and value never change. A wild card's color starts out as None and
is stamped when a player names a color; it is reset when the card is
reshuffled back into the draw pile.

Card kinds:
    - NUMBER: Colored card with a face value 0-9
    - SKIP: Next player loses their turn
    - REVERSE: Play direction flips (acts as a skip with two players)
    - DRAW_TWO: Next player draws 2 (stackable)
    - WILD: Player names the next color
    - WILD_DRAW_FOUR: Names the color and next player draws 4 (stackable)
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from constants import (
    ACTION_CARD_POINTS,
    WILD_CARD_POINTS,
    DRAW_TWO_AMOUNT,
    DRAW_FOUR_AMOUNT,
)


class Color(str, Enum):
    """The four card colors."""

    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"

    @classmethod
    def parse(cls, value) -> Optional["Color"]:
        """
        Convert client input to a Color.

        Args:
            value: A Color, a color name string, or anything else.

        Returns:
            The matching Color, or None if the value is not a valid color.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.lower())
        except ValueError:
            return None


class CardKind(str, Enum):
    """Closed set of card kinds."""

    NUMBER = "number"
    SKIP = "skip"
    REVERSE = "reverse"
    DRAW_TWO = "draw_two"
    WILD = "wild"
    WILD_DRAW_FOUR = "wild_draw_four"


WILD_KINDS = frozenset({CardKind.WILD, CardKind.WILD_DRAW_FOUR})
ACTION_KINDS = frozenset({CardKind.SKIP, CardKind.REVERSE, CardKind.DRAW_TWO})

# Every kind must appear here; cards.py refuses to import otherwise.
KIND_POINTS: dict[CardKind, Optional[int]] = {
    CardKind.NUMBER: None,  # face value
    CardKind.SKIP: ACTION_CARD_POINTS,
    CardKind.REVERSE: ACTION_CARD_POINTS,
    CardKind.DRAW_TWO: ACTION_CARD_POINTS,
    CardKind.WILD: WILD_CARD_POINTS,
    CardKind.WILD_DRAW_FOUR: WILD_CARD_POINTS,
}

KIND_DRAW_AMOUNTS: dict[CardKind, int] = {
    CardKind.NUMBER: 0,
    CardKind.SKIP: 0,
    CardKind.REVERSE: 0,
    CardKind.DRAW_TWO: DRAW_TWO_AMOUNT,
    CardKind.WILD: 0,
    CardKind.WILD_DRAW_FOUR: DRAW_FOUR_AMOUNT,
}

KIND_LABELS: dict[CardKind, str] = {
    CardKind.NUMBER: "",
    CardKind.SKIP: "Skip",
    CardKind.REVERSE: "Reverse",
    CardKind.DRAW_TWO: "Draw Two",
    CardKind.WILD: "Wild",
    CardKind.WILD_DRAW_FOUR: "Wild Draw Four",
}

for _table in (KIND_POINTS, KIND_DRAW_AMOUNTS, KIND_LABELS):
    assert set(_table) == set(CardKind), "card kind table is not exhaustive"


def new_card_id() -> str:
    """Generate a unique card identifier."""
    return uuid.uuid4().hex


@dataclass
class Card:
    """
    A single physical UNO card.

    Attributes:
        kind: What the card does when played.
        color: The card's color. None only for a wild with no color chosen.
        value: Face value 0-9 for number cards, None for everything else.
        id: Stable unique identifier used by clients to reference the card.
    """

    kind: CardKind
    color: Optional[Color] = None
    value: Optional[int] = None
    id: str = field(default_factory=new_card_id)

    def __post_init__(self) -> None:
        if self.kind == CardKind.NUMBER:
            if self.value is None or not 0 <= self.value <= 9:
                raise ValueError(f"number card needs a value 0-9, got {self.value!r}")
        elif self.value is not None:
            raise ValueError(f"{self.kind.value} card cannot carry a value")

        if self.kind not in WILD_KINDS and self.color is None:
            raise ValueError(f"{self.kind.value} card needs a color")

    @property
    def is_wild(self) -> bool:
        """Check if this is a Wild or Wild Draw Four."""
        return self.kind in WILD_KINDS

    @property
    def is_action(self) -> bool:
        """Check if this is a colored action card (Skip, Reverse, Draw Two)."""
        return self.kind in ACTION_KINDS

    @property
    def is_draw_action(self) -> bool:
        """Check if this card adds to the draw stack."""
        return KIND_DRAW_AMOUNTS[self.kind] > 0

    @property
    def draw_amount(self) -> int:
        """Cards the next player must draw: 2, 4 or 0."""
        return KIND_DRAW_AMOUNTS[self.kind]

    def points(self) -> int:
        """Point value of this card when left in an opponent's hand."""
        points = KIND_POINTS[self.kind]
        if points is None:
            return self.value
        return points

    def label(self) -> str:
        """Human-readable name, e.g. 'red 7', 'blue Draw Two', 'Wild'."""
        if self.kind == CardKind.NUMBER:
            return f"{self.color.value} {self.value}"
        if self.is_wild:
            return KIND_LABELS[self.kind]
        return f"{self.color.value} {KIND_LABELS[self.kind]}"

    def __str__(self) -> str:
        return self.label()

    def to_dict(self) -> dict:
        """Convert card to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "color": self.color.value if self.color else None,
            "value": self.value,
        }
