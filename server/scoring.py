"""
UNO point calculation.

Scoring values:
    - Number cards (0-9): Face value
    - Skip, Reverse, Draw Two: 20 points each
    - Wild, Wild Draw Four: 50 points each

The round winner scores the sum of every opponent's remaining hand; everyone
else scores 0 for the round. The first player whose total reaches the target
score (default 500) wins the game.
"""

from dataclasses import dataclass
from typing import Optional

from cards import Card
from models.game_state import Player


@dataclass
class RoundScore:
    """
    Points from one finished round.

    Attributes:
        round_scores: Points earned this round, by seat index.
        new_totals: Cumulative totals after this round, by seat index.
    """

    round_scores: list[int]
    new_totals: list[int]


def hand_value(hand: list[Card]) -> int:
    """Total point value of a hand."""
    return sum(card.points() for card in hand)


def score_round(players: list[Player], winner_index: int) -> RoundScore:
    """
    Calculate round scores after a player empties their hand.

    Does not modify the players; the caller applies new_totals.

    Args:
        players: Players in seat order, hands as they stand at round end.
        winner_index: Seat of the player who went out.

    Returns:
        RoundScore with per-seat round points and new totals.
    """
    round_scores = [0] * len(players)
    round_scores[winner_index] = sum(
        hand_value(player.hand)
        for i, player in enumerate(players)
        if i != winner_index
    )
    new_totals = [player.score + points for player, points in zip(players, round_scores)]
    return RoundScore(round_scores=round_scores, new_totals=new_totals)


def check_game_over(players: list[Player], target_score: int) -> Optional[int]:
    """
    Check if any player has reached the target score.

    Players are checked in seat order and the first one at or above the
    target wins.

    Returns:
        Seat index of the game winner, or None if the game continues.
    """
    for i, player in enumerate(players):
        if player.score >= target_score:
            return i
    return None


def final_rankings(players: list[Player]) -> list[dict]:
    """
    Rank players by total score, highest first.

    Ties keep seat order.

    Returns:
        List of dicts with rank, id, name and score.
    """
    ranked = sorted(enumerate(players), key=lambda pair: (-pair[1].score, pair[0]))
    return [
        {"rank": rank, "id": player.id, "name": player.name, "score": player.score}
        for rank, (_, player) in enumerate(ranked, start=1)
    ]
