from __future__ import annotations

from typing import Iterable, Optional, Sequence

from blackjack.cards import Card, calculate_score
from blackjack.models import Player

MIN_AI_BET = 10
MAX_AI_BET = 500


def format_hand(hand: Iterable[Card]) -> str:
    return ", ".join(card.label for card in hand if card.face_up)


def bet_prompt(chips: int) -> str:
    upper = min(chips, MAX_AI_BET)
    return (
        f"You're playing blackjack and have {chips} chips.\n"
        "What's a reasonable bet amount? Consider standard betting strategies.\n"
        f"Respond with ONLY a number between {MIN_AI_BET} and {upper}, with no explanation."
    )


def decision_prompt(
    hand: Sequence[Card],
    score: int,
    dealer_up_card: Optional[Card],
    other_players: Sequence[Player],
) -> str:
    lines = [f"You are playing blackjack. Your hand: {format_hand(hand)} (score: {score})."]
    if dealer_up_card is not None:
        lines.append(f"Dealer shows: {dealer_up_card.label}.")
    else:
        lines.append("Dealer has no cards yet.")

    visible = [player for player in other_players if any(card.face_up for card in player.hand)]
    if visible:
        lines.append("Other players at the table:")
        for player in visible:
            lines.append(
                f"- {player.name}: {format_hand(player.hand)} (visible score: {calculate_score(player.hand)})"
            )

    lines.append(
        'Based on this situation, would you hit or stand? Explain your reasoning briefly, '
        'then answer with just "HIT" or "STAND".'
    )
    return "\n".join(lines)
