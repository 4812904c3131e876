from __future__ import annotations

import math
import random
from dataclasses import replace
from typing import Optional, Sequence, Tuple

from .cards import Card, Deck, calculate_score, draw_card, has_busted, is_blackjack, reveal
from .models import Dealer, Player

DEALER_STANDS_ON = 17
BLACKJACK_PAYOUT = 1.5


def dealer_play(
    dealer: Dealer,
    deck: Sequence[Card],
    rng: Optional[random.Random] = None,
    stands_on: int = DEALER_STANDS_ON,
) -> Tuple[Dealer, Deck]:
    """Reveal the hole card and draw until the dealer reaches ``stands_on``."""
    hand = reveal(dealer.hand)
    remaining: Deck = tuple(deck)
    score = calculate_score(hand)
    while score < stands_on:
        card, remaining = draw_card(remaining, True, rng)
        hand = hand + (card,)
        score = calculate_score(hand)

    played = replace(
        dealer,
        hand=hand,
        score=score,
        has_busted=has_busted(hand),
        has_blackjack=is_blackjack(hand),
        has_stood=True,
        is_active=False,
    )
    return played, remaining


def settle_player(player: Player, dealer: Dealer) -> Player:
    """Pay one player against a dealer that has finished drawing.

    The bet was taken out of ``chips`` when it was placed, so winning returns
    the stake plus winnings and a push returns the stake alone. ``bet`` is left
    as is until the next betting phase.
    """
    bet = player.bet

    if player.has_busted:
        return replace(player, result_message=f"Busted! -${bet}")

    if player.has_blackjack and not dealer.has_blackjack:
        winnings = math.floor(bet * BLACKJACK_PAYOUT)
        return replace(player, chips=player.chips + bet + winnings, result_message=f"Blackjack! +${winnings}")

    if player.has_blackjack and dealer.has_blackjack:
        return replace(player, chips=player.chips + bet, result_message="Push!")

    if dealer.has_busted:
        return replace(player, chips=player.chips + 2 * bet, result_message=f"Dealer busted! +${bet}")

    if player.score > dealer.score:
        return replace(player, chips=player.chips + 2 * bet, result_message=f"You win! +${bet}")

    if player.score == dealer.score:
        return replace(player, chips=player.chips + bet, result_message="Push!")

    return replace(player, result_message=f"Dealer wins! -${bet}")
