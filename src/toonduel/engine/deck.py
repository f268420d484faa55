from __future__ import annotations

import logging
import random
from typing import Iterable, Sequence, TypeVar

from .state import MatchConfig, PlayerState, empty_board
from .types import NEUTRAL_COLORS, Card, CardCatalog

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_MAIN_COLORS = 2


def fisher_yates(rng: random.Random, items: Sequence[T]) -> list[T]:
    """Return a shuffled copy of `items`.

    Walks from the last index down to 1 and swaps each element with a
    uniformly chosen index in [0, i], so the result is always a permutation.
    """
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def resolve_deck(catalog: CardCatalog, card_ids: Iterable[int]) -> list[Card]:
    cards: list[Card] = []
    for cid in card_ids:
        card = catalog.find(cid)
        if card is None:
            logger.debug("Dropping unknown card id %s from deck", cid)
            continue
        cards.append(card)
    return cards


def create_player_state(
    catalog: CardCatalog,
    deck_ids: Sequence[int],
    rng: random.Random,
    config: MatchConfig | None = None,
) -> PlayerState:
    cfg = config or MatchConfig()
    deck = fisher_yates(rng, resolve_deck(catalog, deck_ids))
    hand = deck[: cfg.hand_size]
    return PlayerState(
        deck=deck,
        hand=list(hand),
        board=empty_board(),
        bottom_card=deck[-1] if deck else None,
        next_draw=len(hand),
    )


def random_deck(catalog: CardCatalog, rng: random.Random, size: int = 12) -> list[int]:
    return fisher_yates(rng, sorted(catalog.all_ids()))[:size]


def derive_main_colors(player: PlayerState, opponent: PlayerState) -> tuple[str, ...]:
    """Contested colors: every non-neutral color of the player's bottom card,
    then the opponent's, de-duplicated and capped at two.
    """
    colors: list[str] = []
    for bottom in (player.bottom_card, opponent.bottom_card):
        if bottom is None:
            continue
        for color in bottom.colors:
            if color in NEUTRAL_COLORS:
                continue
            if color not in colors:
                colors.append(color)
    return tuple(colors[:MAX_MAIN_COLORS])


def refill_hand(ps: PlayerState, hand_size: int) -> list[Card]:
    drawn: list[Card] = []
    while len(ps.hand) < hand_size and ps.next_draw < len(ps.deck):
        card = ps.deck[ps.next_draw]
        ps.next_draw += 1
        ps.hand.append(card)
        drawn.append(card)
    return drawn
