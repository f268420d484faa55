from __future__ import annotations

from typing import Sequence

from .state import Board, GameState, PlacedCard
from .types import Card, Side


def _priority(card: Card, main_colors: Sequence[str]) -> tuple[bool, int]:
    has_main = any(c in main_colors for c in card.colors)
    return (not has_main, -card.base_points)


def choose_placements(
    hand: Sequence[Card],
    board: Board,
    main_colors: Sequence[str],
    count: int,
    start_index: int,
) -> list[tuple[int, int]]:
    """Greedy pick of (hand_index, slot) pairs for the AI.

    Cards carrying a main color come first, then higher printed points; the
    sort is stable so ties keep hand order. A character already on the board
    (or picked earlier in this call) is skipped.
    """
    open_slots = [i for i in range(start_index, start_index + count) if board[i] is None]
    used = {s.card.character for s in board if s is not None}
    order = sorted(range(len(hand)), key=lambda i: _priority(hand[i], main_colors))

    picks: list[tuple[int, int]] = []
    for hand_index in order:
        if len(picks) >= len(open_slots):
            break
        card = hand[hand_index]
        if card.character in used:
            continue
        picks.append((hand_index, open_slots[len(picks)]))
        used.add(card.character)
    return picks


def ai_place_cards(state: GameState, side: Side, count: int, start_index: int) -> list[int]:
    """Place up to `count` cards for `side`; returns the slots filled."""
    ps = state.side(side)
    picks = choose_placements(ps.hand, ps.board, state.main_colors, count, start_index)
    for hand_index, slot in picks:
        card = ps.hand[hand_index]
        ps.board[slot] = PlacedCard.of(card, slot)
        state.event_log.append({"type": "CARD_PLACED", "side": side, "slot": slot, "card_id": card.id})

    placed = {hand_index for hand_index, _ in picks}
    ps.hand = [c for i, c in enumerate(ps.hand) if i not in placed]
    return [slot for _, slot in picks]
