from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from .state import Board, GameState, active_cards
from .types import Winner, WinMethod


@dataclass(frozen=True)
class SideScore:
    total_points: int = 0
    color_counts: dict[str, int] = field(default_factory=dict)


def score_board(board: Board, main_colors: Sequence[str]) -> SideScore:
    total = 0
    counts = {c: 0 for c in main_colors}
    for slot in active_cards(board):
        total += slot.modified_points
        for color in slot.card.colors:
            if color in counts:
                counts[color] += 1
    return SideScore(total_points=total, color_counts=counts)


def calculate_scores(state: GameState) -> None:
    for ps in (state.player, state.opponent):
        score = score_board(ps.board, state.main_colors)
        ps.total_points = score.total_points
        ps.color_counts = dict(score.color_counts)


def _sweeps(main_colors: Sequence[str], mine: Mapping[str, int], theirs: Mapping[str, int]) -> bool:
    return all(mine.get(c, 0) > theirs.get(c, 0) for c in main_colors)


def decide_winner(main_colors: Sequence[str], player: SideScore, opponent: SideScore) -> tuple[Winner, WinMethod]:
    """Color sweep first (needs at least two contested colors), then points."""
    if len(main_colors) >= 2:
        if _sweeps(main_colors, player.color_counts, opponent.color_counts):
            return "player", "color"
        if _sweeps(main_colors, opponent.color_counts, player.color_counts):
            return "opponent", "color"

    if player.total_points > opponent.total_points:
        return "player", "points"
    if opponent.total_points > player.total_points:
        return "opponent", "points"
    return "tie", "points"


def determine_winner(state: GameState) -> None:
    winner, method = decide_winner(
        state.main_colors,
        SideScore(state.player.total_points, dict(state.player.color_counts)),
        SideScore(state.opponent.total_points, dict(state.opponent.color_counts)),
    )
    state.winner = winner
    state.win_method = method
