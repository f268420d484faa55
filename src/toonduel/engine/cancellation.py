from __future__ import annotations

from dataclasses import replace

from .state import Board, GameState


def _characters(board: Board) -> dict[str, list[int]]:
    out: dict[str, list[int]] = {}
    for i, slot in enumerate(board):
        if slot is None or slot.cancelled:
            continue
        out.setdefault(slot.card.character, []).append(i)
    return out


def _cancel(board: Board, indices: list[int]) -> None:
    for i in indices:
        slot = board[i]
        if slot is not None and not slot.cancelled:
            board[i] = replace(slot, cancelled=True)


def resolve_cancellations(player_board: Board, opponent_board: Board) -> tuple[Board, Board]:
    """Mark duplicate characters cancelled on both boards.

    Both character maps are captured once, before anything is cancelled, so
    the within-side and cross-side rules are evaluated simultaneously rather
    than settled iteratively. Input boards are left untouched.
    """
    p_board = list(player_board)
    o_board = list(opponent_board)
    p_chars = _characters(p_board)
    o_chars = _characters(o_board)

    for board, chars in ((p_board, p_chars), (o_board, o_chars)):
        for indices in chars.values():
            if len(indices) > 1:
                _cancel(board, indices)

    for character, indices in p_chars.items():
        if character in o_chars:
            _cancel(p_board, indices)
            _cancel(o_board, o_chars[character])

    return p_board, o_board


def check_cancellations(state: GameState) -> None:
    state.player.board, state.opponent.board = resolve_cancellations(
        state.player.board, state.opponent.board
    )
