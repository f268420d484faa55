from __future__ import annotations

from .actions import Action, AdvanceAction, ConfirmPlacementAction, PlaceCardAction
from .state import GameState, PlacedCard, PlayerState


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, PlaceCardAction):
        return {"type": "place", "side": a.side, "hand_index": a.hand_index, "slot": a.slot}
    if isinstance(a, ConfirmPlacementAction):
        return {"type": "confirm", "side": a.side, "auto": a.auto}
    if isinstance(a, AdvanceAction):
        return {"type": "advance"}
    # should be unreachable
    return {"type": "unknown"}


def _placed_to_dict(p: PlacedCard | None) -> dict[str, object] | None:
    if p is None:
        return None
    return {
        "card_id": p.card.id,
        "position": p.position,
        "cancelled": p.cancelled,
        "modified_points": p.modified_points,
    }


def _player_to_dict(ps: PlayerState) -> dict[str, object]:
    return {
        "deck": [c.id for c in ps.deck],
        "next_draw": ps.next_draw,
        "hand": [c.id for c in ps.hand],
        "board": [_placed_to_dict(p) for p in ps.board],
        "bottom_card": ps.bottom_card.id if ps.bottom_card is not None else None,
        "total_points": ps.total_points,
        "color_counts": dict(sorted(ps.color_counts.items())),
    }


def snapshot(state: GameState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current game state."""
    return {
        "seed": state.seed,
        "phase": state.phase,
        "main_colors": list(state.main_colors),
        "winner": state.winner,
        "win_method": state.win_method,
        "confirmed": sorted(state.confirmed),
        "player": _player_to_dict(state.player),
        "opponent": _player_to_dict(state.opponent),
        "action_log": [action_to_dict(a) for a in state.action_log],
    }
