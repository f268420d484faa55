from __future__ import annotations

from dataclasses import dataclass

from .types import Side


@dataclass(frozen=True)
class PlaceCardAction:
    side: Side
    hand_index: int
    slot: int


@dataclass(frozen=True)
class ConfirmPlacementAction:
    side: Side
    # Set when a placement deadline submits whatever is on the board.
    auto: bool = False


@dataclass(frozen=True)
class AdvanceAction:
    """Leave a reveal phase: open round 2, or finish the game."""


Action = PlaceCardAction | ConfirmPlacementAction | AdvanceAction
