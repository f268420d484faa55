"""Deterministic, headless match-resolution engine for toonduel.

IMPORTANT: This package performs no I/O and imports nothing outside the
standard library.
"""

from .actions import AdvanceAction, ConfirmPlacementAction, PlaceCardAction
from .cancellation import resolve_cancellations
from .match import StepResult, new_game, replay, step
from .powers import parse_description, resolve_powers
from .scoring import decide_winner
from .state import GameState, MatchConfig, PlacedCard, PlayerState
from .types import Card, CardCatalog, Phase, Side, Winner, WinMethod

__all__ = [
    "AdvanceAction",
    "Card",
    "CardCatalog",
    "ConfirmPlacementAction",
    "GameState",
    "MatchConfig",
    "Phase",
    "PlaceCardAction",
    "PlacedCard",
    "PlayerState",
    "Side",
    "StepResult",
    "WinMethod",
    "Winner",
    "decide_winner",
    "new_game",
    "parse_description",
    "replay",
    "resolve_cancellations",
    "resolve_powers",
    "step",
]
