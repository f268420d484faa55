from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .types import Card, CardCatalog, Phase, Side, Winner, WinMethod

if TYPE_CHECKING:
    from .actions import Action

Event = dict[str, object]

BOARD_SLOTS = 7
ROUND1_SLOTS: tuple[int, ...] = (0, 1, 2, 3)
ROUND2_SLOTS: tuple[int, ...] = (4, 5, 6)


@dataclass(frozen=True)
class MatchConfig:
    hand_size: int = 6
    deck_size: int = 12
    # False for PvP: both sides place through actions.
    vs_ai: bool = True


@dataclass
class PlacedCard:
    card: Card
    position: int
    cancelled: bool = False
    modified_points: int = 0

    @staticmethod
    def of(card: Card, position: int) -> "PlacedCard":
        return PlacedCard(card=card, position=position, modified_points=card.base_points)


Board = list[PlacedCard | None]


def empty_board() -> Board:
    return [None for _ in range(BOARD_SLOTS)]


def active_cards(board: Board) -> list[PlacedCard]:
    return [s for s in board if s is not None and not s.cancelled]


@dataclass
class PlayerState:
    deck: list[Card]
    hand: list[Card]
    board: Board
    bottom_card: Card | None
    next_draw: int = 0  # deck index of the next card to draw
    total_points: int = 0
    color_counts: dict[str, int] = field(default_factory=dict)

    def characters_on_board(self) -> set[str]:
        return {s.card.character for s in self.board if s is not None}

    def filled(self, slots: tuple[int, ...]) -> bool:
        return all(self.board[i] is not None for i in slots)


@dataclass
class GameState:
    catalog: CardCatalog
    config: MatchConfig
    seed: int | str
    rng: random.Random
    player: PlayerState
    opponent: PlayerState
    main_colors: tuple[str, ...]
    phase: Phase = "deck-select"
    winner: Winner | None = None
    win_method: WinMethod | None = None
    confirmed: set[Side] = field(default_factory=set)
    action_log: list["Action"] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)

    def side(self, side: Side) -> PlayerState:
        return self.player if side == "player" else self.opponent
