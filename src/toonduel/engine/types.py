from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

Rarity = Literal["common", "uncommon", "rare", "epic", "legendary"]
Side = Literal["player", "opponent"]
Phase = Literal[
    "deck-select",
    "round1-place",
    "round1-reveal",
    "round2-place",
    "round2-reveal",
    "game-over",
]
Winner = Literal["player", "opponent", "tie"]
WinMethod = Literal["color", "points"]

SIDES: tuple[Side, Side] = ("player", "opponent")

# Never contested: a bottom card of these colors contributes no main color.
NEUTRAL_COLORS = frozenset({"SILVER", "BLACK"})


def other_side(side: Side) -> Side:
    return "opponent" if side == "player" else "player"


@dataclass(frozen=True)
class Card:
    id: int
    title: str
    character: str
    base_points: int
    colors: tuple[str, ...]
    description: str
    rarity: Rarity
    groups: tuple[str, ...] = ()
    types: tuple[str, ...] = ()

    @property
    def primary_color(self) -> str | None:
        return self.colors[0] if self.colors else None

    def has_color(self, color: str) -> bool:
        return color.strip().upper() in self.colors


@dataclass(frozen=True)
class CardCatalog:
    """Immutable id -> card lookup used by the engine."""

    cards: dict[int, Card]

    def get(self, card_id: int) -> Card:
        return self.cards[card_id]

    def find(self, card_id: int) -> Card | None:
        return self.cards.get(card_id)

    def all_ids(self) -> Sequence[int]:
        return list(self.cards.keys())


# ---------------------------------------------------------------------------
# Power effects. Self effects only touch the source card and resolve in the
# first pass; cross effects touch other cards and resolve in the second.
# ---------------------------------------------------------------------------

SelfScope = Literal["in_play", "adjacent"]
ScalingScope = Literal["all", "opponent", "neighbors"]
TeamScope = Literal["all_cards", "each", "named"]
PenaltyScope = Literal["board", "enemy", "neighbors_and_opposite"]
MultiplyScope = Literal["team", "neighbors"]


@dataclass(frozen=True)
class PositionBonus:
    type: Literal["position_bonus"]
    amount: int
    slots: tuple[int, ...]


@dataclass(frozen=True)
class FlatBonus:
    type: Literal["flat_bonus"]
    amount: int
    target: str
    scope: SelfScope


@dataclass(frozen=True)
class Multiply:
    type: Literal["multiply"]
    factor: int
    target: str
    scope: SelfScope


@dataclass(frozen=True)
class Scaling:
    type: Literal["scaling"]
    per_amount: int
    targets: tuple[str, ...]
    scope: ScalingScope
    # Count cards by color as well as by target phrase.
    by_color: bool = False


@dataclass(frozen=True)
class TeamBonus:
    type: Literal["team_bonus"]
    amount: int
    target: str
    scope: TeamScope
    adjacent_to: str | None = None


@dataclass(frozen=True)
class PointsBonus:
    type: Literal["points_bonus"]
    amount: int
    points: int


@dataclass(frozen=True)
class CrossPenalty:
    type: Literal["cross_penalty"]
    amount: int
    target: str
    scope: PenaltyScope
    include_self: bool = False
    by_color: bool = False


@dataclass(frozen=True)
class OppositePenalty:
    type: Literal["opposite_penalty"]
    amount: int
    exempt: str


@dataclass(frozen=True)
class ConditionalMultiply:
    type: Literal["conditional_multiply"]
    factor: int
    target: str
    scope: MultiplyScope
    condition: str | None = None


SelfEffect = PositionBonus | FlatBonus | Multiply | Scaling
CrossEffect = TeamBonus | PointsBonus | CrossPenalty | OppositePenalty | ConditionalMultiply
Effect = SelfEffect | CrossEffect

SELF_EFFECT_TYPES = (PositionBonus, FlatBonus, Multiply, Scaling)
CROSS_EFFECT_TYPES = (TeamBonus, PointsBonus, CrossPenalty, OppositePenalty, ConditionalMultiply)
