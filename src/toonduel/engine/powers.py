"""Card power parsing and resolution.

A card's description is a tiny rules language: either "no power" or one or
more clauses joined by ";". Each clause is matched against an ordered list of
templates; a template turns the clause into a tagged effect (see
`engine.types`). Clauses that match nothing contribute nothing.

Resolution is two global passes over every active card on both boards:
self effects first (a card changing its own points), then cross effects
(a card changing other cards). The ordering is part of the rules: a card that
doubles itself for being next to a villain doubles its *printed* value, and
only then receives "+2 to all red cards" from a teammate.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Callable

from .state import ROUND2_SLOTS, Board, GameState, PlacedCard, active_cards
from .targeting import matches_color_or_target, matches_target, neighbor_indices, opposite_index
from .types import (
    SELF_EFFECT_TYPES,
    SIDES,
    Card,
    CardCatalog,
    ConditionalMultiply,
    CrossEffect,
    CrossPenalty,
    Effect,
    FlatBonus,
    Multiply,
    OppositePenalty,
    PointsBonus,
    PositionBonus,
    Scaling,
    SelfEffect,
    Side,
    TeamBonus,
    other_side,
)

logger = logging.getLogger(__name__)

NO_POWER = frozenset({"no power", "no powers"})

# A target phrase names cards; it never starts with a quantifier or a
# placement word and never carries its own condition.
_RESERVED_LEADS = frozenset(
    {"all", "each", "every", "other", "neighboring", "opposing", "opposite", "next", "adjacent"}
)
_CONDITION = re.compile(r"\bif\b")


def _target(phrase: str | None) -> str | None:
    if phrase is None:
        return None
    phrase = phrase.strip()
    if not phrase or _CONDITION.search(phrase):
        return None
    if phrase.split(" ", 1)[0] in _RESERVED_LEADS:
        return None
    return phrase


def _targets(phrase: str | None) -> tuple[str, ...] | None:
    if phrase is None:
        return None
    parts = [_target(p) for p in re.split(r" (?:and|or) ", phrase)]
    if any(p is None for p in parts):
        return None
    return tuple(p for p in parts if p is not None)


Builder = Callable[["re.Match[str]"], "Effect | None"]


@dataclass(frozen=True)
class ClauseTemplate:
    name: str
    pattern: re.Pattern[str]
    build: Builder

    def parse(self, clause: str) -> Effect | None:
        m = self.pattern.fullmatch(clause)
        if m is None:
            return None
        return self.build(m)


def _template(name: str, regex: str, build: Builder) -> ClauseTemplate:
    return ClauseTemplate(name=name, pattern=re.compile(regex), build=build)


def _n(m: "re.Match[str]") -> int:
    return int(m["n"])


def _flat_bonus(scope: str) -> Builder:
    def build(m: "re.Match[str]") -> Effect | None:
        t = _target(m["t"])
        if t is None:
            return None
        return FlatBonus(type="flat_bonus", amount=_n(m), target=t, scope=scope)  # type: ignore[arg-type]

    return build


def _multiply(scope: str) -> Builder:
    def build(m: "re.Match[str]") -> Effect | None:
        t = _target(m["t"])
        if t is None:
            return None
        return Multiply(type="multiply", factor=2, target=t, scope=scope)  # type: ignore[arg-type]

    return build


def _per_card(sign: int) -> Builder:
    def build(m: "re.Match[str]") -> Effect | None:
        targets = _targets(m["t"])
        if not targets:
            return None
        opponent_only = sign > 0 and (m["opp"] is not None or "opponent" in m.string)
        return Scaling(
            type="scaling",
            per_amount=sign * _n(m),
            targets=targets,
            scope="opponent" if opponent_only else "all",
            by_color=sign > 0,
        )

    return build


def _per_neighbor(m: "re.Match[str]") -> Effect | None:
    targets = _targets(m["t"])
    if not targets:
        return None
    return Scaling(type="scaling", per_amount=_n(m), targets=targets, scope="neighbors")


def _team_bonus(scope: str) -> Builder:
    def build(m: "re.Match[str]") -> Effect | None:
        t = _target(m["t"])
        if t is None:
            return None
        return TeamBonus(type="team_bonus", amount=_n(m), target=t, scope=scope)  # type: ignore[arg-type]

    return build


def _adjacent_team_bonus(m: "re.Match[str]") -> Effect | None:
    t = _target(m["t"])
    a = _target(m["a"])
    if t is None or a is None:
        return None
    return TeamBonus(type="team_bonus", amount=_n(m), target=t, scope="named", adjacent_to=a)


def _penalty(scope: str, *, include_self: bool = False, by_color: bool = False) -> Builder:
    def build(m: "re.Match[str]") -> Effect | None:
        t = _target(m["t"])
        if t is None:
            return None
        return CrossPenalty(
            type="cross_penalty",
            amount=_n(m),
            target=t,
            scope=scope,  # type: ignore[arg-type]
            include_self=include_self,
            by_color=by_color,
        )

    return build


def _opposite_unless(m: "re.Match[str]") -> Effect | None:
    t = _target(m["t"])
    if t is None:
        return None
    return OppositePenalty(type="opposite_penalty", amount=_n(m), exempt=t)


def _double(scope: str) -> Builder:
    def build(m: "re.Match[str]") -> Effect | None:
        t = _target(m["t"])
        if t is None:
            return None
        condition = None
        if "c" in m.re.groupindex:
            condition = _target(m["c"])
            if condition is None:
                return None
        return ConditionalMultiply(
            type="conditional_multiply",
            factor=2,
            target=t,
            scope=scope,  # type: ignore[arg-type]
            condition=condition,
        )

    return build


_ANY = r"(?:any |a |an |the )?"
_IN_PLAY = r" (?:is|are) in play"

# Priority order. Self effects (first pass) come before cross effects.
TEMPLATES: tuple[ClauseTemplate, ...] = (
    _template(
        "second_round_bonus",
        r"\+(?P<n>\d+) if played in (?:the )?(?:2nd|second) round",
        lambda m: PositionBonus(type="position_bonus", amount=_n(m), slots=ROUND2_SLOTS),
    ),
    _template(
        "first_slot_bonus",
        r"\+(?P<n>\d+) if played first in (?:the )?(?:1st|first) round",
        lambda m: PositionBonus(type="position_bonus", amount=_n(m), slots=(0,)),
    ),
    _template("in_play_bonus", r"\+(?P<n>\d+) if " + _ANY + r"(?P<t>.+?)" + _IN_PLAY, _flat_bonus("in_play")),
    _template("adjacent_bonus", r"\+(?P<n>\d+) if (?:next|adjacent) to " + _ANY + r"(?P<t>.+)", _flat_bonus("adjacent")),
    _template("adjacent_double", r"x2 if (?:next|adjacent) to " + _ANY + r"(?P<t>.+)", _multiply("adjacent")),
    _template("in_play_double", r"x2 if " + _ANY + r"(?P<t>.+?)" + _IN_PLAY, _multiply("in_play")),
    _template(
        "per_card_bonus",
        r"\+(?P<n>\d+) for each (?P<opp>opponent(?:'s)? |opposing )?(?P<t>.+?)(?: in play)?",
        _per_card(+1),
    ),
    _template("per_neighbor_bonus", r"\+(?P<n>\d+) for each neighboring (?P<t>.+)", _per_neighbor),
    _template("per_card_penalty", r"-(?P<n>\d+) for each (?P<t>.+?)(?: in play)?", _per_card(-1)),
    # -- cross effects --
    _template("neighbor_double", r"x2 to (?:each |any )?neighboring (?P<t>.+)", _double("neighbors")),
    _template(
        "adjacent_team_bonus",
        r"\+(?P<n>\d+) to (?:any |each |the )?(?P<t>.+?) if (?:next|adjacent) to " + _ANY + r"(?P<a>.+)",
        _adjacent_team_bonus,
    ),
    _template("each_bonus", r"\+(?P<n>\d+) to each (?P<t>.+)", _team_bonus("each")),
    _template("all_cards_bonus", r"\+(?P<n>\d+) to all (?:other )?(?P<t>.+?) cards?", _team_bonus("all_cards")),
    _template(
        "points_bonus",
        r"\+(?P<n>\d+) to all (?P<p>\d+)'?s",
        lambda m: PointsBonus(type="points_bonus", amount=_n(m), points=int(m["p"])),
    ),
    _template("named_bonus", r"\+(?P<n>\d+) to (?:any )?(?P<t>.+)", _team_bonus("named")),
    _template(
        "all_other_cards_penalty",
        r"-(?P<n>\d+) to all other (?P<t>.+?) cards?",
        _penalty("board", by_color=True),
    ),
    _template("all_penalty", r"-(?P<n>\d+) to all (?P<t>.+)", _penalty("board")),
    _template(
        "neighbor_opposite_penalty",
        r"-(?P<n>\d+) to neighboring and opposite (?P<t>.+)",
        _penalty("neighbors_and_opposite"),
    ),
    _template("opposing_penalty", r"-(?P<n>\d+) to each opposing (?P<t>.+)", _penalty("enemy")),
    _template(
        "opposite_unless_penalty",
        r"-(?P<n>\d+) to (?:the )?oppos(?:ing|ite) (?:card|toon) if not (?:a |an )?(?P<t>.+)",
        _opposite_unless,
    ),
    _template("named_penalty", r"-(?P<n>\d+) to (?:any )?(?P<t>.+)", _penalty("board", include_self=True)),
    _template(
        "conditional_double",
        r"x2 to (?:any )?(?P<t>.+?) if " + _ANY + r"(?P<c>.+?)" + _IN_PLAY,
        _double("team"),
    ),
    _template("team_double", r"x2 to (?:any )?(?P<t>.+)", _double("team")),
)


@dataclass(frozen=True)
class ParsedClause:
    text: str
    template: str | None = None
    effect: Effect | None = None
    # Lower-priority templates that also matched; non-empty means the card
    # text should be reviewed.
    alternatives: tuple[str, ...] = ()

    @property
    def recognized(self) -> bool:
        return self.effect is not None

    @property
    def ambiguous(self) -> bool:
        return bool(self.alternatives)


def normalize_clause(text: str) -> str:
    text = re.sub(r"\s+", " ", text.strip().lower())
    return text.rstrip(".!").strip()


def split_clauses(description: str) -> list[str]:
    if normalize_clause(description) in NO_POWER:
        return []
    clauses = (normalize_clause(part) for part in description.split(";"))
    return [c for c in clauses if c and c not in NO_POWER]


def parse_clause(clause: str) -> ParsedClause:
    text = normalize_clause(clause)
    hits: list[tuple[str, Effect]] = []
    for template in TEMPLATES:
        effect = template.parse(text)
        if effect is not None:
            hits.append((template.name, effect))

    if not hits:
        logger.debug("No power template matches %r", text)
        return ParsedClause(text=text)

    name, effect = hits[0]
    alternatives = tuple(n for n, _ in hits[1:])
    if alternatives:
        logger.warning(
            "Power clause %r matches %s and %s; applying %s", text, name, ", ".join(alternatives), name
        )
    return ParsedClause(text=text, template=name, effect=effect, alternatives=alternatives)


@lru_cache(maxsize=2048)
def parse_description(description: str) -> tuple[ParsedClause, ...]:
    return tuple(parse_clause(c) for c in split_clauses(description))


def card_effects(card: Card) -> tuple[Effect, ...]:
    return tuple(pc.effect for pc in parse_description(card.description) if pc.effect is not None)


def audit_catalog(catalog: CardCatalog) -> list[tuple[Card, ParsedClause]]:
    """Clauses that need a human look: unrecognised or ambiguous ones."""
    flagged: list[tuple[Card, ParsedClause]] = []
    for card_id in sorted(catalog.all_ids()):
        card = catalog.get(card_id)
        for pc in parse_description(card.description):
            if not pc.recognized or pc.ambiguous:
                flagged.append((card, pc))
    return flagged


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class _Table:
    """Working copies of both boards plus the active-card view of each."""

    def __init__(self, player_board: Board, opponent_board: Board) -> None:
        self.boards: dict[Side, Board] = {
            "player": _working_copy(player_board),
            "opponent": _working_copy(opponent_board),
        }
        self.active: dict[Side, list[PlacedCard]] = {s: active_cards(self.boards[s]) for s in SIDES}

    def everyone(self) -> list[PlacedCard]:
        return self.active["player"] + self.active["opponent"]

    def neighbors(self, side: Side, position: int) -> list[PlacedCard]:
        board = self.boards[side]
        out: list[PlacedCard] = []
        for i in neighbor_indices(position):
            slot = board[i]
            if slot is not None and not slot.cancelled:
                out.append(slot)
        return out

    def opposite(self, side: Side, position: int) -> PlacedCard | None:
        slot = self.boards[other_side(side)][opposite_index(position)]
        if slot is None or slot.cancelled:
            return None
        return slot


def _working_copy(board: Board) -> Board:
    return [
        replace(s, position=i, modified_points=s.card.base_points) if s is not None else None
        for i, s in enumerate(board)
    ]


def _apply_self(effect: SelfEffect, slot: PlacedCard, side: Side, table: _Table) -> None:
    if isinstance(effect, PositionBonus):
        if slot.position in effect.slots:
            slot.modified_points += effect.amount
        return

    if isinstance(effect, (FlatBonus, Multiply)):
        pool = table.neighbors(side, slot.position) if effect.scope == "adjacent" else table.everyone()
        if not any(matches_target(c.card, effect.target) for c in pool):
            return
        if isinstance(effect, FlatBonus):
            slot.modified_points += effect.amount
        else:
            slot.modified_points *= effect.factor
        return

    if isinstance(effect, Scaling):
        if effect.scope == "neighbors":
            pool = table.neighbors(side, slot.position)
        elif effect.scope == "opponent":
            pool = table.active[other_side(side)]
        else:
            pool = table.everyone()
        match = matches_color_or_target if effect.by_color else matches_target
        count = sum(1 for c in pool if any(match(c.card, t) for t in effect.targets))
        slot.modified_points += effect.per_amount * count


def _apply_cross(effect: CrossEffect, source: PlacedCard, side: Side, table: _Table) -> None:
    own = table.active[side]

    if isinstance(effect, TeamBonus):
        if effect.adjacent_to is not None:
            nearby = table.neighbors(side, source.position)
            if not any(matches_target(n.card, effect.adjacent_to) for n in nearby):
                return
        match = matches_color_or_target if effect.scope == "all_cards" else matches_target
        for slot in own:
            if slot is not source and match(slot.card, effect.target):
                slot.modified_points += effect.amount
        return

    if isinstance(effect, PointsBonus):
        for slot in own:
            if slot.card.base_points == effect.points:
                slot.modified_points += effect.amount
        return

    if isinstance(effect, CrossPenalty):
        if effect.scope == "board":
            victims = table.everyone()
        elif effect.scope == "enemy":
            victims = list(table.active[other_side(side)])
        else:
            victims = table.neighbors(side, source.position)
            opposite = table.opposite(side, source.position)
            if opposite is not None:
                victims.append(opposite)
        match = matches_color_or_target if effect.by_color else matches_target
        for slot in victims:
            if slot is source and not effect.include_self:
                continue
            if match(slot.card, effect.target):
                slot.modified_points -= effect.amount
        return

    if isinstance(effect, OppositePenalty):
        opposite = table.opposite(side, source.position)
        if opposite is not None and not matches_target(opposite.card, effect.exempt):
            opposite.modified_points -= effect.amount
        return

    if isinstance(effect, ConditionalMultiply):
        if effect.condition is not None:
            if not any(matches_target(c.card, effect.condition) for c in table.everyone()):
                return
        pool = table.neighbors(side, source.position) if effect.scope == "neighbors" else own
        for slot in pool:
            if matches_target(slot.card, effect.target):
                slot.modified_points *= effect.factor


def resolve_powers(player_board: Board, opponent_board: Board) -> tuple[Board, Board]:
    """Recompute every card's modified points from its printed points.

    Works on copies; the boards passed in are not changed. Safe to call any
    number of times on the same input.
    """
    table = _Table(player_board, opponent_board)

    for side in SIDES:
        for slot in table.active[side]:
            for effect in card_effects(slot.card):
                if isinstance(effect, SELF_EFFECT_TYPES):
                    _apply_self(effect, slot, side, table)

    for side in SIDES:
        for slot in table.active[side]:
            for effect in card_effects(slot.card):
                if not isinstance(effect, SELF_EFFECT_TYPES):
                    _apply_cross(effect, slot, side, table)

    for side in SIDES:
        for slot in table.boards[side]:
            if slot is not None:
                slot.modified_points = max(0, slot.modified_points)

    return table.boards["player"], table.boards["opponent"]


def apply_powers(state: GameState) -> None:
    state.player.board, state.opponent.board = resolve_powers(state.player.board, state.opponent.board)
