from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable, Sequence

from .actions import Action, AdvanceAction, ConfirmPlacementAction, PlaceCardAction
from .ai import ai_place_cards
from .cancellation import check_cancellations
from .deck import create_player_state, derive_main_colors, random_deck, refill_hand
from .powers import apply_powers
from .scoring import calculate_scores, determine_winner
from .state import ROUND1_SLOTS, ROUND2_SLOTS, Event, GameState, MatchConfig, PlacedCard
from .types import SIDES, CardCatalog, Phase, Side

logger = logging.getLogger(__name__)

PLACEMENT_SLOTS: dict[Phase, tuple[int, ...]] = {
    "round1-place": ROUND1_SLOTS,
    "round2-place": ROUND2_SLOTS,
}


@dataclass
class StepResult:
    ok: bool
    events: list[Event]
    error: str | None = None


def _fail(error: str) -> StepResult:
    return StepResult(ok=False, events=[], error=error)


def round_slots(phase: Phase) -> tuple[int, ...]:
    return PLACEMENT_SLOTS.get(phase, ())


def legal_slots(state: GameState, side: Side) -> list[int]:
    """Open board slots `side` may still place into right now."""
    if side in state.confirmed:
        return []
    board = state.side(side).board
    return [i for i in round_slots(state.phase) if board[i] is None]


def resolve_round(state: GameState) -> None:
    """Cancellation, then powers, then scores, over both full boards."""
    check_cancellations(state)
    apply_powers(state)
    calculate_scores(state)


def _open_round(state: GameState, phase: Phase) -> None:
    state.phase = phase
    state.confirmed.clear()
    state.event_log.append({"type": "ROUND_STARTED", "phase": phase})
    if state.config.vs_ai:
        slots = round_slots(phase)
        ai_place_cards(state, "opponent", len(slots), slots[0])
        state.confirmed.add("opponent")


def _reveal(state: GameState) -> None:
    state.phase = "round1-reveal" if state.phase == "round1-place" else "round2-reveal"
    state.confirmed.clear()
    resolve_round(state)
    state.event_log.append(
        {
            "type": "ROUND_REVEALED",
            "phase": state.phase,
            "player_points": state.player.total_points,
            "opponent_points": state.opponent.total_points,
        }
    )
    logger.debug(
        "%s: player=%d opponent=%d", state.phase, state.player.total_points, state.opponent.total_points
    )


def _place_card(state: GameState, action: PlaceCardAction) -> StepResult:
    slots = round_slots(state.phase)
    if not slots:
        return _fail("Not a placement phase.")
    if action.side in state.confirmed:
        return _fail("Placement already confirmed.")
    ps = state.side(action.side)
    if action.hand_index < 0 or action.hand_index >= len(ps.hand):
        return _fail("Invalid hand index.")
    if action.slot not in slots:
        return _fail("Slot is not open this round.")
    if ps.board[action.slot] is not None:
        return _fail("Slot already occupied.")
    card = ps.hand[action.hand_index]
    if card.character in ps.characters_on_board():
        return _fail("Cannot place same character twice!")

    ps.hand.pop(action.hand_index)
    ps.board[action.slot] = PlacedCard.of(card, action.slot)
    state.event_log.append(
        {"type": "CARD_PLACED", "side": action.side, "slot": action.slot, "card_id": card.id}
    )
    return StepResult(ok=True, events=state.event_log[-1:])


def _confirm(state: GameState, action: ConfirmPlacementAction) -> StepResult:
    """Lock in one side's placements for the current round.

    The round must be fully placed unless ``auto`` is set. Only
    ``toonduel.services.timers.enforce_deadline`` sends ``auto=True``, once the
    turn time has run out; clients always confirm with ``auto=False``.
    """
    slots = round_slots(state.phase)
    if not slots:
        return _fail("Not a placement phase.")
    if action.side in state.confirmed:
        return _fail("Placement already confirmed.")
    if not action.auto and not state.side(action.side).filled(slots):
        return _fail(f"Place {len(slots)} cards!")

    mark = len(state.event_log)
    state.confirmed.add(action.side)
    state.event_log.append({"type": "PLACEMENT_CONFIRMED", "side": action.side, "auto": action.auto})
    if len(state.confirmed) == len(SIDES):
        _reveal(state)
    return StepResult(ok=True, events=state.event_log[mark:])


def _advance(state: GameState) -> StepResult:
    mark = len(state.event_log)
    if state.phase == "round1-reveal":
        for side in SIDES:
            drawn = refill_hand(state.side(side), state.config.hand_size)
            state.event_log.append({"type": "HAND_REFILLED", "side": side, "drawn": len(drawn)})
        _open_round(state, "round2-place")
    elif state.phase == "round2-reveal":
        determine_winner(state)
        state.phase = "game-over"
        state.event_log.append({"type": "GAME_ENDED", "winner": state.winner, "method": state.win_method})
        logger.info("Game over: winner=%s method=%s", state.winner, state.win_method)
    else:
        return _fail("Nothing to advance.")
    return StepResult(ok=True, events=state.event_log[mark:])


def step(state: GameState, action: Action) -> StepResult:
    """Apply a single action to the game state.

    Mutates `state` in place; deterministic for a given (seed, decks, action
    sequence). Rejected actions leave the state untouched apart from the
    action log.
    """
    if state.phase == "game-over":
        return _fail("Match already ended.")

    # Log first so replay sees every attempted action
    state.action_log.append(action)

    if isinstance(action, PlaceCardAction):
        return _place_card(state, action)
    if isinstance(action, ConfirmPlacementAction):
        return _confirm(state, action)
    if isinstance(action, AdvanceAction):
        return _advance(state)
    return _fail("Unknown action.")


def new_game(
    catalog: CardCatalog,
    player_deck: Sequence[int],
    opponent_deck: Sequence[int] | None = None,
    seed: int | str = 0,
    config: MatchConfig | None = None,
) -> GameState:
    cfg = config or MatchConfig()
    if len(player_deck) < cfg.deck_size:
        raise ValueError(f"Deck must have {cfg.deck_size} cards.")
    if opponent_deck is None and not cfg.vs_ai:
        raise ValueError("A PvP game needs both decks.")
    if opponent_deck is not None and len(opponent_deck) < cfg.deck_size:
        raise ValueError(f"Opponent deck must have {cfg.deck_size} cards.")

    rng = random.Random(seed)
    player = create_player_state(catalog, player_deck, rng, cfg)
    if opponent_deck is None:
        opponent_deck = random_deck(catalog, rng, cfg.deck_size)
    opponent = create_player_state(catalog, opponent_deck, rng, cfg)

    state = GameState(
        catalog=catalog,
        config=cfg,
        seed=seed,
        rng=rng,
        player=player,
        opponent=opponent,
        main_colors=derive_main_colors(player, opponent),
    )
    state.event_log.append({"type": "GAME_STARTED", "main_colors": list(state.main_colors)})
    _open_round(state, "round1-place")
    return state


def replay(
    catalog: CardCatalog,
    player_deck: Sequence[int],
    opponent_deck: Sequence[int] | None,
    seed: int | str,
    actions: Iterable[Action],
    config: MatchConfig | None = None,
) -> GameState:
    state = new_game(catalog, player_deck, opponent_deck, seed=seed, config=config)
    for a in actions:
        step(state, a)
        if state.phase == "game-over":
            break
    return state
