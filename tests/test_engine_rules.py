from __future__ import annotations

import pytest

from toonduel.engine.actions import AdvanceAction, ConfirmPlacementAction, PlaceCardAction
from toonduel.engine.match import legal_slots, new_game, step
from toonduel.engine.state import GameState, MatchConfig
from toonduel.engine.types import Card, CardCatalog, Side


def _card(cid: int, character: str | None = None) -> Card:
    return Card(
        id=cid,
        title=f"Toon {cid}",
        character=character or f"Toon {cid}",
        base_points=cid,
        colors=("GREEN",),
        description="no power",
        rarity="common",
    )


def _catalog() -> CardCatalog:
    return CardCatalog(cards={i: _card(i) for i in range(1, 25)})


def _new_state(seed: int = 11) -> GameState:
    return new_game(_catalog(), list(range(1, 13)), list(range(13, 25)), seed=seed)


def _fill(state: GameState, side: Side) -> None:
    for slot in legal_slots(state, side):
        res = step(state, PlaceCardAction(side=side, hand_index=0, slot=slot))
        assert res.ok, res.error


def test_short_deck_is_rejected() -> None:
    with pytest.raises(ValueError):
        new_game(_catalog(), list(range(1, 12)))


def test_pvp_needs_both_decks() -> None:
    with pytest.raises(ValueError):
        new_game(_catalog(), list(range(1, 13)), config=MatchConfig(vs_ai=False))


def test_vs_ai_game_opens_round_one() -> None:
    state = _new_state()
    assert state.phase == "round1-place"
    assert len(state.player.hand) == 6
    assert legal_slots(state, "player") == [0, 1, 2, 3]
    assert legal_slots(state, "opponent") == []


def test_illegal_placements_leave_state_alone() -> None:
    state = _new_state()
    ps = state.player
    hand_before = list(ps.hand)

    res = step(state, PlaceCardAction(side="player", hand_index=0, slot=4))
    assert not res.ok
    assert res.error == "Slot is not open this round."

    res = step(state, PlaceCardAction(side="player", hand_index=6, slot=0))
    assert not res.ok
    assert res.error == "Invalid hand index."

    assert step(state, PlaceCardAction(side="player", hand_index=0, slot=0)).ok
    res = step(state, PlaceCardAction(side="player", hand_index=0, slot=0))
    assert not res.ok
    assert res.error == "Slot already occupied."

    assert ps.hand == hand_before[1:]
    assert [s is not None for s in ps.board] == [True] + [False] * 6

    res = step(state, PlaceCardAction(side="opponent", hand_index=0, slot=0))
    assert res.error == "Placement already confirmed."


def test_same_character_cannot_be_placed_twice() -> None:
    state = _new_state()
    ps = state.player
    ps.hand = [_card(50, "Zorak"), _card(51, "Zorak")] + ps.hand[2:]

    assert step(state, PlaceCardAction(side="player", hand_index=0, slot=0)).ok
    res = step(state, PlaceCardAction(side="player", hand_index=0, slot=1))

    assert not res.ok
    assert res.error == "Cannot place same character twice!"
    assert ps.board[1] is None


def test_confirm_requires_full_round() -> None:
    state = _new_state()
    step(state, PlaceCardAction(side="player", hand_index=0, slot=0))

    res = step(state, ConfirmPlacementAction(side="player"))
    assert not res.ok
    assert res.error == "Place 4 cards!"
    assert state.phase == "round1-place"

    res = step(state, ConfirmPlacementAction(side="player", auto=True))
    assert res.ok
    assert state.phase == "round1-reveal"


def test_full_game_round_trip_totals() -> None:
    state = _new_state(seed=2024)

    _fill(state, "player")
    res = step(state, ConfirmPlacementAction(side="player"))
    assert res.ok
    assert state.phase == "round1-reveal"
    assert [e["type"] for e in res.events] == ["PLACEMENT_CONFIRMED", "ROUND_REVEALED"]

    res = step(state, AdvanceAction())
    assert res.ok
    assert state.phase == "round2-place"
    assert len(state.player.hand) == 6
    assert state.player.next_draw == 10
    assert all(state.opponent.board[i] is not None for i in (4, 5, 6))

    _fill(state, "player")
    assert step(state, ConfirmPlacementAction(side="player")).ok
    assert state.phase == "round2-reveal"

    res = step(state, AdvanceAction())
    assert res.ok
    assert state.phase == "game-over"

    for ps in (state.player, state.opponent):
        placed = [s for s in ps.board if s is not None]
        assert len(placed) == 7
        assert not any(s.cancelled for s in placed)
        assert all(s.modified_points == s.card.base_points for s in placed)
        assert ps.total_points == sum(s.card.base_points for s in placed)

    if state.player.total_points > state.opponent.total_points:
        assert state.winner == "player"
    elif state.player.total_points < state.opponent.total_points:
        assert state.winner == "opponent"
    else:
        assert state.winner == "tie"
    assert state.win_method == "points"


def test_no_actions_after_game_over() -> None:
    state = _new_state()
    for _ in range(2):
        _fill(state, "player")
        step(state, ConfirmPlacementAction(side="player"))
        step(state, AdvanceAction())
    assert state.phase == "game-over"

    logged = len(state.action_log)
    res = step(state, AdvanceAction())
    assert not res.ok
    assert res.error == "Match already ended."
    assert len(state.action_log) == logged


def test_advance_only_from_reveal() -> None:
    state = _new_state()
    res = step(state, AdvanceAction())
    assert not res.ok
    assert res.error == "Nothing to advance."


def test_pvp_reveals_after_both_confirm() -> None:
    state = new_game(
        _catalog(), list(range(1, 13)), list(range(13, 25)), seed=3, config=MatchConfig(vs_ai=False)
    )
    assert all(s is None for s in state.opponent.board)

    _fill(state, "player")
    assert step(state, ConfirmPlacementAction(side="player")).ok
    assert state.phase == "round1-place"

    _fill(state, "opponent")
    assert step(state, ConfirmPlacementAction(side="opponent")).ok
    assert state.phase == "round1-reveal"
