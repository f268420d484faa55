from __future__ import annotations

from toonduel.engine.actions import AdvanceAction, PlaceCardAction
from toonduel.engine.match import new_game, step
from toonduel.engine.state import MatchConfig
from toonduel.engine.types import Card, CardCatalog
from toonduel.services.timers import PlacementTimer, enforce_deadline


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _catalog() -> CardCatalog:
    return CardCatalog(
        cards={
            i: Card(
                id=i,
                title=f"Toon {i}",
                character=f"Toon {i}",
                base_points=i,
                colors=("GREEN",),
                description="no power",
                rarity="common",
            )
            for i in range(1, 25)
        }
    )


def test_timer_counts_down() -> None:
    clock = FakeClock()
    timer = PlacementTimer(seconds=60, clock=clock)
    assert not timer.expired()

    timer.start("round1-place")
    clock.now += 45
    assert timer.remaining() == 15
    assert not timer.expired()
    clock.now += 20
    assert timer.remaining() == 0
    assert timer.expired()


def test_deadline_auto_submits_partial_board() -> None:
    clock = FakeClock()
    timer = PlacementTimer(seconds=60, clock=clock)
    state = new_game(_catalog(), list(range(1, 13)), list(range(13, 25)), seed=8)

    assert enforce_deadline(state, "player", timer) is None  # starts the clock
    step(state, PlaceCardAction(side="player", hand_index=0, slot=0))
    clock.now += 30
    assert enforce_deadline(state, "player", timer) is None

    clock.now += 31
    res = enforce_deadline(state, "player", timer)

    assert res is not None and res.ok
    assert res.events[0] == {"type": "PLACEMENT_CONFIRMED", "side": "player", "auto": True}
    assert state.phase == "round1-reveal"
    assert state.player.total_points == state.player.board[0].card.base_points


def test_deadline_ignored_outside_placement() -> None:
    clock = FakeClock()
    timer = PlacementTimer(seconds=60, clock=clock)
    state = new_game(_catalog(), list(range(1, 13)), list(range(13, 25)), seed=8)
    enforce_deadline(state, "player", timer)
    clock.now += 61
    enforce_deadline(state, "player", timer)
    assert state.phase == "round1-reveal"

    clock.now += 600
    assert enforce_deadline(state, "player", timer) is None


def test_timer_restarts_for_round_two() -> None:
    clock = FakeClock()
    timer = PlacementTimer(seconds=60, clock=clock)
    state = new_game(
        _catalog(), list(range(1, 13)), list(range(13, 25)), seed=8, config=MatchConfig(vs_ai=False)
    )
    enforce_deadline(state, "player", timer)
    clock.now += 61
    enforce_deadline(state, "player", timer)
    enforce_deadline(state, "opponent", timer)
    assert state.phase == "round1-reveal"

    step(state, AdvanceAction())
    assert state.phase == "round2-place"

    assert enforce_deadline(state, "player", timer) is None
    assert timer.phase == "round2-place"
    assert timer.remaining() == 60
