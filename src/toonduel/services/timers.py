from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from toonduel.engine.actions import ConfirmPlacementAction
from toonduel.engine.match import StepResult, round_slots, step
from toonduel.engine.state import GameState
from toonduel.engine.types import Phase, Side

logger = logging.getLogger(__name__)


@dataclass
class PlacementTimer:
    seconds: float = 60.0
    clock: Callable[[], float] = time.monotonic
    phase: Phase | None = None
    started_at: float | None = field(default=None)

    def start(self, phase: Phase) -> None:
        self.phase = phase
        self.started_at = self.clock()

    def remaining(self) -> float:
        if self.started_at is None:
            return self.seconds
        return max(0.0, self.seconds - (self.clock() - self.started_at))

    def expired(self) -> bool:
        return self.started_at is not None and self.remaining() <= 0.0


def enforce_deadline(state: GameState, side: Side, timer: PlacementTimer) -> StepResult | None:
    """Submit `side`'s placements as they stand once its turn time runs out.

    The timer restarts whenever the game has moved to a new placement phase.
    Returns the step result when a submission happened, else None.
    """
    if not round_slots(state.phase):
        return None
    if timer.phase != state.phase:
        timer.start(state.phase)
        return None
    if side in state.confirmed or not timer.expired():
        return None

    logger.info("Placement time expired for %s in %s", side, state.phase)
    return step(state, ConfirmPlacementAction(side=side, auto=True))
