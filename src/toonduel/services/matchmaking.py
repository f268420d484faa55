from __future__ import annotations

import itertools
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Callable, Literal, Protocol, Sequence

from toonduel.engine.match import new_game
from toonduel.engine.state import GameState, MatchConfig
from toonduel.engine.types import CardCatalog
from toonduel.services.telemetry import TelemetryService
from toonduel.services.timers import PlacementTimer

logger = logging.getLogger(__name__)

MatchPhase = Literal[
    "loading",
    "waiting",
    "round1-place",
    "round1-reveal",
    "round2-place",
    "round2-reveal",
    "game-over",
]
MatchWinMethod = Literal["color", "points", "disconnect", "abandoned"]
Status = Literal["matched", "waiting", "not_in_queue", "left", "ok", "opponent_disconnected"]

# Phases in which a player counts as busy for matchmaking purposes.
ACTIVE_PHASES: frozenset[str] = frozenset({"loading", "waiting", "round1-place", "round2-place"})


class MatchmakingError(RuntimeError):
    pass


@dataclass(frozen=True)
class LobbyConfig:
    heartbeat_timeout: float = 60.0
    active_window: float = 600.0
    turn_seconds: float = 60.0


@dataclass(frozen=True)
class QueueEntry:
    user_id: str
    deck_card_ids: tuple[int, ...]
    created_at: float
    # Tie-breaker for entries created within the same clock tick.
    seq: int = 0


@dataclass(frozen=True)
class MatchRecord:
    id: str
    player1_id: str
    player2_id: str
    player1_deck: tuple[int, ...]
    player2_deck: tuple[int, ...]
    created_at: float
    updated_at: float
    player1_last_seen: float
    player2_last_seen: float
    phase: MatchPhase = "loading"
    winner_id: str | None = None
    win_method: MatchWinMethod | None = None

    def has_player(self, user_id: str) -> bool:
        return user_id in (self.player1_id, self.player2_id)

    def opponent_of(self, user_id: str) -> str:
        if user_id == self.player1_id:
            return self.player2_id
        if user_id == self.player2_id:
            return self.player1_id
        raise MatchmakingError(f"User {user_id} is not in match {self.id}")


@dataclass(frozen=True)
class MatchmakingResult:
    status: Status
    match_id: str | None = None


class MatchStore(Protocol):
    """Storage for the queue and match rows.

    Every method is one atomic statement; callers never hold a lock across
    calls and instead re-read when a claim comes back short.
    """

    def latest_match(
        self, user_id: str, *, since: float, phases: frozenset[str] | None = None
    ) -> MatchRecord | None: ...

    def abandon_stale(self, user_id: str, *, before: float, now: float) -> list[MatchRecord]: ...

    def queue_entry(self, user_id: str) -> QueueEntry | None: ...

    def enqueue(self, user_id: str, deck_card_ids: Sequence[int], now: float) -> QueueEntry: ...

    def oldest_waiting(self, exclude_user: str) -> QueueEntry | None: ...

    def dequeue(self, user_ids: Sequence[str]) -> list[QueueEntry]: ...

    def requeue(self, entry: QueueEntry) -> None: ...

    def create_match(self, player1: QueueEntry, player2_id: str, player2_deck: Sequence[int], now: float) -> MatchRecord: ...

    def get_match(self, match_id: str) -> MatchRecord | None: ...

    def update_match(self, match_id: str, **changes: object) -> MatchRecord | None: ...


class InMemoryMatchStore:
    def __init__(self, new_id: Callable[[], str] | None = None) -> None:
        self._lock = threading.Lock()
        self._queue: dict[str, QueueEntry] = {}
        self._matches: dict[str, MatchRecord] = {}
        self._seq = itertools.count()
        self._new_id = new_id or (lambda: uuid.uuid4().hex)

    def latest_match(
        self, user_id: str, *, since: float, phases: frozenset[str] | None = None
    ) -> MatchRecord | None:
        with self._lock:
            found = [
                m
                for m in self._matches.values()
                if m.has_player(user_id)
                and m.updated_at >= since
                and (m.phase in phases if phases is not None else m.phase != "game-over")
            ]
        if not found:
            return None
        return max(found, key=lambda m: m.created_at)

    def abandon_stale(self, user_id: str, *, before: float, now: float) -> list[MatchRecord]:
        out: list[MatchRecord] = []
        with self._lock:
            for m in list(self._matches.values()):
                if m.has_player(user_id) and m.phase != "game-over" and m.updated_at < before:
                    m = replace(m, phase="game-over", win_method="abandoned", updated_at=now)
                    self._matches[m.id] = m
                    out.append(m)
        return out

    def queue_entry(self, user_id: str) -> QueueEntry | None:
        with self._lock:
            return self._queue.get(user_id)

    def enqueue(self, user_id: str, deck_card_ids: Sequence[int], now: float) -> QueueEntry:
        with self._lock:
            if user_id in self._queue:
                raise MatchmakingError(f"User {user_id} is already queued")
            entry = QueueEntry(user_id, tuple(deck_card_ids), created_at=now, seq=next(self._seq))
            self._queue[user_id] = entry
            return entry

    def oldest_waiting(self, exclude_user: str) -> QueueEntry | None:
        with self._lock:
            others = [e for e in self._queue.values() if e.user_id != exclude_user]
        if not others:
            return None
        return min(others, key=lambda e: (e.created_at, e.seq))

    def dequeue(self, user_ids: Sequence[str]) -> list[QueueEntry]:
        with self._lock:
            return [self._queue.pop(u) for u in user_ids if u in self._queue]

    def requeue(self, entry: QueueEntry) -> None:
        with self._lock:
            self._queue.setdefault(entry.user_id, entry)

    def create_match(self, player1: QueueEntry, player2_id: str, player2_deck: Sequence[int], now: float) -> MatchRecord:
        with self._lock:
            record = MatchRecord(
                id=self._new_id(),
                player1_id=player1.user_id,
                player2_id=player2_id,
                player1_deck=player1.deck_card_ids,
                player2_deck=tuple(player2_deck),
                created_at=now,
                updated_at=now,
                player1_last_seen=now,
                player2_last_seen=now,
            )
            self._matches[record.id] = record
            return record

    def get_match(self, match_id: str) -> MatchRecord | None:
        with self._lock:
            return self._matches.get(match_id)

    def update_match(self, match_id: str, **changes: object) -> MatchRecord | None:
        with self._lock:
            record = self._matches.get(match_id)
            if record is None:
                return None
            record = replace(record, **changes)  # type: ignore[arg-type]
            self._matches[match_id] = record
            return record


@dataclass
class MatchmakingService:
    """Queue, pairing and disconnect handling for player-vs-player matches."""

    store: MatchStore
    config: LobbyConfig = field(default_factory=LobbyConfig)
    clock: Callable[[], float] = time.time
    telemetry: TelemetryService | None = None

    def _log(self, event_type: str, match_id: str, **payload: object) -> None:
        if self.telemetry is not None:
            self.telemetry.log(event_type, payload, match_id=match_id)

    def _active_match(self, user_id: str, now: float) -> MatchRecord | None:
        return self.store.latest_match(user_id, since=now - self.config.active_window, phases=ACTIVE_PHASES)

    def join_queue(self, user_id: str, deck_card_ids: Sequence[int]) -> MatchmakingResult:
        now = self.clock()

        existing = self._active_match(user_id, now)
        if existing is not None:
            self.store.dequeue([user_id])
            logger.info("User %s already in active match %s", user_id, existing.id)
            return MatchmakingResult("matched", existing.id)

        for stale in self.store.abandon_stale(user_id, before=now - self.config.active_window, now=now):
            logger.info("Abandoned stale match %s for user %s", stale.id, user_id)
            self._log("match_abandoned", stale.id, user_id=user_id)

        mine = self.store.queue_entry(user_id)
        if mine is None:
            mine = self.store.enqueue(user_id, deck_card_ids, now)
            deck = tuple(deck_card_ids)
        else:
            deck = tuple(deck_card_ids) or mine.deck_card_ids

        opponent = self.store.oldest_waiting(exclude_user=user_id)
        if opponent is None:
            return MatchmakingResult("waiting")

        if self._active_match(opponent.user_id, now) is not None:
            # Left over from a pairing the opponent already got.
            self.store.dequeue([opponent.user_id])
            return MatchmakingResult("waiting")

        # The later joiner creates the match; the earlier one keeps polling.
        if (mine.created_at, mine.seq) < (opponent.created_at, opponent.seq):
            return MatchmakingResult("waiting")

        claimed = self.store.dequeue([user_id, opponent.user_id])
        if len(claimed) < 2:
            logger.info("Queue changed while pairing %s with %s", user_id, opponent.user_id)
            # Rows we took without pairing go back with their place in line.
            for entry in claimed:
                self.store.requeue(entry)
            again = self._active_match(user_id, now)
            if again is not None:
                self.store.dequeue([user_id])
                return MatchmakingResult("matched", again.id)
            if all(entry.user_id != user_id for entry in claimed):
                # Left the queue while this join was in flight.
                return MatchmakingResult("not_in_queue")
            return MatchmakingResult("waiting")

        record = self.store.create_match(opponent, user_id, deck, now)
        logger.info("Match created: %s (player1: %s, player2: %s)", record.id, opponent.user_id, user_id)
        self._log("match_created", record.id, player1=opponent.user_id, player2=user_id)
        return MatchmakingResult("matched", record.id)

    def leave_queue(self, user_id: str) -> MatchmakingResult:
        self.store.dequeue([user_id])
        return MatchmakingResult("left")

    def check_match(self, user_id: str) -> MatchmakingResult:
        now = self.clock()
        record = self.store.latest_match(user_id, since=now - self.config.active_window)
        if record is not None:
            self.store.dequeue([user_id])
            return MatchmakingResult("matched", record.id)
        if self.store.queue_entry(user_id) is not None:
            return MatchmakingResult("waiting")
        return MatchmakingResult("not_in_queue")

    def _require_match(self, match_id: str, user_id: str) -> MatchRecord:
        record = self.store.get_match(match_id)
        if record is None:
            raise MatchmakingError(f"Unknown match: {match_id}")
        if not record.has_player(user_id):
            raise MatchmakingError(f"User {user_id} is not in match {match_id}")
        return record

    def heartbeat(self, user_id: str, match_id: str) -> MatchmakingResult:
        now = self.clock()
        record = self._require_match(match_id, user_id)

        if user_id == record.player1_id:
            self.store.update_match(match_id, player1_last_seen=now)
            opponent_seen = record.player2_last_seen
        else:
            self.store.update_match(match_id, player2_last_seen=now)
            opponent_seen = record.player1_last_seen

        if record.phase != "game-over" and now - opponent_seen > self.config.heartbeat_timeout:
            self.store.update_match(
                match_id, phase="game-over", winner_id=user_id, win_method="disconnect", updated_at=now
            )
            opponent = record.opponent_of(user_id)
            logger.info("Opponent %s disconnected from match %s; %s wins", opponent, match_id, user_id)
            self._log("match_forfeit", match_id, winner=user_id, disconnected=opponent)
            return MatchmakingResult("opponent_disconnected", match_id)
        return MatchmakingResult("ok", match_id)

    def record_phase(self, match_id: str, phase: MatchPhase) -> MatchRecord:
        record = self.store.update_match(match_id, phase=phase, updated_at=self.clock())
        if record is None:
            raise MatchmakingError(f"Unknown match: {match_id}")
        return record

    def build_game(self, match_id: str, catalog: CardCatalog, config: MatchConfig | None = None) -> GameState:
        """Start the engine for a paired match.

        Player 1 is the "player" side. The match id seeds the shuffle, so both
        clients building the same match get identical hands.
        """
        record = self.store.get_match(match_id)
        if record is None:
            raise MatchmakingError(f"Unknown match: {match_id}")
        cfg = replace(config, vs_ai=False) if config is not None else MatchConfig(vs_ai=False)
        return new_game(catalog, record.player1_deck, record.player2_deck, seed=record.id, config=cfg)

    def placement_timer(self) -> PlacementTimer:
        return PlacementTimer(seconds=self.config.turn_seconds, clock=self.clock)
