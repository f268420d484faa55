from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

from toonduel.engine.actions import AdvanceAction, ConfirmPlacementAction, PlaceCardAction
from toonduel.engine.ai import choose_placements
from toonduel.engine.match import new_game, round_slots, step
from toonduel.engine.powers import audit_catalog
from toonduel.engine.serialize import snapshot
from toonduel.engine.state import GameState, PlayerState
from toonduel.engine.types import CardCatalog
from toonduel.paths import get_paths
from toonduel.services.content import ContentError, ContentService
from toonduel.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)


def _play_player_side(state: GameState) -> None:
    slots = round_slots(state.phase)
    ps = state.side("player")
    picks = choose_placements(ps.hand, ps.board, state.main_colors, len(slots), slots[0])
    # Highest hand index first so earlier indices stay valid after each pop.
    for hand_index, slot in sorted(picks, reverse=True):
        step(state, PlaceCardAction(side="player", hand_index=hand_index, slot=slot))
    step(state, ConfirmPlacementAction(side="player", auto=not ps.filled(slots)))


def simulate(catalog: CardCatalog, deck: Sequence[int], seed: int | str) -> GameState:
    """Play a full vs-AI game with the AI policy driving the player side too."""
    state = new_game(catalog, deck, seed=seed)
    while state.phase != "game-over":
        if round_slots(state.phase):
            _play_player_side(state)
        else:
            step(state, AdvanceAction())
    return state


def _board_line(ps: PlayerState) -> str:
    cells = []
    for slot in ps.board:
        if slot is None:
            cells.append("--")
        elif slot.cancelled:
            cells.append(f"[{slot.card.character} X]")
        else:
            cells.append(f"[{slot.card.character} {slot.modified_points}]")
    return " ".join(cells)


def _resolve_deck(content: ContentService, catalog: CardCatalog, deck: str) -> list[int]:
    if "," in deck or deck.isdigit():
        return [int(x) for x in deck.split(",") if x.strip()]
    for starter in content.load_starter_decks(catalog):
        if starter.slot == deck.upper():
            return list(starter.card_ids)
    raise ContentError(f"No starter deck in slot {deck!r}")


def _cmd_simulate(args: argparse.Namespace, content: ContentService) -> int:
    catalog = content.load_catalog()
    deck = _resolve_deck(content, catalog, args.deck)
    seed: int | str = int(args.seed) if args.seed.lstrip("-").isdigit() else args.seed
    state = simulate(catalog, deck, seed)

    if args.telemetry is not None:
        telemetry = TelemetryService(Path(args.telemetry) if args.telemetry else get_paths().telemetry_path)
        telemetry.log(
            "game_ended",
            {
                "seed": state.seed,
                "winner": state.winner,
                "win_method": state.win_method,
                "player_points": state.player.total_points,
                "opponent_points": state.opponent.total_points,
            },
        )

    if args.json:
        print(json.dumps(snapshot(state), indent=2, sort_keys=True))
        return 0

    print(f"Main colors: {', '.join(state.main_colors) or 'none'}")
    print(f"Opponent: {_board_line(state.opponent)}")
    print(f"Player:   {_board_line(state.player)}")
    print(f"Points:   player {state.player.total_points} / opponent {state.opponent.total_points}")
    print(f"Winner:   {state.winner} ({state.win_method})")
    return 0


def _cmd_audit(args: argparse.Namespace, content: ContentService) -> int:
    flagged = audit_catalog(content.load_catalog())
    for card, clause in flagged:
        if clause.recognized:
            print(f"#{card.id} {card.title}: ambiguous {clause.text!r} -> {clause.template} (also {', '.join(clause.alternatives)})")
        else:
            print(f"#{card.id} {card.title}: unrecognised {clause.text!r}")
    print(f"{len(flagged)} clause(s) need review")
    return 1 if flagged else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="toonduel")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Play one AI-vs-AI match")
    sim.add_argument("--seed", default="0")
    sim.add_argument("--deck", default="A", help="Starter deck slot or comma-separated card ids")
    sim.add_argument("--json", action="store_true", help="Print the final snapshot as JSON")
    sim.add_argument(
        "--telemetry",
        nargs="?",
        const="",
        default=None,
        help="Append the result to a JSON-lines file (default: userdata/telemetry.jsonl)",
    )

    sub.add_parser("audit", help="List ambiguous or unrecognised power clauses")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    paths = get_paths()
    content = ContentService(data_dir=paths.data_dir, schema_dir=paths.schema_dir)
    try:
        if args.command == "simulate":
            return _cmd_simulate(args, content)
        return _cmd_audit(args, content)
    except (ContentError, ValueError) as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
