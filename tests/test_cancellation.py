from __future__ import annotations

from toonduel.engine.cancellation import resolve_cancellations
from toonduel.engine.scoring import score_board
from toonduel.engine.state import Board, PlacedCard, empty_board
from toonduel.engine.types import Card
from toonduel.paths import get_paths
from toonduel.services.content import ContentService


def _load_cards():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_catalog()


def _card(cid: int, character: str) -> Card:
    return Card(
        id=cid,
        title=character,
        character=character,
        base_points=3,
        colors=("GREEN",),
        description="no power",
        rarity="common",
    )


def _board(placements: dict[int, Card]) -> Board:
    board = empty_board()
    for slot, card in placements.items():
        board[slot] = PlacedCard.of(card, slot)
    return board


def _uncancelled_characters(board: Board) -> list[str]:
    return [s.card.character for s in board if s is not None and not s.cancelled]


def test_zorak_on_both_sides_cancels_both() -> None:
    cards = _load_cards()
    player = _board({0: cards.get(3), 2: cards.get(1)})
    opponent = _board({1: cards.get(4), 2: cards.get(38)})

    p, o = resolve_cancellations(player, opponent)

    assert p[2] is not None and p[2].cancelled
    assert o[2] is not None and o[2].cancelled
    assert p[0] is not None and not p[0].cancelled
    assert o[1] is not None and not o[1].cancelled

    main_colors = ("RED", "GREEN")
    assert score_board(p, main_colors).color_counts == {"RED": 0, "GREEN": 0}
    assert score_board(p, main_colors).total_points == cards.get(3).base_points
    assert score_board(o, main_colors).total_points == cards.get(4).base_points


def test_duplicate_within_one_side_cancels_every_copy() -> None:
    player = _board({0: _card(1, "Toon A"), 1: _card(2, "Toon A"), 2: _card(3, "Toon B")})
    p, o = resolve_cancellations(player, empty_board())

    assert [s.cancelled for s in p[:3] if s is not None] == [True, True, False]
    assert o == empty_board()


def test_single_pass_covers_within_and_cross_side() -> None:
    player = _board({0: _card(1, "Toon A"), 4: _card(2, "Toon A"), 1: _card(3, "Toon C")})
    opponent = _board({3: _card(4, "Toon A"), 5: _card(5, "Toon D")})

    p, o = resolve_cancellations(player, opponent)

    assert _uncancelled_characters(p) == ["Toon C"]
    assert _uncancelled_characters(o) == ["Toon D"]


def test_inputs_are_not_modified() -> None:
    player = _board({2: _card(1, "Toon A")})
    opponent = _board({2: _card(2, "Toon A")})

    resolve_cancellations(player, opponent)

    assert player[2] is not None and not player[2].cancelled
    assert opponent[2] is not None and not opponent[2].cancelled


def test_no_duplicates_after_resolution() -> None:
    names = ["Toon A", "Toon B", "Toon A", "Toon C", "Toon B", "Toon D", "Toon E"]
    player = _board({i: _card(i, n) for i, n in enumerate(names)})
    opponent = _board({i: _card(10 + i, n) for i, n in enumerate(reversed(names))})

    p, o = resolve_cancellations(player, opponent)
    mine = _uncancelled_characters(p)
    theirs = _uncancelled_characters(o)

    assert len(mine) == len(set(mine))
    assert len(theirs) == len(set(theirs))
    assert not set(mine) & set(theirs)
