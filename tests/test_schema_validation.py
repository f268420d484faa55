from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

from toonduel.paths import get_paths
from toonduel.services.content import ContentError, ContentService


def _copy_data(tmp_path: Path) -> Path:
    paths = get_paths()
    data_dir = tmp_path / "data"
    shutil.copytree(paths.data_dir, data_dir)
    return data_dir


def test_content_schemas_validate() -> None:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    content.validate_all()


def test_catalog_loads_cards_as_tuples() -> None:
    paths = get_paths()
    catalog = ContentService(paths.data_dir, paths.schema_dir).load_catalog()

    assert len(catalog.all_ids()) == 40
    zorak = catalog.get(2)
    assert zorak.character == "Zorak"
    assert zorak.colors == ("RED", "BLACK")
    assert zorak.primary_color == "RED"
    assert "VILLAIN" in zorak.types
    assert catalog.find(999) is None


def test_starter_decks_sorted_by_slot() -> None:
    paths = get_paths()
    decks = ContentService(paths.data_dir, paths.schema_dir).load_starter_decks()
    assert [d.slot for d in decks] == ["A", "B", "C"]
    assert all(len(d.card_ids) == 12 for d in decks)


def test_schema_violation_raises_content_error(tmp_path: Path) -> None:
    data_dir = _copy_data(tmp_path)
    raw = json.loads((data_dir / "cards.json").read_text(encoding="utf-8"))
    raw["cards"][0]["base_points"] = -1
    (data_dir / "cards.json").write_text(json.dumps(raw), encoding="utf-8")

    content = ContentService(data_dir, data_dir / "schemas")
    with pytest.raises(ContentError, match="Schema validation failed"):
        content.load_catalog()


def test_invalid_json_raises_content_error(tmp_path: Path) -> None:
    data_dir = _copy_data(tmp_path)
    (data_dir / "cards.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ContentError, match="Invalid JSON"):
        ContentService(data_dir, data_dir / "schemas").load_catalog()


def test_starter_deck_with_unknown_card_is_rejected(tmp_path: Path) -> None:
    data_dir = _copy_data(tmp_path)
    raw = json.loads((data_dir / "starter_decks.json").read_text(encoding="utf-8"))
    raw["decks"][0]["card_ids"][0] = 9999
    (data_dir / "starter_decks.json").write_text(json.dumps(raw), encoding="utf-8")

    with pytest.raises(ContentError, match="unknown cards"):
        ContentService(data_dir, data_dir / "schemas").validate_all()


def test_missing_file_raises_content_error(tmp_path: Path) -> None:
    content = ContentService(tmp_path, tmp_path)
    with pytest.raises(ContentError, match="Missing content file"):
        content.load_catalog()
