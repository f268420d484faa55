from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from toonduel.engine.types import Card, CardCatalog

logger = logging.getLogger(__name__)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContentError(f"Expected int for {key}")
    return v


def _str_tuple(obj: Mapping[str, object], key: str) -> tuple[str, ...]:
    raw = obj.get(key, [])
    if not isinstance(raw, list):
        raise ContentError(f"{key} must be a list")
    return tuple(item for item in raw if isinstance(item, str))


def parse_card(raw: Mapping[str, object]) -> Card:
    return Card(
        id=_require_int(raw, "id"),
        title=_require_str(raw, "title"),
        character=_require_str(raw, "character"),
        base_points=_require_int(raw, "base_points"),
        colors=_str_tuple(raw, "colors"),
        description=_require_str(raw, "description"),
        rarity=_require_str(raw, "rarity"),  # type: ignore[arg-type]
        groups=_str_tuple(raw, "groups"),
        types=_str_tuple(raw, "types"),
    )


@dataclass(frozen=True)
class StarterDeck:
    slot: str
    name: str
    description: str
    card_ids: tuple[int, ...]


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def _load_validated(self, filename: str, schema_name: str) -> Mapping[str, object]:
        path = self._data_dir / filename
        raw = _load_json(path)
        validate_json(raw, _load_json(self._schema_dir / schema_name), context=str(path))
        if not isinstance(raw, dict):
            raise ContentError(f"{filename} must be an object")
        return raw

    def load_catalog(self) -> CardCatalog:
        raw = self._load_validated("cards.json", "cards.schema.json")
        raw_cards = raw.get("cards")
        if not isinstance(raw_cards, list):
            raise ContentError("cards.json.cards must be a list")

        cards: dict[int, Card] = {}
        for item in raw_cards:
            if not isinstance(item, dict):
                continue
            card = parse_card(item)
            if card.id in cards:
                raise ContentError(f"Duplicate card id: {card.id}")
            cards[card.id] = card
        logger.debug("Loaded %d cards from %s", len(cards), self._data_dir)
        return CardCatalog(cards=cards)

    def load_starter_decks(self, catalog: CardCatalog | None = None) -> list[StarterDeck]:
        catalog = catalog or self.load_catalog()
        raw = self._load_validated("starter_decks.json", "starter_decks.schema.json")
        raw_decks = raw.get("decks")
        if not isinstance(raw_decks, list):
            raise ContentError("starter_decks.json.decks must be a list")

        decks: list[StarterDeck] = []
        for item in raw_decks:
            if not isinstance(item, dict):
                continue
            ids = item.get("card_ids")
            if not isinstance(ids, list):
                raise ContentError("card_ids must be a list")
            missing = [cid for cid in ids if catalog.find(cid) is None]
            if missing:
                raise ContentError(f"Starter deck {item.get('name')!r} references unknown cards: {missing}")
            decks.append(
                StarterDeck(
                    slot=_require_str(item, "slot"),
                    name=_require_str(item, "name"),
                    description=_require_str(item, "description"),
                    card_ids=tuple(ids),
                )
            )
        # Stable ordering for callers
        return sorted(decks, key=lambda d: d.slot)

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        catalog = self.load_catalog()
        _ = self.load_starter_decks(catalog)
