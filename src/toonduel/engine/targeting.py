from __future__ import annotations

from .types import Card

# Board layout:
#   [0] [1] [2] [3]    round 1
#     [4] [5] [6]      round 2, offset below
NEIGHBORS: dict[int, tuple[int, ...]] = {
    0: (1, 4),
    1: (0, 2, 4, 5),
    2: (1, 3, 5, 6),
    3: (2, 6),
    4: (5, 0, 1),
    5: (4, 6, 1, 2),
    6: (5, 2, 3),
}

TYPE_SYNONYMS: dict[str, str] = {
    "hero": "HERO",
    "villain": "VILLAIN",
    "animal": "ANIMAL",
    "female": "FEMALE",
    "male": "MALE",
    "monster": "MONSTER",
    "prop": "PROP",
    "vehicle": "VEHICLE",
    "princess": "PRINCESS",
    "prince": "PRINCE",
    "king": "KING",
    "queen": "QUEEN",
    "noble": "NOBLE",
    "elemental": "ELEMENTAL",
    "spirit": "SPIRIT",
    "minion": "MINION",
    "criminal": "CRIMINAL",
    "robot": "ROBOT",
    "alien": "ALIEN",
    "ghost": "GHOST",
}

# Keys are matched as substrings of the target phrase.
GROUP_SYNONYMS: dict[str, str] = {
    "justice league": "JUSTICE LEAGUE",
    "teen titan": "TEEN TITANS",
    "powerpuff": "POWERPUFF GIRLS",
    "titans": "TEEN TITANS",
    "ppg": "POWERPUFF GIRLS",
}


def neighbor_indices(position: int) -> tuple[int, ...]:
    return NEIGHBORS.get(position, ())


def opposite_index(position: int) -> int:
    return position


def matches_target(card: Card, target: str) -> bool:
    """True if `card` is what a power's target phrase refers to."""
    lower = target.strip().lower()
    if not lower:
        return False

    if lower in card.character.lower() or lower in card.title.lower():
        return True

    upper = lower.upper()
    if upper in card.types:
        return True

    if any(lower in g.lower() for g in card.groups):
        return True

    tag = TYPE_SYNONYMS.get(lower)
    if tag is not None and tag in card.types:
        return True

    for key, group in GROUP_SYNONYMS.items():
        if key in lower and group in card.groups:
            return True
    return False


def matches_color_or_target(card: Card, target: str) -> bool:
    return card.has_color(target) or matches_target(card, target)
