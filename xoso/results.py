from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from xoso.models import (
    BAO_DAO,
    BAO_LO,
    DA_TYPES,
    DA_XIEN,
    DAU,
    DUOI,
    XIU_CHU_HEAD_TYPES,
    XIU_CHU_TAIL_TYPES,
    Region,
)
from xoso.text import fold

logger = logging.getLogger(__name__)

SPECIAL_TIER = "G.ĐB"
ALL_TIERS = ("G.8", "G.7", "G.6", "G.5", "G.4", "G.3", "G.2", "G.1", SPECIAL_TIER)

# Tiers whose values are long enough for an n-digit lo match.
TIERS_FOR_LENGTH: dict[int, tuple[str, ...]] = {
    2: ALL_TIERS,
    3: ALL_TIERS[1:],
    4: ALL_TIERS[2:],
}

# Minimum numbers per tier before a draw counts as complete.
REQUIRED_TIERS: dict[Region, dict[str, int]] = {
    Region.MN: {
        "G.8": 1, "G.7": 1, "G.6": 3, "G.5": 1, "G.4": 7,
        "G.3": 2, "G.2": 1, "G.1": 1, SPECIAL_TIER: 1,
    },
    Region.MT: {
        "G.8": 1, "G.7": 1, "G.6": 3, "G.5": 1, "G.4": 7,
        "G.3": 2, "G.2": 1, "G.1": 1, SPECIAL_TIER: 1,
    },
    Region.MB: {
        "G.7": 4, "G.6": 3, "G.5": 6, "G.4": 4,
        "G.3": 6, "G.2": 2, "G.1": 1, SPECIAL_TIER: 1,
    },
}

_LOTO_TYPES = frozenset({BAO_LO, BAO_DAO, DA_XIEN}) | DA_TYPES

PrizeMap = Mapping[str, Iterable[Any]]


def normalize_tier_label(label: str) -> str | None:
    """Map "ĐB", "g.db", "G7", "giai 1" ... onto "G.ĐB" / "G.1" ... "G.8"."""
    key = fold(str(label)).replace(" ", "").replace(".", "")
    if key.startswith("giai"):
        key = key[4:]
    elif key.startswith("g"):
        key = key[1:]
    if key in ("db", "dacbiet"):
        return SPECIAL_TIER
    if key.isdigit() and 1 <= int(key) <= 8:
        return f"G.{int(key)}"
    return None


def normalize_prizes(prizes: PrizeMap | None) -> dict[str, list[str]]:
    normalized: dict[str, list[str]] = {}
    for label, values in (prizes or {}).items():
        tier = normalize_tier_label(label)
        if tier is None:
            logger.debug("Ignoring unknown prize tier: label=%r", label)
            continue
        if isinstance(values, (str, int)):
            values = [values]
        cleaned = [str(v).strip() for v in values or [] if str(v).strip()]
        normalized.setdefault(tier, []).extend(cleaned)
    return normalized


def last_n_digits(value: str, n: int) -> str | None:
    return value[-n:] if len(value) >= n else None


def _tail(values: Iterable[str], n: int) -> list[str]:
    return [tail for tail in (last_n_digits(v, n) for v in values) if tail is not None]


def loto_digits(prizes: PrizeMap, n: int) -> list[str]:
    """Last ``n`` digits of every value in the tiers eligible for ``n`` digits."""
    normalized = normalize_prizes(prizes)
    digits: list[str] = []
    for tier in TIERS_FOR_LENGTH.get(n, ALL_TIERS):
        digits.extend(_tail(normalized.get(tier, []), n))
    return digits


def digits_for(bet_type: str, digit_length: int, prizes: PrizeMap) -> list[str]:
    normalized = normalize_prizes(prizes)
    if bet_type == DAU:
        return _tail(normalized.get("G.8", []), 2)
    if bet_type == DUOI:
        return _tail(normalized.get(SPECIAL_TIER, []), 2)
    if bet_type in XIU_CHU_HEAD_TYPES:
        return _tail(normalized.get("G.7", []), 3)
    if bet_type in XIU_CHU_TAIL_TYPES:
        return _tail(normalized.get(SPECIAL_TIER, []), digit_length)
    if bet_type in _LOTO_TYPES:
        return loto_digits(normalized, digit_length)
    return []


def missing_tiers(prizes: PrizeMap | None, region: Region | str) -> list[str]:
    """Required tiers that are absent or hold fewer numbers than the region needs."""
    normalized = normalize_prizes(prizes)
    return [
        tier
        for tier, minimum in REQUIRED_TIERS[Region.parse(region)].items()
        if len(normalized.get(tier, [])) < minimum
    ]


def is_result_complete(prizes: PrizeMap | None, region: Region | str) -> bool:
    return not missing_tiers(prizes, region)
