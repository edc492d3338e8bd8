from __future__ import annotations

import logging
import re
from typing import Sequence

from xoso.models import Province
from xoso.registry import BetTypeRegistry, ProvinceRegistry
from xoso.text import strip_diacritics

logger = logging.getLogger(__name__)

_MONEY_UNIT_RE = re.compile(r"(\d+)(?:ngan|nghin|ngh|ng|n)\b")
_STATION_COUNT_RE = {
    2: re.compile(r"\b2d(?:ai)?\b"),
    3: re.compile(r"\b3d(?:ai)?\b"),
    4: re.compile(r"\b4d(?:ai)?\b"),
}
_LETTER_SEPARATOR_RE = re.compile(r"([a-z])[-./]([a-z])")
_DIGIT_SEPARATOR_RE = re.compile(r"(\d)[-./](\d)")
_LETTER_RUN_RE = re.compile(r"[a-z]+")
_DIGIT_LETTER_RE = re.compile(r"(\d)([a-z])")
_LETTER_DIGIT_RE = re.compile(r"([a-z])(\d)")
_DIGIT_COMMA_RE = re.compile(r"(\d),(\d)")
_PUNCTUATION_RE = re.compile(r"[^a-z0-9\s]+")
_WHITESPACE_RE = re.compile(r"\s+")


def _sub_until_stable(pattern: re.Pattern[str], replacement: str, text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = pattern.sub(replacement, text)
    return text


def _expand_station_counts(text: str, priority_provinces: Sequence[Province]) -> str:
    for count, pattern in _STATION_COUNT_RE.items():
        selected = list(priority_provinces)[:count]
        if not selected or not pattern.search(text):
            continue
        aliases = " ".join(p.primary_alias for p in selected)
        text = pattern.sub(f" {aliases} ", text)
    return text


def _split_glued_run(
    run: str,
    province_aliases: Sequence[str],
    provinces: ProvinceRegistry,
    bet_types: BetTypeRegistry,
) -> list[str]:
    def known(word: str) -> bool:
        return provinces.lookup(word) is not None or bet_types.lookup(word) is not None

    parts: list[str] = []
    rest = run
    while rest and not known(rest):
        for alias in province_aliases:
            if len(rest) > len(alias) and rest.startswith(alias):
                parts.append(alias)
                rest = rest[len(alias):]
                break
        else:
            break
    parts.append(rest)
    return parts


def normalize(
    raw: str,
    provinces: ProvinceRegistry,
    bet_types: BetTypeRegistry,
    priority_provinces: Sequence[Province] = (),
) -> str:
    """Canonicalize a wager message into space-separated ASCII tokens.

    Running the result through ``normalize`` again returns it unchanged.
    """
    text = strip_diacritics((raw or "").lower().strip())
    text = _MONEY_UNIT_RE.sub(r"\1", text)
    text = _expand_station_counts(text, priority_provinces)
    text = _sub_until_stable(_LETTER_SEPARATOR_RE, r"\1 \2", text)
    text = _sub_until_stable(_DIGIT_SEPARATOR_RE, r"\1 \2", text)

    province_aliases = provinces.aliases()
    text = _LETTER_RUN_RE.sub(
        lambda m: " ".join(_split_glued_run(m.group(0), province_aliases, provinces, bet_types)),
        text,
    )

    text = _DIGIT_LETTER_RE.sub(r"\1 \2", text)
    text = _LETTER_DIGIT_RE.sub(r"\1 \2", text)
    text = _sub_until_stable(_DIGIT_COMMA_RE, r"\1 \2", text)
    text = _PUNCTUATION_RE.sub(" ", text)
    normalized = _WHITESPACE_RE.sub(" ", text).strip()
    logger.debug("Message normalized: raw=%r normalized=%r", raw, normalized)
    return normalized
