from __future__ import annotations

import unicodedata
from typing import Iterable

_DIACRITIC_CLASSES = {
    "d": "đ",
    "a": "àáảãạăằắẳẵặâầấẩẫậ",
    "e": "èéẻẽẹêềếểễệ",
    "i": "ìíỉĩị",
    "o": "òóỏõọôồốổỗộơờớởỡợ",
    "u": "ùúủũụưừứửữự",
    "y": "ỳýỷỹỵ",
}
_DIACRITIC_TABLE = str.maketrans(
    {char: base for base, chars in _DIACRITIC_CLASSES.items() for char in chars}
)


def strip_diacritics(text: str) -> str:
    """Map lowercase Vietnamese letters to their ASCII base letter."""
    composed = unicodedata.normalize("NFC", text).translate(_DIACRITIC_TABLE)
    if composed.isascii():
        return composed
    # Leftover combining marks (decomposed input from some keyboards).
    decomposed = unicodedata.normalize("NFD", composed)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold(text: str) -> str:
    return strip_diacritics((text or "").strip().lower())


def split_aliases(raw: str | Iterable[str] | None) -> tuple[str, ...]:
    if raw is None:
        return ()
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    aliases: list[str] = []
    for item in items:
        alias = fold(str(item))
        if alias and alias not in aliases:
            aliases.append(alias)
    return tuple(aliases)


def nfc(text: str) -> str:
    return unicodedata.normalize("NFC", text or "").strip()
