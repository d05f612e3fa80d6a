"""Language variants, precedence order and text direction.

Records carry up to four parallel variants. When a single representative
value is needed, variants are tried in a named, overridable order.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Literal


class Language(str, Enum):
    ENGLISH = "english"
    URDU = "urdu"
    ROMAN_URDU = "romanUrdu"
    HINDI = "hindi"


LanguageOrder = tuple[Language, ...]

DEFAULT_LANGUAGE_ORDER: LanguageOrder = (
    Language.ENGLISH,
    Language.URDU,
    Language.ROMAN_URDU,
    Language.HINDI,
)

# Arabic, Arabic Supplement, Arabic Extended-A, Presentation Forms A and B
_ARABIC_RE = re.compile(r"[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF\uFB50-\uFDFF\uFE70-\uFEFC]")

Direction = Literal["rtl", "ltr"]


def parse_language_order(names: Iterable[str]) -> LanguageOrder:
    """Build an order from language names, appending any that were left out.

    Raises ValueError for an unknown name.
    """
    order: list[Language] = []
    for name in names:
        lang = Language(name)
        if lang not in order:
            order.append(lang)
    order.extend(lang for lang in DEFAULT_LANGUAGE_ORDER if lang not in order)
    return tuple(order)


def first_non_empty(*candidates: str | None) -> str | None:
    """Return the first candidate whose stripped value is non-empty."""
    for value in candidates:
        if value is not None and str(value).strip():
            return value
    return None


def detect_direction(text: str | None) -> Direction:
    """'rtl' if the text contains any Arabic-script character."""
    if text and _ARABIC_RE.search(text):
        return "rtl"
    return "ltr"
