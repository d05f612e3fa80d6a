"""URL slugs derived from free-text titles.

The numeric id is always the lookup key; the slug is a cosmetic suffix that is
re-derived from the stored title on every read and corrected by redirect.
"""

from __future__ import annotations

import re
import unicodedata

from pydantic import BaseModel

# Punctuation removed outright (joins the surrounding letters)
_PUNCTUATION_RE = re.compile(
    r"[.,/#!$%^&*;:{}=_`~()\"'\u2018\u2019\u201C\u201D\u061F\u060C]"
)

# Unicode dash punctuation (en/em dash, etc.) behaves like a hyphen
_DASH_RE = re.compile(r"[\u2010-\u2015\u2212\uFE58\uFE63\uFF0D]")

_WHITESPACE_RE = re.compile(r"\s+")
_NON_SLUG_RE = re.compile(r"[^a-z0-9\-]")
_HYPHENS_RE = re.compile(r"-+")


def compute_slug(title: str | None) -> str:
    """Convert a title to a lowercase ASCII slug.

    - NFKD normalize and drop combining marks ("Café" → "cafe")
    - Remove the punctuation denylist, including Arabic "؟" and "،"
    - Whitespace runs become one hyphen; hyphen runs collapse
    - Letters outside a-z (Arabic, Devanagari) are dropped

    Urdu- or Hindi-only titles therefore yield "" and the caller must
    fall back to another source.
    """
    if not title:
        return ""

    text = unicodedata.normalize("NFKD", str(title)).lower()
    text = "".join(ch for ch in text if not unicodedata.combining(ch))

    text = _PUNCTUATION_RE.sub("", text)
    text = _DASH_RE.sub("-", text)
    text = _WHITESPACE_RE.sub("-", text.strip())
    text = _NON_SLUG_RE.sub("", text)
    text = _HYPHENS_RE.sub("-", text)
    return text.strip("-")


def canonical_slug(title: str | None, fallback: str = "") -> str:
    return compute_slug(title) or fallback


def canonical_path(resource: str, record_id: int, slug: str) -> str:
    """Public detail path: /{resource}/{id}/{slug}."""
    if not slug:
        return f"/{resource}/{record_id}"
    return f"/{resource}/{record_id}/{slug}"


class SlugCheck(BaseModel):
    record_id: int
    canonical: str
    requested: str | None = None
    matches: bool

    def path(self, resource: str) -> str:
        return canonical_path(resource, self.record_id, self.canonical)


def validate_slug(
    record_id: int,
    stored_title: str | None,
    requested_slug: str | None,
    fallback: str = "",
) -> SlugCheck:
    """Compare a requested slug against the one derived from the stored title.

    An absent requested slug only matches an empty canonical slug, so the
    caller redirects bare /{resource}/{id} URLs to the canonical one.
    """
    canonical = canonical_slug(stored_title, fallback)
    requested = requested_slug or None
    return SlugCheck(
        record_id=record_id,
        canonical=canonical,
        requested=requested,
        matches=(requested or "") == canonical,
    )


_TAG_DROP_RE = re.compile(r"[\u0600-\u06FF]+")
_TAG_SEPARATOR_RE = re.compile(r"[^a-z0-9]+")


def normalize_tag(tag: str | None) -> str:
    """Comparison key for tags: "Fiqh & Law" → "fiqh-law".

    Arabic-script tags normalize to "" and never match.
    """
    text = _TAG_DROP_RE.sub("", (tag or "").strip().lower())
    return _TAG_SEPARATOR_RE.sub("-", text).strip("-")
