"""Multilingual content normalization for previews, pages and slugs.

A record carries up to four parallel language variants. These helpers pick a
representative title/description, turn rich text into preview-safe plain text,
produce a render-safe fragment, and choose the title a slug is derived from.
"""

from __future__ import annotations

from typing import Any, Mapping

from minara_cms.errors import ValidationError
from minara_cms.resource_config import ResourceConfig
from minara_cms.text.html import clamp, plain_text, sanitize_for_render
from minara_cms.text.language import (
    DEFAULT_LANGUAGE_ORDER,
    Direction,
    LanguageOrder,
    detect_direction,
    first_non_empty,
)
from minara_cms.text.slug import compute_slug

PREVIEW_LENGTH = 160


def _text(record: Mapping[str, Any], field: str) -> str | None:
    value = record.get(field)
    return None if value is None else str(value)


def representative_title(
    record: Mapping[str, Any],
    resource: ResourceConfig,
    order: LanguageOrder = DEFAULT_LANGUAGE_ORDER,
) -> str | None:
    return first_non_empty(*(_text(record, f) for f in resource.title_fields(order)))


def representative_description(
    record: Mapping[str, Any],
    resource: ResourceConfig,
    order: LanguageOrder = DEFAULT_LANGUAGE_ORDER,
) -> str | None:
    return first_non_empty(*(_text(record, f) for f in resource.description_fields(order)))


def preview_text(
    record: Mapping[str, Any],
    resource: ResourceConfig,
    order: LanguageOrder = DEFAULT_LANGUAGE_ORDER,
    length: int = PREVIEW_LENGTH,
) -> str:
    """Plain-text preview for meta descriptions and list cards.

    Returns "" when no variant carries a description.
    """
    return clamp(plain_text(representative_description(record, resource, order)), length)


def slug_candidates(
    record: Mapping[str, Any],
    resource: ResourceConfig,
    order: LanguageOrder = DEFAULT_LANGUAGE_ORDER,
) -> list[str]:
    """Non-blank slug sources in precedence order.

    An explicit slug comes first on resources that accept one, then the
    primary title, then variant titles in language order.
    """
    fields = (["slug"] if resource.explicit_slug else []) + resource.title_fields(order)
    candidates = []
    for field in fields:
        value = _text(record, field)
        if value is not None and value.strip():
            candidates.append(value)
    return candidates


def slug_source(
    record: Mapping[str, Any],
    resource: ResourceConfig,
    order: LanguageOrder = DEFAULT_LANGUAGE_ORDER,
) -> str | None:
    """The first candidate that yields a non-empty slug."""
    for candidate in slug_candidates(record, resource, order):
        if compute_slug(candidate):
            return candidate
    return None


def record_slug(
    record: Mapping[str, Any],
    resource: ResourceConfig,
    order: LanguageOrder = DEFAULT_LANGUAGE_ORDER,
) -> str:
    """Canonical slug for a stored record; never fails.

    Titles that are present but have no Latin letters or digits (Urdu-only,
    Hindi-only) fall back to the resource's singular name.
    """
    return compute_slug(slug_source(record, resource, order)) or resource.singular


def derive_slug(
    record: Mapping[str, Any],
    resource: ResourceConfig,
    order: LanguageOrder = DEFAULT_LANGUAGE_ORDER,
) -> str:
    """Slug to persist on write.

    Raises ValidationError when every title candidate is blank.
    """
    if not slug_candidates(record, resource, order):
        fields = ", ".join(resource.title_fields(order)) or "slug"
        raise ValidationError(f"A title is required to derive a slug (one of: {fields})")
    return record_slug(record, resource, order)


def variant_blocks(
    record: Mapping[str, Any],
    resource: ResourceConfig,
    order: LanguageOrder = DEFAULT_LANGUAGE_ORDER,
    length: int = PREVIEW_LENGTH,
) -> list[dict[str, Any]]:
    """Every non-empty language variant, ready for a detail template."""
    blocks = []
    for lang in order:
        variant = resource.variants.get(lang)
        if variant is None:
            continue
        title = _text(record, variant.title) if variant.title else None
        description = _text(record, variant.description) if variant.description else None
        if not first_non_empty(title, description):
            continue
        blocks.append({
            "language": lang.value,
            "title": (title or "").strip(),
            "html": sanitize_for_render(description),
            "preview": clamp(plain_text(description), length),
            "direction": direction_of(title, description),
        })
    return blocks


def direction_of(*texts: str | None) -> Direction:
    return detect_direction(first_non_empty(*texts))


def normalize_row(
    record: Mapping[str, Any],
    resource: ResourceConfig,
    order: LanguageOrder = DEFAULT_LANGUAGE_ORDER,
    length: int = PREVIEW_LENGTH,
) -> dict[str, Any]:
    """Row plus derived slug, preview and direction for list/detail output."""
    title = representative_title(record, resource, order)
    description = representative_description(record, resource, order)
    row = dict(record)
    row["slug"] = record_slug(record, resource, order)
    row["preview"] = clamp(plain_text(description), length)
    row["direction"] = direction_of(title, description)
    return row
