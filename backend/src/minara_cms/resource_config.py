"""Per-resource configuration loaded from resources.yaml.

Describes each content table: wire fields and their kinds, required fields,
language variants, blob columns and the public page/share mapping. New
resources are added by editing resources.yaml.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, field_validator

from minara_cms.text.language import DEFAULT_LANGUAGE_ORDER, Language, LanguageOrder

_CONFIG: dict[str, ResourceConfig] | None = None
_CONFIG_PATH = Path(__file__).parent / "resources.yaml"

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")

FieldKind = Literal["text", "optional", "html", "bool", "date", "choice"]


def to_column(field: str) -> str:
    """englishTitle -> english_title"""
    return _CAMEL_RE.sub("_", field).lower()


def to_field(column: str) -> str:
    """english_title -> englishTitle"""
    head, *rest = column.split("_")
    return head + "".join(part.capitalize() for part in rest)


class FieldSpec(BaseModel):
    kind: FieldKind = "text"
    choices: list[str] | None = None


class VariantSpec(BaseModel):
    title: str | None = None
    description: str | None = None


class BlobSpec(BaseModel):
    route: str
    content_type: str = "image/jpeg"
    required: bool = False
    # Field holding the uploaded file's original name
    name_field: str | None = None


class PageSpec(BaseModel):
    # Field used to pick "related" records on the detail page
    related_by: str | None = None
    with_writers: bool = False


class ShareSpec(BaseModel):
    type: str
    page: str
    default_title: str = "Islamic Content"
    image_route: str = "image"


class ResourceConfig(BaseModel):
    name: str
    table: str
    singular: str
    title: str | None = None
    slug: bool = False
    explicit_slug: bool = False
    soft_delete: bool = True
    publishable: bool = False
    counters: list[str] = []
    required: list[str] = []
    filters: list[str] = []
    fields: dict[str, FieldSpec]
    variants: dict[Language, VariantSpec] = {}
    blobs: dict[str, BlobSpec] = {}
    page: PageSpec | None = None
    share: ShareSpec | None = None

    @field_validator("fields", mode="before")
    @classmethod
    def _expand_short_fields(cls, value: dict) -> dict:
        return {
            name: {"kind": spec} if isinstance(spec, str) else spec
            for name, spec in value.items()
        }

    def title_fields(self, order: LanguageOrder = DEFAULT_LANGUAGE_ORDER) -> list[str]:
        """Primary title field followed by variant titles in language order."""
        names = [self.title] if self.title else []
        for lang in order:
            variant = self.variants.get(lang)
            if variant and variant.title and variant.title not in names:
                names.append(variant.title)
        return names

    def description_fields(self, order: LanguageOrder = DEFAULT_LANGUAGE_ORDER) -> list[str]:
        names: list[str] = []
        for lang in order:
            variant = self.variants.get(lang)
            if variant and variant.description and variant.description not in names:
                names.append(variant.description)
        return names

    def select_columns(self) -> list[str]:
        """Columns returned by list/detail reads (never blob payloads)."""
        columns = ["id"]
        if self.slug:
            columns.append("slug")
        columns.extend(to_column(f) for f in self.fields)
        columns.extend(to_column(c) for c in self.counters)
        columns.extend(to_column(b.name_field) for b in self.blobs.values() if b.name_field)
        columns.extend(["created_on", "modified_on"])
        return columns


def _load() -> dict[str, ResourceConfig]:
    global _CONFIG
    if _CONFIG is None:
        with open(_CONFIG_PATH, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        _CONFIG = {name: ResourceConfig(name=name, **spec) for name, spec in raw.items()}
    return _CONFIG


def get_resource(name: str) -> ResourceConfig | None:
    """Get a resource by its route name. Returns None if not configured."""
    return _load().get(name)


def get_all_resources() -> list[ResourceConfig]:
    return list(_load().values())


def get_share_resource(share_type: str) -> ResourceConfig | None:
    for resource in _load().values():
        if resource.share and resource.share.type == share_type:
            return resource
    return None
