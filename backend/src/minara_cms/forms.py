"""Request payload parsing for admin write endpoints.

The admin panel posts either multipart/form-data (with file fields) or JSON.
Values arrive as loosely typed strings and are coerced per field kind from
resources.yaml.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from fastapi import Request
from starlette.datastructures import UploadFile

from minara_cms.errors import ValidationError
from minara_cms.models import Upload
from minara_cms.resource_config import FieldSpec, ResourceConfig

_TRUE_VALUES = {"1", "true", "yes", "y"}


def as_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def as_nullable_trim(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_date(value: Any, field: str = "date") -> date | None:
    """Parse an ISO date or datetime. Blank → None, garbage → ValidationError."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(f"Invalid date format for {field}.")


def coerce_field(field: str, spec: FieldSpec, value: Any) -> Any:
    if spec.kind == "text":
        return "" if value is None else str(value).strip()
    if spec.kind == "optional":
        return as_nullable_trim(value)
    if spec.kind == "html":
        return None if value is None or value == "" else str(value)
    if spec.kind == "bool":
        return as_bool(value)
    if spec.kind == "date":
        return as_date(value, field)
    if spec.kind == "choice":
        text = as_nullable_trim(value)
        if text is None:
            return None
        if spec.choices and text not in spec.choices:
            allowed = ", ".join(f"'{c}'" for c in spec.choices)
            raise ValidationError(f"{field} must be one of {allowed}")
        return text
    raise ValueError(f"Unknown field kind: {spec.kind}")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_create(
    resource: ResourceConfig,
    data: dict[str, Any],
    uploads: dict[str, Upload] | None = None,
) -> dict[str, Any]:
    """Validate required fields and coerce every configured field.

    Missing optional fields take their kind's empty value; booleans default
    to False.
    """
    uploads = uploads or {}
    missing = [f for f in resource.required if _is_blank(data.get(f))]
    missing.extend(
        field for field, blob in resource.blobs.items()
        if blob.required and field not in uploads
    )
    if missing:
        raise ValidationError(f"Required fields: {', '.join(missing)}")

    values = {
        field: coerce_field(field, spec, data.get(field))
        for field, spec in resource.fields.items()
    }
    if resource.explicit_slug and not _is_blank(data.get("slug")):
        values["slug"] = str(data["slug"]).strip()
    return values


def parse_update(resource: ResourceConfig, data: dict[str, Any]) -> dict[str, Any]:
    """Coerce only the supplied fields; unsupplied ones keep their value."""
    values = {}
    for field, spec in resource.fields.items():
        if field not in data:
            continue
        value = coerce_field(field, spec, data[field])
        if field in resource.required and _is_blank(value) and spec.kind != "bool":
            raise ValidationError(f"{field} cannot be empty.")
        values[field] = value
    if resource.explicit_slug and not _is_blank(data.get("slug")):
        values["slug"] = str(data["slug"]).strip()
    return values


def removed_blobs(resource: ResourceConfig, data: dict[str, Any]) -> list[str]:
    """Blob fields flagged for removal, e.g. removeImage=true."""
    return [
        field for field in resource.blobs
        if as_bool(data.get(f"remove{field[0].upper()}{field[1:]}"))
    ]


async def read_payload(request: Request) -> tuple[dict[str, Any], dict[str, list[Upload]]]:
    """Split a JSON or form request into plain values and uploaded files.

    Files are grouped by form field name; empty file inputs are ignored.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await request.json()
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object.")
        return body, {}

    data: dict[str, Any] = {}
    files: dict[str, list[Upload]] = {}
    form = await request.form()
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            payload = await value.read()
            if not payload:
                continue
            files.setdefault(key, []).append(
                Upload(data=payload, filename=value.filename, content_type=value.content_type)
            )
        else:
            data[key] = value
    return data, files


def single_uploads(resource: ResourceConfig, files: dict[str, list[Upload]]) -> dict[str, Upload]:
    """First upload for each configured blob field."""
    return {field: files[field][0] for field in resource.blobs if files.get(field)}
