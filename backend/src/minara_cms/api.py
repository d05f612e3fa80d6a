"""REST API for the admin panel and the server-rendered pages.

Endpoints (per resource in resources.yaml, under /api/{resource}):
    GET    /                     - List live records (filters, includeDeleted)
    GET    /{id}                 - One live record
    GET    /{blobRoute}/{id}     - Binary attachment (image, cover, PDF)
    POST   /                     - Create (JSON or multipart)
    PATCH  /{id}, PUT /{id}      - Partial update
    DELETE /{id}                 - Soft delete (hard for lookup tables)
    PATCH  /{id}/publish         - Set isPublished

Extras:
    GET  /api/books/count          - Record counts for the admin dashboard
    GET  /api/questions/tag/{tag}  - Questions matching a normalized tag
    /api/galleries/...             - Gallery parent + image rows
    /api/...                       - JSON 404 for any other /api path
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from minara_cms.config import settings
from minara_cms.db import ContentStore
from minara_cms.errors import NotFoundError, ValidationError
from minara_cms.forms import (
    as_bool,
    as_date,
    as_nullable_trim,
    coerce_field,
    parse_create,
    parse_update,
    read_payload,
    removed_blobs,
    single_uploads,
)
from minara_cms.models import Blob
from minara_cms.resource_config import ResourceConfig, get_all_resources, get_resource, to_field
from minara_cms.text.language import LanguageOrder
from minara_cms.text.normalize import derive_slug, normalize_row
from minara_cms.text.slug import compute_slug, normalize_tag
from minara_cms.utils.logging import get_logger

log = get_logger()

_MAX_GALLERY_PAGE = 100


# --- Dependencies ---

def get_store(request: Request) -> ContentStore:
    return request.app.state.store


def get_language_order(request: Request) -> LanguageOrder:
    return request.app.state.language_order


# --- Serialization ---

def _serialize_val(val: Any) -> Any:
    """Recursively convert dates and decimals to JSON-safe values."""
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    if isinstance(val, Decimal):
        return float(val)
    if isinstance(val, dict):
        return {k: _serialize_val(v) for k, v in val.items()}
    if isinstance(val, list):
        return [_serialize_val(item) for item in val]
    return val


def _camel(row: Mapping[str, Any]) -> dict[str, Any]:
    return {to_field(k): v for k, v in row.items()}


def present(resource: ResourceConfig, row: Mapping[str, Any], order: LanguageOrder) -> dict[str, Any]:
    """Row as returned on the wire, with derived slug, preview and direction."""
    return _serialize_val(normalize_row(row, resource, order, settings.preview_length))


def blob_response(blob: Blob) -> Response:
    headers = {"Cache-Control": "public, max-age=600"}
    if blob.filename:
        headers["Content-Disposition"] = f"inline; filename*=UTF-8''{quote(blob.filename)}"
    return Response(content=blob.data, media_type=blob.content_type, headers=headers)


def _query_filters(resource: ResourceConfig, params: Mapping[str, str]) -> dict[str, Any]:
    filters = {}
    for field in resource.filters:
        value = params.get(field)
        if value is None or value == "":
            continue
        filters[field] = coerce_field(field, resource.fields[field], value)
    return filters


def _touches_slug(resource: ResourceConfig, values: Mapping[str, Any], order: LanguageOrder) -> bool:
    return "slug" in values or any(f in values for f in resource.title_fields(order))


# --- Per-resource CRUD ---

def _blob_endpoint(resource: ResourceConfig, field: str):
    async def read_blob(record_id: int, store: ContentStore = Depends(get_store)) -> Response:
        blob = await store.get_blob(resource, record_id, field)
        if blob is None:
            raise NotFoundError(f"{resource.singular.capitalize()} {field} not found")
        return blob_response(blob)

    read_blob.__name__ = f"read_{resource.name}_{field}"
    return read_blob


def resource_router(resource: ResourceConfig) -> APIRouter:
    router = APIRouter(prefix=f"/api/{resource.name}", tags=[resource.name])
    label = resource.singular.capitalize()

    @router.get("")
    async def list_records(
        request: Request,
        include_deleted: bool = Query(False, alias="includeDeleted"),
        limit: int | None = Query(None, ge=1, le=500),
        offset: int = Query(0, ge=0),
        store: ContentStore = Depends(get_store),
        order: LanguageOrder = Depends(get_language_order),
    ):
        filters = _query_filters(resource, request.query_params)
        rows = await store.list_records(resource, filters, include_deleted, limit, offset)
        return [present(resource, row, order) for row in rows]

    for field, blob in resource.blobs.items():
        router.add_api_route(
            f"/{blob.route}/{{record_id}}",
            _blob_endpoint(resource, field),
            methods=["GET"],
            response_class=Response,
        )

    @router.get("/{record_id}")
    async def get_record(
        record_id: int,
        store: ContentStore = Depends(get_store),
        order: LanguageOrder = Depends(get_language_order),
    ):
        row = await store.get_record(resource, record_id)
        if row is None:
            raise NotFoundError(f"{label} not found")
        return present(resource, row, order)

    @router.post("", status_code=201)
    async def create_record(
        request: Request,
        store: ContentStore = Depends(get_store),
        order: LanguageOrder = Depends(get_language_order),
    ):
        data, files = await read_payload(request)
        uploads = single_uploads(resource, files)
        values = parse_create(resource, data, uploads)
        if resource.slug:
            values["slug"] = derive_slug(values, resource, order)
        record_id = await store.insert_record(resource, values, uploads)
        return {"id": record_id, "slug": values.get("slug"), "message": f"{label} created"}

    @router.api_route("/{record_id}", methods=["PATCH", "PUT"])
    async def update_record(
        record_id: int,
        request: Request,
        store: ContentStore = Depends(get_store),
        order: LanguageOrder = Depends(get_language_order),
    ):
        data, files = await read_payload(request)
        uploads = single_uploads(resource, files)
        values = parse_update(resource, data)

        # Title edits re-derive the slug from the merged record
        if resource.slug and _touches_slug(resource, values, order):
            existing = await store.get_record(resource, record_id)
            if existing is None:
                raise NotFoundError(f"{label} not found")
            merged = {**existing, **values}
            if "slug" not in values:
                merged.pop("slug", None)
            values["slug"] = derive_slug(merged, resource, order)

        affected = await store.update_record(
            resource, record_id, values, uploads, removed_blobs(resource, data),
        )
        if not affected:
            raise NotFoundError(f"{label} not found")
        return {"id": record_id, "slug": values.get("slug"), "message": f"{label} updated"}

    @router.delete("/{record_id}")
    async def delete_record(record_id: int, store: ContentStore = Depends(get_store)):
        if not await store.delete_record(resource, record_id):
            raise NotFoundError(f"{label} not found")
        log.info(f"Deleted {resource.singular} #{record_id}")
        return {"id": record_id, "message": f"{label} deleted"}

    if resource.publishable:
        @router.patch("/{record_id}/publish")
        async def set_published(
            record_id: int,
            request: Request,
            store: ContentStore = Depends(get_store),
        ):
            data, _ = await read_payload(request)
            if "isPublished" not in data:
                raise ValidationError("isPublished is required")
            published = as_bool(data["isPublished"])
            if not await store.set_published(resource, record_id, published):
                raise NotFoundError(f"{label} not found")
            log.info(f"{label} #{record_id} published={published}")
            return {"id": record_id, "isPublished": published}

    return router


# --- Extras ---

extras = APIRouter(prefix="/api")


@extras.get("/books/count")
async def record_counts(store: ContentStore = Depends(get_store)):
    """Counts shown on the admin dashboard."""
    summary = await store.count_summary()
    return _camel(summary.model_dump())


def _tag_keys(row: Mapping[str, Any]) -> set[str]:
    bag = [row.get("topic") or ""]
    bag.extend((row.get("tags") or "").split(","))
    return {normalize_tag(tag) for tag in bag} - {""}


@extras.get("/questions/tag/{tag}")
async def questions_by_tag(
    tag: str,
    store: ContentStore = Depends(get_store),
    order: LanguageOrder = Depends(get_language_order),
):
    """Questions whose topic or CSV tags match ``tag`` after normalization."""
    wanted = normalize_tag(tag)
    if not wanted:
        raise ValidationError("Tag is required")
    resource = get_resource("questions")
    rows = await store.list_records(resource)
    matches = [present(resource, row, order) for row in rows if wanted in _tag_keys(row)]
    if not matches:
        raise NotFoundError(f"No questions tagged '{tag}'")
    return matches


# --- Galleries ---

galleries = APIRouter(prefix="/api/galleries", tags=["galleries"])


def _gallery_images(files: Mapping[str, list]) -> list:
    return [*files.get("images", []), *files.get("image", [])]


@galleries.get("")
async def list_galleries(
    limit: int = Query(10, ge=1),
    offset: int = Query(0, ge=0),
    store: ContentStore = Depends(get_store),
):
    rows = await store.list_galleries(min(limit, _MAX_GALLERY_PAGE), offset)
    return _serialize_val(rows)


@galleries.get("/detail")
async def search_galleries(
    title: str | None = None,
    date: str | None = None,
    store: ContentStore = Depends(get_store),
):
    """Filter galleries by title substring and/or exact event date."""
    rows = await store.search_galleries(as_nullable_trim(title), as_date(date, "date"))
    return _serialize_val(rows)


@galleries.get("/image/{image_id}", response_class=Response)
async def gallery_image(image_id: int, store: ContentStore = Depends(get_store)):
    blob = await store.get_gallery_image(image_id)
    if blob is None:
        raise NotFoundError("Gallery image not found")
    return blob_response(blob)


@galleries.delete("/image/{image_id}")
async def delete_gallery_image(image_id: int, store: ContentStore = Depends(get_store)):
    if not await store.delete_gallery_image(image_id):
        raise NotFoundError("Gallery image not found")
    return {"id": image_id, "message": "Gallery image deleted"}


@galleries.get("/{gallery_id}")
async def get_gallery(gallery_id: int, store: ContentStore = Depends(get_store)):
    gallery = await store.get_gallery(gallery_id)
    if gallery is None:
        raise NotFoundError("Gallery not found")
    body = _camel(gallery.model_dump(exclude={"images"}))
    body["images"] = [
        {**_camel(image.model_dump()), "url": f"/api/galleries/image/{image.id}"}
        for image in gallery.images
    ]
    return _serialize_val(body)


@galleries.post("", status_code=201)
async def create_gallery(request: Request, store: ContentStore = Depends(get_store)):
    data, files = await read_payload(request)
    title = as_nullable_trim(data.get("title"))
    event_date = as_date(data.get("eventDate") or data.get("date"), "eventDate")
    if not title or not event_date:
        raise ValidationError("Required fields: title, eventDate")
    images = _gallery_images(files)
    if not images:
        raise ValidationError("Please upload at least one image.")
    slug = compute_slug(title) or "gallery"
    gallery_id = await store.insert_gallery(
        title, as_nullable_trim(data.get("description")), event_date, slug, images,
    )
    return {"id": gallery_id, "slug": slug, "images": len(images), "message": "Gallery created"}


@galleries.api_route("/{gallery_id}", methods=["PATCH", "PUT"])
async def update_gallery(gallery_id: int, request: Request, store: ContentStore = Depends(get_store)):
    data, files = await read_payload(request)
    values: dict[str, Any] = {}
    if "title" in data:
        title = as_nullable_trim(data["title"])
        if not title:
            raise ValidationError("title cannot be empty.")
        values["title"] = title
        values["slug"] = compute_slug(title) or "gallery"
    if "description" in data:
        values["description"] = as_nullable_trim(data["description"])
    if data.get("eventDate"):
        values["eventDate"] = as_date(data["eventDate"], "eventDate")
    images = _gallery_images(files)
    if not await store.update_gallery(gallery_id, values, images):
        raise NotFoundError("Gallery not found")
    return {"id": gallery_id, "images": len(images), "message": "Gallery updated"}


@galleries.delete("/{gallery_id}")
async def delete_gallery(gallery_id: int, store: ContentStore = Depends(get_store)):
    if not await store.delete_gallery(gallery_id):
        raise NotFoundError("Gallery not found")
    log.info(f"Deleted gallery #{gallery_id}")
    return {"id": gallery_id, "message": "Gallery deleted"}


# --- Unmatched /api paths ---

unmatched = APIRouter(prefix="/api", include_in_schema=False)


@unmatched.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def api_not_found(path: str):
    """JSON 404 so /api misses never reach the HTML page routes."""
    raise NotFoundError(f"No API route for /api/{path}")


def api_routers() -> list[APIRouter]:
    """All API routers, fixed paths before parameterized ones.

    The unmatched-path router comes last and must be registered before the
    page routes.
    """
    return [extras, galleries, *(resource_router(r) for r in get_all_resources()), unmatched]
