"""Server-rendered public pages.

Pages read from the JSON API through UpstreamClient and render Jinja2
templates. Independent fetches run concurrently; a failed branch renders
as an empty section instead of failing the page.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from minara_cms.api import get_language_order
from minara_cms.config import settings
from minara_cms.errors import UpstreamError
from minara_cms.resource_config import ResourceConfig, get_resource
from minara_cms.text.language import LanguageOrder
from minara_cms.text.normalize import (
    direction_of,
    preview_text,
    record_slug,
    representative_title,
    slug_source,
    variant_blocks,
)
from minara_cms.text.slug import canonical_path, validate_slug
from minara_cms.upstream import UpstreamClient, gather_with_defaults
from minara_cms.utils.logging import RED, RESET, YELLOW, get_logger

log = get_logger()

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

router = APIRouter(include_in_schema=False)

# Home page sections and how many cards each shows
HOME_SECTIONS = {"articles": 4, "events": 4, "books": 4, "writers": 3}
RELATED_LIMIT = 4


def get_upstream(request: Request) -> UpstreamClient:
    return request.app.state.upstream


def format_date(raw: Any) -> str:
    """'2024-01-05' → '05 Jan 2024'; unparseable → ''."""
    if not raw:
        return ""
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00")).strftime("%d %b %Y")
    except ValueError:
        return ""


def image_route(resource: ResourceConfig) -> str | None:
    """Route of the first image-typed blob, e.g. 'image' or 'cover'."""
    for blob in resource.blobs.values():
        if blob.content_type.startswith("image/"):
            return blob.route
    return None


def placeholder_for(resource_name: str) -> str:
    if resource_name == "writers":
        return settings.placeholder_writer_image
    return settings.placeholder_image


def card(resource: ResourceConfig, row: Mapping[str, Any], order: LanguageOrder) -> dict[str, Any]:
    """Summary used by the home grid and related lists."""
    title = (representative_title(row, resource, order) or "").strip()
    slug = record_slug(row, resource, order)
    record_id = row.get("id")
    return {
        "id": record_id,
        "title": title,
        "slug": slug,
        "url": canonical_path(resource.name, record_id, slug),
        "image": f"/media/{resource.name}/{record_id}" if image_route(resource) else None,
        "preview": preview_text(row, resource, order, settings.preview_length),
        "direction": direction_of(title),
        "date": format_date(row.get("date") or row.get("eventDate") or row.get("createdOn")),
        "views": row.get("views") or 0,
        "row": row,
    }


def _error_page(request: Request, status_code: int, message: str) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "error.html",
        {"status_code": status_code, "message": message},
        status_code=status_code,
    )


# --- Media proxy (registered before the detail routes) ---

@router.get("/media/{resource_name}/{record_id}")
async def media(resource_name: str, record_id: int, request: Request) -> Response:
    """Proxy an image from the content API; placeholder redirect on any failure."""
    resource = get_resource(resource_name)
    route = image_route(resource) if resource else None
    placeholder = placeholder_for(resource_name)
    if route is None:
        return RedirectResponse(placeholder, status_code=302)
    try:
        data, content_type = await get_upstream(request).fetch_bytes(f"/{resource.name}/{route}/{record_id}")
    except UpstreamError as e:
        log.warning(f"{YELLOW}Image {resource_name}#{record_id} unavailable: {e}{RESET}")
        return RedirectResponse(placeholder, status_code=302)
    return Response(content=data, media_type=content_type, headers={"Cache-Control": "public, max-age=600"})


# --- Home ---

@router.get("/", response_class=HTMLResponse)
async def home(request: Request):
    upstream = get_upstream(request)
    order = get_language_order(request)
    results = await gather_with_defaults({
        name: (upstream.list(name), []) for name in HOME_SECTIONS
    })
    sections = {}
    for name, limit in HOME_SECTIONS.items():
        resource = get_resource(name)
        sections[name] = [card(resource, row, order) for row in results[name][:limit]]
    return templates.TemplateResponse(request, "index.html", {
        "sections": sections,
        "placeholder": settings.placeholder_image,
        "writer_placeholder": settings.placeholder_writer_image,
    })


# --- Detail ---

def _writer_names(record: Mapping[str, Any]) -> set[str]:
    raw = record.get("writers") or record.get("writer") or ""
    return {name.strip().lower() for name in str(raw).split(",") if name.strip()}


async def render_detail(
    request: Request,
    resource_name: str,
    record_id: str,
    slug: str | None = None,
) -> Response:
    resource = get_resource(resource_name)
    if resource is None or resource.page is None or not record_id.isdigit():
        return _error_page(request, 404, "Page not found")

    upstream = get_upstream(request)
    order = get_language_order(request)
    try:
        record = await upstream.get(resource.name, int(record_id))
    except UpstreamError as e:
        log.error(f"{RED}Detail fetch {resource_name}#{record_id} failed: {e}{RESET}")
        return _error_page(request, 502, "Content is temporarily unavailable")
    if record is None:
        return _error_page(request, 404, f"{resource.singular.capitalize()} not found")

    check = validate_slug(
        int(record_id),
        slug_source(record, resource, order),
        slug,
        fallback=resource.singular,
    )
    if not check.matches:
        return RedirectResponse(check.path(resource.name), status_code=301)

    branches: dict[str, tuple] = {}
    related_by = resource.page.related_by
    if related_by and record.get(related_by):
        branches["related"] = (upstream.list(resource.name, **{related_by: record[related_by]}), [])
    if resource.page.with_writers:
        branches["writers"] = (upstream.list("writers"), [])
    results = await gather_with_defaults(branches)

    related = [
        card(resource, row, order)
        for row in results.get("related", [])
        if row.get("id") != record.get("id")
    ][:RELATED_LIMIT]
    names = _writer_names(record)
    writers_resource = get_resource("writers")
    writers = [
        card(writers_resource, row, order)
        for row in results.get("writers", [])
        if (row.get("name") or "").strip().lower() in names
    ]

    page = card(resource, record, order)
    path = check.path(resource.name)
    return templates.TemplateResponse(request, "detail.html", {
        "resource": resource,
        "page": page,
        "title": page["title"] or resource.singular.capitalize(),
        "description": page["preview"],
        "blocks": variant_blocks(record, resource, order, settings.preview_length),
        "canonical_url": f"{settings.public_site_url.rstrip('/')}{path}",
        "placeholder": placeholder_for(resource.name),
        "writer_placeholder": settings.placeholder_writer_image,
        "related": related,
        "writers": writers,
    })


@router.get("/{resource_name}/{record_id}", response_class=HTMLResponse)
async def detail(resource_name: str, record_id: str, request: Request):
    return await render_detail(request, resource_name, record_id)


@router.get("/{resource_name}/{record_id}/{slug}", response_class=HTMLResponse)
async def detail_with_slug(resource_name: str, record_id: str, slug: str, request: Request):
    return await render_detail(request, resource_name, record_id, slug)
