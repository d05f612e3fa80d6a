"""Open Graph share pages for social crawlers.

/api/share/{type}/{id} answers with OG/Twitter meta for the record, then
sends browsers on to the public site's canonical page after a short delay.
"""

from __future__ import annotations

from typing import Any, Mapping

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from minara_cms.api import get_language_order
from minara_cms.config import settings
from minara_cms.errors import UpstreamError
from minara_cms.pages import get_upstream, templates
from minara_cms.resource_config import ResourceConfig, get_share_resource
from minara_cms.text.html import escape_html
from minara_cms.text.language import DEFAULT_LANGUAGE_ORDER, LanguageOrder
from minara_cms.text.normalize import preview_text, record_slug, representative_title
from minara_cms.utils.logging import RED, RESET, get_logger

log = get_logger()

router = APIRouter(prefix="/api/share", tags=["share"])

REDIRECT_DELAY_S = 3


class ShareMeta(BaseModel):
    """Share page values. Everything but redirect_url is HTML-escaped."""
    share_type: str
    title: str
    description: str
    image_url: str
    url: str
    redirect_url: str
    delay_s: int = REDIRECT_DELAY_S


def build_share_meta(
    share_type: str,
    resource: ResourceConfig,
    record: Mapping[str, Any],
    order: LanguageOrder = DEFAULT_LANGUAGE_ORDER,
) -> ShareMeta:
    share = resource.share
    record_id = record.get("id")
    title = (representative_title(record, resource, order) or "").strip() or share.default_title
    description = (
        preview_text(record, resource, order, settings.preview_length)
        or f"Explore this {share_type} on Minaramasjid.com"
    )
    redirect_url = (
        f"{settings.public_site_url.rstrip('/')}/{share.page}/{record_id}/"
        f"{record_slug(record, resource, order)}"
    )
    image_url = f"{settings.public_api_url.rstrip('/')}/{resource.name}/{share.image_route}/{record_id}"
    return ShareMeta(
        share_type=escape_html(share_type),
        title=escape_html(title),
        description=escape_html(description),
        image_url=escape_html(image_url),
        url=escape_html(redirect_url),
        redirect_url=redirect_url,
    )


async def _share(request: Request, share_type: str, record_id: int) -> HTMLResponse:
    resource = get_share_resource(share_type)
    if resource is None:
        return HTMLResponse("Unknown content type.", status_code=404)
    try:
        record = await get_upstream(request).get(resource.name, record_id)
    except UpstreamError as e:
        log.error(f"{RED}Share fetch {share_type}#{record_id} failed: {e}{RESET}")
        return HTMLResponse("Error fetching content.", status_code=500)
    if record is None:
        return HTMLResponse("Content not found.", status_code=404)

    meta = build_share_meta(share_type, resource, record, get_language_order(request))
    return templates.TemplateResponse(request, "share.html", {"meta": meta})


@router.get("/{share_type}/{record_id}", response_class=HTMLResponse)
async def share(share_type: str, record_id: int, request: Request):
    return await _share(request, share_type, record_id)


@router.get("/{share_type}/{record_id}/{slug}", response_class=HTMLResponse)
async def share_with_slug(share_type: str, record_id: int, slug: str, request: Request):
    """The trailing slug is cosmetic; the id decides."""
    return await _share(request, share_type, record_id)
