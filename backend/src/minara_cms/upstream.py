"""HTTP client for the content JSON API consumed by the SSR pages.

The pages read from the same /api surface the admin panel writes to, over
HTTP, so they can be pointed at another deployment with API_UPSTREAM.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable

import httpx

from minara_cms.config import settings
from minara_cms.errors import UpstreamError
from minara_cms.models import Envelope
from minara_cms.utils.logging import RESET, YELLOW, get_logger

log = get_logger()


def normalize_envelope(payload: Any) -> Envelope:
    """Classify an API response body.

    - ``[...]`` → array
    - ``{"data": [...]}`` or ``{"data": {...}}`` → wrapped
    - any other object → object
    - null, ``{}`` or ``{"data": null}`` → empty
    """
    if payload is None:
        return Envelope(shape="empty", items=[])
    if isinstance(payload, list):
        return Envelope(shape="array", items=[item for item in payload if isinstance(item, dict)])
    if isinstance(payload, dict):
        if "data" in payload:
            data = payload["data"]
            if isinstance(data, list):
                return Envelope(shape="wrapped", items=[item for item in data if isinstance(item, dict)])
            if isinstance(data, dict):
                return Envelope(shape="wrapped", items=[data])
            return Envelope(shape="empty", items=[])
        if not payload:
            return Envelope(shape="empty", items=[])
        return Envelope(shape="object", items=[payload])
    return Envelope(shape="empty", items=[])


class UpstreamClient:
    """Owns one httpx.AsyncClient for the lifetime of the app."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.upstream_base).rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.upstream_timeout_s,
            transport=transport,
            follow_redirects=True,
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        try:
            return await self.client.get(path, params=params)
        except httpx.HTTPError as e:
            raise UpstreamError(f"GET {path} failed: {e}") from e

    async def fetch(self, path: str, params: dict[str, Any] | None = None) -> Envelope:
        response = await self._get(path, params)
        if response.status_code == 404:
            return Envelope(shape="empty", items=[])
        if response.is_error:
            raise UpstreamError(f"GET {path} returned {response.status_code}", status=response.status_code)
        try:
            return normalize_envelope(response.json())
        except ValueError as e:
            raise UpstreamError(f"GET {path} returned invalid JSON") from e

    async def list(self, resource: str, **params: Any) -> list[dict[str, Any]]:
        envelope = await self.fetch(f"/{resource}", params or None)
        return envelope.items

    async def get(self, resource: str, record_id: int) -> dict[str, Any] | None:
        """One record, or None when the API answers 404 or an empty body."""
        envelope = await self.fetch(f"/{resource}/{record_id}")
        return envelope.first()

    async def fetch_bytes(self, path: str) -> tuple[bytes, str]:
        """Raw body and content type, e.g. an image."""
        response = await self._get(path)
        if response.is_error:
            raise UpstreamError(f"GET {path} returned {response.status_code}", status=response.status_code)
        content_type = response.headers.get("content-type", "application/octet-stream")
        return response.content, content_type


async def gather_with_defaults(branches: dict[str, tuple[Awaitable[Any], Any]]) -> dict[str, Any]:
    """Run fetches concurrently; a failed branch yields its default.

    ``branches`` maps a name to ``(awaitable, default)``. Failures are
    logged and never cancel the other branches.
    """
    names = list(branches)
    results = await asyncio.gather(
        *(branches[name][0] for name in names),
        return_exceptions=True,
    )
    out: dict[str, Any] = {}
    for name, result in zip(names, results):
        if isinstance(result, Exception):
            log.warning(f"{YELLOW}Fetch '{name}' failed, using default: {result}{RESET}")
            out[name] = branches[name][1]
        else:
            out[name] = result
    return out
