"""FastAPI application: content REST API, SSR pages and share pages.

Endpoints:
    /api/{resource}/...    - CRUD for every resource in resources.yaml
    /api/galleries/...     - Gallery parent + image rows
    /api/share/{type}/{id} - Open Graph share page
    GET /healthz           - Liveness
    GET /readyz            - Readiness (DB connectivity)
    GET /                  - Home page
    GET /{resource}/{id}   - Detail page, 301 to the canonical slug
    GET /media/{resource}/{id} - Image proxy
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

import asyncpg
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from minara_cms import pages, share
from minara_cms.api import api_routers
from minara_cms.config import Settings, settings as default_settings
from minara_cms.db import ContentStore
from minara_cms.errors import CmsError, ServerError, StorageError
from minara_cms.text.language import parse_language_order
from minara_cms.upstream import UpstreamClient
from minara_cms.utils.logging import RED, RESET, get_logger

log = get_logger()

_STATIC_DIR = Path(__file__).parent / "static"


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, "message": message})


def create_app(
    settings: Settings | None = None,
    store: ContentStore | None = None,
    upstream: UpstreamClient | None = None,
) -> FastAPI:
    """Build the app. Handles passed in are used as-is and not closed."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = []
        if store is None:
            app.state.store = await ContentStore.connect(settings.database_url)
            owned.append(app.state.store)
        if upstream is None:
            app.state.upstream = UpstreamClient(settings.upstream_base, settings.upstream_timeout_s)
            owned.append(app.state.upstream)
        log.info(f"Content API ready, pages read from {app.state.upstream.base_url}")
        try:
            yield
        finally:
            for handle in owned:
                await handle.close()

    app = FastAPI(
        title="Minara CMS API",
        description="Content management backend for Minara Masjid",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.language_order = parse_language_order(settings.language_order)
    if store is not None:
        app.state.store = store
    if upstream is not None:
        app.state.upstream = upstream

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if _STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(_STATIC_DIR)), name="static")

    @app.exception_handler(CmsError)
    async def cms_error_handler(request: Request, exc: CmsError):
        return _error(exc.status_code, exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}" for err in exc.errors()
        )
        return _error(400, "VALIDATION", details or "Invalid request")

    @app.exception_handler(asyncpg.PostgresError)
    async def storage_error_handler(request: Request, exc: asyncpg.PostgresError):
        log.error(f"{RED}DB error on {request.method} {request.url.path}: {exc}{RESET}")
        error = StorageError(str(exc)) if settings.is_development else StorageError("Database error")
        return _error(error.status_code, error.code, error.message)

    @app.exception_handler(Exception)
    async def server_error_handler(request: Request, exc: Exception):
        log.error(f"{RED}Unhandled error on {request.method} {request.url.path}{RESET}", exc_info=exc)
        error = ServerError(str(exc)) if settings.is_development else ServerError()
        return _error(error.status_code, error.code, error.message)

    @app.get("/healthz", include_in_schema=False)
    async def healthz():
        return {"status": "ok"}

    @app.get("/readyz", include_in_schema=False)
    async def readyz(request: Request):
        """Ready once the database answers."""
        try:
            db = await request.app.state.store.ping()
        except (asyncpg.PostgresError, OSError) as e:
            return JSONResponse(status_code=503, content={"status": "error", "detail": str(e)})
        return {"status": "ready", "db": db}

    app.include_router(share.router)
    for router in api_routers():
        app.include_router(router)
    app.include_router(pages.router)
    return app
