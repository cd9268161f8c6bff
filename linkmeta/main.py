from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import partial

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .cache import MetadataCache
from .config import Settings, get_settings
from .errors import LinkError
from .fetcher import FetchOptions, LinkFetcher
from .log import setup_logging
from .routers import api
from .service import LinkResolverService
from .urls import validate_url

logger = logging.getLogger(__name__)


def build_resolver(settings: Settings, client: httpx.AsyncClient) -> LinkResolverService:
    defaults = FetchOptions(
        headers={"User-Agent": settings.user_agent},
        timeout=settings.fetch_timeout,
        max_bytes=settings.max_response_bytes,
    )
    fetcher = LinkFetcher(
        client,
        defaults=defaults,
        max_redirects=settings.max_redirects,
        url_check=partial(
            validate_url,
            allowed_ports=settings.allowed_ports,
            allow_private_hosts=settings.allow_private_hosts,
        ),
    )
    cache = MetadataCache(ttl=settings.cache_ttl_seconds, max_entries=settings.cache_max_entries)
    return LinkResolverService(fetcher, cache)


def build_client(settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    # Redirects are followed by LinkFetcher so every hop is validated.
    return httpx.AsyncClient(transport=transport, timeout=settings.fetch_timeout)


async def link_error_handler(request: Request, exc: LinkError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with build_client(settings, transport) as client:
            app.state.resolver = build_resolver(settings, client)
            if not settings.api_tokens:
                logger.warning("No API tokens configured, the link endpoint is open")
            yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    app.add_exception_handler(LinkError, link_error_handler)
    app.include_router(api.router)

    @app.get("/health", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok", "app": settings.app_name}

    return app


app = create_app()
