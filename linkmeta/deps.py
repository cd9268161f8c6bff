from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Query, Request

from .config import Settings
from .errors import ForbiddenError, NotAuthenticatedError
from .service import LinkResolverService
from .urls import validate_url


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_resolver(request: Request) -> LinkResolverService:
    return request.app.state.resolver


def get_valid_url(
    settings: Annotated[Settings, Depends(get_app_settings)],
    url: str | None = Query(None, description="The URL to process."),
) -> str:
    """Validate the ``url`` query parameter. Runs before the capability check."""
    return validate_url(
        url,
        allowed_ports=settings.allowed_ports,
        allow_private_hosts=settings.allow_private_hosts,
    )


def require_capability(
    settings: Annotated[Settings, Depends(get_app_settings)],
    authorization: str | None = Header(None),
) -> str | None:
    """Check the bearer token against the configured tokens.

    Returns the token, or None when no tokens are configured.
    """
    if not settings.api_tokens:
        return None

    scheme, _, token = (authorization or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or token not in settings.api_tokens:
        raise NotAuthenticatedError()

    if settings.required_capability not in settings.api_tokens[token]:
        raise ForbiddenError()
    return token
