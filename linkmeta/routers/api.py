from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ..deps import get_resolver, get_valid_url, require_capability
from ..errors import UpstreamNotFound
from ..schemas import LinkErrorRead, LinkMetadata
from ..service import LinkResolverService

router = APIRouter(prefix="/api", tags=["links"])

ResolverDep = Annotated[LinkResolverService, Depends(get_resolver)]


@router.get(
    "/link",
    response_model=LinkMetadata,
    responses={
        400: {"model": LinkErrorRead, "description": "Missing or invalid URL"},
        401: {"model": LinkErrorRead},
        403: {"model": LinkErrorRead},
        404: {"model": LinkErrorRead, "description": "The URL could not be fetched"},
    },
)
async def api_parse_link(
    # Parameter order is resolution order: the URL is checked before credentials.
    url: Annotated[str, Depends(get_valid_url)],
    token: Annotated[str | None, Depends(require_capability)],
    resolver: ResolverDep,
) -> LinkMetadata:
    """Fetch preview metadata (title, image, description) for a URL."""
    try:
        return await resolver.resolve(url)
    except UpstreamNotFound as e:
        # A missing page still gets an (empty) preview.
        return e.metadata
