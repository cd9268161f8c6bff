from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Union

import httpx

from .errors import InvalidLinkError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 7.0
DEFAULT_MAX_BYTES = 150 * 1024
DEFAULT_MAX_REDIRECTS = 5


@dataclass(frozen=True)
class Success:
    """A 200 response. ``encoding`` is the charset from the Content-Type header, if any."""

    content: bytes
    url: str
    encoding: str | None = None
    status_code: int = 200


@dataclass(frozen=True)
class HttpError:
    status_code: int


@dataclass(frozen=True)
class NetworkFailure:
    reason: str


FetchOutcome = Union[Success, HttpError, NetworkFailure]


@dataclass(frozen=True)
class FetchOptions:
    """Per-request settings. Request hooks return modified copies of this."""

    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = DEFAULT_TIMEOUT
    max_bytes: int = DEFAULT_MAX_BYTES

    def with_headers(self, **headers: str) -> FetchOptions:
        return replace(self, headers={**self.headers, **headers})


class LinkFetcher:
    """
    Issues a GET for a URL and classifies the result.
    - Redirects are followed one hop at a time, each target goes through ``url_check``
    - The body is streamed and cut at ``max_bytes``
    - Transport errors come back as NetworkFailure, never raised
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        defaults: FetchOptions | None = None,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        url_check: Callable[[str], object] | None = None,
    ) -> None:
        self._client = client
        self.defaults = defaults or FetchOptions()
        self.max_redirects = max_redirects
        self._url_check = url_check

    async def fetch(self, url: str, options: FetchOptions | None = None) -> FetchOutcome:
        options = options or self.defaults
        try:
            request = self._client.build_request("GET", url, headers=options.headers, timeout=options.timeout)
            for _ in range(self.max_redirects + 1):
                logger.debug("HTTP GET %s", request.url)
                response = await self._client.send(request, stream=True, follow_redirects=False)
                try:
                    if response.next_request is None:
                        return await self._classify(url, response, options)
                    request = response.next_request
                finally:
                    await response.aclose()

                if self._url_check is not None:
                    try:
                        self._url_check(str(request.url))
                    except InvalidLinkError as e:
                        logger.warning("Refusing redirect from %s to %s: %s", url, request.url, e.message)
                        return NetworkFailure(reason=f"Redirect blocked: {e.message}")

            logger.warning("Too many redirects for %s", url)
            return NetworkFailure(reason="TooManyRedirects: Exceeded maximum allowed redirects.")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            reason = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
            logger.warning("Failed to fetch %s: %s", url, reason)
            return NetworkFailure(reason=reason)

    async def _classify(self, url: str, response: httpx.Response, options: FetchOptions) -> FetchOutcome:
        if response.status_code != httpx.codes.OK:
            logger.info("GET %s returned HTTP %s", url, response.status_code)
            return HttpError(status_code=response.status_code)

        raw = await self._read_limited(response, options.max_bytes)
        # Without a header charset the parser sniffs <meta charset> from the bytes.
        return Success(content=raw, url=str(response.url), encoding=response.charset_encoding)

    @staticmethod
    async def _read_limited(response: httpx.Response, max_bytes: int) -> bytes:
        raw = bytearray()
        async for chunk in response.aiter_bytes():
            raw.extend(chunk)
            if len(raw) >= max_bytes:
                return bytes(raw[:max_bytes])
        return bytes(raw)
