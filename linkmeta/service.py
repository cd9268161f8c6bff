from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from .cache import MetadataCache
from .errors import UpstreamNotFound, UpstreamUnavailable
from .extractor import MetadataExtractor
from .fetcher import FetchOptions, HttpError, LinkFetcher, NetworkFailure, Success
from .schemas import LinkMetadata
from .urls import normalize_url

logger = logging.getLogger(__name__)

RequestHook = Callable[[str, FetchOptions], FetchOptions]
DataHook = Callable[[str, LinkMetadata], LinkMetadata]


class LinkResolverService:
    """
    Resolves a URL to its preview metadata.

    Successful lookups are cached per normalized URL. Failed lookups are
    not cached and are fetched again on the next call. Concurrent calls
    for the same uncached URL share a single fetch.

    Request hooks may adjust the fetch options (headers, timeout, size
    limit) for a URL; data hooks may rewrite the extracted metadata
    before it is cached.
    """

    def __init__(
        self,
        fetcher: LinkFetcher,
        cache: MetadataCache,
        extractor: MetadataExtractor | None = None,
        *,
        request_hooks: Iterable[RequestHook] = (),
        data_hooks: Iterable[DataHook] = (),
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache
        self.extractor = extractor or MetadataExtractor()
        self._request_hooks = tuple(request_hooks)
        self._data_hooks = tuple(data_hooks)
        self._in_flight: dict[str, asyncio.Task[LinkMetadata]] = {}

    async def resolve(self, url: str) -> LinkMetadata:
        """Return metadata for ``url``. The URL must already be validated.

        Raises UpstreamNotFound when the target answers 404 and
        UpstreamUnavailable for any other failure.
        """
        key = normalize_url(url)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        task = self._in_flight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(self._fetch_and_store(key))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logger.debug("Joining in-flight lookup for %s", key)

        # One caller going away must not cancel the lookup for the others.
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[LinkMetadata]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # Callers may all have gone away; mark the outcome as seen.
        if not task.cancelled():
            task.exception()

    async def _fetch_and_store(self, key: str) -> LinkMetadata:
        options = self.fetcher.defaults
        for hook in self._request_hooks:
            options = hook(key, options)

        outcome = await self.fetcher.fetch(key, options)

        if isinstance(outcome, Success):
            metadata = self.extractor.extract(outcome.content, base_url=outcome.url, encoding=outcome.encoding)
            for hook in self._data_hooks:
                metadata = hook(key, metadata)
            self.cache.set(key, metadata)
            logger.info("Resolved %s (title=%r)", key, metadata.title)
            return metadata

        if isinstance(outcome, HttpError) and outcome.status_code == 404:
            raise UpstreamNotFound(key)

        if isinstance(outcome, HttpError):
            raise UpstreamUnavailable(key, reason=f"HTTP {outcome.status_code}")

        if isinstance(outcome, NetworkFailure):
            raise UpstreamUnavailable(key, reason=outcome.reason)

        raise TypeError(f"Unexpected fetch outcome: {outcome!r}")
