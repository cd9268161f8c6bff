from functools import partial

import httpx
import pytest

from linkmeta.fetcher import FetchOptions, HttpError, LinkFetcher, NetworkFailure, Success
from linkmeta.urls import validate_url


def make_fetcher(handler, **options) -> tuple[httpx.AsyncClient, LinkFetcher]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    fetcher = LinkFetcher(
        client,
        defaults=FetchOptions(**options),
        max_redirects=3,
        url_check=partial(validate_url, allowed_ports=[80, 443, 8080]),
    )
    return client, fetcher


@pytest.mark.asyncio
async def test_success_returns_body(upstream):
    client, fetcher = make_fetcher(upstream.handler)
    async with client:
        outcome = await fetcher.fetch("https://example.com")

    assert isinstance(outcome, Success)
    assert outcome.status_code == 200
    assert b"<title>Example Domain</title>" in outcome.content
    assert outcome.encoding == "utf-8"
    assert upstream.request_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("url, status_code", [("https://example.com/404", 404), ("https://example.com/500", 500)])
async def test_non_200_is_http_error(upstream, url, status_code):
    client, fetcher = make_fetcher(upstream.handler)
    async with client:
        outcome = await fetcher.fetch(url)

    assert outcome == HttpError(status_code=status_code)
    assert upstream.request_count == 1


@pytest.mark.asyncio
async def test_transport_error_is_network_failure(upstream):
    client, fetcher = make_fetcher(upstream.handler)
    async with client:
        outcome = await fetcher.fetch("https://example.com/offline")

    assert isinstance(outcome, NetworkFailure)
    assert "ConnectError" in outcome.reason


@pytest.mark.asyncio
async def test_timeout_is_network_failure():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client, fetcher = make_fetcher(handler)
    async with client:
        outcome = await fetcher.fetch("https://example.com/slow")

    assert isinstance(outcome, NetworkFailure)
    assert "ReadTimeout" in outcome.reason


@pytest.mark.asyncio
async def test_redirects_are_followed():
    def handler(request):
        if request.url.path == "/old":
            return httpx.Response(301, headers={"Location": "https://example.com/new"})
        return httpx.Response(200, text="<title>New</title>")

    client, fetcher = make_fetcher(handler)
    async with client:
        outcome = await fetcher.fetch("https://example.com/old")

    assert isinstance(outcome, Success)
    assert outcome.url == "https://example.com/new"


@pytest.mark.asyncio
async def test_redirect_loop_is_network_failure():
    def handler(request):
        return httpx.Response(302, headers={"Location": str(request.url)})

    client, fetcher = make_fetcher(handler)
    async with client:
        outcome = await fetcher.fetch("https://example.com/loop")

    assert isinstance(outcome, NetworkFailure)
    assert "TooManyRedirects" in outcome.reason


@pytest.mark.asyncio
async def test_body_is_truncated_at_max_bytes():
    def handler(request):
        return httpx.Response(200, content=b"x" * 5000)

    client, fetcher = make_fetcher(handler, max_bytes=1024)
    async with client:
        outcome = await fetcher.fetch("https://example.com/big")

    assert isinstance(outcome, Success)
    assert len(outcome.content) == 1024


@pytest.mark.asyncio
async def test_options_headers_are_sent():
    seen = {}

    def handler(request):
        seen["ua"] = request.headers.get("User-Agent")
        return httpx.Response(200, text="")

    client, fetcher = make_fetcher(handler)
    options = fetcher.defaults.with_headers(**{"User-Agent": "linkmeta-test"})
    async with client:
        await fetcher.fetch("https://example.com", options)

    assert seen["ua"] == "linkmeta-test"


@pytest.mark.asyncio
async def test_redirect_to_private_address_is_refused():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        if request.url.host == "example.com":
            return httpx.Response(302, headers={"Location": "http://169.254.169.254/latest/meta-data"})
        return httpx.Response(200, text="<title>SECRET internal</title>")

    client, fetcher = make_fetcher(handler)
    async with client:
        outcome = await fetcher.fetch("https://example.com/r")

    assert isinstance(outcome, NetworkFailure)
    assert "Redirect blocked" in outcome.reason
    assert seen == ["https://example.com/r"]


@pytest.mark.asyncio
async def test_missing_header_charset_leaves_bytes_undecoded():
    def handler(request):
        return httpx.Response(
            200,
            content='<meta charset="iso-8859-1"><title>estará</title>'.encode("latin-1"),
            headers={"Content-Type": "text/html"},
        )

    client, fetcher = make_fetcher(handler)
    async with client:
        outcome = await fetcher.fetch("https://example.com/latin")

    assert isinstance(outcome, Success)
    assert outcome.encoding is None
    assert "estará".encode("latin-1") in outcome.content
