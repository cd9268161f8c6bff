from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

DATA_DIR = Path(__file__).resolve().parent / "data"


def load_html(name: str) -> str:
    return (DATA_DIR / name).read_text(encoding="utf-8")


class FakeUpstream:
    """Stand-in for the web: canned responses per URL, counting every request."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.request_count = 0
        self.requested: list[str] = []

    def add_html(self, url: str, html: str, status_code: int = 200) -> None:
        self.routes[url] = lambda request: httpx.Response(
            status_code, text=html, headers={"Content-Type": "text/html; charset=utf-8"}
        )

    def add_status(self, url: str, status_code: int) -> None:
        self.routes[url] = lambda request: httpx.Response(status_code)

    def add_error(self, url: str, exc: type[httpx.TransportError] = httpx.ConnectError) -> None:
        def raise_error(request: httpx.Request) -> httpx.Response:
            raise exc("Could not connect", request=request)

        self.routes[url] = raise_error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.request_count += 1
        url = str(request.url)
        self.requested.append(url)
        route = self.routes.get(url) or self.routes.get(url.rstrip("/"))
        if route is None:
            raise httpx.ConnectError("Name or service not known", request=request)
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def upstream() -> FakeUpstream:
    fake = FakeUpstream()
    fake.add_html("https://example.com", load_html("example.com.html"))
    fake.add_html("https://amp.dev", load_html("amp.dev.html"))
    fake.add_html("https://example.com/characters", load_html("characters.example.com.html"))
    fake.add_html("https://example.com/empty", "<html></html>")
    fake.add_status("https://example.com/404", 404)
    fake.add_status("https://example.com/500", 500)
    fake.add_error("https://example.com/offline")
    return fake
