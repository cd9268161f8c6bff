"""
Resolve link previews from the command line, or run the API server.

Usage:
    python -m linkmeta.cli https://example.com [more URLs ...]
    python -m linkmeta.cli --serve --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence

import httpx

from .config import Settings, get_settings
from .errors import InvalidLinkError, UpstreamNotFound, UpstreamUnavailable
from .log import setup_logging
from .main import build_client, build_resolver
from .urls import validate_url


async def resolve_urls(
    urls: Sequence[str],
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[dict[str, object]]:
    results: list[dict[str, object]] = []
    async with build_client(settings, transport) as client:
        resolver = build_resolver(settings, client)
        for url in urls:
            try:
                checked = validate_url(
                    url,
                    allowed_ports=settings.allowed_ports,
                    allow_private_hosts=settings.allow_private_hosts,
                )
                metadata = await resolver.resolve(checked)
            except UpstreamNotFound as e:
                results.append({"url": url, **e.metadata.model_dump()})
            except (InvalidLinkError, UpstreamUnavailable) as e:
                results.append({"url": url, "error": e.to_payload()})
            else:
                results.append({"url": url, **metadata.model_dump()})
    return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="linkmeta", description="Fetch link preview metadata.")
    parser.add_argument("urls", nargs="*", help="URLs to resolve")
    parser.add_argument("--serve", action="store_true", help="run the HTTP API instead")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: Sequence[str] | None = None, transport: httpx.AsyncBaseTransport | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    if args.serve:
        import uvicorn

        uvicorn.run("linkmeta.main:app", host=args.host, port=args.port)
        return 0

    if not args.urls:
        build_parser().print_usage(sys.stderr)
        return 2

    setup_logging(settings.log_level)
    results = asyncio.run(resolve_urls(args.urls, settings, transport))
    for result in results:
        print(json.dumps(result, ensure_ascii=False))
    return 1 if any("error" in result for result in results) else 0


if __name__ == "__main__":
    sys.exit(main())
