"""Link preview metadata extraction using HTML parsing."""

from __future__ import annotations

import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .schemas import LinkMetadata

_HEAD_END_RE = re.compile(r"</head\s*>", re.IGNORECASE)
_HEAD_END_BYTES_RE = re.compile(rb"</head\s*>", re.IGNORECASE)

TITLE_SOURCES = ("og:title", "twitter:title")
IMAGE_SOURCES = ("og:image", "twitter:image")
DESCRIPTION_SOURCES = ("og:description", "twitter:description", "description")


def _strip_body(html: str | bytes) -> str | bytes:
    # Preview tags live in <head>; everything after it is never inspected.
    pattern = _HEAD_END_BYTES_RE if isinstance(html, bytes) else _HEAD_END_RE
    match = pattern.search(html)
    if match:
        return html[: match.start()]
    return html


class MetadataExtractor:
    """Reads title, image and description from an HTML document without rendering it.

    Raw bytes are decoded by BeautifulSoup: ``encoding`` (the HTTP header
    charset) wins when given, otherwise ``<meta charset>`` is detected.
    """

    parser = "html.parser"

    def extract(
        self,
        html: str | bytes | None,
        base_url: str | None = None,
        encoding: str | None = None,
    ) -> LinkMetadata:
        html = _strip_body(html or "")
        if not html.strip():
            return LinkMetadata()

        if isinstance(html, bytes):
            soup = BeautifulSoup(html, self.parser, from_encoding=encoding)
        else:
            soup = BeautifulSoup(html, self.parser)
        meta = self._collect_meta(soup)

        title = self._first(meta, TITLE_SOURCES)
        if not title and soup.title:
            title = soup.title.get_text().strip()

        image = self._first(meta, IMAGE_SOURCES)
        if image and base_url and not image.startswith(("http://", "https://")):
            image = urljoin(base_url, image)

        description = self._first(meta, DESCRIPTION_SOURCES)

        return LinkMetadata(title=title, image=image, description=description)

    @staticmethod
    def _collect_meta(soup: BeautifulSoup) -> dict[str, str]:
        """Map each meta property/name to the content of its first occurrence."""
        found: dict[str, str] = {}
        for tag in soup.find_all("meta"):
            content = tag.get("content")
            if content is None:
                continue
            for attr in ("property", "name"):
                key = tag.get(attr)
                if not key:
                    continue
                key = str(key).strip().lower()
                if key not in found:
                    found[key] = str(content).strip()
        return found

    @staticmethod
    def _first(meta: dict[str, str], sources: tuple[str, ...]) -> str:
        for source in sources:
            value = meta.get(source)
            if value:
                return value
        return ""
