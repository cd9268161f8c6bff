"""URL cleanup and validation performed before any network access."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Iterable
from urllib.parse import urlsplit

from .errors import InvalidLinkError

ALLOWED_SCHEMES = ("http", "https")
DEFAULT_ALLOWED_PORTS = (80, 443, 8080)

_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_TLD_RE = re.compile(r"^(?:[a-z]{2,63}|xn--[a-z0-9-]{1,59})$")


def normalize_url(url: str) -> str:
    """Return the cache key for a URL: trimmed, without trailing slashes."""
    return url.strip().rstrip("/\\")


def _is_dns_name(host: str) -> bool:
    if host == "localhost":
        return True
    labels = host.rstrip(".").split(".")
    if len(labels) < 2:
        return False
    if not _TLD_RE.match(labels[-1]):
        return False
    return all(_LABEL_RE.match(label) for label in labels)


def _parse_ip(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return None


def validate_url(
    url: str | None,
    *,
    allowed_ports: Iterable[int] = DEFAULT_ALLOWED_PORTS,
    allow_private_hosts: bool = False,
) -> str:
    """
    Check that ``url`` is an absolute http(s) URL that is safe to fetch.

    Returns the trimmed URL. Raises InvalidLinkError otherwise.
    """
    if url is None or not url.strip():
        raise InvalidLinkError("Invalid parameter(s): url (a URL is required)")

    url = url.strip()
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidLinkError(f"Invalid parameter(s): url ({e})") from e

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidLinkError("Invalid parameter(s): url (only http and https are supported)")

    netloc = parts.netloc
    if not netloc:
        raise InvalidLinkError("Invalid parameter(s): url (missing host)")
    if "@" in netloc:
        raise InvalidLinkError("Invalid parameter(s): url (credentials are not allowed)")
    if netloc.endswith(":"):
        raise InvalidLinkError("Invalid parameter(s): url (empty port)")

    try:
        port = parts.port
    except ValueError as e:
        raise InvalidLinkError(f"Invalid parameter(s): url ({e})") from e
    if port is not None and port not in set(allowed_ports):
        raise InvalidLinkError(f"Invalid parameter(s): url (port {port} is not allowed)")

    host = (parts.hostname or "").lower()
    if not host:
        raise InvalidLinkError("Invalid parameter(s): url (missing host)")

    ip = _parse_ip(host)
    if ip is not None:
        if not allow_private_hosts and (
            ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved or ip.is_multicast
        ):
            raise InvalidLinkError("Invalid parameter(s): url (private address)")
        return url

    if not _is_dns_name(host):
        raise InvalidLinkError(f"Invalid parameter(s): url (invalid host {host!r})")
    if host == "localhost" and not allow_private_hosts:
        raise InvalidLinkError("Invalid parameter(s): url (private address)")

    return url
