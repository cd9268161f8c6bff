"""Errors raised while resolving link metadata.

Every error carries the REST error ``code`` and HTTP status it is rendered
with at the API boundary (see ``main.link_error_handler``).
"""

from __future__ import annotations

from fastapi import status

from .schemas import LinkMetadata


class LinkError(Exception):
    code = "rest_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Link lookup failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message, "data": {"status": self.status_code}}


class InvalidLinkError(LinkError):
    """The URL is empty or not a fetchable absolute http(s) URL."""

    code = "rest_invalid_param"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid parameter(s): url"


class UpstreamNotFound(LinkError):
    """The target answered 404. Resolves to empty metadata at the boundary."""

    code = "rest_link_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "The linked page was not found."

    def __init__(self, url: str, message: str | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.metadata = LinkMetadata()


class UpstreamUnavailable(LinkError):
    """Any other non-200 status or a transport failure."""

    code = "rest_invalid_url"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Invalid URL"

    def __init__(self, url: str, reason: str = "", message: str | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.reason = reason


class NotAuthenticatedError(LinkError):
    code = "rest_forbidden"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Sorry, you are not allowed to process links."


class ForbiddenError(LinkError):
    code = "rest_forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Sorry, you are not allowed to process links."
