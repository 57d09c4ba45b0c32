"""Exception hierarchy for Wikirate API interactions.

Every error raised by this package derives from `WikirateClientError`. Local
validation failures, rejected HTTP methods and network failures raise the base
class (or `IllegalHttpMethodError`); non-2xx responses raise an `HTTPError`
subclass chosen by status code.
"""

from __future__ import annotations

import httpx


class WikirateClientError(Exception):
    """Base exception for all Wikirate client errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class IllegalHttpMethodError(WikirateClientError):
    """Raised when a request uses a method other than get, post or delete."""


class HTTPError(WikirateClientError):
    """A non-2xx response returned by the Wikirate API."""

    def __init__(self, response: httpx.Response, body: str | None = None) -> None:
        self.response = response
        self.status_code = response.status_code
        self.body = body
        super().__init__(f"HTTP {response.status_code}: {response.reason_phrase}")


class BadRequestError(HTTPError):
    """HTTP 400."""


class UnauthorizedError(HTTPError):
    """HTTP 401."""


class ForbiddenError(HTTPError):
    """HTTP 403."""


class NotFoundError(HTTPError):
    """HTTP 404."""


class TooManyRequestsError(HTTPError):
    """HTTP 429."""


class ServerError(HTTPError):
    """HTTP 5xx."""


STATUS_ERRORS: dict[int, type[HTTPError]] = {
    httpx.codes.BAD_REQUEST: BadRequestError,
    httpx.codes.UNAUTHORIZED: UnauthorizedError,
    httpx.codes.FORBIDDEN: ForbiddenError,
    httpx.codes.NOT_FOUND: NotFoundError,
    httpx.codes.TOO_MANY_REQUESTS: TooManyRequestsError,
}


def error_for_status(response: httpx.Response) -> HTTPError | None:
    """Return the typed error for ``response``, or ``None`` when it succeeded."""
    status = response.status_code
    if 200 <= status < 300:
        return None

    error_class = STATUS_ERRORS.get(status)
    if error_class is None:
        error_class = ServerError if status >= 500 else HTTPError
    return error_class(response, response.text)
