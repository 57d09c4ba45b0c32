"""Tests for HTTP status classification."""

from __future__ import annotations

import httpx
import pytest

from wikirate_client.exceptions import (
    BadRequestError,
    ForbiddenError,
    HTTPError,
    NotFoundError,
    ServerError,
    TooManyRequestsError,
    UnauthorizedError,
    WikirateClientError,
    error_for_status,
)


def _response(status: int, text: str = "") -> httpx.Response:
    request = httpx.Request("GET", "https://wikirate.org/Companies.json")
    return httpx.Response(status, text=text, request=request)


@pytest.mark.parametrize(  # type: ignore[misc]
    ("status", "error_class"),
    [
        (400, BadRequestError),
        (401, UnauthorizedError),
        (403, ForbiddenError),
        (404, NotFoundError),
        (429, TooManyRequestsError),
        (500, ServerError),
        (503, ServerError),
    ],
)
def test_error_for_status_classifies(status: int, error_class: type[HTTPError]) -> None:
    error = error_for_status(_response(status, "boom"))

    assert type(error) is error_class
    assert error.status_code == status
    assert error.body == "boom"
    assert isinstance(error, WikirateClientError)


def test_other_statuses_get_generic_http_error() -> None:
    error = error_for_status(_response(418, "teapot"))

    assert type(error) is HTTPError
    assert str(error) == "HTTP 418: I'm a teapot"


@pytest.mark.parametrize("status", [200, 201, 204, 299])  # type: ignore[misc]
def test_success_statuses_are_not_errors(status: int) -> None:
    assert error_for_status(_response(status)) is None
