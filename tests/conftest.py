"""Pytest configuration and shared fixtures.

This file ensures that:
- `src/` is importable without an editable install
- tests can fake the Wikirate API with `httpx.MockTransport`
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import parse_qs

import httpx
import pytest

# Ensure src directory is in path for imports
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from wikirate_client.auth import Credentials  # noqa: E402
from wikirate_client.client import WikirateClient  # noqa: E402

T = TypeVar("T")


class FakeWikirateApi:
    """Record requests and answer each with a canned JSON response.

    Paths listed in `redirects` answer 302 with the mapped `Location` instead.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.payload: Any = {}
        self.text: str | None = None
        self.redirects: dict[str, str] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path in self.redirects:
            location = self.redirects[request.url.path]
            return httpx.Response(302, headers={"Location": location}, request=request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text, request=request)
        return httpx.Response(self.status_code, json=self.payload, request=request)

    @property
    def last(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]

    def last_form(self) -> dict[str, list[str]]:
        """Decode the last form-encoded request body."""
        return parse_qs(self.last.content.decode(), keep_blank_values=True)

    def run(
        self,
        credentials: Credentials,
        scenario: Callable[[WikirateClient], Awaitable[T]],
    ) -> T:
        async def main() -> T:
            transport = httpx.MockTransport(self)
            async with httpx.AsyncClient(transport=transport) as http_client:
                return await scenario(WikirateClient(http_client, credentials))

        return asyncio.run(main())


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(api_key="test-key")


@pytest.fixture
def api() -> FakeWikirateApi:
    return FakeWikirateApi()
