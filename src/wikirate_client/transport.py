"""HTTP transport for the Wikirate API."""

from __future__ import annotations

import contextlib
import re
from collections.abc import Mapping
from pathlib import Path
from typing import IO, Any

import httpx
from loguru import logger

from .auth import Credentials
from .exceptions import IllegalHttpMethodError, WikirateClientError, error_for_status
from .filters import stringify

ALLOWED_METHODS = frozenset({"get", "post", "delete"})
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded;charset=UTF-8"

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)

FileValue = str | Path | bytes | IO[bytes]


def format_path(path: str, base: str) -> str:
    """Resolve ``path`` against the API root.

    Absolute URLs pass through unchanged. A leading slash is relative to the
    API root, not the host, so ``/Companies.json`` lands under any base path.
    """
    if path.startswith(base) or _ABSOLUTE_URL.match(path):
        return path
    return str(httpx.URL(base).join(path.lstrip("/")))


def _encode_params(params: Mapping[str, Any]) -> dict[str, str | list[str]]:
    encoded: dict[str, str | list[str]] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            encoded[key] = [stringify(item) for item in value if item is not None]
        else:
            encoded[key] = stringify(value)
    return encoded


def _open_files(
    files: Mapping[str, FileValue], stack: contextlib.ExitStack
) -> dict[str, Any]:
    """Open path-valued uploads on ``stack``; other values are caller owned."""
    opened: dict[str, Any] = {}
    for field, value in files.items():
        if isinstance(value, (str, Path)):
            file_path = Path(value)
            try:
                handle = stack.enter_context(file_path.open("rb"))
            except OSError as exc:
                raise WikirateClientError(f"Cannot open upload file {file_path}: {exc}") from exc
            opened[field] = (file_path.name, handle)
        else:
            opened[field] = value
    return opened


class WikirateTransport:
    """Send authenticated requests and raise typed errors for failures."""

    def __init__(self, client: httpx.AsyncClient, credentials: Credentials) -> None:
        self._client = client
        self._credentials = credentials

    @property
    def base_url(self) -> str:
        return self._credentials.api_root

    @property
    def headers(self) -> dict[str, str]:
        return {"X-API-Key": self._credentials.api_key}

    async def send(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        files: Mapping[str, FileValue] | None = None,
    ) -> httpx.Response:
        """Issue one request and return the response when it is 2xx.

        GET params go to the query string. POST and DELETE params are
        form-encoded, or sent as multipart when ``files`` are attached. Redirects
        are followed, so the returned response is the final one. Files
        given as paths are opened here and closed before this returns, whether
        the request succeeded or not.

        Raises:
            IllegalHttpMethodError: ``method`` is not get, post or delete.
            WikirateClientError: The request could not be sent.
            HTTPError: The API answered with a non-2xx status (a subclass
                matching the status is raised).
        """
        verb = method.strip().lower()
        if verb not in ALLOWED_METHODS:
            raise IllegalHttpMethodError(
                f"The '{method}' method is not accepted by the Wikirate client."
            )

        url = format_path(path, self.base_url)
        request_headers = {**self.headers, **(headers or {})}
        fields = _encode_params(params or {})

        with contextlib.ExitStack() as stack:
            request_kwargs: dict[str, Any] = {}
            if verb == "get":
                request_kwargs["params"] = fields or None
            elif files:
                # httpx derives the multipart content type and boundary
                request_kwargs["data"] = fields
                request_kwargs["files"] = _open_files(files, stack)
            else:
                request_kwargs["data"] = fields
                request_headers["Content-Type"] = FORM_CONTENT_TYPE

            basic_auth = self._credentials.basic_auth
            if basic_auth is not None:
                request_kwargs["auth"] = basic_auth

            logger.debug(f"Wikirate request: {verb.upper()} {url}")
            try:
                response = await self._client.request(
                    verb.upper(),
                    url,
                    headers=request_headers,
                    follow_redirects=True,
                    **request_kwargs,
                )
            except httpx.RequestError as exc:
                raise WikirateClientError(f"Failed to send request: {exc}") from exc

        logger.debug(f"Wikirate response status: {response.status_code}")
        error = error_for_status(response)
        if error is not None:
            raise error
        return response

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> httpx.Response:
        return await self.send("get", path, params=params)

    async def post(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        files: Mapping[str, FileValue] | None = None,
    ) -> httpx.Response:
        return await self.send("post", path, params=params, files=files)

    async def delete(self, path: str, params: Mapping[str, Any] | None = None) -> httpx.Response:
        return await self.send("delete", path, params=params)
