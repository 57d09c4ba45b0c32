"""Asynchronous client for the Wikirate REST API."""

from importlib import metadata

from .auth import Credentials
from .client import Card, WikirateClient, open_client
from .exceptions import (
    BadRequestError,
    ForbiddenError,
    HTTPError,
    IllegalHttpMethodError,
    NotFoundError,
    ServerError,
    TooManyRequestsError,
    UnauthorizedError,
    WikirateClientError,
)
from .identifiers import build_card_identifier, construct_endpoint, generate_url_key
from .transport import WikirateTransport


def _resolve_version() -> str:
    """Return the installed distribution version or fall back to the project default."""

    try:
        return metadata.version("wikirate-client")
    except metadata.PackageNotFoundError:
        return "0.1.0"


__version__ = _resolve_version()

__all__ = [
    "BadRequestError",
    "Card",
    "Credentials",
    "ForbiddenError",
    "HTTPError",
    "IllegalHttpMethodError",
    "NotFoundError",
    "ServerError",
    "TooManyRequestsError",
    "UnauthorizedError",
    "WikirateClient",
    "WikirateClientError",
    "WikirateTransport",
    "__version__",
    "build_card_identifier",
    "construct_endpoint",
    "generate_url_key",
    "open_client",
]
