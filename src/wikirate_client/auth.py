"""Credentials and configuration for the Wikirate client."""

from __future__ import annotations

from pathlib import Path
from typing import Any, cast

import httpx
from omegaconf import OmegaConf
from pydantic import BaseModel, Field, HttpUrl, model_validator

DEFAULT_API_URL = "https://wikirate.org/"


def _search_paths(raw: Path) -> tuple[Path, ...]:
    if raw.is_absolute():
        return (raw,)
    package_root = Path(__file__).resolve().parents[2]
    return (Path.cwd() / raw, package_root / raw)


def _resolve_secrets_location(location: Path | str) -> Path:
    """Find exactly one secrets file, looking in the working directory then the checkout."""
    raw = Path(location).expanduser()
    searched = _search_paths(raw)
    found = list(dict.fromkeys(path.resolve() for path in searched if path.exists()))
    if not found:
        checked = "\n".join(str(path) for path in searched)
        raise FileNotFoundError(f"Secrets file not found: {raw}\nChecked:\n{checked}")
    if len(found) > 1:
        joined = ", ".join(str(path) for path in found)
        raise RuntimeError(f"Multiple secrets files found for {raw}. Candidates: {joined}")
    return found[0]


def _read_secrets(location: Path) -> dict[str, str]:
    """Upper-case the keys of a YAML secrets mapping and drop empty values."""
    config = OmegaConf.to_container(OmegaConf.load(location), resolve=True)
    if not isinstance(config, dict):
        raise ValueError("Secrets file must contain a mapping of credential keys.")
    return {str(key).upper(): str(value) for key, value in config.items() if value}


class Credentials(BaseModel):
    """Validated Wikirate API credentials."""

    api_key: str = Field(
        min_length=1,
        description="Wikirate API key, sent as the X-API-Key header",
    )
    base_url: HttpUrl = Field(
        default=cast(HttpUrl, DEFAULT_API_URL),
        validate_default=True,
        description="Root URL every endpoint path is resolved against",
        examples=["https://wikirate.org/", "https://dev.wikirate.org/"],
    )
    username: str | None = Field(
        default=None,
        description="HTTP Basic username (staging servers sit behind basic auth)",
    )
    password: str | None = Field(default=None, description="HTTP Basic password")

    @model_validator(mode="after")
    def _basic_auth_is_paired(self) -> Credentials:
        if (self.username is None) != (self.password is None):
            raise ValueError("Basic auth requires both `username` and `password`.")
        return self

    @property
    def api_root(self) -> str:
        """Base URL guaranteed to end in a slash."""
        return str(self.base_url).rstrip("/") + "/"

    @property
    def basic_auth(self) -> httpx.BasicAuth | None:
        if self.username is None or self.password is None:
            return None
        return httpx.BasicAuth(self.username, self.password)

    @classmethod
    def from_file(cls, path: Path | str = "conf/secrets.yml") -> Credentials:
        """Create credentials from a YAML secrets file (``conf/secrets.yml`` by default)."""
        secrets = _read_secrets(_resolve_secrets_location(path))
        if "WIKIRATE_API_KEY" not in secrets:
            raise ValueError("Missing Wikirate secrets: WIKIRATE_API_KEY")

        kwargs: dict[str, Any] = {
            "api_key": secrets["WIKIRATE_API_KEY"],
            "username": secrets.get("WIKIRATE_USERNAME"),
            "password": secrets.get("WIKIRATE_PASSWORD"),
        }
        if "WIKIRATE_API_URL" in secrets:
            kwargs["base_url"] = secrets["WIKIRATE_API_URL"]
        return cls(**kwargs)
