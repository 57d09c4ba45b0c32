"""Card identifier and endpoint helpers for the Wikirate API."""

from __future__ import annotations

import re

_DISALLOWED_RUN = re.compile(r"[^A-Za-z0-9_+~]+")
_NUMERIC = re.compile(r"[0-9]+")


def generate_url_key(value: str | int) -> str:
    """Return the url key Wikirate uses for a card name.

    Every run of characters outside ``[A-Za-z0-9_+~]`` collapses to a single
    underscore. ``+`` is kept so compound names stay joined.
    """
    return _DISALLOWED_RUN.sub("_", str(value))


def is_numeric_id(value: str | int) -> bool:
    return isinstance(value, (str, int)) and _NUMERIC.fullmatch(str(value)) is not None


def build_card_identifier(card: str | int) -> str:
    """Return ``~<id>`` for numeric ids and the url key for names."""
    if is_numeric_id(card):
        return f"~{card}"
    return generate_url_key(card)


def url_key(identifier: str | int) -> str:
    """Like `build_card_identifier` but only integers count as ids."""
    if isinstance(identifier, int) and not isinstance(identifier, bool):
        return f"~{identifier}"
    return generate_url_key(identifier)


def construct_endpoint(entity_id: str | int | None, entity_type: str) -> str:
    """Return the collection endpoint, scoped under ``entity_id`` when given."""
    if entity_id is not None:
        return f"{build_card_identifier(entity_id)}+{entity_type}.json"
    return f"{entity_type}.json"


def join_card_name(*parts: str | int) -> str:
    return "+".join(str(part) for part in parts)
