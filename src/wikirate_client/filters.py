"""Translate keyword filters into Wikirate's bracketed query parameters."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from loguru import logger

ParamValue = str | list[str]

PAGINATION: tuple[str, ...] = ("limit", "offset")

RANGE_KEYS = frozenset({"value_from", "value_to"})
IDENTITY_PAIR_KEYS = frozenset(
    {"subject_company_name", "object_company_name", "object_company_id", "subject_company_id"}
)
# Filters holding literal numbers; everything else numeric is a card id.
LITERAL_NUMBER_KEYS = frozenset({"value", "year"})

COMPANY_FILTERS = ("name", "company_category", "company_group", "country", "company_identifier")
TOPIC_FILTERS = ("name", "bookmark")
METRIC_FILTERS = (
    "bookmark",
    "topic",
    "designer",
    "published",
    "metric_type",
    "value_type",
    "metric_keyword",
    "research_policy",
    "dataset",
)
NAME_FILTERS = ("name",)
SOURCE_FILTERS = (
    "name",
    "wikirate_title",
    "topic",
    "report_type",
    "year",
    "wikirate_link",
    "company",
)
ANSWER_FILTERS = (
    "year",
    "status",
    "company_group",
    "country",
    "value",
    "value_from",
    "value_to",
    "updated",
    "company",
    "company_keyword",
    "dataset",
    "updater",
    "source",
    "verification",
    "bookmark",
    "published",
    "metric_name",
    "metric_keyword",
    "designer",
    "metric_type",
    "company_identifier",
    "metric",
    "sort_by",
    "sort_dir",
)
RELATIONSHIP_FILTERS = (
    "year",
    "status",
    "company_group",
    "country",
    "value",
    "value_from",
    "value_to",
    "updated",
    "updater",
    "verification",
    "project",
    "bookmark",
    "published",
    "object_company_name",
    "subject_company_name",
    "object_company_id",
    "subject_company_id",
)
PROJECT_FILTERS = ("name", "wikirate_status")
DATASET_FILTERS = ("name", "topic")


def stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _card_token(value: Any) -> str:
    return f"~{value}" if _is_number(value) else stringify(value)


def _encode_filter(key: str, arg: Any, params: dict[str, Any]) -> None:
    if key in RANGE_KEYS:
        bound = key.rsplit("_", 1)[-1]
        params[f"filter[value][{bound}]"] = stringify(arg)
    elif key in IDENTITY_PAIR_KEYS:
        params[f"filter[{key}][]"] = arg
    elif key == "company":
        if isinstance(arg, (list, tuple)):
            params.setdefault("filter[company][]", []).extend(_card_token(item) for item in arg)
        else:
            params["filter[company][]"] = _card_token(arg)
    elif key == "company_identifier":
        if isinstance(arg, (list, tuple)):
            params["filter[company_identifier[value]]"] = ", ".join(stringify(item) for item in arg)
        else:
            params["filter[company_identifier[value]]"] = stringify(arg)
    elif isinstance(arg, (list, tuple)):
        items = params.setdefault(f"filter[{key}][]", [])
        for item in arg:
            items.append(stringify(item) if key == "year" else _card_token(item))
    elif key in LITERAL_NUMBER_KEYS:
        params[f"filter[{key}]"] = stringify(arg)
    else:
        params[f"filter[{key}]"] = _card_token(arg)


def build_filters(
    kwargs: Mapping[str, Any],
    endpoint_params: Iterable[str],
    filters: Iterable[str],
) -> dict[str, Any]:
    """Encode ``kwargs`` into query parameters.

    Args:
        kwargs: Caller supplied filters; ``None`` values are skipped.
        endpoint_params: Names passed through untouched (pagination, sorting).
        filters: Names encoded as ``filter[...]`` parameters.

    Returns:
        Mapping of parameter name to a string or list of strings. Unknown
        keys are kept as plain parameters so newer server-side filters
        still work.
    """
    endpoint_names = set(endpoint_params)
    filter_names = set(filters)

    params: dict[str, Any] = {}
    for key, arg in kwargs.items():
        if arg is None:
            continue
        if key in filter_names:
            _encode_filter(key, arg, params)
            continue
        if key not in endpoint_names:
            logger.warning(f"Unexpected parameter '{key}' passed through to the Wikirate API")
        if isinstance(arg, (list, tuple)):
            params[key] = [stringify(item) for item in arg]
        else:
            params[key] = stringify(arg)
    return params
