"""Wikirate API client.

Every operation is a thin composition: build the card identifier or endpoint,
encode the filters, send the request and decode the JSON body. Records are
returned as plain dictionaries; the Wikirate schema is open ended and the
client does not model it.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Literal

import httpx
from loguru import logger

from .auth import Credentials
from .exceptions import WikirateClientError
from .filters import (
    ANSWER_FILTERS,
    COMPANY_FILTERS,
    DATASET_FILTERS,
    METRIC_FILTERS,
    NAME_FILTERS,
    PAGINATION,
    PROJECT_FILTERS,
    RELATIONSHIP_FILTERS,
    SOURCE_FILTERS,
    TOPIC_FILTERS,
    build_filters,
    stringify,
)
from .identifiers import (
    build_card_identifier,
    construct_endpoint,
    generate_url_key,
    join_card_name,
    url_key,
)
from .transport import WikirateTransport

Card = dict[str, Any]
EntityKind = Literal["Company", "Metric", "Topic", "CompanyGroup", "ResearchGroup", "Project"]

JSON_FORMAT: dict[str, str] = {"format": "json", "success[format]": "json"}
SOURCE_FILE_FIELD = "card[subcards][+file][file]"

COMPANY_FIELDS = (
    "open_supply_id",
    "wikipedia",
    "website",
    "open_corporates_id",
    "international_securities_identification_number",
    "legal_entity_identifier",
    "sec_central_index_key",
    "uk_company_number",
    "australian_business_number",
)
METRIC_FIELDS = (
    "question",
    "about",
    "methodology",
    "unit",
    "topics",
    "value_options",
    "research_policy",
    "report_type",
)
ANSWER_KEY_FIELDS = ("metric_designer", "metric_name", "company", "year")
RELATIONSHIP_KEY_FIELDS = (
    "metric_designer",
    "metric_name",
    "subject_company",
    "year",
    "object_company",
)


def _join_lines(value: Any) -> str:
    """Render a sub-card value; lists become one entry per line."""
    if isinstance(value, (list, tuple)):
        return "\n".join(stringify(item) for item in value)
    return stringify(value)


def _missing(fields: Mapping[str, Any], required: Iterable[str]) -> list[str]:
    return [key for key in required if fields.get(key) is None]


def _require(fields: Mapping[str, Any], required: Sequence[str]) -> None:
    if missing := _missing(fields, required):
        raise WikirateClientError(
            f"Invalid set of params! Missing required params: {', '.join(missing)}"
        )


def _subcard(name: str) -> str:
    return f"card[subcards][+{name}]"


def _company_token(company: Any) -> str:
    if isinstance(company, int) and not isinstance(company, bool):
        return f"~{company}"
    return stringify(company)


def _check_file(file: str | Path) -> Path:
    path = Path(file)
    if not path.is_file():
        raise WikirateClientError(f"File not found at path: {path}")
    return path


class WikirateClient:
    """Typed access to the Wikirate REST API."""

    def __init__(self, client: httpx.AsyncClient, credentials: Credentials) -> None:
        self._transport = WikirateTransport(client, credentials)

    @property
    def transport(self) -> WikirateTransport:
        return self._transport

    async def _fetch(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        response = await self._transport.get(path, params)
        return response.json()

    async def _fetch_items(self, path: str, params: Mapping[str, Any]) -> list[Card]:
        payload = await self._fetch(path, params)
        if not isinstance(payload, dict):
            return []
        return list(payload.get("items") or [])

    async def _fetch_content(self, path: str) -> str:
        payload = await self._fetch(path)
        if not isinstance(payload, dict):
            return ""
        return str(payload.get("content") or "")

    async def _submit(
        self,
        path: str,
        params: dict[str, Any],
        files: Mapping[str, Any] | None = None,
    ) -> Card:
        response = await self._transport.post(path, {**params, **JSON_FORMAT}, files)
        card: Card = response.json()
        logger.info(f"Wikirate {path} succeeded for {params.get('card[name]', path)}")
        return card

    # Reads

    async def get_company(self, identifier: str | int) -> Card:
        return await self._fetch(f"/{build_card_identifier(identifier)}.json")

    async def get_companies(self, identifier: str | int | None = None, **filters: Any) -> list[Card]:
        """List companies, optionally scoped under a card such as a company group."""
        params = build_filters(filters, PAGINATION, COMPANY_FILTERS)
        return await self._fetch_items(f"/{construct_endpoint(identifier, 'Companies')}", params)

    async def get_topic(self, identifier: str | int) -> Card:
        return await self._fetch(f"/{build_card_identifier(identifier)}.json")

    async def get_topics(self, identifier: str | int | None = None, **filters: Any) -> list[Card]:
        params = build_filters(filters, PAGINATION, TOPIC_FILTERS)
        return await self._fetch_items(f"/{construct_endpoint(identifier, 'Topics')}", params)

    async def get_metric(
        self,
        identifier: str | int | None = None,
        metric_name: str | None = None,
        metric_designer: str | None = None,
    ) -> Card:
        """Fetch a metric by id or by its designer and name."""
        if identifier is not None:
            card_name = build_card_identifier(identifier)
        elif metric_name and metric_designer:
            card_name = join_card_name(
                build_card_identifier(metric_designer), build_card_identifier(metric_name)
            )
        else:
            raise WikirateClientError(
                "You must provide either `identifier` or both `metric_name` and `metric_designer`."
            )
        return await self._fetch(f"/{card_name}.json")

    async def get_metrics(self, identifier: str | int | None = None, **filters: Any) -> list[Card]:
        params = build_filters(filters, PAGINATION, METRIC_FILTERS)
        return await self._fetch_items(f"/{construct_endpoint(identifier, 'Metrics')}", params)

    async def get_research_group(self, identifier: str | int) -> Card:
        return await self._fetch(f"/{build_card_identifier(identifier)}.json")

    async def get_research_groups(self, **filters: Any) -> list[Card]:
        params = build_filters(filters, PAGINATION, NAME_FILTERS)
        return await self._fetch_items("/Research_Groups.json", params)

    async def get_company_group(self, identifier: str | int) -> Card:
        return await self._fetch(f"/{build_card_identifier(identifier)}.json")

    async def get_company_groups(self, **filters: Any) -> list[Card]:
        params = build_filters(filters, PAGINATION, NAME_FILTERS)
        return await self._fetch_items("/Company_Groups.json", params)

    async def get_source(self, identifier: str | int) -> Card:
        return await self._fetch(f"/{build_card_identifier(identifier)}.json")

    async def get_sources(self, **filters: Any) -> list[Card]:
        params = build_filters(filters, PAGINATION, SOURCE_FILTERS)
        return await self._fetch_items("/Sources.json", params)

    async def get_answer(self, identifier: str | int) -> Card:
        return await self._fetch(f"/{build_card_identifier(identifier)}.json")

    async def get_answers(
        self,
        metric_name: str | None = None,
        metric_designer: str | None = None,
        identifier: str | int | None = None,
        **filters: Any,
    ) -> list[Card]:
        """List answers of a metric (designer and name) or of any other card.

        Args:
            metric_name: Metric name, used together with ``metric_designer``.
            metric_designer: Metric designer.
            identifier: Card to scope the answers under when no metric is named,
                e.g. a company id.
            **filters: Answer filters (``year``, ``company``, ``value_from``...)
                plus ``limit``, ``offset`` and ``view``.
        """
        if metric_name and metric_designer:
            endpoint = construct_endpoint(join_card_name(metric_designer, metric_name), "Answers")
        else:
            endpoint = construct_endpoint(identifier, "Answers")
        params = build_filters(filters, (*PAGINATION, "view"), ANSWER_FILTERS)
        return await self._fetch_items(f"/{endpoint}", params)

    async def get_relationship(self, identifier: str | int) -> Card:
        return await self._fetch(f"/{build_card_identifier(identifier)}.json")

    async def get_relationships(
        self,
        metric_name: str | None = None,
        metric_designer: str | None = None,
        identifier: str | int | None = None,
        **filters: Any,
    ) -> list[Card]:
        if metric_name and metric_designer:
            endpoint = construct_endpoint(
                join_card_name(metric_designer, metric_name), "Relationships"
            )
        else:
            endpoint = construct_endpoint(identifier, "Relationships")
        params = build_filters(filters, PAGINATION, RELATIONSHIP_FILTERS)
        return await self._fetch_items(f"/{endpoint}", params)

    async def get_project(self, identifier: str | int) -> Card:
        return await self._fetch(f"/{url_key(identifier)}.json")

    async def get_projects(self, **filters: Any) -> list[Card]:
        params = build_filters(filters, PAGINATION, PROJECT_FILTERS)
        return await self._fetch_items("/Projects.json", params)

    async def get_dataset(self, identifier: str | int) -> Card:
        return await self._fetch(f"/{url_key(identifier)}.json")

    async def get_datasets(self, **filters: Any) -> list[Card]:
        params = build_filters(filters, PAGINATION, DATASET_FILTERS)
        return await self._fetch_items("/Datasets.json", params)

    async def get_region(self, identifier: str | int) -> Card:
        return await self._fetch(f"/{url_key(identifier)}.json")

    async def get_regions(self, **filters: Any) -> list[Card]:
        params = build_filters(filters, PAGINATION, ())
        return await self._fetch_items("/Region.json", params)

    async def search_by_name(self, entity: EntityKind, name: str, **filters: Any) -> list[Card]:
        """Search one kind of entity by name.

        Metrics are matched on ``metric_keyword``; every other kind on ``name``.
        """
        if entity == "Company":
            return await self.get_companies(**{**filters, "name": name})
        if entity == "Metric":
            return await self.get_metrics(**{**filters, "metric_keyword": name})
        if entity == "Topic":
            return await self.get_topics(**{**filters, "name": name})
        if entity == "CompanyGroup":
            return await self.get_company_groups(**{**filters, "name": name})
        if entity == "ResearchGroup":
            return await self.get_research_groups(**{**filters, "name": name})
        if entity == "Project":
            return await self.get_projects(**{**filters, "name": name})
        raise WikirateClientError(f"Type of parameter 'entity' ({entity}) is not allowed")

    async def search_source_by_url(self, url: str, **params: Any) -> list[Card]:
        return await self._fetch_items("/Source_by_url.json", {"query[url]": url, **params})

    async def get_comments(self, identifier: str | int) -> str:
        return await self._fetch_content(f"/~{identifier}+discussion.json")

    async def get_content(self, identifier: str | int) -> str:
        return await self._fetch_content(f"/{build_card_identifier(identifier)}.json")

    # Companies

    async def add_company(
        self, name: str | None = None, headquarters: str | None = None, **fields: Any
    ) -> Card:
        """Create a company card.

        Optional identifier sub-cards (``website``, ``legal_entity_identifier``,
        ``open_corporates_id``...) are taken from ``fields``; unknown keys are
        ignored. Without an ``open_corporates_id`` the OpenCorporates lookup
        triggered by the headquarters entry is skipped.
        """
        if not name or not headquarters:
            raise WikirateClientError(
                "Both 'name' and 'headquarters' are required to create a company."
            )

        params: dict[str, Any] = {
            "card[type]": "Company",
            "card[name]": name,
            _subcard("headquarters"): headquarters,
            "confirmed": "true",
        }
        for key in COMPANY_FIELDS:
            if fields.get(key) is not None:
                params[_subcard(key)] = _join_lines(fields[key])
        if fields.get("open_corporates_id") is None:
            params["card[skip]"] = "update_oc_mapping_due_to_headquarters_entry"

        return await self._submit("/card/create", params)

    async def update_company(self, identifier: str | int, **fields: Any) -> Card:
        if not identifier:
            raise WikirateClientError(
                "A Wikirate company is defined by its identifier. "
                "Please provide a valid company identifier or name."
            )

        params: dict[str, Any] = {"card[type]": "Company"}
        for key in ("headquarters", *COMPANY_FIELDS):
            if fields.get(key) is not None:
                params[_subcard(key)] = _join_lines(fields[key])

        return await self._submit(f"/update/{url_key(identifier)}", params)

    # Answers and relationships

    async def add_answer(self, **fields: Any) -> Card:
        """Create a research answer.

        Required: ``metric_designer``, ``metric_name``, ``company``, ``year``,
        ``value`` and ``source``. Optional: ``comment`` and ``unpublished``.
        """
        _require(fields, (*ANSWER_KEY_FIELDS, "value", "source"))

        name = join_card_name(
            fields["metric_designer"],
            fields["metric_name"],
            build_card_identifier(fields["company"]),
            fields["year"],
        )
        params: dict[str, Any] = {
            "card[type]": "Answer",
            "card[name]": name,
            _subcard(":value"): _join_lines(fields["value"]),
            _subcard(":source"): _join_lines(fields["source"]),
        }
        if fields.get("comment") is not None:
            params[_subcard(":discussion")] = stringify(fields["comment"])
        if fields.get("unpublished") is not None:
            params[_subcard(":unpublished")] = stringify(fields["unpublished"])

        return await self._submit("/card/create", params)

    async def update_answer(self, **fields: Any) -> Card:
        if fields.get("identifier") is not None:
            card_name = f"~{fields['identifier']}"
        elif not _missing(fields, ANSWER_KEY_FIELDS):
            card_name = join_card_name(
                generate_url_key(fields["metric_designer"]),
                generate_url_key(fields["metric_name"]),
                build_card_identifier(fields["company"]),
                fields["year"],
            )
        else:
            raise WikirateClientError(
                "Invalid set of params! You need to provide either `identifier` "
                f"or all of the following: {', '.join(ANSWER_KEY_FIELDS)}."
            )

        params: dict[str, Any] = {"card[type]": "Answer", "card[name]": card_name}
        for key in ("value", "company", "year", "source", "comment", "unpublished"):
            if fields.get(key) is not None:
                subcard = "discussion" if key == "comment" else key
                params[_subcard(f":{subcard}")] = _join_lines(fields[key])

        return await self._submit("/card/update", params)

    async def update_card(self, identifier: str | int, json: str | None = None) -> Card:
        """Replace the raw content of a card, e.g. a research answer's JSON."""
        if not json:
            raise WikirateClientError(
                "Invalid set of params! You need to define 'json' to update the research answer."
            )
        params = {"card[name]": f"~{identifier}", "card[content]": json}
        return await self._submit("/card/update", params)

    async def add_relationship(self, **fields: Any) -> Card:
        _require(
            fields,
            (
                "metric_designer",
                "metric_name",
                "subject_company",
                "object_company",
                "year",
                "value",
                "source",
            ),
        )

        card_name = join_card_name(
            build_card_identifier(fields["metric_designer"]),
            build_card_identifier(fields["metric_name"]),
            build_card_identifier(fields["subject_company"]),
            fields["year"],
            build_card_identifier(fields["object_company"]),
        )
        params: dict[str, Any] = {
            "card[type]": "Relationship",
            "card[name]": card_name,
            _subcard(":value"): _join_lines(fields["value"]),
            _subcard(":source"): _join_lines(fields["source"]),
        }
        if fields.get("comment") is not None:
            params[_subcard(":discussion")] = stringify(fields["comment"])

        return await self._submit("/card/create", params)

    async def update_relationship(self, **fields: Any) -> Card:
        if fields.get("identifier") is not None:
            card_name = f"~{fields['identifier']}"
        elif not _missing(fields, RELATIONSHIP_KEY_FIELDS):
            card_name = join_card_name(
                build_card_identifier(fields["metric_designer"]),
                build_card_identifier(fields["metric_name"]),
                build_card_identifier(fields["subject_company"]),
                fields["year"],
                build_card_identifier(fields["object_company"]),
            )
        else:
            raise WikirateClientError(
                "Invalid set of params! You need to provide either `identifier` "
                f"or all of the following: {', '.join(RELATIONSHIP_KEY_FIELDS)}."
            )

        params: dict[str, Any] = {"card[type]": "Relationship", "card[name]": card_name}
        for key in ("year", "value", "source", "comment"):
            if fields.get(key) is not None:
                subcard = "discussion" if key == "comment" else key
                params[_subcard(f":{subcard}")] = _join_lines(fields[key])

        return await self._submit("/card/update", params)

    # Metrics

    async def add_metric(self, **fields: Any) -> Card:
        required = ("designer", "name", "metric_type", "value_type")
        if _missing(fields, required):
            raise WikirateClientError(
                "Invalid set of params! You need to define all required params to create "
                f"a metric: {', '.join(required)}"
            )

        params: dict[str, Any] = {
            "card[type]": "Metric",
            "card[name]": join_card_name(fields["designer"], fields["name"]),
            _subcard("value_type"): stringify(fields["value_type"]),
            _subcard("*metric_type"): stringify(fields["metric_type"]),
            "card[skip]": "requirements",
        }
        for key in METRIC_FIELDS:
            if fields.get(key) is not None:
                params[_subcard(key)] = _join_lines(fields[key])

        return await self._submit("/card/create", params)

    async def update_metric(self, identifier: str | int, **fields: Any) -> Card:
        params: dict[str, Any] = {"card[type]": "Metric", "card[skip]": "requirements"}
        for key in ("metric_type", "value_type", *METRIC_FIELDS, "unpublished"):
            if fields.get(key) is not None:
                params[_subcard(key)] = _join_lines(fields[key])

        return await self._submit(f"/update/{build_card_identifier(identifier)}", params)

    # Sources

    async def add_source(self, **fields: Any) -> Card:
        """Create a source from a ``link`` or an uploaded ``file``.

        Required: ``title`` and one of ``link`` / ``file``. Optional:
        ``company``, ``report_type`` and ``year``.
        """
        _require(fields, ("title",))
        if fields.get("link") is None and fields.get("file") is None:
            raise WikirateClientError(
                "You must provide either a 'link' or a 'file' to create a source."
            )

        params: dict[str, Any] = {
            "card[type]": "Source",
            _subcard("title"): stringify(fields["title"]),
            "card[skip]": "requirements",
        }
        files: dict[str, Path] = {}
        if fields.get("file") is not None:
            files[SOURCE_FILE_FIELD] = _check_file(fields["file"])
        if fields.get("link") is not None:
            params[_subcard("link")] = stringify(fields["link"])
        if fields.get("company") is not None:
            params[_subcard("company")] = _company_token(fields["company"])
        for key in ("report_type", "year"):
            if fields.get(key) is not None:
                params[_subcard(key)] = stringify(fields[key])

        return await self._submit("/card/create", params, files)

    async def upload_source_file(self, source: str | int, file: str | Path) -> Card:
        """Attach a file to an existing source card."""
        path = _check_file(file)
        return await self._submit(
            f"/update/{build_card_identifier(source)}", {}, {SOURCE_FILE_FIELD: path}
        )

    async def update_source(self, **fields: Any) -> Card:
        if fields.get("name") is None:
            raise WikirateClientError("Invalid set of params! Missing required param: name")

        params: dict[str, Any] = {
            "card[type]": "Source",
            "card[name]": fields["name"],
            "card[skip]": "requirements",
        }
        for key in ("title", "report_type", "year"):
            if fields.get(key) is not None:
                params[_subcard(key)] = stringify(fields[key])
        if fields.get("company") is not None:
            params[_subcard("company")] = _company_token(fields["company"])

        return await self._submit("/card/update", params)

    # Deletion and lists

    async def delete_wikirate_entity(self, identifier: int) -> bool:
        """Delete the card with numeric id ``identifier``; True when the API confirms."""
        if isinstance(identifier, bool) or not isinstance(identifier, int) or identifier <= 0:
            raise WikirateClientError(
                f"Invalid id: {identifier}. It must be a positive integer."
            )
        response = await self._transport.delete(f"/~{identifier}")
        deleted = response.status_code == httpx.codes.OK
        if deleted:
            logger.info(f"Deleted Wikirate card ~{identifier}")
        return deleted

    async def add_companies_to_group(self, group_id: str | int, companies: Iterable[str]) -> Card:
        params = {
            "card[type]": "List",
            "card[name]": f"{build_card_identifier(group_id)}+Company",
            "card[content]": "\n".join(f"~[[{company}]]" for company in companies),
        }
        return await self._submit("/card/update", params)

    async def add_companies_to_dataset(
        self, dataset_id: str | int, companies: Iterable[str | int]
    ) -> Card:
        params = {
            "card[type]": "List",
            "card[name]": f"~{dataset_id}+Company",
            "add_item[]": [f"~{company}" for company in companies],
        }
        return await self._submit("/card/update", params)

    async def add_metrics_to_dataset(
        self, dataset_id: str | int, metrics: Iterable[str | int]
    ) -> Card:
        params = {
            "card[type]": "List",
            "card[name]": f"~{dataset_id}+Metric",
            "card[content]": "\n".join(f"~[[{metric}]]" for metric in metrics),
        }
        return await self._submit("/card/update", params)

    async def verify_answer(self, identifier: str | int) -> Card:
        """Mark an answer as checked by the authenticated user."""
        params = {
            "card[type]": "List",
            "card[name]": f"~{identifier}+checked_by",
            "card[trigger]": "add_check",
        }
        return await self._submit("/card/update", params)


@contextlib.asynccontextmanager
async def open_client(credentials: Credentials) -> AsyncIterator[WikirateClient]:
    """Yield a `WikirateClient` that owns its `httpx.AsyncClient`."""
    async with httpx.AsyncClient(base_url=credentials.api_root) as http_client:
        yield WikirateClient(http_client, credentials)
