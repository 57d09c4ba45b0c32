"""Unit tests for WikirateClient read and search operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from wikirate_client.auth import Credentials
from wikirate_client.client import WikirateClient
from wikirate_client.exceptions import WikirateClientError

if TYPE_CHECKING:
    from conftest import FakeWikirateApi


class TestSingleCards:
    @pytest.mark.parametrize(  # type: ignore[misc]
        ("method", "identifier", "path"),
        [
            ("get_company", 12345, "/~12345.json"),
            ("get_company", "Adidas AG", "/Adidas_AG.json"),
            ("get_topic", "Climate Change", "/Climate_Change.json"),
            ("get_research_group", "77", "/~77.json"),
            ("get_company_group", "Fashion Brands", "/Fashion_Brands.json"),
            ("get_source", "Source-000123", "/Source_000123.json"),
            ("get_answer", 999, "/~999.json"),
            ("get_relationship", 555, "/~555.json"),
            ("get_project", 99, "/~99.json"),
            ("get_project", "Climate 2024", "/Climate_2024.json"),
            ("get_dataset", "2024", "/2024.json"),
            ("get_region", "United Kingdom", "/United_Kingdom.json"),
        ],
    )
    def test_fetches_card_by_identifier(
        self,
        api: FakeWikirateApi,
        credentials: Credentials,
        method: str,
        identifier: str | int,
        path: str,
    ) -> None:
        """Given an id or name, when fetching a card, then the matching `.json` path is
        requested and the body is returned as-is."""
        api.payload = {"id": 1, "name": "Card"}

        async def scenario(client: WikirateClient) -> Any:
            return await getattr(client, method)(identifier)

        card = api.run(credentials, scenario)

        assert card == {"id": 1, "name": "Card"}
        assert api.last.method == "GET"
        assert api.last.url.path == path

    def test_renamed_company_follows_redirect(
        self, api: FakeWikirateApi, credentials: Credentials
    ) -> None:
        """Given a company name that redirects to its canonical card, when fetching it, then
        the canonical card is returned."""
        api.redirects = {"/Acme_Inc.json": "/Acme.json"}
        api.payload = {"name": "Acme"}

        async def scenario(client: WikirateClient) -> Any:
            return await client.get_company("Acme Inc")

        card = api.run(credentials, scenario)

        assert card == {"name": "Acme"}
        assert [request.url.path for request in api.requests] == ["/Acme_Inc.json", "/Acme.json"]

    def test_get_metric_by_designer_and_name(
        self, api: FakeWikirateApi, credentials: Credentials
    ) -> None:
        async def scenario(client: WikirateClient) -> Any:
            return await client.get_metric(
                metric_name="Scope 1 Emissions", metric_designer="Global Reporting Initiative"
            )

        api.run(credentials, scenario)

        assert api.last.url.path == "/Global_Reporting_Initiative+Scope_1_Emissions.json"

    def test_get_metric_requires_identifier_or_pair(
        self, api: FakeWikirateApi, credentials: Credentials
    ) -> None:
        async def scenario(client: WikirateClient) -> Any:
            return await client.get_metric(metric_name="Scope 1 Emissions")

        with pytest.raises(WikirateClientError, match="either `identifier`"):
            api.run(credentials, scenario)
        assert not api.requests


class TestCollections:
    def test_get_companies_scoped_and_filtered(
        self, api: FakeWikirateApi, credentials: Credentials
    ) -> None:
        """Given a parent id and filters, when listing companies, then the scoped endpoint is
        used and the `items` envelope is unwrapped."""
        api.payload = {"items": [{"name": "Acme"}, {"name": "Globex"}]}

        async def scenario(client: WikirateClient) -> Any:
            return await client.get_companies(
                123, limit=5, offset=0, country="Germany", company_identifier=["a", "b"]
            )

        companies = api.run(credentials, scenario)

        assert companies == [{"name": "Acme"}, {"name": "Globex"}]
        params = api.last.url.params
        assert api.last.url.path == "/~123+Companies.json"
        assert params.get("limit") == "5"
        assert params.get("offset") == "0"
        assert params.get("filter[country]") == "Germany"
        assert params.get("filter[company_identifier[value]]") == "a, b"

    def test_missing_items_envelope_yields_empty_list(
        self, api: FakeWikirateApi, credentials: Credentials
    ) -> None:
        api.payload = {"name": "Companies"}

        async def scenario(client: WikirateClient) -> Any:
            return await client.get_companies()

        assert api.run(credentials, scenario) == []
        assert api.last.url.path == "/Companies.json"

    def test_get_answers_for_metric(self, api: FakeWikirateApi, credentials: Credentials) -> None:
        """Given a metric designer and name, when listing answers, then the metric scopes the
        endpoint and answer filters are encoded."""
        api.payload = {"items": [{"value": "20844"}]}

        async def scenario(client: WikirateClient) -> Any:
            return await client.get_answers(
                metric_name="Scope 1 (GHG)",
                metric_designer="Global Reporting Initiative",
                year=2024,
                company=[42, "Adidas AG"],
                value_from=10,
                view="compact",
                limit=20,
            )

        answers = api.run(credentials, scenario)

        assert answers == [{"value": "20844"}]
        params = api.last.url.params
        assert api.last.url.path == "/Global_Reporting_Initiative+Scope_1_GHG_+Answers.json"
        assert params.get("filter[year]") == "2024"
        assert params.get_list("filter[company][]") == ["~42", "Adidas AG"]
        assert params.get("filter[value][from]") == "10"
        assert params.get("view") == "compact"
        assert params.get("limit") == "20"

    def test_get_answers_scoped_by_identifier(
        self, api: FakeWikirateApi, credentials: Credentials
    ) -> None:
        async def scenario(client: WikirateClient) -> Any:
            return await client.get_answers(identifier=4567, dataset=12)

        api.run(credentials, scenario)

        assert api.last.url.path == "/~4567+Answers.json"
        assert api.last.url.params.get("filter[dataset]") == "~12"

    def test_get_relationships(self, api: FakeWikirateApi, credentials: Credentials) -> None:
        async def scenario(client: WikirateClient) -> Any:
            return await client.get_relationships(
                identifier=7, subject_company_id=3, project=8, year=2023
            )

        api.run(credentials, scenario)

        params = api.last.url.params
        assert api.last.url.path == "/~7+Relationships.json"
        assert params.get("filter[subject_company_id][]") == "3"
        assert params.get("filter[project]") == "~8"
        assert params.get("filter[year]") == "2023"

    @pytest.mark.parametrize(  # type: ignore[misc]
        ("method", "path"),
        [
            ("get_topics", "/Topics.json"),
            ("get_metrics", "/Metrics.json"),
            ("get_research_groups", "/Research_Groups.json"),
            ("get_company_groups", "/Company_Groups.json"),
            ("get_sources", "/Sources.json"),
            ("get_projects", "/Projects.json"),
            ("get_datasets", "/Datasets.json"),
            ("get_regions", "/Region.json"),
        ],
    )
    def test_collection_endpoints(
        self, api: FakeWikirateApi, credentials: Credentials, method: str, path: str
    ) -> None:
        api.payload = {"items": [{"id": 1}]}

        async def scenario(client: WikirateClient) -> Any:
            return await getattr(client, method)(limit=2)

        assert api.run(credentials, scenario) == [{"id": 1}]
        assert api.last.url.path == path
        assert api.last.url.params.get("limit") == "2"

    def test_requests_resolve_against_base_path(self, api: FakeWikirateApi) -> None:
        credentials = Credentials(api_key="k", base_url="https://dev.wikirate.org/api")

        async def scenario(client: WikirateClient) -> Any:
            return await client.get_topics()

        api.run(credentials, scenario)

        assert api.last.url.host == "dev.wikirate.org"
        assert api.last.url.path == "/api/Topics.json"


class TestSearch:
    def test_search_metric_uses_keyword(
        self, api: FakeWikirateApi, credentials: Credentials
    ) -> None:
        async def scenario(client: WikirateClient) -> Any:
            return await client.search_by_name("Metric", "emissions", limit=3)

        api.run(credentials, scenario)

        assert api.last.url.path == "/Metrics.json"
        assert api.last.url.params.get("filter[metric_keyword]") == "emissions"
        assert api.last.url.params.get("limit") == "3"

    @pytest.mark.parametrize(  # type: ignore[misc]
        ("entity", "path"),
        [
            ("Company", "/Companies.json"),
            ("Topic", "/Topics.json"),
            ("CompanyGroup", "/Company_Groups.json"),
            ("ResearchGroup", "/Research_Groups.json"),
            ("Project", "/Projects.json"),
        ],
    )
    def test_search_by_name_dispatch(
        self, api: FakeWikirateApi, credentials: Credentials, entity: str, path: str
    ) -> None:
        async def scenario(client: WikirateClient) -> Any:
            return await client.search_by_name(entity, "Acme")  # type: ignore[arg-type]

        api.run(credentials, scenario)

        assert api.last.url.path == path
        assert api.last.url.params.get("filter[name]") == "Acme"

    def test_search_by_name_rejects_unknown_kind(
        self, api: FakeWikirateApi, credentials: Credentials
    ) -> None:
        async def scenario(client: WikirateClient) -> Any:
            return await client.search_by_name("Answer", "x")  # type: ignore[arg-type]

        with pytest.raises(WikirateClientError, match="not allowed"):
            api.run(credentials, scenario)
        assert not api.requests

    def test_search_source_by_url(self, api: FakeWikirateApi, credentials: Credentials) -> None:
        api.payload = {"items": [{"name": "Source-1"}]}

        async def scenario(client: WikirateClient) -> Any:
            return await client.search_source_by_url("https://example.com/report.pdf")

        assert api.run(credentials, scenario) == [{"name": "Source-1"}]
        assert api.last.url.path == "/Source_by_url.json"
        assert api.last.url.params.get("query[url]") == "https://example.com/report.pdf"


class TestContent:
    def test_get_comments(self, api: FakeWikirateApi, credentials: Credentials) -> None:
        api.payload = {"content": "Checked against the annual report."}

        async def scenario(client: WikirateClient) -> Any:
            return await client.get_comments(5)

        assert api.run(credentials, scenario) == "Checked against the annual report."
        assert api.last.url.path == "/~5+discussion.json"

    def test_get_content_defaults_to_empty(
        self, api: FakeWikirateApi, credentials: Credentials
    ) -> None:
        api.payload = {"name": "no content"}

        async def scenario(client: WikirateClient) -> Any:
            return await client.get_content(12)

        assert api.run(credentials, scenario) == ""
        assert api.last.url.path == "/~12.json"
