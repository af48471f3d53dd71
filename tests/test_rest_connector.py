"""
Tests for the connector base class and the generic REST connector.
"""

import json
from unittest.mock import patch

import pytest

from konnect.config import BearerTokenRestConfig, NoAuthRestConfig, PersonalAccessTokenConfig
from konnect.connectors import (
    AkeneoConnector,
    RestConnector,
    SalsifyConnector,
    available_connectors,
    get_connector_class,
)
from konnect.connectors.base_connector import QueryOutcome
from konnect.connectors.rest_connector import query_param_values
from konnect.exceptions import (
    KonnectConfigError,
    KonnectConnectionError,
    KonnectError,
    KonnectQueryError,
    MalformedQueryError,
)
from konnect.models import QueryInfo, RESOURCE_ID
from konnect.resources import RestResource
from konnect.settings import BatchErrorPolicy

BASE_URL = "https://api.example.com/v1"


def query(text="", resource_id=None, name="q"):
    resource_info = {RESOURCE_ID: resource_id} if resource_id else {}
    return QueryInfo(query=text, query_name=name, additional_resource_info=resource_info)


class TestRestConnector:
    """Test cases for RestConnector."""

    @pytest.fixture
    def connector(self, transport, breather, settings):
        return RestConnector(transport=transport, settings=settings, breather=breather)

    @pytest.fixture
    def config(self):
        return BearerTokenRestConfig(
            url=BASE_URL,
            token="tok",
            resources=[RestResource(id="items", name="Items", url="/v1/items")],
        )

    def test_metadata(self, connector):
        assert connector.name == "REST Connector"
        assert connector.more_resources_allowed is True
        assert connector.default_resources() == []

    def test_execute_returns_body_verbatim(self, connector, config, transport):
        transport.queue({"ok": True})
        body = '{ "items" : [1, 2] }'
        transport.queue(body)

        result = connector.execute(config, query("page=2", "items"))

        assert result == body
        probe, request = transport.requests
        assert probe.url == BASE_URL
        assert request.full_url == f"{BASE_URL}/items?page=2"
        assert request.headers["Authorization"] == "Bearer tok"

    def test_malformed_response(self, connector, config, transport):
        transport.queue({})
        transport.queue("not json")

        with pytest.raises(KonnectQueryError, match="Malformed response"):
            connector.execute(config, query())

    def test_probe_failure_is_connection_error(self, connector, config, transport):
        transport.queue({"error": "unauthorized"}, status_code=401)

        with pytest.raises(KonnectConnectionError):
            connector.execute(config, query())

    def test_validate_connection(self, connector, config, transport):
        transport.queue({})
        assert connector.validate_connection(config) is True

        transport.queue({}, status_code=500)
        assert connector.validate_connection(config) is False

    def test_wrong_config_type(self, connector):
        with pytest.raises(KonnectConfigError):
            connector.connect(PersonalAccessTokenConfig(organization="o", token="t"))

    def test_paginated_config_aggregates_pages(self, connector, transport, breather):
        config = NoAuthRestConfig(
            url=BASE_URL,
            pagination={"kind": "cursor", "items_path": "results", "total_path": "meta.total",
                        "cursor_param": "next", "carry_params": ["q"]},
        )
        transport.queue({})
        transport.queue({"results": [1, 2], "meta": {"cursor": "c1", "total": 3}})
        transport.queue({"results": [3], "meta": {}})

        result = json.loads(connector.execute(config, query("q=red+shoes&size=2")))

        assert result == {"items": [1, 2, 3], "totalCount": 3}
        assert transport.requests[2].query == "q=red+shoes&next=c1"

    def test_preview_fetches_first_page_only(self, connector, transport):
        config = NoAuthRestConfig(url=BASE_URL, pagination={"kind": "link", "items_path": "items"})
        transport.queue({})
        transport.queue({"items": list(range(10)), "_links": {"next": {"href": f"{BASE_URL}?page=2"}}})

        result = connector.execute_with_limit(config, query("page=1"))

        assert result.query == "page=1"
        assert json.loads(result.response) == {"items": [0, 1, 2, 3, 4]}
        assert len(transport.requests) == 2

    def test_unexpected_errors_wrapped(self, connector, config, transport):
        transport.queue({})
        with patch.object(RestConnector, "run_query", side_effect=RuntimeError("boom")):
            with pytest.raises(KonnectError, match="boom"):
                connector.execute(config, query())


class TestBatchExecution:
    """Test cases for batch execution and the batch error policy."""

    @pytest.fixture
    def connector(self, transport, breather, settings):
        return SalsifyConnector(transport=transport, settings=settings, breather=breather)

    @pytest.fixture
    def config(self):
        return BearerTokenRestConfig(url="https://app.salsify.com/api/v1/orgs/s-1", token="tok")

    def test_malformed_query_skipped(self, connector, config, transport):
        transport.queue({"data": []})
        transport.queue({"data": [{"id": "a"}], "meta": {"cursor": None, "total_entries": 1}})

        result = json.loads(connector.execute_batch(config, [
            query("{broken", name="bad"),
            query("", name="good"),
        ]))

        assert result == {"good": {"data": [{"id": "a"}], "totalRecords": 1}}

    def test_abort_policy(self, connector, config, transport):
        transport.queue({"data": []})

        with pytest.raises(MalformedQueryError):
            connector.execute_batch(config, [query("{broken", name="bad")], BatchErrorPolicy.ABORT)

    def test_abort_policy_from_settings(self, transport, breather, settings, config):
        connector = SalsifyConnector(
            transport=transport,
            settings=settings.model_copy(update={"batch_error_policy": BatchErrorPolicy.ABORT}),
            breather=breather,
        )
        transport.queue({"data": []})

        with pytest.raises(MalformedQueryError):
            connector.execute_batch(config, [query("[1, 2]", name="bad")])

    def test_remote_errors_fail_batch(self, connector, config, transport):
        transport.queue({"data": []})
        transport.queue({"error": "server"}, status_code=500)

        with pytest.raises(KonnectQueryError):
            connector.execute_batch(config, [query("", name="first")])


class TestRegistry:
    """Test cases for the connector registry."""

    @pytest.mark.parametrize("name,expected", [
        ("akeneo", AkeneoConnector),
        ("Akeneo", AkeneoConnector),
        (" salsify ", SalsifyConnector),
        ("REST Connector", RestConnector),
    ])
    def test_get_connector_class(self, name, expected):
        assert get_connector_class(name) is expected

    def test_unknown_connector(self):
        with pytest.raises(KonnectConfigError):
            get_connector_class("jira")

    def test_available_connectors(self):
        assert available_connectors() == ["rest", "akeneo", "salsify", "azure_devops"]


class TestHelpers:
    """Test cases for module helpers."""

    def test_query_param_values_decodes(self):
        assert query_param_values("filter=%3D%27a%27&page=1", ["filter", "missing"]) == {"filter": "='a'"}

    def test_query_param_values_empty(self):
        assert query_param_values("", ["filter"]) == {}

    def test_outcome_prefers_raw(self):
        assert QueryOutcome("q", {"a": 1}, raw='{ "a": 1 }').to_json() == '{ "a": 1 }'
        assert QueryOutcome("q", {"a": 1}).to_json() == '{"a":1}'
