"""
Tests for the Akeneo PIM connector.
"""

import json

import pytest

from konnect.config import AppAccessTokenConfig, BearerTokenRestConfig
from konnect.connectors.akeneo_connector import (
    AKENEO_DEFAULT_QUERY,
    CATALOG,
    AkeneoConnector,
    AkeneoResource,
    normalize_query,
    with_page_limit,
)
from konnect.exceptions import KonnectConnectionError, MalformedQueryError, RemoteServiceError
from konnect.models import HttpMethod, QueryInfo, RESOURCE_ID

BASE_URL = "https://pim.example.com"
TOKEN_URL = f"{BASE_URL}/api/oauth/v1/token"
SYSTEM_INFO_URL = f"{BASE_URL}/api/rest/v1/system-information"
PRODUCTS_URL = f"{BASE_URL}/api/rest/v1/products"


def query(text, resource_id="get_all_products", name="products"):
    return QueryInfo(query=text, query_name=name, additional_resource_info={RESOURCE_ID: resource_id})


def page(items, next_href=None):
    links = {"self": {"href": PRODUCTS_URL}}
    if next_href:
        links["next"] = {"href": next_href}
    return {"_links": links, "current_page": 1, "_embedded": {"items": items}}


class TestQueryHelpers:
    """Test cases for Akeneo query rewriting."""

    def test_limit_replaced_keeping_search(self):
        query_text = 'search={"categories":[{"operator":"IN","value":["0001"]}]}&limit=10'
        assert with_page_limit(query_text, 100) == (
            'search={"categories":[{"operator":"IN","value":["0001"]}]}&limit=100'
        )

    def test_limit_appended(self):
        assert with_page_limit(AKENEO_DEFAULT_QUERY, 5) == f"{AKENEO_DEFAULT_QUERY}&limit=5"

    def test_limit_on_empty_query(self):
        assert with_page_limit("", 5) == "limit=5"
        assert with_page_limit("/", 5) == "limit=5"

    def test_limit_not_confused_with_similar_names(self):
        assert with_page_limit("rate_limit=3", 5) == "rate_limit=3&limit=5"

    def test_normalize_query(self):
        assert normalize_query("  /  ") == ""
        assert normalize_query(None) == ""
        assert normalize_query(" search=x ") == "search=x"


class TestAkeneoConnector:
    """Test cases for AkeneoConnector."""

    @pytest.fixture
    def connector(self, transport, breather, settings):
        return AkeneoConnector(transport=transport, settings=settings, breather=breather)

    @pytest.fixture
    def app_config(self):
        return AppAccessTokenConfig(
            url=BASE_URL,
            username="admin",
            password="pw",
            client_id="id",
            secret="sec",
            headers={"Accept": "application/json"},
        )

    @pytest.fixture
    def token_routes(self, transport):
        transport.route(TOKEN_URL, {"access_token": "tok-1", "expires_in": 3600})
        transport.route(SYSTEM_INFO_URL, {"version": "7.0", "edition": "Serenity"})
        return transport

    def test_default_catalog(self, connector):
        resources = connector.default_resources()

        assert len(resources) == len(CATALOG) == 8
        assert resources[0].id == "get_all_products"
        assert resources[0].url == "/api/rest/v1/products"
        assert all(r.is_default for r in resources)
        assert AkeneoResource.GET_OAUTH_TOKEN.url not in [r.url for r in resources]

    def test_token_exchange(self, connector, app_config, token_routes):
        connected = connector.connect(app_config)

        assert connected.token == "tok-1"
        token_request = token_routes.requests_to(TOKEN_URL)[0]
        assert token_request.method == HttpMethod.POST
        assert token_request.headers == {
            "Authorization": "Basic aWQ6c2Vj",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        assert json.loads(token_request.body) == {"username": "admin", "password": "pw", "grant_type": "password"}
        system_request = token_routes.requests_to(SYSTEM_INFO_URL)[0]
        assert system_request.headers["Authorization"] == "Bearer tok-1"

    def test_token_failure(self, connector, app_config, transport):
        transport.route(TOKEN_URL, {"message": "invalid credentials"}, status_code=401)

        with pytest.raises(KonnectConnectionError, match="access token"):
            connector.connect(app_config)

    def test_token_missing_from_response(self, connector, app_config, transport):
        transport.route(TOKEN_URL, {"token_type": "bearer"})

        with pytest.raises(KonnectConnectionError):
            connector.connect(app_config)

    def test_bearer_config_skips_token_exchange(self, connector, transport):
        transport.route(SYSTEM_INFO_URL, {})
        config = BearerTokenRestConfig(url=BASE_URL, token="static")

        assert connector.connect(config) is config
        assert transport.requests_to(TOKEN_URL) == []

    def test_execute_follows_pages(self, connector, app_config, token_routes, breather):
        token_routes.queue(page([{"identifier": "a"}, {"identifier": "b"}], f"{PRODUCTS_URL}?page=2&limit=100"))
        token_routes.queue(page([{"identifier": "c"}]))

        result = json.loads(connector.execute(app_config, query(AKENEO_DEFAULT_QUERY)))

        assert result == {"_embedded": {"items": [{"identifier": "a"}, {"identifier": "b"}, {"identifier": "c"}]}}
        page_requests = token_routes.requests_to(PRODUCTS_URL)
        assert page_requests[0].query == f"{AKENEO_DEFAULT_QUERY}&limit=100"
        assert page_requests[1].query == "page=2&limit=100"
        assert all(r.headers["Authorization"] == "Bearer tok-1" for r in page_requests)
        breather.pause.assert_called_once_with(15.0)

    def test_page_delay_from_settings(self, transport, breather, settings, token_routes, app_config):
        connector = AkeneoConnector(
            transport=transport,
            settings=settings.model_copy(update={"akeneo_page_delay": 2.5}),
            breather=breather,
        )
        transport.queue(page([1], f"{PRODUCTS_URL}?page=2"))
        transport.queue(page([2]))

        connector.execute(app_config, query(""))

        breather.pause.assert_called_once_with(2.5)

    def test_preview_limits_page_size_and_skips_pagination(self, connector, app_config, token_routes, breather):
        query_text = 'search={"categories":[{"operator":"IN","value":["0001"]}]}&limit=10'
        token_routes.queue(page([{"i": n} for n in range(5)], f"{PRODUCTS_URL}?page=2"))

        result = connector.execute_with_limit(app_config, query(query_text))

        assert result.query == 'search={"categories":[{"operator":"IN","value":["0001"]}]}&limit=5'
        assert len(json.loads(result.response)["_embedded"]["items"]) == 5
        assert len(token_routes.requests_to(PRODUCTS_URL)) == 1
        breather.pause.assert_not_called()

    def test_single_product_by_code(self, connector, app_config, token_routes):
        product_url = f"{PRODUCTS_URL}/10667767"
        token_routes.route(product_url, {"identifier": "10667767", "family": "shoes"})

        result = json.loads(connector.execute(app_config, query("10667767", "get_product_by_id")))

        assert result == {"_embedded": {"items": [{"identifier": "10667767", "family": "shoes"}]}}
        assert token_routes.requests_to(product_url)[0].query is None

    def test_code_required_for_single_product(self, connector, app_config, token_routes):
        with pytest.raises(MalformedQueryError):
            connector.execute(app_config, query("  ", "get_product_by_id"))

    def test_failure_mid_pagination(self, connector, app_config, token_routes):
        token_routes.queue(page([1], f"{PRODUCTS_URL}?page=2"))
        token_routes.queue({"code": 429, "message": "Too many requests"}, status_code=429)

        with pytest.raises(RemoteServiceError):
            connector.execute(app_config, query(""))

    def test_batch_output(self, connector, app_config, token_routes):
        families_url = f"{BASE_URL}/api/rest/v1/families"
        token_routes.route(families_url, page([{"code": "shoes"}]))
        token_routes.queue(page([{"identifier": "a"}]))

        result = json.loads(connector.execute_batch(app_config, [
            query("", name="products"),
            query("", "get_all_families", name="families"),
        ]))

        assert result == {
            "products": {"_embedded": {"items": [{"identifier": "a"}]}},
            "families": {"_embedded": {"items": [{"code": "shoes"}]}},
        }
