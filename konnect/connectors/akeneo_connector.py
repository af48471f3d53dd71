"""
Akeneo PIM Connector for Konnect.

Provides access to products, families, attributes, categories and locales
of an Akeneo PIM through its REST API. List endpoints are paginated with
``_links.next.href`` and fetched with a fixed pause between pages to stay
under Akeneo's rate limits.
"""

import logging
from enum import Enum
from typing import List, Optional
from urllib.parse import quote

from ..config.auth import AppAccessTokenConfig, BearerTokenRestConfig, RestConfig
from ..exceptions import KonnectConnectionError, KonnectError, MalformedQueryError
from ..models import HttpMethod, QueryInfo
from ..resources import RestResource
from ..rest.json_utils import get_path, parse_json, to_json
from ..rest.pagination import LinkContinuation, PaginationKind, PaginationSettings
from ..rest.urls import join_url, set_query_param
from .base_connector import QueryOutcome
from .rest_connector import RestConnector

logger = logging.getLogger(__name__)

AKENEO_DEFAULT_QUERY = 'search={"categories":[{"operator":"IN","value":["0001"]}]}'
PAGE_LIMIT_PARAM = "limit"
CODE_PLACEHOLDER = "{code}"
CONTENT_TYPE_HEADER = "Content-Type"
APPLICATION_JSON = "application/json"


class AkeneoResource(Enum):
    """Akeneo REST endpoints: display name, path and sample query."""

    GET_ALL_PRODUCTS = ("Get list of products ", "/api/rest/v1/products", AKENEO_DEFAULT_QUERY)
    GET_PRODUCT_BY_ID = ("Get a product", "/api/rest/v1/products/{code}", "10667767")
    GET_ALL_PRODUCTS_UUID = ("Get list of products (UUID)", "/api/rest/v1/products-uuid", AKENEO_DEFAULT_QUERY)
    GET_A_PRODUCT_UUID = ("Get a product (UUID)", "/api/rest/v1/products-uuid/{code}",
                          "25566245-55c3-42ce-86d9-8610ac459fa8")
    GET_ALL_FAMILIES = ("Get list of families", "/api/rest/v1/families",
                        'search={"code":[{"operator":"IN","value":["family_code1","family_code2"]}]}')
    GET_ALL_ATTRIBUTES = ("Get list of attributes", "/api/rest/v1/attributes",
                          'search={"code":[{"operator":"IN","value":["code1","code2"]}]}')
    GET_LIST_CATEGORIES = ("Get list of categories", "/api/rest/v1/categories",
                           'search={"code":[{"operator":"IN","value":["category_code1","category_code2"]}]}')
    GET_LIST_LOCALES = ("Get list of locales", "/api/rest/v1/locales",
                        'search={"enabled":[{"operator":"=","value":true}]}')
    GET_SYSTEM_INFO = ("Get system info", "/api/rest/v1/system-information", "")
    GET_OAUTH_TOKEN = ("Refresh auth token", "/api/oauth/v1/token", "")

    def __init__(self, label: str, url: str, sample_query: str):
        self.label = label
        self.url = url
        self.sample_query = sample_query

    def to_resource(self) -> RestResource:
        return RestResource(
            id=self.name.lower(),
            name=self.label,
            url=self.url,
            request_type=HttpMethod.GET,
            sample_query=self.sample_query,
            is_default=True,
            is_enabled=True,
        )


CATALOG = [
    AkeneoResource.GET_ALL_PRODUCTS,
    AkeneoResource.GET_PRODUCT_BY_ID,
    AkeneoResource.GET_ALL_PRODUCTS_UUID,
    AkeneoResource.GET_A_PRODUCT_UUID,
    AkeneoResource.GET_ALL_FAMILIES,
    AkeneoResource.GET_ALL_ATTRIBUTES,
    AkeneoResource.GET_LIST_CATEGORIES,
    AkeneoResource.GET_LIST_LOCALES,
]


def normalize_query(query: Optional[str]) -> str:
    """Trim a query; a bare "/" means no query at all."""
    query = (query or "").strip()
    return "" if query == "/" else query


def with_page_limit(query: Optional[str], limit: int) -> str:
    """Set the ``limit`` parameter of an Akeneo query, keeping every other parameter."""
    return set_query_param(normalize_query(query), PAGE_LIMIT_PARAM, str(limit))


class AkeneoConnector(RestConnector):
    """Akeneo PIM connector with app (OAuth password grant) or bearer token authentication."""

    name = "Akeneo"
    group = "Product Information Management"
    description = "AEM Guides Akeneo data source connector to query and visualize the data."
    sample_query = AKENEO_DEFAULT_QUERY
    validation_query = ""
    config_classes = (AppAccessTokenConfig, BearerTokenRestConfig)
    more_resources_allowed = False

    def default_resources(self) -> List[RestResource]:
        return [member.to_resource() for member in CATALOG]

    def pagination_settings(self, config: RestConfig) -> PaginationSettings:
        return PaginationSettings(
            kind=PaginationKind.LINK,
            items_path="_embedded.items",
            next_link_path="_links.next.href",
            delay_seconds=self.settings.akeneo_page_delay,
        )

    def query_with_limit(self, query: str) -> str:
        return with_page_limit(query, self.max_rows_for_preview)

    def fetch_token(self, config: AppAccessTokenConfig) -> AppAccessTokenConfig:
        """
        Exchange the app credentials for an access token.

        Returns:
            A copy of *config* carrying the token

        Raises:
            KonnectConnectionError: If the token endpoint fails or returns no token
        """
        logger.debug("[Akeneo] Getting access token")
        url = join_url(config.url, AkeneoResource.GET_OAUTH_TOKEN.url, config.url)
        headers = {**config.headers, CONTENT_TYPE_HEADER: APPLICATION_JSON}
        body = to_json({
            "username": config.username,
            "password": config.password,
            "grant_type": "password",
        })
        request = self.invoker.prepare_request(
            config.oauth_authentication_details(), url, HttpMethod.POST.value, body, None, headers
        )
        try:
            raw = self.invoker.invoke_request(request, self.transport)
        except KonnectError as e:
            raise KonnectConnectionError(f"[Akeneo] Failed to get access token: {e}") from e

        parsed = parse_json(raw)
        token = get_path(parsed.data, "access_token") if parsed else None
        if not isinstance(token, str) or not token:
            raise KonnectConnectionError("[Akeneo] Token response did not contain an access token")
        return config.with_token(token)

    def probe(self, config: RestConfig) -> RestConfig:
        """Fetch a token if needed, then read the system information endpoint."""
        if isinstance(config, AppAccessTokenConfig):
            config = self.fetch_token(config)
        endpoint = config.resolve(validate=True)
        endpoint = endpoint.model_copy(update={
            "url": join_url(config.url, AkeneoResource.GET_SYSTEM_INFO.url, config.url),
        })
        self.fetch_text(config, endpoint, None)
        return config

    def run_query(self, config: RestConfig, query_info: QueryInfo,
                  limit: Optional[int] = None) -> QueryOutcome:
        endpoint = config.resolve(query_info.resource_id, default_resources=self.default_resources())
        query = normalize_query(query_info.query)

        if CODE_PLACEHOLDER in endpoint.url:
            # Single-entity resource: the query is the entity code
            if not query:
                raise MalformedQueryError(f"[Akeneo] A code is required for {endpoint.url}")
            endpoint = endpoint.model_copy(update={
                "url": endpoint.url.replace(CODE_PLACEHOLDER, quote(query.strip("/"), safe="")),
            })
            request = self.build_request(config, endpoint, None)
            envelope = self.aggregator.run(request, LinkContinuation(), skip_pagination=True)
        else:
            if limit is not None:
                query = self.query_with_limit(query)
            else:
                query = with_page_limit(query, self.settings.akeneo_default_limit)
            envelope = self.aggregate(config, endpoint, query, self.pagination_settings(config), limit)

        logger.debug(f"[Akeneo] Returning {len(envelope.items)} items")
        return QueryOutcome(query, {"_embedded": {"items": envelope.items}})
