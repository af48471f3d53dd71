"""
Salsify Connector for Konnect.

Queries products, records and digital assets of a Salsify organization.
Queries are JSON documents ``{"filter": ..., "page": ..., "per_page": ...}``;
results are followed with Salsify's ``meta.cursor`` until exhausted.
"""

import json
import logging
from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, ValidationError

from ..config.auth import BearerTokenRestConfig, RestConfig
from ..exceptions import MalformedQueryError
from ..models import HttpMethod, QueryInfo
from ..resources import RestResource
from ..rest.json_utils import to_json
from ..rest.pagination import PaginationKind, PaginationSettings, build_strategy
from ..rest.urls import get_hostname, join_url
from .base_connector import QueryOutcome
from .rest_connector import RestConnector

logger = logging.getLogger(__name__)

SALSIFY_DEFAULT_QUERY = (
    '{"filter": "<optional filter string> ",\n'
    '\t"page": "<optional page number>",\n'
    '\t"per_page": "<optional no of items per page>"\n}'
)
FILTER_PARAM = "filter"
CURSOR_PARAM = "cursor"
PAGE_PARAM = "page"
PER_PAGE_PARAM = "per_page"
HOST_HEADER = "Host"


class SalsifyResource(Enum):
    """Salsify REST endpoints: display name and path."""

    GET_ALL_PRODUCTS = ("Get list of products ", "/products")
    GET_ALL_RECORDS = ("Get list of records", "/records")
    GET_DIGITAL_ASSETS = ("Get digital assets", "/digital_assets")

    def __init__(self, label: str, url: str):
        self.label = label
        self.url = url

    def to_resource(self) -> RestResource:
        return RestResource(
            id=self.name.lower(),
            name=self.label,
            url=self.url,
            request_type=HttpMethod.GET,
            sample_query=SALSIFY_DEFAULT_QUERY,
            is_default=True,
            is_enabled=True,
        )


class SalsifyQuery(BaseModel):
    """Query document; negative page/per_page mean "not set"."""
    model_config = ConfigDict(extra="ignore")

    filter: Optional[str] = None
    page: int = -1
    per_page: int = -1

    def first_page_params(self) -> Dict[str, str]:
        params = {}
        if self.filter:
            params[FILTER_PARAM] = self.filter
        if self.page >= 0:
            params[PAGE_PARAM] = str(self.page)
        if self.per_page > 0:
            params[PER_PAGE_PARAM] = str(self.per_page)
        return params

    def carried_params(self) -> Dict[str, str]:
        """Only the filter survives onto cursor requests."""
        return {FILTER_PARAM: self.filter} if self.filter else {}

    def to_query(self) -> str:
        return to_json(self.model_dump(exclude_none=True))


def parse_query(query: Optional[str]) -> SalsifyQuery:
    """
    Parse a Salsify query document; a blank query selects everything.

    Raises:
        MalformedQueryError: If the query is not a valid query document
    """
    if not query or not query.strip():
        return SalsifyQuery()
    try:
        data = json.loads(query)
        if not isinstance(data, dict):
            raise ValueError("query must be a JSON object")
        return SalsifyQuery(**data)
    except (ValueError, ValidationError) as e:
        raise MalformedQueryError(f"[Salsify] Invalid query: {e}") from e


class SalsifyConnector(RestConnector):
    """Salsify connector with bearer token authentication."""

    name = "Salsify"
    group = "Product Information Management"
    description = "AEM Guides Salsify data source connector to query and visualize the data."
    sample_query = SALSIFY_DEFAULT_QUERY
    validation_query = ""
    config_classes = (BearerTokenRestConfig,)
    more_resources_allowed = False

    def default_resources(self) -> List[RestResource]:
        return [member.to_resource() for member in SalsifyResource]

    def pagination_settings(self, config: RestConfig) -> PaginationSettings:
        return PaginationSettings(
            kind=PaginationKind.CURSOR,
            items_path="data",
            cursor_path="meta.cursor",
            total_path="meta.total_entries",
            cursor_param=CURSOR_PARAM,
        )

    def query_with_limit(self, query: str) -> str:
        limited = parse_query(query).model_copy(update={"page": 0, "per_page": self.max_rows_for_preview})
        return limited.to_query()

    @staticmethod
    def with_host_header(headers: Dict[str, str], url: str) -> Dict[str, str]:
        return {**headers, HOST_HEADER: get_hostname(url) or url}

    def probe(self, config: RestConfig) -> Optional[RestConfig]:
        """List products once with the base request."""
        endpoint = config.resolve(validate=True)
        endpoint = endpoint.model_copy(update={
            "url": join_url(config.url, SalsifyResource.GET_ALL_PRODUCTS.url, config.url),
            "headers": self.with_host_header(endpoint.headers, config.url),
        })
        self.fetch_text(config, endpoint, None)
        return None

    def run_query(self, config: RestConfig, query_info: QueryInfo,
                  limit: Optional[int] = None) -> QueryOutcome:
        query = query_info.query
        if limit is not None:
            query = self.query_with_limit(query)
        salsify_query = parse_query(query)

        endpoint = config.resolve(query_info.resource_id, default_resources=self.default_resources())
        endpoint = endpoint.model_copy(update={
            "headers": self.with_host_header(endpoint.headers, endpoint.url),
        })
        first_query = urlencode(salsify_query.first_page_params())
        strategy = build_strategy(self.pagination_settings(config), salsify_query.carried_params())
        request = self.build_request(config, endpoint, first_query)
        envelope = self.aggregator.run(request, strategy, skip_pagination=limit is not None, max_items=limit)

        logger.debug(f"[Salsify] Returning {len(envelope.items)} of {envelope.total_count} records")
        return QueryOutcome(query, {"data": envelope.items, "totalRecords": envelope.total_count or 0})
