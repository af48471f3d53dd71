"""
Generic REST Connector for Konnect.

Queries any JSON REST endpoint. The query text is a raw query-string
fragment appended to the resolved resource URL. When the config declares
pagination, pages are aggregated into one envelope; otherwise the response
body is returned as-is.
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import unquote_plus

from ..config.auth import BearerTokenRestConfig, NoAuthRestConfig, ResolvedEndpoint, RestConfig
from ..exceptions import KonnectQueryError
from ..models import PageRequest, QueryInfo, ResultEnvelope
from ..rest.json_utils import parse_json
from ..rest.pagination import PaginationKind, PaginationSettings, build_strategy
from ..rest.urls import get_query_params
from .base_connector import BaseConnector, QueryOutcome

logger = logging.getLogger(__name__)


class RestConnector(BaseConnector):
    """Connector for arbitrary REST endpoints, optionally paginated."""

    name = "REST Connector"
    group = "REST Connector"
    description = "AEM Guides REST data source connector to query and visualize the data."
    config_classes = (NoAuthRestConfig, BearerTokenRestConfig)
    more_resources_allowed = True

    def probe(self, config: RestConfig) -> Optional[RestConfig]:
        """Send the config's base request to its base URL."""
        endpoint = config.resolve(validate=True)
        self.fetch_text(config, endpoint, None)
        return None

    def query_with_limit(self, query: str) -> str:
        """Rewrite a query for a preview run; the generic connector leaves it alone."""
        return query

    def pagination_settings(self, config: RestConfig) -> Optional[PaginationSettings]:
        return config.pagination

    def carried_params(self, query: str, settings: PaginationSettings) -> Dict[str, str]:
        """Parameters of the first request kept on cursor continuation requests."""
        return query_param_values(query, settings.carry_params)

    def build_request(self, config: RestConfig, endpoint: ResolvedEndpoint,
                      query: Optional[str]) -> PageRequest:
        return self.invoker.prepare_request(
            config.authentication_details(),
            endpoint.url,
            endpoint.request_type.value,
            endpoint.body,
            query,
            endpoint.headers,
        )

    def fetch_text(self, config: RestConfig, endpoint: ResolvedEndpoint, query: Optional[str]) -> str:
        request = self.build_request(config, endpoint, query)
        return self.invoker.invoke_request(request, self.transport)

    def aggregate(self, config: RestConfig, endpoint: ResolvedEndpoint, query: Optional[str],
                  settings: PaginationSettings, limit: Optional[int] = None) -> ResultEnvelope:
        """Fetch every page of a paginated endpoint (only the first for previews)."""
        strategy = build_strategy(settings, self.carried_params(query or "", settings))
        request = self.build_request(config, endpoint, query)
        return self.aggregator.run(request, strategy, skip_pagination=limit is not None, max_items=limit)

    def run_query(self, config: RestConfig, query_info: QueryInfo,
                  limit: Optional[int] = None) -> QueryOutcome:
        query = query_info.query.strip()
        if limit is not None:
            query = self.query_with_limit(query)
        endpoint = config.resolve(query_info.resource_id, default_resources=self.default_resources())

        settings = self.pagination_settings(config)
        if settings is None or settings.kind == PaginationKind.NONE:
            raw = self.fetch_text(config, endpoint, query)
            parsed = parse_json(raw)
            if not parsed:
                raise KonnectQueryError(f"Malformed response from remote service: {parsed.error}")
            return QueryOutcome(query, parsed.data, raw=raw)

        envelope = self.aggregate(config, endpoint, query, settings, limit)
        data = {"items": envelope.items}
        if envelope.total_count is not None:
            data["totalCount"] = envelope.total_count
        return QueryOutcome(query, data)


def query_param_values(query: str, names: List[str]) -> Dict[str, str]:
    """Decoded values of selected parameters in a query-string fragment."""
    segments = get_query_params(query) if query else {}
    values = {}
    for name in names:
        segment = segments.get(name)
        if segment is not None and "=" in segment:
            values[name] = unquote_plus(segment.split("=", 1)[1])
    return values
