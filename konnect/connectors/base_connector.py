"""
Base Connector Classes for Konnect.

This module provides the foundation for all data source connectors (generic
REST, Akeneo, Salsify, Azure DevOps): connectivity checks, single, batch and
limited (preview) execution, and the error policy shared by all of them.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Type

from ..config.auth import ResourceListConfig
from ..exceptions import (
    KonnectConfigError,
    KonnectConnectionError,
    KonnectError,
    MalformedQueryError,
)
from ..models import QueryInfo, QueryResult
from ..resources import RestResource
from ..rest.invoker import RestInvoker
from ..rest.json_utils import to_json
from ..rest.pagination import Breather, PaginationAggregator
from ..rest.transport import HttpClient
from ..settings import BatchErrorPolicy, KonnectSettings

logger = logging.getLogger(__name__)

ADOBE_SYSTEMS = "Adobe Systems"


class QueryOutcome:
    """Result of running one query against a data source."""

    def __init__(self, query: str, data: Any = None, raw: Optional[str] = None):
        """
        Args:
            query: The query actually executed, after any rewriting
            data: JSON-compatible output for this query
            raw: Response text to return verbatim instead of serializing data
        """
        self.query = query
        self.data = data
        self.raw = raw

    def to_json(self) -> str:
        if self.raw is not None:
            return self.raw
        return to_json(self.data)

    def __repr__(self):
        return f"QueryOutcome(query={self.query!r})"


class BaseConnector(ABC):
    """
    Abstract base class for all data source connectors.

    Subclasses describe themselves through class attributes and implement
    ``probe`` (the connectivity check) and ``run_query``.
    """

    name: str = ""
    group: str = "REST Connector"
    author: str = ADOBE_SYSTEMS
    description: str = ""
    sample_query: str = ""
    validation_query: str = ""
    config_classes: Tuple[Type[ResourceListConfig], ...] = ()
    more_resources_allowed: bool = False
    enabled: bool = True

    def __init__(self, transport=None, settings: Optional[KonnectSettings] = None,
                 breather: Optional[Breather] = None, invoker: Optional[RestInvoker] = None):
        """
        Initialize the connector.

        Args:
            transport: Object with ``execute(PageRequest)``; defaults to an HttpClient
            settings: Runtime settings; defaults to KonnectSettings()
            breather: Pause used between pages of link-paginated sources
            invoker: Request builder/fetcher
        """
        self.settings = settings or KonnectSettings()
        self.transport = transport or HttpClient(self.settings.connect_timeout, self.settings.read_timeout)
        self.invoker = invoker or RestInvoker()
        self.breather = breather or Breather()
        self.aggregator = PaginationAggregator(self.transport, self.invoker, self.breather)

        logger.info(f"Initialized {self.__class__.__name__}")

    @property
    def max_rows_for_preview(self) -> int:
        return self.settings.max_rows_for_preview

    def default_resources(self) -> List[RestResource]:
        """Resource catalog used when a config brings none."""
        return []

    def check_config(self, config: ResourceListConfig):
        if not isinstance(config, self.config_classes):
            allowed = ", ".join(c.__name__ for c in self.config_classes)
            raise KonnectConfigError(
                f"{self.name} does not accept {type(config).__name__}; expected one of: {allowed}"
            )

    @abstractmethod
    def probe(self, config: ResourceListConfig) -> Optional[ResourceListConfig]:
        """
        Check the data source is reachable with *config*.

        Returns:
            A replacement config to execute with (e.g. one carrying a fresh
            access token), or None to keep *config*

        Raises:
            KonnectError: If the data source cannot be reached
        """
        pass

    @abstractmethod
    def run_query(self, config: ResourceListConfig, query_info: QueryInfo,
                  limit: Optional[int] = None) -> QueryOutcome:
        """
        Run one query.

        Args:
            config: Connected config
            query_info: Query and resource selection
            limit: Preview item cap; None for a full execution

        Returns:
            QueryOutcome with the vendor-shaped output
        """
        pass

    def batch_entry(self, outcome: QueryOutcome) -> Any:
        """Value stored under the query name in batch output."""
        return outcome.data

    def connect(self, config: ResourceListConfig) -> ResourceListConfig:
        """
        Probe connectivity and return the config to execute with.

        Raises:
            KonnectConnectionError: If the data source cannot be reached
        """
        self.check_config(config)
        try:
            connected = self.probe(config)
        except KonnectConnectionError:
            raise
        except KonnectError as e:
            raise KonnectConnectionError(f"[{self.name}] Error in connecting to client: {e}") from e
        return connected or config

    def validate_connection(self, config: ResourceListConfig) -> bool:
        """Return True if the data source answers, logging the failure otherwise."""
        try:
            self.connect(config)
            return True
        except KonnectError as e:
            logger.error(f"[{self.name}] Error in connecting to client: {e}")
            return False

    def execute(self, config: ResourceListConfig, query_info: QueryInfo) -> str:
        """
        Run a single query.

        Returns:
            The vendor-shaped JSON output

        Raises:
            KonnectConnectionError: If the connectivity check fails
            KonnectQueryError: If the query or a page fetch fails
        """
        config = self.connect(config)
        outcome = self._run(config, query_info)
        return outcome.to_json()

    def execute_batch(self, config: ResourceListConfig, query_infos: List[QueryInfo],
                      policy: Optional[BatchErrorPolicy] = None) -> str:
        """
        Run several queries sequentially.

        Args:
            config: Connector config
            query_infos: Queries; each output is stored under its query name
            policy: Error policy; defaults to the configured batch_error_policy

        Returns:
            JSON object mapping query names to their output
        """
        config = self.connect(config)
        policy = policy or self.settings.batch_error_policy
        results: Dict[str, Any] = {}

        for query_info in query_infos:
            try:
                outcome = self._run(config, query_info)
            except MalformedQueryError as e:
                if policy == BatchErrorPolicy.ABORT:
                    raise
                logger.warning(f"[{self.name}] Skipping malformed query {query_info.query_name!r}: {e}")
                continue
            results[query_info.query_name] = self.batch_entry(outcome)

        logger.info(f"[{self.name}] Batch completed: {len(results)}/{len(query_infos)} queries")
        return to_json(results)

    def execute_with_limit(self, config: ResourceListConfig, query_info: QueryInfo) -> QueryResult:
        """Run a preview: at most ``max_rows_for_preview`` items, no pagination."""
        config = self.connect(config)
        outcome = self._run(config, query_info, limit=self.max_rows_for_preview)
        return QueryResult(query=outcome.query, response=outcome.to_json())

    def _run(self, config: ResourceListConfig, query_info: QueryInfo,
             limit: Optional[int] = None) -> QueryOutcome:
        logger.debug(f"[{self.name}] Running query {query_info.query_name!r}")
        try:
            return self.run_query(config, query_info, limit)
        except KonnectError:
            raise
        except Exception as e:
            logger.error(f"[{self.name}] Error in sending request: {e}")
            raise KonnectError(f"[{self.name}] Error in sending request: {e}") from e

