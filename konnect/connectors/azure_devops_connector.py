"""
Azure DevOps Connector for Konnect.

Fetches work items from an Azure DevOps organization by id list, by WIQL
query text or by stored query id, using the Work Item Tracking REST API with
personal access token authentication.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

from pydantic import BaseModel, ConfigDict, ValidationError

from ..config.auth import PersonalAccessTokenConfig
from ..exceptions import KonnectQueryError, MalformedQueryError
from ..models import HttpMethod, QueryInfo
from ..resources import RestResource
from ..rest.json_utils import get_path, parse_json, to_json
from .base_connector import BaseConnector, QueryOutcome

logger = logging.getLogger(__name__)

ADO_BASE_URL = "https://dev.azure.com"
API_VERSION = "7.0"
VALIDATION_FIELD = "System.Id"
# Work Items - List accepts at most 200 ids per call
MAX_IDS_PER_REQUEST = 200

ADO_DEFAULT_QUERY = (
    '{\n  "project": "Guides",\n  "query":"Select [System.Id], [System.Title], [System.State] '
    "From WorkItems Where [System.WorkItemType] = 'Task' order by "
    '[Microsoft.VSTS.Common.Priority] asc, [System.CreatedDate] desc" \n}'
)
ADO_DEFAULT_QUERY_BY_ID = '{\n  "project": "Guides",\n  "query":"1,2,5,22" \n}'
ADO_DEFAULT_QUERY_BY_QUERY_ID = '{\n  "project": "Guides",\n  "query":"queryid12345" \n}'


class AzureDevopsResource(Enum):
    """Ways of selecting work items: display name, path and sample query."""

    BY_ID = ("Work Items by ID", "_apis/wit/workitems", ADO_DEFAULT_QUERY_BY_ID)
    BY_QUERY = ("Work Items by Wiql Query", "_apis/wit/wiql", ADO_DEFAULT_QUERY)
    BY_QUERY_ID = ("Work Items by Wiql Query Id", "_apis/wit/wiql/{id}", ADO_DEFAULT_QUERY_BY_QUERY_ID)

    def __init__(self, label: str, url: str, sample_query: str):
        self.label = label
        self.url = url
        self.sample_query = sample_query

    @classmethod
    def from_label(cls, label: str) -> Optional["AzureDevopsResource"]:
        for member in cls:
            if member.label.lower() == (label or "").strip().lower():
                return member
        return None

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


class AzureDevopsQuery(BaseModel):
    """Query document: the project and the ids, WIQL text or stored query id."""
    model_config = ConfigDict(extra="ignore")

    project: Optional[str] = None
    query: str = ""


def parse_query(query: Optional[str]) -> AzureDevopsQuery:
    """
    Parse an Azure DevOps query document.

    Raises:
        MalformedQueryError: If the text is not a JSON query document
    """
    try:
        data = json.loads(query or "")
        if not isinstance(data, dict):
            raise ValueError("query must be a JSON object")
        return AzureDevopsQuery(**data)
    except (ValueError, ValidationError) as e:
        raise MalformedQueryError(f"[AzureDevops] Incorrect query format: {e}") from e


def parse_ids(query: str) -> List[int]:
    """
    Parse a comma-separated work item id list such as "1,2,5,22".

    Raises:
        MalformedQueryError: If any entry is not an integer
    """
    try:
        return [int(part.strip()) for part in query.split(",")]
    except ValueError as e:
        raise MalformedQueryError(f"[AzureDevops] Incorrect query format: {e}") from e


def sort_by_ids(items: List[Dict[str, Any]], ids: List[int]) -> List[Dict[str, Any]]:
    """Order work items as in *ids*; ids the service did not return are dropped."""
    by_id = {item.get("id"): item for item in items}
    return [by_id[i] for i in ids if i in by_id]


class AzureDevopsConnector(BaseConnector):
    """Azure DevOps work item connector."""

    name = "Azure DevOps"
    group = "Project Management"
    description = "AEM Guides Azure DevOps data source connector to query and visualize the data."
    sample_query = ADO_DEFAULT_QUERY
    validation_query = VALIDATION_FIELD
    config_classes = (PersonalAccessTokenConfig,)
    more_resources_allowed = False

    def default_resources(self) -> List[RestResource]:
        return [member.to_resource() for member in AzureDevopsResource]

    @staticmethod
    def organization_url(config: PersonalAccessTokenConfig) -> str:
        return f"{ADO_BASE_URL}/{quote(config.organization, safe='')}"

    def project_url(self, config: PersonalAccessTokenConfig, project: Optional[str]) -> str:
        base = self.organization_url(config)
        if project and project.strip():
            return f"{base}/{quote(project.strip(), safe='')}"
        return base

    def call(self, config: PersonalAccessTokenConfig, url: str, params: Optional[Dict[str, str]] = None,
             body: Optional[Dict[str, Any]] = None) -> Any:
        """Send one API request and return the parsed JSON response."""
        query = urlencode({**(params or {}), "api-version": API_VERSION}, safe=",$")
        headers = {"Content-Type": "application/json"} if body is not None else {}
        request = self.invoker.prepare_request(
            config.authentication_details(),
            url,
            HttpMethod.POST.value if body is not None else HttpMethod.GET.value,
            to_json(body) if body is not None else None,
            query,
            headers,
        )
        raw = self.invoker.invoke_request(request, self.transport)
        parsed = parse_json(raw)
        if not parsed:
            raise KonnectQueryError(f"[AzureDevops] Malformed response from remote service: {parsed.error}")
        return parsed.data

    def probe(self, config: PersonalAccessTokenConfig) -> Optional[PersonalAccessTokenConfig]:
        """Read the definition of the System.Id field."""
        self.call(config, f"{self.organization_url(config)}/_apis/wit/fields/{self.validation_query}")
        return None

    def get_by_ids(self, config: PersonalAccessTokenConfig, project: Optional[str], ids: List[int],
                   fields: Optional[List[str]] = None, as_of: Optional[str] = None,
                   limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Fetch work items by id, in chunks the service accepts.

        Args:
            config: Connector config
            project: Project name, optional for id lookups
            ids: Work item ids
            fields: Field reference names to return; all fields when empty
            as_of: Point in time to read the work items at
            limit: Preview cap applied to the id list before fetching

        Returns:
            Work items as returned by the service
        """
        if limit is not None:
            ids = ids[:limit]
        if not ids:
            return []

        url = f"{self.project_url(config, project)}/_apis/wit/workitems"
        items: List[Dict[str, Any]] = []
        for start in range(0, len(ids), MAX_IDS_PER_REQUEST):
            chunk = ids[start:start + MAX_IDS_PER_REQUEST]
            params = {"ids": ",".join(str(i) for i in chunk)}
            if fields:
                params["fields"] = ",".join(fields)
                if as_of:
                    params["asOf"] = as_of
                params["errorPolicy"] = "omit"
            else:
                params["$expand"] = "fields"
            response = self.call(config, url, params)
            # errorPolicy=omit returns null for ids that cannot be read
            items.extend(item for item in get_path(response, "value", []) or [] if item)
        return items

    def get_by_query(self, config: PersonalAccessTokenConfig, project: Optional[str], wiql: str,
                     limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Run a WIQL query and fetch the matching work items with the query's columns."""
        url = f"{self.project_url(config, project)}/_apis/wit/wiql"
        result = self.call(config, url, body={"query": wiql})

        ids = [ref.get("id") for ref in get_path(result, "workItems", []) or []]
        if not ids:
            return []
        fields = [col.get("referenceName") for col in get_path(result, "columns", []) or []]
        if not fields:
            return []

        as_of = get_path(result, "asOf")
        items = self.get_by_ids(config, project, ids, fields, as_of or None, limit)
        return sort_by_ids(items, ids)

    def get_by_query_id(self, config: PersonalAccessTokenConfig, project: Optional[str], query_id: str,
                        limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Load a stored query's WIQL and run it."""
        if not project or not project.strip():
            raise KonnectQueryError("[AzureDevops] Project should not be empty for this resource")
        url = f"{self.project_url(config, project)}/_apis/wit/queries/{quote(query_id.strip(), safe='')}"
        stored = self.call(config, url, {"$expand": "all"})
        wiql = get_path(stored, "wiql")
        if not isinstance(wiql, str) or not wiql.strip():
            raise KonnectQueryError("[AzureDevops] Query is empty")
        return self.get_by_query(config, project, wiql, limit)

    def run_query(self, config: PersonalAccessTokenConfig, query_info: QueryInfo,
                  limit: Optional[int] = None) -> QueryOutcome:
        ado_query = parse_query(query_info.query)
        resource = config.select_resource(query_info.resource_id, self.default_resources())
        kind = AzureDevopsResource.from_label(resource.name) if resource else None
        if kind is None:
            raise KonnectQueryError("[AzureDevops] Resource not found")

        if kind == AzureDevopsResource.BY_ID:
            ids = parse_ids(ado_query.query)
            items = sort_by_ids(self.get_by_ids(config, ado_query.project, ids, limit=limit), ids)
        elif kind == AzureDevopsResource.BY_QUERY:
            items = self.get_by_query(config, ado_query.project, ado_query.query, limit)
        else:
            items = self.get_by_query_id(config, ado_query.project, ado_query.query, limit)

        logger.debug(f"[AzureDevops] Returning {len(items)} work items")
        return QueryOutcome(query_info.query, {"data": items})

    def batch_entry(self, outcome: QueryOutcome) -> Any:
        return outcome.data["data"]
