"""
Core data models for Konnect connectors.

This module defines the Pydantic models shared by the request invoker,
the pagination loop and the connectors: outbound page requests, parsed
pages, the aggregated result envelope and the query descriptors handed
in by the host.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field

RESOURCE_ID = "resourceId"


class HttpMethod(str, Enum):
    """HTTP methods a connector may issue."""
    GET = "GET"
    POST = "POST"


class AuthenticationDetails(BaseModel):
    """Headers and query parameters a config contributes to every request."""
    header: Dict[str, str] = Field(default_factory=dict)
    query: Dict[str, str] = Field(default_factory=dict)


class PageRequest(BaseModel):
    """One outbound HTTP request; built per page, consumed once."""
    model_config = ConfigDict(frozen=True)

    method: HttpMethod = HttpMethod.GET
    url: str = Field(..., description="Scheme, host and path without the query string")
    query: Optional[str] = Field(None, description="Raw query string without the leading '?'")
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None

    @property
    def full_url(self) -> str:
        if self.query:
            return f"{self.url}?{self.query}"
        return self.url

    def with_url(self, href: str) -> "PageRequest":
        """Copy of this request pointed at *href*, taken verbatim."""
        parts = urlsplit(href)
        url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
        return self.model_copy(update={"url": url, "query": parts.query or None})

    def with_query(self, params: Dict[str, str]) -> "PageRequest":
        """Copy of this request with the query string replaced by *params*."""
        query = urlencode(params) if params else None
        return self.model_copy(update={"query": query})


class PageResult(BaseModel):
    """A single fetched page after the continuation strategy parsed it."""
    raw: str
    items: List[Any] = Field(default_factory=list)
    continuation: Optional[str] = None
    total_count: Optional[int] = None

    @property
    def has_more(self) -> bool:
        return bool(self.continuation and self.continuation.strip())


class ResultEnvelope(BaseModel):
    """Items accumulated across all pages of one query, in fetch order."""
    model_config = ConfigDict(frozen=True)

    items: List[Any] = Field(default_factory=list)
    total_count: Optional[int] = None
    pages_fetched: int = 0


class QueryInfo(BaseModel):
    """A query as handed in by the host editor."""
    query: str = ""
    query_name: str = ""
    additional_query_info: Dict[str, str] = Field(default_factory=dict)
    additional_resource_info: Dict[str, str] = Field(default_factory=dict)

    @property
    def resource_id(self) -> Optional[str]:
        value = self.additional_resource_info.get(RESOURCE_ID)
        return value or None


class QueryResult(BaseModel):
    """Result of a limited (preview) execution."""
    query: str
    response: str
