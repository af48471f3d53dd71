"""
Authentication configs for REST data sources.

A config holds everything needed to reach one data source: the base URL,
default request shape, the resource catalog and the credentials. Each
config class contributes its own headers or query parameters through
``authentication_details()``.
"""

import base64
import logging
from typing import ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models import AuthenticationDetails, HttpMethod
from ..resources import RestResource, find_resource, validate_resources
from ..rest.pagination import PaginationSettings
from ..rest.urls import join_url

logger = logging.getLogger(__name__)

DEFAULT_AUTH_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "
BASIC_PREFIX = "Basic "

BEARER_TOKEN = "Bearer token authentication"
NO_AUTHENTICATION = "No authentication config"

# Marks fields that hold credentials; describe_config flags them and reprs hide them
SECRET = {"secret": True}
# Runtime-only fields left out of the editor schema
HIDDEN = {"ignore": True}


class ResolvedEndpoint(BaseModel):
    """Request shape for one query after resource selection."""
    url: str
    request_type: HttpMethod = HttpMethod.GET
    body: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    resource: Optional[RestResource] = None


class ResourceListConfig(BaseModel):
    """Base for configs that carry a URL resource list."""

    config_name: ClassVar[str] = ""
    config_info: ClassVar[str] = ""

    resources: List[RestResource] = Field(
        default_factory=list,
        title="Url resource list",
        description="Resource list for multiple url",
    )

    @field_validator("resources")
    @classmethod
    def check_resources(cls, v):
        return validate_resources(v)

    def resource_list(self, default_resources: Optional[List[RestResource]] = None) -> List[RestResource]:
        """The config's own resources, or *default_resources* if it has none."""
        if self.resources:
            return self.resources
        return validate_resources(default_resources)

    def select_resource(self, resource_id: Optional[str],
                        default_resources: Optional[List[RestResource]] = None) -> Optional[RestResource]:
        return find_resource(self.resource_list(default_resources), resource_id)


class RestConfig(ResourceListConfig):
    """Base REST config: URL, default request and optional pagination."""

    config_name: ClassVar[str] = NO_AUTHENTICATION

    url: str = Field(..., title="URL", description="API URL")
    request_type: HttpMethod = Field(HttpMethod.GET, title="HTTP method", description="HTTP method type")
    body: Optional[str] = Field(None, title="Body", description="HTTP request body")
    headers: Dict[str, str] = Field(default_factory=dict, title="Headers", description="HTTP headers")
    pagination: Optional[PaginationSettings] = Field(
        None, title="Pagination", description="How results are split across responses"
    )

    @field_validator("url")
    @classmethod
    def url_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("url must not be empty")
        return v.strip()

    def authentication_details(self) -> AuthenticationDetails:
        return AuthenticationDetails()

    def resolve(self, resource_id: Optional[str] = None, validate: bool = False,
                default_resources: Optional[List[RestResource]] = None) -> ResolvedEndpoint:
        """
        Work out URL, method, body and headers for a query.

        Args:
            resource_id: Resource selected by the query, if any
            validate: Ignore resources and use the base request (connectivity probes)
            default_resources: Catalog used when the config has no resources

        Returns:
            The resolved endpoint; the resource URL is merged onto the base URL

        Raises:
            KonnectQueryError: If *resource_id* matches no resource
        """
        base = ResolvedEndpoint(
            url=self.url, request_type=self.request_type, body=self.body, headers=dict(self.headers)
        )
        if validate:
            return base

        resource = self.select_resource(resource_id, default_resources)
        if resource is None:
            return base

        return ResolvedEndpoint(
            url=join_url(self.url, resource.url, self.url),
            request_type=resource.request_type or HttpMethod.GET,
            body=resource.body,
            headers={**self.headers, **resource.headers},
            resource=resource,
        )


class NoAuthRestConfig(RestConfig):
    """REST config for open endpoints."""

    config_name: ClassVar[str] = NO_AUTHENTICATION
    config_info: ClassVar[str] = "Endpoint without authentication"


class BearerTokenRestConfig(RestConfig):
    """Bearer (token) authentication."""

    config_name: ClassVar[str] = BEARER_TOKEN
    config_info: ClassVar[str] = (
        "Bearer authentication (also called token authentication) is an HTTP authentication "
        "scheme that involves security tokens called bearer tokens."
    )

    token: str = Field(..., title="Token", description="Bearer Token", repr=False, json_schema_extra=SECRET)
    auth_header_name: str = Field(
        DEFAULT_AUTH_HEADER,
        title="Authentication header name",
        description="Header name for bearer authentication default is Authorization",
    )

    @field_validator("auth_header_name", mode="before")
    @classmethod
    def default_header_name(cls, v):
        return v if v and str(v).strip() else DEFAULT_AUTH_HEADER

    def authentication_details(self) -> AuthenticationDetails:
        return AuthenticationDetails(header={self.auth_header_name: BEARER_PREFIX + self.token})


class AppAccessTokenConfig(RestConfig):
    """
    Akeneo app credentials.

    The username/password pair and the client id/secret are exchanged for an
    access token before each execution; ``token`` holds the result and is
    never part of the editor form.
    """

    config_name: ClassVar[str] = "App username password authentication"
    config_info: ClassVar[str] = (
        "An App username password authentication containing the security credentials "
        "for Akeneo Connector"
    )

    username: str = Field(..., title="Username", description="App username password authentication")
    password: str = Field(..., title="Password", description="App password", repr=False,
                          json_schema_extra=SECRET)
    client_id: str = Field(..., title="Clientid", description="App client id")
    secret: str = Field(..., title="Secret", description="App secret", repr=False, json_schema_extra=SECRET)
    auth_header_name: str = Field(
        DEFAULT_AUTH_HEADER,
        title="Authentication header name",
        description="Header name for bearer authentication default is Authorization",
    )
    token: Optional[str] = Field(None, repr=False, json_schema_extra=HIDDEN)

    @field_validator("auth_header_name", mode="before")
    @classmethod
    def default_header_name(cls, v):
        return v if v and str(v).strip() else DEFAULT_AUTH_HEADER

    def authentication_details(self) -> AuthenticationDetails:
        return AuthenticationDetails(header={self.auth_header_name: BEARER_PREFIX + (self.token or "")})

    def oauth_authentication_details(self) -> AuthenticationDetails:
        """Basic credentials for the token endpoint."""
        raw = f"{self.client_id}:{self.secret}".encode("utf-8")
        encoded = base64.b64encode(raw).decode("ascii")
        return AuthenticationDetails(header={self.auth_header_name: BASIC_PREFIX + encoded})

    def with_token(self, token: str) -> "AppAccessTokenConfig":
        return self.model_copy(update={"token": token})


class PersonalAccessTokenConfig(ResourceListConfig):
    """Azure DevOps organization and personal access token."""

    config_name: ClassVar[str] = "Personal access token"
    config_info: ClassVar[str] = (
        "A personal access token authentication contains the security credentials for "
        "Azure DevOps as a token."
    )

    organization: str = Field(..., title="Organization", description="Organization name")
    token: str = Field(..., title="Personal access token",
                       description="Personal access token for authentication", repr=False,
                       json_schema_extra=SECRET)

    @field_validator("organization")
    @classmethod
    def organization_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("organization must not be empty")
        return v.strip()

    def authentication_details(self) -> AuthenticationDetails:
        # PATs go in the password slot of Basic auth with an empty username
        encoded = base64.b64encode(f":{self.token}".encode("utf-8")).decode("ascii")
        return AuthenticationDetails(header={DEFAULT_AUTH_HEADER: BASIC_PREFIX + encoded})
