"""
URL resource catalog for REST data sources.

A resource is a named endpoint under a data source's base URL (e.g. "Get
list of products" at /api/rest/v1/products). Editors pick one per query by
id; connectors ship a default catalog and configs may carry their own list.
"""

import logging
import uuid
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .exceptions import KonnectConfigError, KonnectQueryError
from .models import HttpMethod
from .rest.urls import get_path, is_url_absolute

logger = logging.getLogger(__name__)


class RestResource(BaseModel):
    """One selectable endpoint of a REST data source."""
    id: Optional[str] = Field(None, description="Stable identifier used by queries")
    name: str = Field("", description="Display name, unique per config")
    url: str = Field("", description="Path relative to the config base URL")
    request_type: Optional[HttpMethod] = None
    body: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    sample_query: str = ""
    is_default: bool = False
    is_enabled: bool = True


def normalize_resource(resource: RestResource) -> RestResource:
    """
    Check a resource and fill in the fields an editor may leave out.

    Absolute URLs are reduced to their path and relative ones get a leading
    slash. A missing id gets a random UUID and a missing method becomes GET.

    Raises:
        KonnectConfigError: If the name or url is empty
    """
    if not resource.name:
        raise KonnectConfigError("resource name is empty or blank")
    if not resource.url:
        raise KonnectConfigError("resource url is empty or blank")

    try:
        url = get_path(resource.url) if is_url_absolute(resource.url) else resource.url
    except ValueError as e:
        raise KonnectConfigError(f"Unable to get relative path from url {resource.url}: {e}") from e
    if not url.startswith("/"):
        url = "/" + url

    return resource.model_copy(update={
        "url": url,
        "id": resource.id or str(uuid.uuid4()),
        "request_type": resource.request_type or HttpMethod.GET,
    })


def validate_resources(resources: Optional[List[RestResource]]) -> List[RestResource]:
    """
    Normalize every resource and check names are unique (case-insensitively).

    Raises:
        KonnectConfigError: If a resource is invalid or two share a name
    """
    validated = [normalize_resource(r) for r in resources or []]
    names = {r.name.lower() for r in validated}
    if len(names) != len(validated):
        raise KonnectConfigError("Resource names are duplicated. Resource name should be unique")
    return validated


def find_resource(resources: List[RestResource], resource_id: Optional[str]) -> Optional[RestResource]:
    """
    Select the resource a query refers to.

    Args:
        resources: Validated resource list
        resource_id: Id from the query, compared case-insensitively

    Returns:
        The matching resource, or None when no id is given or the list is empty

    Raises:
        KonnectQueryError: If an id is given that matches no resource
    """
    if not resources or not resource_id or not resource_id.strip():
        return None
    for resource in resources:
        if resource.id and resource.id.lower() == resource_id.lower():
            logger.debug(f"Selected resource {resource.name!r} ({resource.url})")
            return resource
    raise KonnectQueryError("URL Resource selected for query is invalid")
