"""
Konnect data source connectors.

Lets a content editor query external systems (Akeneo PIM, Salsify, Azure
DevOps or any JSON REST endpoint) and receive the results as JSON, following
each vendor's pagination until the full result set is collected.
"""

__version__ = "1.0.0"
__author__ = "Adobe Systems"

from .connectors import (
    AkeneoConnector,
    AzureDevopsConnector,
    BaseConnector,
    RestConnector,
    SalsifyConnector,
    get_connector_class,
)
from .models import QueryInfo, QueryResult
from .settings import BatchErrorPolicy, KonnectSettings, load_settings

__all__ = [
    "AkeneoConnector",
    "AzureDevopsConnector",
    "BaseConnector",
    "RestConnector",
    "SalsifyConnector",
    "get_connector_class",
    "QueryInfo",
    "QueryResult",
    "BatchErrorPolicy",
    "KonnectSettings",
    "load_settings",
]
