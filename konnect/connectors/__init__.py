"""
Connectors Package for Konnect.

This package provides connectors for generic REST endpoints, Akeneo PIM,
Salsify and Azure DevOps.
"""

from typing import Dict, List, Type

from ..exceptions import KonnectConfigError
from .akeneo_connector import AkeneoConnector
from .azure_devops_connector import AzureDevopsConnector
from .base_connector import BaseConnector, QueryOutcome
from .rest_connector import RestConnector
from .salsify_connector import SalsifyConnector

CONNECTORS: Dict[str, Type[BaseConnector]] = {
    "rest": RestConnector,
    "akeneo": AkeneoConnector,
    "salsify": SalsifyConnector,
    "azure_devops": AzureDevopsConnector,
}


def get_connector_class(name: str) -> Type[BaseConnector]:
    """
    Get connector class by registry key ("akeneo") or display name ("Azure DevOps").

    Raises:
        KonnectConfigError: If no connector has that name
    """
    key = (name or "").strip().lower()
    if key in CONNECTORS:
        return CONNECTORS[key]
    for connector_class in CONNECTORS.values():
        if connector_class.name.lower() == key:
            return connector_class
    raise KonnectConfigError(f"Unknown connector: {name!r}; available: {', '.join(CONNECTORS)}")


def available_connectors() -> List[str]:
    return [key for key, cls in CONNECTORS.items() if cls.enabled]


__all__ = [
    "BaseConnector",
    "QueryOutcome",
    "RestConnector",
    "AkeneoConnector",
    "SalsifyConnector",
    "AzureDevopsConnector",
    "CONNECTORS",
    "get_connector_class",
    "available_connectors",
]
