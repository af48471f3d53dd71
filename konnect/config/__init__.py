"""
Connector configuration: authentication configs, editor form descriptions
and YAML loading.
"""

from .auth import (
    AppAccessTokenConfig,
    BearerTokenRestConfig,
    NoAuthRestConfig,
    PersonalAccessTokenConfig,
    ResolvedEndpoint,
    ResourceListConfig,
    RestConfig,
)
from .loader import ConnectorConfig, config_from_dict, load_connector_config
from .schema import describe_config, describe_connector

__all__ = [
    "AppAccessTokenConfig",
    "BearerTokenRestConfig",
    "NoAuthRestConfig",
    "PersonalAccessTokenConfig",
    "ResolvedEndpoint",
    "ResourceListConfig",
    "RestConfig",
    "ConnectorConfig",
    "config_from_dict",
    "load_connector_config",
    "describe_config",
    "describe_connector",
]
