"""
YAML loading of connector configs.

A connector config file names the connector, optionally the authentication
type, and the config fields::

    connector: akeneo
    auth: Bearer token authentication
    config:
      url: https://akeneo.example.com
      token: ${AKENEO_TOKEN}

``${VAR}`` references in string values are expanded from the environment so
credentials can stay out of the file.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Type, Union

import yaml
from pydantic import BaseModel, ValidationError

from ..exceptions import KonnectConfigError
from .auth import ResourceListConfig

logger = logging.getLogger(__name__)


class ConnectorConfig(BaseModel):
    """A loaded config and the connector it belongs to."""
    connector: str
    config: ResourceListConfig


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


def select_config_class(connector_class, auth: Optional[str] = None) -> Type[ResourceListConfig]:
    """
    Pick the connector's config class named by *auth*.

    *auth* may be the class name or its display name, compared
    case-insensitively; without it the connector's first config class is used.
    """
    if not connector_class.config_classes:
        raise KonnectConfigError(f"{connector_class.name} declares no config classes")
    if not auth:
        return connector_class.config_classes[0]
    wanted = auth.strip().lower()
    for config_class in connector_class.config_classes:
        if wanted in (config_class.__name__.lower(), config_class.config_name.lower()):
            return config_class
    raise KonnectConfigError(f"{connector_class.name} has no authentication type {auth!r}")


def config_from_dict(connector_class, data: Dict[str, Any], auth: Optional[str] = None) -> ResourceListConfig:
    """Build a config for *connector_class* from plain data."""
    config_class = select_config_class(connector_class, auth)
    try:
        return config_class(**(data or {}))
    except ValidationError as e:
        raise KonnectConfigError(f"Invalid {config_class.config_name or config_class.__name__}: {e}") from e


def load_connector_config(path: Union[str, Path]) -> ConnectorConfig:
    """
    Load a connector config file.

    Args:
        path: YAML file with ``connector``, optional ``auth`` and ``config`` keys

    Returns:
        ConnectorConfig with the connector registry key and the config object

    Raises:
        KonnectConfigError: If the file is missing, unreadable or invalid
    """
    # Imported here: the connectors package depends on this package
    from ..connectors import get_connector_class

    config_file = Path(path)
    if not config_file.exists():
        raise KonnectConfigError(f"Connector config file not found: {config_file}")

    try:
        with open(config_file, encoding='utf-8') as f:
            document = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse connector config {config_file}: {e}")
        raise KonnectConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if not isinstance(document, dict) or not document.get("connector"):
        raise KonnectConfigError(f"{config_file} must name a connector")

    document = _expand_env(document)
    connector_class = get_connector_class(document["connector"])
    config = config_from_dict(connector_class, document.get("config") or {}, document.get("auth"))

    logger.info(f"Loaded {connector_class.name} config ({config.config_name}) from {config_file}")
    return ConnectorConfig(connector=document["connector"], config=config)
