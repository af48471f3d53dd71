"""
Runtime settings for Konnect connectors.

Settings are read from a YAML file (``konnect.yaml`` by default, or the path
in ``KONNECT_SETTINGS``); anything missing falls back to the defaults below.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field

from .exceptions import KonnectConfigError

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "KONNECT_SETTINGS"
DEFAULT_SETTINGS_FILE = "konnect.yaml"


class BatchErrorPolicy(str, Enum):
    """What a batch execution does when one query fails."""
    SKIP_MALFORMED = "skip_malformed"
    ABORT = "abort"


class KonnectSettings(BaseModel):
    """Tunables shared by all connectors."""
    max_rows_for_preview: int = Field(5, gt=0, description="Item cap for limited (preview) executions")
    connect_timeout: float = Field(20, gt=0, description="Seconds to establish a connection")
    read_timeout: float = Field(120, gt=0, description="Seconds to wait for response data")
    akeneo_page_delay: float = Field(15.0, ge=0, description="Pause before each Akeneo continuation page")
    akeneo_default_limit: int = Field(100, gt=0, description="Akeneo page size for full executions")
    batch_error_policy: BatchErrorPolicy = BatchErrorPolicy.SKIP_MALFORMED


def load_settings(path: Optional[Union[str, Path]] = None) -> KonnectSettings:
    """
    Load settings from YAML.

    Args:
        path: Settings file; defaults to $KONNECT_SETTINGS, then ./konnect.yaml

    Returns:
        KonnectSettings, with defaults when no file exists

    Raises:
        KonnectConfigError: If the file exists but is not valid settings
    """
    if path is None:
        path = os.environ.get(SETTINGS_ENV_VAR, DEFAULT_SETTINGS_FILE)
    settings_file = Path(path)

    if not settings_file.exists():
        logger.debug(f"Settings file not found: {settings_file}, using defaults")
        return KonnectSettings()

    try:
        with open(settings_file, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        settings = KonnectSettings(**data)
    except (yaml.YAMLError, TypeError, ValueError) as e:
        logger.error(f"Failed to load settings from {settings_file}: {e}")
        raise KonnectConfigError(f"Invalid settings file {settings_file}: {e}") from e

    logger.info(f"Loaded settings from {settings_file}")
    return settings
