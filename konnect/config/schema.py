"""
Declarative descriptions of connector configs.

Host editors render config forms from these descriptions instead of
hard-coding each connector's credentials screen.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Type, Union, get_args, get_origin

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def _field_type(annotation: Any) -> str:
    if isinstance(annotation, type):
        if issubclass(annotation, Enum):
            return "enum"
        if issubclass(annotation, bool):
            return "boolean"
        if issubclass(annotation, (int, float)):
            return "number"
        if issubclass(annotation, BaseModel):
            return "object"
    origin = get_origin(annotation)
    if origin is list:
        return "list"
    if origin is dict:
        return "map"
    return "string"


def _enum_values(annotation: Any) -> List[str]:
    if isinstance(annotation, type) and issubclass(annotation, Enum):
        return [member.value for member in annotation]
    return []


def describe_config(config_class: Type[BaseModel]) -> Dict[str, Any]:
    """
    Describe a config class as a form definition.

    Args:
        config_class: One of the connector's config classes

    Returns:
        Dict with the config ``name``, ``info`` and a ``fields`` list; each
        field has ``name``, ``label``, ``required``, ``info``, ``type``,
        ``secret`` and, where present, ``default`` and ``values``
    """
    fields = []
    for name, field in config_class.model_fields.items():
        extra = field.json_schema_extra if isinstance(field.json_schema_extra, dict) else {}
        if extra.get("ignore"):
            continue

        annotation = field.annotation
        if get_origin(annotation) is Union:
            # Optional[X] -> X
            args = [a for a in get_args(annotation) if a is not type(None)]
            if len(args) == 1:
                annotation = args[0]

        entry = {
            "name": name,
            "label": field.title or name,
            "required": field.is_required(),
            "info": field.description or "",
            "type": _field_type(annotation),
            "secret": bool(extra.get("secret")),
        }
        values = _enum_values(annotation)
        if values:
            entry["values"] = values
        # Factory defaults (lists, maps) are not reported
        default = None if field.is_required() or field.default_factory is not None else field.default
        if default is not None:
            entry["default"] = default.value if isinstance(default, Enum) else default
        fields.append(entry)

    return {
        "name": getattr(config_class, "config_name", "") or config_class.__name__,
        "info": getattr(config_class, "config_info", ""),
        "fields": fields,
    }


def describe_connector(connector) -> Dict[str, Any]:
    """Metadata of a connector together with its config forms and default resources."""
    return {
        "name": connector.name,
        "group": connector.group,
        "author": connector.author,
        "description": connector.description,
        "sample_query": connector.sample_query,
        "validation_query": connector.validation_query,
        "more_resources_allowed": connector.more_resources_allowed,
        "configs": [describe_config(cls) for cls in connector.config_classes],
        "resources": [r.model_dump(mode="json") for r in connector.default_resources()],
    }
