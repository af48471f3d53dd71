"""
JSON helpers for connector payloads.

Parsing returns a JsonResult instead of raising, so callers decide whether
a malformed document is a query error, a remote error or something to skip.
"""

import json
from typing import Any, Optional


class JsonResult:
    """Outcome of parsing a JSON document."""

    def __init__(self, success: bool, data: Optional[Any] = None, error: Optional[str] = None):
        self.success = success
        self.data = data
        self.error = error

    def __bool__(self):
        return self.success

    def __repr__(self):
        if self.success:
            return f"JsonResult(success=True, data={type(self.data).__name__})"
        return f"JsonResult(success=False, error={self.error!r})"


def parse_json(text: Optional[str]) -> JsonResult:
    """Parse *text* into Python objects."""
    if text is None or not text.strip():
        return JsonResult(False, error="empty document")
    try:
        return JsonResult(True, data=json.loads(text))
    except ValueError as e:
        return JsonResult(False, error=str(e))


def to_json(value: Any) -> str:
    """Serialize *value* compactly, keeping non-ASCII and HTML characters as-is."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def get_path(document: Any, path: str, default: Any = None) -> Any:
    """
    Look up a dotted *path* (e.g. ``_links.next.href``) in a parsed document.

    Missing keys, and non-object values along the way, give *default*.
    """
    current = document
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current
