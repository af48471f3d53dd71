"""
URL and query-string helpers shared by the request invoker and connectors.
"""

import logging
import re
from typing import Dict, Optional
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)

_ABSOLUTE_URL = re.compile(r"^\w+://.*")


def is_url_absolute(url: str) -> bool:
    return bool(url) and bool(_ABSOLUTE_URL.match(url))


def get_hostname(url: str) -> str:
    """Return the host part of *url*, or an empty string if it has none."""
    try:
        return urlsplit(url).hostname or ""
    except ValueError as e:
        logger.debug(f"Failed to get hostname from {url}: {e}")
        return ""


def get_path(url: str) -> str:
    return urlsplit(url).path


def strip_ampersands(query: Optional[str]) -> str:
    return (query or "").strip("&")


def append_query_from_uri(url: str, append_query: Optional[str]) -> Optional[str]:
    """
    Combine the query string already present on *url* with *append_query*.

    Returns:
        The combined query string, or None when neither side has one
    """
    existing = urlsplit(url).query or None
    if append_query:
        if existing is None:
            return append_query
        return f"{existing}&{append_query}"
    return existing


def join_url(base_url: str, relative_url: Optional[str], default_url: Optional[str] = None) -> str:
    """
    Merge a resource URL onto a base URL.

    The resource path is appended to the base path. When the resource path
    already contains the base path, only the remainder is appended, so
    "/api/v1" + "/api/v1/products" gives "/api/v1/products" rather than a
    doubled prefix.

    Args:
        base_url: Absolute base URL of the data source
        relative_url: Relative path, or absolute URL whose path is used
        default_url: Returned if the URLs cannot be merged; defaults to base_url

    Returns:
        The merged absolute URL
    """
    if default_url is None:
        default_url = base_url
    try:
        base = urlsplit(base_url)
        if not base.scheme or not base.netloc:
            raise ValueError(f"not an absolute URL: {base_url}")
        if not relative_url:
            return base_url

        relative_path = urlsplit(relative_url).path if is_url_absolute(relative_url) else relative_url
        base_path = base.path
        if relative_path.strip("/") == base_path.strip("/"):
            return base_url

        trimmed_base = base_path.rstrip("/")
        if trimmed_base and trimmed_base in relative_path:
            relative_path = relative_path[relative_path.index(trimmed_base) + len(trimmed_base):]

        segments = [s for s in base_path.split("/") + relative_path.split("/") if s]
        merged = urlunsplit((base.scheme, base.netloc, "/" + "/".join(segments), base.query, ""))
        logger.debug(f"Creating new URL as {merged}")
        return merged
    except ValueError as e:
        logger.debug(f"Failed to merge {relative_url} onto {base_url}, using default: {e}")
        return default_url


# ---------------------------------------------------------------------------
# Raw query-string manipulation. Values are left untouched because editors
# type them by hand (e.g. search={"categories":[...]}).
# ---------------------------------------------------------------------------

def has_query_param(query: str, key: str) -> bool:
    for segment in query.split("&"):
        if segment.split("=", 1)[0].lower() == key.lower():
            return True
    return False


def get_query_params(query: str) -> Dict[str, str]:
    """Map each parameter name to its raw ``name=value`` segment, in order."""
    params: Dict[str, str] = {}
    for segment in query.split("&"):
        name = segment.split("=", 1)[0].strip()
        params[name] = segment
    return params


def build_query(params: Optional[Dict[str, str]]) -> str:
    if not params:
        return ""
    return strip_ampersands("&".join(params.values()))


def replace_query_param(query: str, key: str, value: str) -> str:
    """Replace the first ``key=...`` segment of *query* with ``key=value``."""
    if not has_query_param(query, key):
        return query
    pattern = re.compile(r"(^|&)" + re.escape(key) + r"=[^&]*", re.IGNORECASE)
    return pattern.sub(lambda m: f"{m.group(1)}{key}={value}", query, count=1)


def set_query_param(query: str, key: str, value: str) -> str:
    """Set *key* to *value*, replacing an existing segment or appending one."""
    if has_query_param(query, key):
        return replace_query_param(query, key, value)
    params = get_query_params(query)
    params[key] = f"{key}={value}"
    return build_query(params) or query
