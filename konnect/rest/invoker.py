"""
REST request invoker.

RestInvoker builds PageRequests from connector configuration (URL, method,
body, query string, authentication details and custom headers) and executes
them against a transport, turning transport failures and non-200 answers
into Konnect errors.
"""

import logging
from typing import Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from ..exceptions import KonnectConnectionError, MalformedRequestError, RemoteServiceError
from ..models import AuthenticationDetails, HttpMethod, PageRequest
from .urls import append_query_from_uri, strip_ampersands

logger = logging.getLogger(__name__)

HTTP_OK = 200


class RestInvoker:
    """Prepares and sends single REST requests."""

    def prepare_request(self, auth_details: Optional[AuthenticationDetails], url: str,
                        method: Optional[str] = None, body: Optional[str] = None,
                        query: Optional[str] = None,
                        headers: Optional[Dict[str, str]] = None) -> PageRequest:
        """
        Build the outbound request for one page.

        Args:
            auth_details: Authentication headers and query parameters from the config
            url: Absolute URL, possibly already carrying a query string
            method: "POST" sends the body; anything else is a GET
            body: Request body, attached only to a POST when not blank
            query: Raw query string to append to the URL
            headers: Custom headers, applied after the authentication headers

        Returns:
            An immutable PageRequest

        Raises:
            MalformedRequestError: If the URL cannot be parsed into an absolute URI
        """
        auth_details = auth_details or AuthenticationDetails()
        query = self.build_query(query, auth_details.query)

        try:
            parts = urlsplit(url or "")
            parts.port  # raises ValueError on an invalid port
            if parts.scheme not in ("http", "https") or not parts.netloc:
                raise ValueError(f"not an absolute http(s) URL: {url!r}")
            combined_query = append_query_from_uri(url, query)
        except ValueError as e:
            raise MalformedRequestError(f"Invalid request URL {url!r}: {e}") from e

        base_url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
        is_post = (method or "").upper() == HttpMethod.POST.value
        request_body = body if is_post and body and body.strip() else None

        return PageRequest(
            method=HttpMethod.POST if is_post else HttpMethod.GET,
            url=base_url,
            query=combined_query or None,
            headers=self.merge_headers(auth_details.header, headers),
            body=request_body,
        )

    def invoke_request(self, request: PageRequest, transport) -> str:
        """
        Execute a request and return the response body.

        Args:
            request: The request to send
            transport: Object exposing ``execute(PageRequest)``, e.g. HttpClient

        Returns:
            The response body decoded as UTF-8

        Raises:
            KonnectConnectionError: If the transport fails (refused, timeout, bad URI)
            RemoteServiceError: If the status is anything but HTTP 200
        """
        try:
            response = transport.execute(request)
        except requests.RequestException as e:
            raise KonnectConnectionError(f"Error in connecting to {request.url}: {e}") from e

        logger.debug(f"Response from {request.method.value} {request.url}: {response.status_code}")
        if response.status_code != HTTP_OK:
            raise RemoteServiceError(
                f"Error received from remote service (HTTP {response.status_code})",
                status_code=response.status_code,
            )
        return response.content.decode("utf-8", errors="replace")

    @staticmethod
    def build_query(query: Optional[str], auth_query: Optional[Dict[str, str]]) -> str:
        """Append the config's authentication query parameters to *query*."""
        query = query or ""
        for key, value in (auth_query or {}).items():
            query = f"{query}&{key}={value}"
        return strip_ampersands(query)

    @staticmethod
    def merge_headers(auth_headers: Optional[Dict[str, str]],
                      headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        """Apply authentication headers, then custom headers; last write wins."""
        merged: Dict[str, str] = {}
        for source in (auth_headers, headers):
            for name, value in (source or {}).items():
                existing = next((k for k in merged if k.lower() == name.lower()), None)
                if existing is not None and existing != name:
                    merged = {(name if k == existing else k): v for k, v in merged.items()}
                merged[name] = value
        return merged
