"""
HTTP transports for Konnect connectors.

HttpClient sends PageRequests over a requests Session with the connect and
read timeouts used by all connectors. MockTransport serves canned responses
from memory for development and testing without network access.
"""

import logging
from typing import Any, List, Optional, Tuple, Union

import requests

from ..models import PageRequest
from .json_utils import to_json

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 20
DEFAULT_READ_TIMEOUT = 120


class TransportResponse:
    """Status code and raw body of an HTTP exchange."""

    def __init__(self, status_code: int, content: bytes = b""):
        self.status_code = status_code
        self.content = content

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")

    def __repr__(self):
        return f"TransportResponse(status_code={self.status_code}, bytes={len(self.content)})"


class HttpClient:
    """Blocking HTTP transport backed by requests."""

    def __init__(self, connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
                 read_timeout: float = DEFAULT_READ_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        Initialize the HTTP client.

        Args:
            connect_timeout: Seconds to wait for a connection to be established
            read_timeout: Seconds to wait between bytes of the response
            session: Optional pre-configured session (proxies, certificates, etc.)
        """
        self.timeout = (connect_timeout, read_timeout)
        self.session = session or requests.Session()

    def execute(self, request: PageRequest) -> TransportResponse:
        """
        Send a request and return the raw response.

        Raises:
            requests.RequestException: On any transport-level failure
        """
        data = request.body.encode("utf-8") if request.body is not None else None
        response = self.session.request(
            request.method.value,
            request.full_url,
            headers=request.headers,
            data=data,
            timeout=self.timeout,
        )
        return TransportResponse(response.status_code, response.content)

    def close(self):
        self.session.close()


MockBody = Union[str, bytes, dict, list, Exception]


class MockTransport:
    """
    In-memory transport for offline runs and tests.

    Responses are served from fixed routes first (matched on method and URL
    without the query string), then from a FIFO queue. Every request is
    recorded for inspection.
    """

    def __init__(self, responses: Optional[List[MockBody]] = None):
        self._queue: List[Tuple[MockBody, int]] = [(body, 200) for body in responses or []]
        self._routes: List[Tuple[Optional[str], str, MockBody, int]] = []
        self.requests: List[PageRequest] = []

    def queue(self, body: MockBody, status_code: int = 200) -> "MockTransport":
        self._queue.append((body, status_code))
        return self

    def route(self, url: str, body: MockBody, status_code: int = 200,
              method: Optional[str] = None) -> "MockTransport":
        self._routes.append((method, url, body, status_code))
        return self

    def requests_to(self, url: str) -> List[PageRequest]:
        return [r for r in self.requests if r.url == url]

    def execute(self, request: PageRequest) -> TransportResponse:
        self.requests.append(request)
        logger.debug(f"Mock transport serving {request.method.value} {request.full_url}")

        for method, url, body, status_code in self._routes:
            if url == request.url and (method is None or method == request.method.value):
                return self._respond(body, status_code)

        if self._queue:
            body, status_code = self._queue.pop(0)
            return self._respond(body, status_code)

        raise requests.ConnectionError(
            f"No mock response for {request.method.value} {request.full_url}"
        )

    @staticmethod
    def _respond(body: Any, status_code: int) -> TransportResponse:
        if isinstance(body, Exception):
            raise body
        if isinstance(body, (dict, list)):
            body = to_json(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        return TransportResponse(status_code, body)
