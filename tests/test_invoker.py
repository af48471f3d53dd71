"""
Tests for request building, single-page fetching and the HTTP transport.
"""

from unittest.mock import Mock

import pytest
import requests

from konnect.exceptions import KonnectConnectionError, MalformedRequestError, RemoteServiceError
from konnect.models import AuthenticationDetails, HttpMethod, PageRequest
from konnect.rest.invoker import RestInvoker
from konnect.rest.transport import HttpClient, MockTransport


class TestPrepareRequest:
    """Test cases for RestInvoker.prepare_request."""

    @pytest.fixture
    def invoker(self):
        return RestInvoker()

    def test_auth_query_merged_with_url_query(self, invoker):
        request = invoker.prepare_request(
            AuthenticationDetails(query={"key": "abc"}),
            "https://h.com/items?x=1",
            "GET",
            None,
            "a=1",
            None,
        )

        assert request.url == "https://h.com/items"
        assert request.query == "x=1&a=1&key=abc"
        assert request.full_url == "https://h.com/items?x=1&a=1&key=abc"

    def test_ampersands_stripped(self, invoker):
        request = invoker.prepare_request(None, "https://h.com/items", query="&a=1&")
        assert request.query == "a=1"

    def test_no_query(self, invoker):
        request = invoker.prepare_request(None, "https://h.com/items", query="")
        assert request.query is None
        assert request.full_url == "https://h.com/items"

    def test_only_post_carries_body(self, invoker):
        get = invoker.prepare_request(None, "https://h.com", "GET", '{"a":1}')
        post = invoker.prepare_request(None, "https://h.com", "post", '{"a":1}')
        blank = invoker.prepare_request(None, "https://h.com", "POST", "   ")
        other = invoker.prepare_request(None, "https://h.com", "PUT", '{"a":1}')

        assert get.method == HttpMethod.GET and get.body is None
        assert post.method == HttpMethod.POST and post.body == '{"a":1}'
        assert blank.method == HttpMethod.POST and blank.body is None
        assert other.method == HttpMethod.GET

    def test_auth_headers_then_custom_headers(self, invoker):
        request = invoker.prepare_request(
            AuthenticationDetails(header={"Authorization": "Bearer t", "X-Auth": "1"}),
            "https://h.com",
            headers={"authorization": "Basic x", "Accept": "application/json"},
        )

        assert request.headers == {"authorization": "Basic x", "X-Auth": "1", "Accept": "application/json"}

    @pytest.mark.parametrize("url", ["not-a-url", "ftp://h.com/x", "http://host:abc/", "", "https://"])
    def test_malformed_url(self, invoker, url):
        with pytest.raises(MalformedRequestError):
            invoker.prepare_request(None, url)

    def test_build_query(self):
        assert RestInvoker.build_query(None, {"k": "v"}) == "k=v"
        assert RestInvoker.build_query("a=1", {"k": "v", "z": "2"}) == "a=1&k=v&z=2"
        assert RestInvoker.build_query("&a=1&", None) == "a=1"


class TestInvokeRequest:
    """Test cases for RestInvoker.invoke_request."""

    @pytest.fixture
    def request_(self):
        return PageRequest(url="https://h.com/items")

    def test_returns_body_on_200(self, request_):
        transport = MockTransport([{"a": 1}])
        assert RestInvoker().invoke_request(request_, transport) == '{"a":1}'

    def test_decodes_utf8(self, request_):
        transport = MockTransport(["{\"name\":\"Café\"}".encode("utf-8")])
        assert "Café" in RestInvoker().invoke_request(request_, transport)

    @pytest.mark.parametrize("status", [201, 204, 301, 401, 404, 500])
    def test_non_200_is_remote_error(self, request_, status):
        transport = MockTransport().queue({"error": "x"}, status_code=status)

        with pytest.raises(RemoteServiceError) as exc_info:
            RestInvoker().invoke_request(request_, transport)
        assert exc_info.value.status_code == status

    @pytest.mark.parametrize("error", [
        requests.ConnectionError("refused"),
        requests.Timeout("timed out"),
        requests.exceptions.InvalidURL("bad"),
    ])
    def test_transport_errors_are_connection_errors(self, request_, error):
        transport = MockTransport([error])

        with pytest.raises(KonnectConnectionError):
            RestInvoker().invoke_request(request_, transport)


class TestHttpClient:
    """Test cases for the requests-backed transport."""

    def test_execute_uses_session_and_timeouts(self):
        session = Mock()
        session.request.return_value = Mock(status_code=200, content=b"{}")
        client = HttpClient(session=session)
        request = PageRequest(
            method=HttpMethod.POST,
            url="https://h.com/items",
            query="a=1",
            headers={"Accept": "application/json"},
            body='{"q":1}',
        )

        response = client.execute(request)

        session.request.assert_called_once_with(
            "POST",
            "https://h.com/items?a=1",
            headers={"Accept": "application/json"},
            data=b'{"q":1}',
            timeout=(20, 120),
        )
        assert response.status_code == 200
        assert response.text == "{}"

    def test_custom_timeouts(self):
        client = HttpClient(connect_timeout=5, read_timeout=30, session=Mock())
        assert client.timeout == (5, 30)


class TestMockTransport:
    """Test cases for the in-memory transport."""

    def test_routes_take_precedence_over_queue(self):
        transport = MockTransport(["queued"])
        transport.route("https://h.com/a", {"routed": True})

        first = transport.execute(PageRequest(url="https://h.com/a", query="x=1"))
        second = transport.execute(PageRequest(url="https://h.com/b"))

        assert first.text == '{"routed":true}'
        assert second.text == "queued"
        assert len(transport.requests_to("https://h.com/a")) == 1

    def test_exhausted_queue_raises_connection_error(self):
        with pytest.raises(requests.ConnectionError):
            MockTransport().execute(PageRequest(url="https://h.com"))
