"""
Exception hierarchy for Konnect connectors.

Connection problems and query problems are kept apart so that callers can
tell "the data source is unreachable" from "this particular query failed".
"""


class KonnectError(Exception):
    """Base error for anything a connector cannot complete."""


class KonnectConfigError(KonnectError):
    """Invalid connector configuration or resource list."""


class KonnectConnectionError(KonnectError):
    """The remote data source could not be reached or authenticated against."""


class KonnectQueryError(KonnectError):
    """A single query could not be executed."""


class MalformedRequestError(KonnectQueryError):
    """The request URL could not be turned into a valid URI."""


class RemoteServiceError(KonnectQueryError):
    """The remote service answered with a status other than HTTP 200."""

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class MalformedQueryError(KonnectQueryError):
    """The query text supplied by the editor could not be parsed."""
