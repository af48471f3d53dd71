"""
REST plumbing shared by all connectors: request building, transports and
paged result aggregation.
"""

from .invoker import RestInvoker
from .pagination import (
    Breather,
    ContinuationStrategy,
    CursorContinuation,
    LinkContinuation,
    NoContinuation,
    PaginationAggregator,
    PaginationKind,
    PaginationSettings,
    build_strategy,
)
from .transport import HttpClient, MockTransport, TransportResponse

__all__ = [
    "RestInvoker",
    "Breather",
    "ContinuationStrategy",
    "CursorContinuation",
    "LinkContinuation",
    "NoContinuation",
    "PaginationAggregator",
    "PaginationKind",
    "PaginationSettings",
    "build_strategy",
    "HttpClient",
    "MockTransport",
    "TransportResponse",
]
