"""
Paged REST result aggregation.

A ContinuationStrategy knows how a vendor lays out a page (where the items
are, where the continuation token is) and how to build the request for the
next page. The PaginationAggregator drives the fetch/continue loop and
collects every page's items into one ResultEnvelope.

Two vendor styles are supported:

  * link-based: the page advertises the absolute URL of the next page
    (Akeneo ``_links.next.href``), fetched verbatim after a fixed breather
    to stay under the vendor's rate limit;
  * cursor-based: the page carries an opaque cursor (Salsify
    ``meta.cursor``) sent back as a query parameter on the same URL.
"""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..exceptions import KonnectConfigError, KonnectQueryError
from ..models import PageRequest, PageResult, ResultEnvelope
from .invoker import RestInvoker
from .json_utils import get_path, parse_json

logger = logging.getLogger(__name__)


class PaginationKind(str, Enum):
    """How a data source splits results across responses."""
    NONE = "none"
    LINK = "link"
    CURSOR = "cursor"


class PaginationSettings(BaseModel):
    """Declarative description of a data source's pagination."""
    kind: PaginationKind = PaginationKind.NONE
    items_path: Optional[str] = Field(None, description="Dotted path of the items array in a page")
    next_link_path: str = Field("_links.next.href", description="Dotted path of the next-page URL")
    cursor_path: str = Field("meta.cursor", description="Dotted path of the continuation cursor")
    total_path: Optional[str] = Field(None, description="Dotted path of the total entry count")
    cursor_param: str = Field("cursor", description="Query parameter carrying the cursor")
    carry_params: List[str] = Field(
        default_factory=list, description="First-request parameters kept on cursor continuation requests"
    )
    delay_seconds: float = Field(0.0, ge=0, description="Pause before each continuation fetch")


class Breather:
    """
    Interruptible pause between page fetches.

    ``interrupt()`` from another thread ends the current pause early; the
    pagination loop then continues immediately. An interrupt sent while no
    pause is running is discarded when the next pause starts.
    """

    def __init__(self):
        self._interrupted = threading.Event()

    def pause(self, seconds: float):
        if seconds <= 0:
            return
        self._interrupted.clear()
        if self._interrupted.wait(seconds):
            logger.debug("Breather interrupted, continuing without full delay")
            self._interrupted.clear()

    def interrupt(self):
        self._interrupted.set()


def _load_page(raw: str) -> Any:
    result = parse_json(raw)
    if not result:
        raise KonnectQueryError(f"Malformed response from remote service: {result.error}")
    return result.data


class ContinuationStrategy(ABC):
    """Reads pages of one vendor and decides whether and how to continue."""

    delay_seconds: float = 0.0

    @abstractmethod
    def parse(self, raw: str) -> PageResult:
        """Extract items and the continuation token from a response body."""

    @abstractmethod
    def next_request(self, previous: PageRequest, page: PageResult) -> Optional[PageRequest]:
        """Return the request for the following page, or None when done."""


class NoContinuation(ContinuationStrategy):
    """Single-response sources: the whole document is the result."""

    def __init__(self, items_path: Optional[str] = None):
        self.items_path = items_path

    def parse(self, raw: str) -> PageResult:
        document = _load_page(raw)
        if self.items_path:
            items = get_path(document, self.items_path)
            if isinstance(items, list):
                return PageResult(raw=raw, items=items)
        return PageResult(raw=raw, items=[document])

    def next_request(self, previous: PageRequest, page: PageResult) -> Optional[PageRequest]:
        return None


class LinkContinuation(ContinuationStrategy):
    """Follow the next-page URL advertised in each page."""

    def __init__(self, items_path: str = "_embedded.items",
                 next_link_path: str = "_links.next.href",
                 delay_seconds: float = 15.0):
        self.items_path = items_path
        self.next_link_path = next_link_path
        self.delay_seconds = delay_seconds

    def parse(self, raw: str) -> PageResult:
        document = _load_page(raw)
        items = get_path(document, self.items_path)
        if not isinstance(items, list):
            # Single-entity endpoints return the entity itself
            items = [document] if isinstance(document, dict) and document else []
        href = get_path(document, self.next_link_path)
        return PageResult(raw=raw, items=items, continuation=href if isinstance(href, str) else None)

    def next_request(self, previous: PageRequest, page: PageResult) -> Optional[PageRequest]:
        if not page.has_more:
            return None
        return previous.with_url(page.continuation)


class CursorContinuation(ContinuationStrategy):
    """Send the page's cursor back on the same URL until none is returned."""

    def __init__(self, items_path: str = "data", cursor_path: str = "meta.cursor",
                 total_path: Optional[str] = "meta.total_entries", cursor_param: str = "cursor",
                 carried_params: Optional[Dict[str, str]] = None):
        """
        Initialize the strategy.

        Args:
            items_path: Dotted path of the items array
            cursor_path: Dotted path of the cursor in each page
            total_path: Dotted path of the total entry count, if reported
            cursor_param: Query parameter name used to send the cursor back
            carried_params: Parameters of the first request kept on every
                continuation request (e.g. the filter); all others are dropped
        """
        self.items_path = items_path
        self.cursor_path = cursor_path
        self.total_path = total_path
        self.cursor_param = cursor_param
        self.carried_params = dict(carried_params or {})

    def parse(self, raw: str) -> PageResult:
        document = _load_page(raw)
        items = get_path(document, self.items_path)
        cursor = get_path(document, self.cursor_path)
        total = get_path(document, self.total_path) if self.total_path else None
        return PageResult(
            raw=raw,
            items=items if isinstance(items, list) else [],
            continuation=cursor if isinstance(cursor, str) else None,
            total_count=total if isinstance(total, int) and not isinstance(total, bool) else None,
        )

    def next_request(self, previous: PageRequest, page: PageResult) -> Optional[PageRequest]:
        if not page.has_more:
            return None
        params = dict(self.carried_params)
        params[self.cursor_param] = page.continuation
        return previous.with_query(params)


def build_strategy(settings: Optional[PaginationSettings],
                   carried_params: Optional[Dict[str, str]] = None) -> ContinuationStrategy:
    """Create the continuation strategy described by *settings*."""
    if settings is None or settings.kind == PaginationKind.NONE:
        return NoContinuation(settings.items_path if settings else None)
    if settings.kind == PaginationKind.LINK:
        return LinkContinuation(
            items_path=settings.items_path or "_embedded.items",
            next_link_path=settings.next_link_path,
            delay_seconds=settings.delay_seconds,
        )
    if settings.kind == PaginationKind.CURSOR:
        return CursorContinuation(
            items_path=settings.items_path or "data",
            cursor_path=settings.cursor_path,
            total_path=settings.total_path,
            cursor_param=settings.cursor_param,
            carried_params=carried_params,
        )
    raise KonnectConfigError(f"Unsupported pagination kind: {settings.kind}")


class PaginationAggregator:
    """Fetches pages until the strategy reports no continuation."""

    def __init__(self, transport, invoker: Optional[RestInvoker] = None,
                 breather: Optional[Breather] = None):
        self.transport = transport
        self.invoker = invoker or RestInvoker()
        self.breather = breather or Breather()

    def fetch(self, request: PageRequest, strategy: ContinuationStrategy) -> PageResult:
        raw = self.invoker.invoke_request(request, self.transport)
        return strategy.parse(raw)

    def run(self, first_request: PageRequest, strategy: ContinuationStrategy,
            skip_pagination: bool = False, max_items: Optional[int] = None) -> ResultEnvelope:
        """
        Fetch the first page and every continuation page.

        Args:
            first_request: Request for the first page
            strategy: Vendor continuation strategy
            skip_pagination: Only fetch the first page (preview runs)
            max_items: Stop once this many items are collected

        Returns:
            The items of all fetched pages, in order, with the first page's total

        Raises:
            KonnectError: From any page; items already collected are discarded
        """
        logger.debug(f"Fetching first page {first_request.full_url}")
        page = self.fetch(first_request, strategy)
        items: List[Any] = list(page.items)
        total_count = page.total_count
        pages_fetched = 1
        request = first_request

        while not skip_pagination and not self._capped(items, max_items):
            next_request = strategy.next_request(request, page)
            if next_request is None:
                break
            self.breather.pause(strategy.delay_seconds)
            logger.debug(f"Fetching page {pages_fetched + 1} from {next_request.full_url}")
            page = self.fetch(next_request, strategy)
            items.extend(page.items)
            pages_fetched += 1
            request = next_request

        if max_items is not None:
            items = items[:max_items]

        logger.debug(f"Aggregated {len(items)} items from {pages_fetched} page(s)")
        return ResultEnvelope(items=items, total_count=total_count, pages_fetched=pages_fetched)

    @staticmethod
    def _capped(items: List[Any], max_items: Optional[int]) -> bool:
        return max_items is not None and len(items) >= max_items
