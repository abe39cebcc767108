"""Cursor-based pagination with bounded, governed retries.

PagedFetcher owns the one cursor loop and the one retry loop shared by every
paginated collection (GitHub issues, pull requests, discussions, single-item
comment threads, YouTube comment threads). Collections differ only in the
query document, an ``extract_page`` function that pulls ``(nodes, PageCursor)``
out of a decoded payload, and a ``map_node`` function that turns one node into
a domain object.

Pages within a collection are fetched strictly one after another because each
page's cursor comes from the previous page. Independent collections may run
concurrently on the same fetcher; all per-collection state (cursor, RetryState)
lives on the stack of a single ``run()`` call.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import requests
import structlog

from feedbackflow.models.feedback_models import PageCursor, RetryState
from feedbackflow.rate_limit import DEFAULT_FALLBACK_DELAY, compute_delay
from feedbackflow.utils.errors import (
    WARNING_TYPE_CURSOR_MISSING,
    ExhaustedRetriesError,
    FetchCancelledError,
    WarningsCollector,
)

logger = structlog.get_logger()

ExtractPage = Callable[[Dict[str, Any]], Optional[Tuple[Sequence[Any], PageCursor]]]
MapNode = Callable[[Any], Any]


@dataclass
class PaginationResult:
    """Outcome of one collection fetch.

    Attributes:
        items: Mapped items from every page, in page then node order
        pages_fetched: Number of successful pages
        has_more_pages: False once pagination terminated (always False on return)
        end_cursor: Last cursor reported by the server
        missing_data: True when the loop ended because an expected field was absent
    """
    items: List[Any] = field(default_factory=list)
    pages_fetched: int = 0
    has_more_pages: bool = True
    end_cursor: Optional[str] = None
    missing_data: bool = False


def _is_success(response: Any) -> bool:
    status = getattr(response, "status_code", None)
    return isinstance(status, int) and 200 <= status < 300


class PagedFetcher:
    """Drive cursor pagination for one logical collection at a time.

    Attributes:
        transport: Object with ``send(query, variables)`` and ``cursor_variable``
        max_attempts: Retry budget per page (default: 5)
        fallback_delay: Backoff when a failure carries no retry hint (default: 60s)

    Example:
        >>> fetcher = PagedFetcher(GraphQLTransport(url, token))
        >>> issues = await fetcher.fetch_all_pages(
        ...     ISSUES_QUERY, {"owner": "dotnet", "name": "maui"},
        ...     extract_page=extract_issues_page, map_node=issue_to_container,
        ...     collection="issues",
        ... )
    """

    def __init__(self, transport, max_attempts: int = 5,
                 fallback_delay: float = DEFAULT_FALLBACK_DELAY,
                 warnings: Optional[WarningsCollector] = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.transport = transport
        self.max_attempts = max_attempts
        self.fallback_delay = fallback_delay
        self.warnings = warnings

    async def fetch_all_pages(
        self,
        query: str,
        initial_variables: Dict[str, Any],
        extract_page: ExtractPage,
        map_node: Optional[MapNode] = None,
        collection: str = "collection",
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Any]:
        """Fetch every page of a collection and return the mapped items.

        Raises:
            ExhaustedRetriesError: A page failed max_attempts times in a row
            FetchCancelledError: cancel_event fired during a request or backoff
        """
        result = await self.run(
            query, initial_variables, extract_page, map_node,
            collection=collection, cancel_event=cancel_event,
        )
        return result.items

    async def run(
        self,
        query: str,
        initial_variables: Dict[str, Any],
        extract_page: ExtractPage,
        map_node: Optional[MapNode] = None,
        collection: str = "collection",
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PaginationResult:
        """Fetch every page of a collection, keeping the pagination state.

        A payload for which ``extract_page`` returns None (expected field absent,
        e.g. the repository no longer exists) ends pagination gracefully with
        whatever was accumulated so far.
        """
        result = PaginationResult()
        retry_state = RetryState(max_attempts=self.max_attempts)
        cursor_variable = getattr(self.transport, "cursor_variable", "after")
        page_number = 0

        while result.has_more_pages:
            page_number += 1
            variables = dict(initial_variables)
            variables[cursor_variable] = result.end_cursor

            payload = await self._fetch_page(
                query, variables, retry_state, collection, page_number, cancel_event
            )
            retry_state.reset()

            extracted = extract_page(payload) if isinstance(payload, dict) else None
            if extracted is None:
                logger.info(
                    "pagination_missing_data",
                    collection=collection,
                    page_number=page_number,
                    accumulated=len(result.items),
                )
                result.has_more_pages = False
                result.missing_data = True
                break

            nodes, cursor = extracted
            for node in nodes:
                item = map_node(node) if map_node is not None else node
                if item is not None:
                    result.items.append(item)

            result.pages_fetched += 1
            if not cursor.is_consistent:
                logger.warning(
                    "pagination_cursor_missing",
                    collection=collection,
                    page_number=page_number,
                )
                if self.warnings is not None:
                    self.warnings.append(
                        WARNING_TYPE_CURSOR_MISSING,
                        f"{collection} page {page_number} reported a next page without a cursor",
                        {"collection": collection, "page_number": page_number},
                    )
                result.has_more_pages = False
            else:
                result.has_more_pages = cursor.has_next_page
                result.end_cursor = cursor.end_cursor

            logger.debug(
                "page_fetched",
                collection=collection,
                page_number=page_number,
                node_count=len(nodes),
                has_next_page=result.has_more_pages,
            )

        logger.info(
            "collection_fetched",
            collection=collection,
            pages_fetched=result.pages_fetched,
            item_count=len(result.items),
        )
        return result

    async def _fetch_page(
        self,
        query: str,
        variables: Dict[str, Any],
        retry_state: RetryState,
        collection: str,
        page_number: int,
        cancel_event: Optional[asyncio.Event],
    ) -> Any:
        """Fetch one page, retrying the same cursor until success or budget exhaustion."""
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise FetchCancelledError(collection, page_number)

            response = None
            error = None
            try:
                response = await self._await_or_cancel(
                    asyncio.to_thread(self.transport.send, query, variables),
                    cancel_event, collection, page_number,
                )
            except requests.RequestException as e:
                error = e

            if response is not None and _is_success(response):
                try:
                    payload = response.json()
                except ValueError as e:
                    error = e
                else:
                    if isinstance(payload, dict) and payload.get("errors"):
                        logger.warning(
                            "graphql_errors",
                            collection=collection,
                            page_number=page_number,
                            errors=payload["errors"],
                        )
                    return payload

            retry_state.record_failure()
            status = getattr(response, "status_code", None)

            if retry_state.exhausted:
                logger.error(
                    "page_fetch_exhausted",
                    collection=collection,
                    page_number=page_number,
                    attempts=retry_state.attempt_count,
                    status_code=status,
                )
                raise ExhaustedRetriesError(
                    collection, page_number, retry_state.attempt_count,
                    last_status=status if isinstance(status, int) else None,
                )

            delay = compute_delay(response, fallback=self.fallback_delay)
            logger.warning(
                "page_fetch_retry",
                collection=collection,
                page_number=page_number,
                attempt=retry_state.attempt_count,
                max_attempts=retry_state.max_attempts,
                status_code=status,
                error=str(error) if error is not None else None,
                delay=delay,
            )
            await self._await_or_cancel(
                asyncio.sleep(delay), cancel_event, collection, page_number
            )

    async def _await_or_cancel(
        self,
        awaitable: Awaitable[Any],
        cancel_event: Optional[asyncio.Event],
        collection: str,
        page_number: int,
    ) -> Any:
        """Await ``awaitable`` unless cancel_event fires first."""
        if cancel_event is None:
            return await awaitable

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (work, waiter):
                if not task.done():
                    task.cancel()

        if work in done:
            return work.result()

        logger.info("fetch_cancelled", collection=collection, page_number=page_number)
        raise FetchCancelledError(collection, page_number)
