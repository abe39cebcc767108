"""Error Handling Utilities

This module defines the typed error taxonomy surfaced by the ingestion core,
retry logic with exponential backoff for simple transient failures, and a
warning collector for non-fatal data-quality events found while normalizing
comment trees.

Error tiers:
    Tier 1 (source unavailable): SourceUnavailableError, AnalysisServiceError
    Tier 2 (retry with backoff): transient page failures, retried locally
    Tier 3 (terminal for a collection): ExhaustedRetriesError, FetchCancelledError
    Tier 4 (degradation): data-quality warnings, collected and never raised
"""

import json
import time
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple, Type, TypeVar, Any


T = TypeVar('T')


class FeedbackFlowError(Exception):
    """Base class for every error raised by the ingestion core."""


class FetchError(FeedbackFlowError):
    """A collection fetch failed.

    Attributes:
        collection: Logical collection name (e.g. "issues", "discussion_comments")
        page_number: 1-based page that was being fetched when the failure happened
    """

    def __init__(self, message: str, collection: str = "unknown", page_number: int = 0):
        super().__init__(message)
        self.collection = collection
        self.page_number = page_number


class ExhaustedRetriesError(FetchError):
    """Retry budget spent without a successful page; terminal for the collection."""

    def __init__(self, collection: str, page_number: int, attempts: int,
                 last_status: Optional[int] = None):
        message = (
            f"Max retries exceeded fetching {collection} page {page_number} "
            f"after {attempts} attempts"
        )
        if last_status is not None:
            message += f" (last HTTP status {last_status})"
        super().__init__(message, collection=collection, page_number=page_number)
        self.attempts = attempts
        self.last_status = last_status


class FetchCancelledError(FetchError):
    """The caller's cancellation signal fired during a page attempt or backoff."""

    def __init__(self, collection: str, page_number: int):
        super().__init__(
            f"Fetch of {collection} cancelled at page {page_number}",
            collection=collection,
            page_number=page_number,
        )


class SourceUnavailableError(FeedbackFlowError):
    """Tier 1 error for a content platform that cannot be reached (HTTP 503)."""


class AnalysisServiceError(FeedbackFlowError):
    """Tier 1 error for analysis service failures."""


def retry_with_backoff(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
) -> T:
    """Execute a callable with exponential backoff retry logic.

    Used for single-shot requests that have no server retry hint (Hacker News
    item lookups). Paginated collections use PagedFetcher instead, which is
    backed off with rate_limit.compute_delay.

    Args:
        fn: Callable to execute (should take no arguments)
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 30.0)
        retryable_exceptions: Tuple of exception types to retry on (default: all exceptions)

    Returns:
        The result of fn() on successful execution

    Raises:
        The final exception if all retries are exhausted, or immediately if the exception
        type is not in retryable_exceptions

    Backoff schedule (base_delay=1.0, max_delay=30.0):
        - Attempt 1: immediate
        - Attempt 2: wait 1.0s (base_delay * 2^0)
        - Attempt 3: wait 2.0s (base_delay * 2^1)
        - etc., capped at max_delay
    """
    last_exception = None

    for attempt in range(max_retries + 1):
        try:
            return fn()
        except Exception as e:
            if not isinstance(e, retryable_exceptions):
                raise

            last_exception = e

            if attempt >= max_retries:
                raise

            delay = min(base_delay * (2 ** attempt), max_delay)
            time.sleep(delay)

    if last_exception:
        raise last_exception
    raise RuntimeError("Unreachable code")


# Supported warning types (Tier 4: Degradation)
WARNING_TYPE_COMMENT_CYCLE_SKIPPED = "comment_cycle_skipped"
WARNING_TYPE_MALFORMED_NODE_SKIPPED = "malformed_node_skipped"
WARNING_TYPE_ORPHANED_PARENT_REFERENCE = "orphaned_parent_reference"
WARNING_TYPE_CURSOR_MISSING = "cursor_missing"

VALID_WARNING_TYPES = {
    WARNING_TYPE_COMMENT_CYCLE_SKIPPED,
    WARNING_TYPE_MALFORMED_NODE_SKIPPED,
    WARNING_TYPE_ORPHANED_PARENT_REFERENCE,
    WARNING_TYPE_CURSOR_MISSING,
}


class WarningsCollector:
    """Thread-safe collector for non-fatal data-quality warnings.

    Accumulates warning events with type, message, timestamp, and context.
    Collections fetched concurrently may share one collector.

    Example:
        >>> collector = WarningsCollector()
        >>> collector.append(
        ...     "comment_cycle_skipped",
        ...     "Comment c1 already emitted",
        ...     {"comment_id": "c1"}
        ... )
        >>> collector.to_json()
        '[{"type": "comment_cycle_skipped", "message": "...", "timestamp": "...", "context": {...}}]'
    """

    def __init__(self):
        self._warnings: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def append(self, warning_type: str, message: str, context: Dict[str, Any]) -> None:
        """Add a warning with type, message, timestamp, and context.

        Raises:
            ValueError: If warning_type is not in VALID_WARNING_TYPES
        """
        if warning_type not in VALID_WARNING_TYPES:
            raise ValueError(
                f"Invalid warning_type '{warning_type}'. "
                f"Must be one of: {', '.join(sorted(VALID_WARNING_TYPES))}"
            )

        warning = {
            "type": warning_type,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "context": context
        }

        with self._lock:
            self._warnings.append(warning)

    @property
    def warnings(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._warnings)

    def count(self, warning_type: Optional[str] = None) -> int:
        with self._lock:
            if warning_type is None:
                return len(self._warnings)
            return sum(1 for w in self._warnings if w["type"] == warning_type)

    def to_json(self) -> Optional[str]:
        """Serialize warnings to a JSON array string, or None when empty."""
        with self._lock:
            if not self._warnings:
                return None
            return json.dumps(self._warnings)
