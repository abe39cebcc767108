"""Backoff decisions for failed page fetches.

compute_delay() inspects a failed HTTP response and returns how long the caller
should wait before retrying the same page. It holds no state and performs no
I/O; the caller owns the sleep.

Order of precedence:
    1. ``Retry-After`` as delta-seconds (honored exactly)
    2. ``Retry-After`` as an HTTP-date
    3. GitHub primary rate limit: ``x-ratelimit-remaining: 0`` with ``x-ratelimit-reset``
    4. Fixed fallback (60 seconds by default)
"""

import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

DEFAULT_FALLBACK_DELAY = 60.0


def _lowercase_headers(response: Any) -> Dict[str, str]:
    headers = getattr(response, "headers", None) or {}
    return {str(key).lower(): str(value).strip() for key, value in headers.items()}


def _parse_retry_after(value: str, now: datetime) -> Optional[float]:
    try:
        seconds = float(value)
    except ValueError:
        seconds = None

    if seconds is not None:
        if not math.isfinite(seconds):
            return None
        return max(0.0, seconds)

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at is None:
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0.0, (retry_at - now).total_seconds())


def compute_delay(
    response: Any,
    fallback: float = DEFAULT_FALLBACK_DELAY,
    now: Optional[datetime] = None,
) -> float:
    """Decide the backoff delay for a failed page fetch.

    Args:
        response: The failed response (anything with a ``headers`` mapping), or
            None when the request never produced a response
        fallback: Delay in seconds when no usable hint is present (default: 60)
        now: Reference time for date-based hints (default: current UTC time)

    Returns:
        float: Seconds to wait before retrying

    Example:
        >>> compute_delay(MagicMock(headers={"Retry-After": "5"}))
        5.0
        >>> compute_delay(None)
        60.0
    """
    if response is None:
        return fallback

    now = now or datetime.now(timezone.utc)
    headers = _lowercase_headers(response)

    retry_after = headers.get("retry-after")
    if retry_after:
        delay = _parse_retry_after(retry_after, now)
        if delay is not None:
            return delay

    if headers.get("x-ratelimit-remaining") == "0" and headers.get("x-ratelimit-reset"):
        try:
            reset_epoch = float(headers["x-ratelimit-reset"])
        except ValueError:
            return fallback
        if not math.isfinite(reset_epoch):
            return fallback
        return max(0.0, reset_epoch - now.timestamp())

    return fallback
