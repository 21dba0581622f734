"""Paging of list queries, request-body field access and reward periods."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Optional, TypeVar, Union

from sqlalchemy import Select

# Period 0 starts at 2024-02-27 00:00:00 UTC.
GENESIS_TIME = 1708992000
PERIOD_DURATION = 86400

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

S = TypeVar("S", bound=Select)


def _field(body: Any, name: str, default: Any = None) -> Any:
    """Look up a body field by name, ignoring case; the last match wins, null is skipped."""
    found = default
    if isinstance(body, dict):
        wanted = name.lower()
        for key, value in body.items():
            if isinstance(key, str) and key.lower() == wanted and value is not None:
                found = value
    return found


def _int_field(body: Any, name: str) -> int:
    """Return an integer body field, 0 when absent; raise ValueError on another type."""
    value = _field(body, name)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


def _required_text(body: Any, name: str) -> Optional[str]:
    """Return a non-empty string body field, or None when missing or invalid."""
    value = _field(body, name)
    return value if isinstance(value, str) and value else None


def _lenient_int(body: Any, name: str) -> int:
    try:
        return _int_field(body, name)
    except ValueError:
        return 0


def page_bounds(page: int, page_size: int) -> tuple[int, int]:
    """Return (offset, limit): pages start at 1, sizes default to 10 and cap at 100."""
    if page <= 0:
        page = 1
    if page_size > MAX_PAGE_SIZE:
        page_size = MAX_PAGE_SIZE
    elif page_size <= 0:
        page_size = DEFAULT_PAGE_SIZE
    return (page - 1) * page_size, page_size


def paginate(query: S, body: Any) -> S:
    """Apply the request's Page and PageSize to a query."""
    offset, limit = page_bounds(_lenient_int(body, "Page"), _lenient_int(body, "PageSize"))
    return query.offset(offset).limit(limit)


def current_period(now: Union[datetime, float, int, None] = None) -> int:
    """Return the reward period number for a moment, as an unsigned 32-bit value."""
    if now is None:
        seconds = int(time.time())
    elif isinstance(now, datetime):
        seconds = int(now.timestamp())
    else:
        seconds = int(now)
    elapsed = seconds - GENESIS_TIME
    periods = abs(elapsed) // PERIOD_DURATION
    if elapsed < 0:
        periods = -periods
    return periods % 2**32