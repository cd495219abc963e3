"""Clock helpers: wall time for persisted rows, monotonic time for rate limits."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], float]


def utc_now() -> datetime:
    """Return current UTC time with tzinfo."""

    return datetime.now(timezone.utc)


def monotonic() -> float:
    return time.monotonic()


__all__ = ["Clock", "monotonic", "utc_now"]
