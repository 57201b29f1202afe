"""Timestamp helpers. All stored timestamps are integer epoch milliseconds."""

import time
from datetime import datetime, timezone
from typing import Any, Optional


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def format_timestamp(ts: Any) -> Optional[str]:
    """
    Format an epoch-ms timestamp as a date-only ISO string (YYYY-MM-DD, UTC).

    Returns None when the timestamp is absent or cannot be interpreted.
    """
    if ts is None or isinstance(ts, bool):
        return None
    try:
        seconds = float(ts) / 1000.0
        return datetime.fromtimestamp(seconds, tz=timezone.utc).date().isoformat()
    except (TypeError, ValueError, OverflowError, OSError):
        return None
