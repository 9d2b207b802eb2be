"""Injectable source of the current time.

Everything that needs "now" takes a ``Clock`` (any zero-argument callable
returning a naive UTC datetime) so tests can pin expiry and scheduling
boundaries.
"""
from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
