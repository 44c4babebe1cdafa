from datetime import datetime
from typing import Protocol


class ClockPort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Return current UTC time (timezone-aware)."""
        ...
