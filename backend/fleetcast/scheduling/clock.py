"""
Clock abstraction

Services read the current time through a Clock so tests can drive
expiry and retention windows with a manual clock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone


class Clock(ABC):
    """Source of the current time"""

    @abstractmethod
    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime"""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)
