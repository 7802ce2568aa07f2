from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC, the representation every stored instant uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):
    def now(self) -> datetime:
        # second precision keeps generated due times comparable with stored ones
        return utcnow().replace(microsecond=0)
