"""
sovcoin/core/time.py

Clock sources for settlement.

Plans are time-boxed in whole unix seconds, the same unit the TTL is
configured in. Journal entries carry a wire timestamp instead:

    YYYY-MM-DDTHH:MM:SS.mmmZ  (milliseconds, explicit Z, no +00:00)

Every module that needs "now" receives a Clock from the SettlementHost so
tests can move time forward without sleeping.
"""

import time
from datetime import datetime, timezone


def journal_timestamp() -> str:
    """
    Return current UTC time in journal wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"


class Clock:
    """Wall clock in unix seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Used by tests and simulations to drive plans past their TTL.
    """

    def __init__(self, start: int = 1_700_000_000):
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        self._now += seconds
        return self._now

    def set(self, value: int) -> None:
        self._now = value
