"""
core/clock.py -- Wall-clock access for authgate.

Every component that needs "now" takes a Clock (a zero-argument callable
returning an aware UTC datetime) at construction instead of calling
datetime.now() itself. Production code passes utc_now; tests pass a fake
clock they can move forward to simulate near-expiry and post-expiry states.

The store keeps timestamps as integer epoch milliseconds in BigInteger
columns. to_millis / from_millis are the only conversions and
use integer timedelta arithmetic, so a value truncated with
truncate_to_millis() survives a round-trip exactly.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

Clock = Callable[[], datetime]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_millis(moment: datetime) -> int:
    """Return whole epoch milliseconds for an aware datetime (sub-ms part dropped)."""
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def from_millis(millis: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=millis)


def truncate_to_millis(moment: datetime) -> datetime:
    return moment.replace(microsecond=moment.microsecond - moment.microsecond % 1000)
