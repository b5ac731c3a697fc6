"""Timestamp normalization across capture precisions."""
from __future__ import annotations

import enum
from datetime import datetime, timedelta, timezone

from .protocol import NS_PER_US, US_PER_SECOND

# Rendering is always at UTC+9, whatever the host timezone says.
JST = timezone(timedelta(hours=9), "JST")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Precision(enum.Enum):
    """Sub-second resolution of a capture timestamp."""

    MICRO = 6
    NANO = 9


def to_epoch_us(seconds: int, subsecond: int, precision: Precision) -> int:
    """Convert a capture (seconds, sub-second, precision) triple to epoch microseconds.

    Nanosecond sub-seconds are truncated, never rounded: 999 ns is 0 us.
    """
    if precision is Precision.NANO:
        subsecond_us = subsecond // NS_PER_US
    else:
        subsecond_us = subsecond
    return seconds * US_PER_SECOND + subsecond_us


def split_epoch_us(epoch_us: int) -> tuple[int, int]:
    """Split epoch microseconds into (seconds, microseconds).

    Floor division borrows one second for negative values, so the remainder
    is always in [0, 1_000_000).
    """
    return divmod(epoch_us, US_PER_SECOND)


def format_fixed_offset(epoch_us: int, tz: timezone = JST) -> str:
    """Render epoch microseconds as ``YYYY-MM-DD HH:MM:SS.ffffff+09:00``."""
    seconds, micros = split_epoch_us(epoch_us)
    civil = (_EPOCH + timedelta(seconds=seconds, microseconds=micros)).astimezone(tz)
    return civil.isoformat(sep=" ", timespec="microseconds")
