"""Timeline merge and streaming capture statistics."""
from __future__ import annotations

from operator import attrgetter
from typing import Iterable

from ptc_core.records import Original, Synthetic, TimestampedRecord


class RunningStats:
    """Frame count and first/last timestamp in read order, in constant memory."""

    def __init__(self) -> None:
        self.count = 0
        self.first_us: int | None = None
        self.last_us: int | None = None
        self.regressions = 0

    def update(self, timestamp_us: int) -> None:
        if self.first_us is None:
            self.first_us = timestamp_us
        elif timestamp_us < self.last_us:
            self.regressions += 1
        self.last_us = timestamp_us
        self.count += 1

    @property
    def empty(self) -> bool:
        return self.count == 0

    @property
    def duration_us(self) -> int | None:
        if self.empty:
            return None
        return self.last_us - self.first_us


def merge_timeline(
    originals: Iterable[Original],
    synthetics: Iterable[Synthetic],
) -> list[TimestampedRecord]:
    """Order originals and time-codes by timestamp.

    Originals go in first and the sort is stable, so on equal timestamps an
    original precedes a time-code and each kind keeps its input order.
    """
    merged: list[TimestampedRecord] = list(originals)
    merged.extend(synthetics)
    merged.sort(key=attrgetter("timestamp_us"))
    return merged
