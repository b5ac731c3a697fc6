"""Record model: original capture frames and synthesized time-codes."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

from .protocol import COUNTER_MASK, SPW_ESC, TIMECODE_FRAME_LEN
from .timebase import split_epoch_us


class RecordKind(enum.Enum):
    ORIGINAL = "original"
    SYNTHETIC = "synthetic"


@dataclass(frozen=True)
class Original:
    """A frame read from the input capture."""

    timestamp_us: int
    payload: bytes
    declared_length: int

    kind = RecordKind.ORIGINAL

    def __post_init__(self) -> None:
        if self.declared_length < len(self.payload):
            raise ValueError(
                f"captured length {len(self.payload)} exceeds declared length {self.declared_length}"
            )


@dataclass(frozen=True)
class Synthetic:
    """A generated time-code frame: escape marker followed by a 6-bit counter."""

    timestamp_us: int
    counter: int
    marker: int = SPW_ESC

    kind = RecordKind.SYNTHETIC

    @property
    def payload(self) -> bytes:
        return bytes((self.marker, self.counter & COUNTER_MASK))

    @property
    def declared_length(self) -> int:
        return TIMECODE_FRAME_LEN


TimestampedRecord = Union[Original, Synthetic]


def sink_fields(record: TimestampedRecord) -> tuple[int, int, int, bytes, RecordKind]:
    """Restate a record as (seconds, microseconds, declared_length, payload, kind) for a writer."""
    seconds, micros = split_epoch_us(record.timestamp_us)
    return seconds, micros, record.declared_length, record.payload, record.kind
