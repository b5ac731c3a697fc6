"""Time-code synthesis: a periodic 6-bit counter over a time window."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator
from warnings import warn

from ptc_core.errors import ConfigurationError
from ptc_core.protocol import (
    COUNTER_MODULUS,
    DEFAULT_FREQUENCY_HZ,
    LARGE_SYNTHESIS_WARNING,
    SPW_ESC,
    US_PER_SECOND,
)
from ptc_core.records import Synthetic


@dataclass(frozen=True)
class TimeWindow:
    """Synthesis interval in epoch microseconds; both ends may carry a sample."""

    start_us: int
    end_us: int

    def __post_init__(self) -> None:
        if self.start_us >= self.end_us:
            raise ConfigurationError(
                f"start ({self.start_us}) must be less than end ({self.end_us})"
            )


@dataclass(frozen=True)
class SynthesisConfig:
    frequency_hz: int = DEFAULT_FREQUENCY_HZ
    marker: int = SPW_ESC

    def __post_init__(self) -> None:
        period_us(self.frequency_hz)
        if not 0 <= self.marker <= 0xFF:
            raise ConfigurationError(f"marker {self.marker} is not a byte value")


def period_us(frequency_hz: int) -> int:
    """Time-code period in whole microseconds (integer division, e.g. 64 Hz -> 15625)."""
    if frequency_hz <= 0:
        raise ConfigurationError(f"frequency must be a positive integer, got {frequency_hz}")
    period = US_PER_SECOND // frequency_hz
    if period == 0:
        raise ConfigurationError(
            f"frequency {frequency_hz} Hz exceeds {US_PER_SECOND} Hz; period would be zero"
        )
    return period


def expected_count(window: TimeWindow, config: SynthesisConfig) -> int:
    return (window.end_us - window.start_us) // period_us(config.frequency_hz) + 1


def synthesize(window: TimeWindow, config: SynthesisConfig) -> Iterator[Synthetic]:
    """Yield time-codes at start, start + period, ... up to and including end.

    The i-th record carries counter ``i mod 64``. Output depends on the
    arguments only.
    """
    period = period_us(config.frequency_hz)

    count = expected_count(window, config)
    if count > LARGE_SYNTHESIS_WARNING:
        warn(f"Synthesizing {count} time-code records; all are held in memory for the merge")

    counter = 0
    ts = window.start_us
    while ts <= window.end_us:
        yield Synthetic(ts, counter, config.marker)
        counter = (counter + 1) % COUNTER_MODULUS
        ts += period
