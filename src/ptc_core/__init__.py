"""pcap-timecode core - shared record model and timestamp normalization."""
from .errors import (
    ConfigurationError,
    PtcError,
    SinkOpenError,
    SinkWriteError,
    SourceOpenError,
    SourceReadError,
)
from .records import Original, RecordKind, Synthetic, TimestampedRecord, sink_fields
from .timebase import JST, Precision, format_fixed_offset, split_epoch_us, to_epoch_us

__all__ = [
    "ConfigurationError",
    "PtcError",
    "SinkOpenError",
    "SinkWriteError",
    "SourceOpenError",
    "SourceReadError",
    "Original",
    "RecordKind",
    "Synthetic",
    "TimestampedRecord",
    "sink_fields",
    "JST",
    "Precision",
    "format_fixed_offset",
    "split_epoch_us",
    "to_epoch_us",
]
