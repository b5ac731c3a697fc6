"""Parquet timeline index: one row per record written (or read)."""
from __future__ import annotations

import hashlib
from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from ptc_core.records import RecordKind, TimestampedRecord

TIMELINE_SCHEMA = pa.schema(
    [
        ("seq", pa.int64()),
        ("timestamp_us", pa.int64()),
        ("kind", pa.string()),
        ("declared_length", pa.int64()),
        ("captured_length", pa.int64()),
        ("counter", pa.int32()),
        ("content_hash", pa.string()),
    ]
)

DEFAULT_BATCH_ROWS = 4096


class TimelineIndexWriter:
    """Streams index rows to parquet in fixed-size batches."""

    def __init__(self, path: Path, batch_rows: int | None = None):
        self.path = Path(path)
        self.batch_rows = batch_rows or DEFAULT_BATCH_ROWS
        self.rows: list[dict] = []
        self.count = 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._writer = pq.ParquetWriter(self.path, TIMELINE_SCHEMA)

    def add(self, record: TimestampedRecord) -> None:
        payload = record.payload
        self.rows.append(
            {
                "seq": self.count,
                "timestamp_us": int(record.timestamp_us),
                "kind": record.kind.value,
                "declared_length": int(record.declared_length),
                "captured_length": len(payload),
                "counter": record.counter if record.kind is RecordKind.SYNTHETIC else None,
                "content_hash": hashlib.sha256(payload).hexdigest(),
            }
        )
        self.count += 1
        if len(self.rows) >= self.batch_rows:
            self._flush()

    def _flush(self) -> None:
        if not self.rows:
            return
        df = pd.DataFrame(self.rows, columns=TIMELINE_SCHEMA.names)
        df["counter"] = df["counter"].astype("Int32")
        self._writer.write_table(pa.Table.from_pandas(df, schema=TIMELINE_SCHEMA, preserve_index=False))
        self.rows = []

    def close(self) -> None:
        self._flush()
        self._writer.close()

    def __enter__(self) -> "TimelineIndexWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        # A failed run leaves no partial index behind.
        self.rows = []
        self._writer.close()
        self.path.unlink(missing_ok=True)
