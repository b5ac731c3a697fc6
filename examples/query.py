"""Query a timeline index - list the original frames between two time-codes."""
from __future__ import annotations

import sys
from pathlib import Path

import duckdb


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python query.py <timeline.parquet> [counter]")
        print("Example: python query.py timeline.parquet 5")
        sys.exit(1)

    timeline = Path(sys.argv[1])
    counter = int(sys.argv[2]) if len(sys.argv) > 2 else 0

    con = duckdb.connect(":memory:")
    con.execute(f"CREATE VIEW timeline AS SELECT * FROM '{timeline}'")

    # Frames that fall after the first time-code carrying `counter`
    # and before the time-code that follows it.
    sql = f"""
    WITH tc AS (
        SELECT seq, timestamp_us, counter,
               LEAD(timestamp_us) OVER (ORDER BY seq) AS next_us
        FROM timeline
        WHERE kind = 'synthetic'
    ),
    slot AS (
        SELECT * FROM tc WHERE counter = {counter} ORDER BY seq LIMIT 1
    )
    SELECT t.seq, t.timestamp_us, t.captured_length, t.content_hash
    FROM timeline t, slot s
    WHERE t.kind = 'original'
      AND t.timestamp_us >= s.timestamp_us
      AND (s.next_us IS NULL OR t.timestamp_us < s.next_us)
    ORDER BY t.seq
    """

    print(f"--- Time-code slot: counter {counter} ---\n")

    df = con.execute(sql).fetchdf()
    if df.empty:
        print("No original frames in this slot.")
    else:
        for _, row in df.iterrows():
            print(f"FRAME: {row['seq']}")
            print(f"  epoch_us: {row['timestamp_us']}")
            print(f"  Captured: {row['captured_length']} bytes")
            print(f"  Hash: {row['content_hash'][:16]}...")
            print()


if __name__ == "__main__":
    main()
