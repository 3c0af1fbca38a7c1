"""I/O utilities for run reports and match snapshots."""

from scholarmatch.io.snapshotting import (
    exception_summary,
    load_latest_matches_df,
    write_failed_records_csv,
    write_json_atomic,
    write_matches_snapshot,
    write_parquet_atomic,
)

__all__ = [
    "exception_summary",
    "load_latest_matches_df",
    "write_failed_records_csv",
    "write_json_atomic",
    "write_matches_snapshot",
    "write_parquet_atomic",
]
