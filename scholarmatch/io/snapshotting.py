from __future__ import annotations

import json
import re
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, Sequence
from uuid import uuid4

import pandas as pd

MATCHES_PREFIX = "matches_snapshot_"
REPORT_PREFIX = "run_report_"
MATCHES_PATTERN = re.compile(r"^matches_snapshot_(\d{8})\.parquet$")


def _coerce_output_date(run_date: date | str | None) -> date:
    if run_date is None:
        return datetime.now(tz=UTC).date()
    if isinstance(run_date, date):
        return run_date
    return datetime.strptime(run_date, "%Y%m%d").date()


def matches_filename(run_date: date) -> str:
    return f"{MATCHES_PREFIX}{run_date.strftime('%Y%m%d')}.parquet"


def report_filename(kind: str, run_date: date) -> str:
    return f"{REPORT_PREFIX}{kind}_{run_date.strftime('%Y%m%d')}.json"


def exception_summary(exc: BaseException) -> dict[str, str]:
    return {"type": type(exc).__name__, "message": str(exc)}


def _jsonable(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, float) and pd.isna(value):
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def write_json_atomic(payload: dict[str, Any], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.parent / f"{output_path.name}.{uuid4().hex}.tmp"
    try:
        temp_path.write_text(json.dumps(_jsonable(payload), indent=2, sort_keys=True), encoding="utf-8")
        temp_path.replace(output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()


def write_parquet_atomic(df: pd.DataFrame, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.parent / f"{output_path.name}.{uuid4().hex}.tmp"
    try:
        df.to_parquet(temp_path, index=False, engine="pyarrow")
        temp_path.replace(output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()


def write_csv_atomic(df: pd.DataFrame, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.parent / f"{output_path.name}.{uuid4().hex}.tmp"
    try:
        df.to_csv(temp_path, index=False)
        temp_path.replace(output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()


def write_matches_snapshot(
    matches_df: pd.DataFrame,
    *,
    processed_dir: Path,
    run_date: date | str | None = None,
) -> Path:
    snapshot_path = processed_dir / matches_filename(_coerce_output_date(run_date))
    write_parquet_atomic(matches_df, snapshot_path)
    return snapshot_path


def list_match_snapshots(processed_dir: Path) -> list[Path]:
    snapshots: list[tuple[datetime, Path]] = []
    for candidate in processed_dir.glob(f"{MATCHES_PREFIX}*.parquet"):
        match = MATCHES_PATTERN.match(candidate.name)
        if not match:
            continue
        snapshots.append((datetime.strptime(match.group(1), "%Y%m%d"), candidate))
    snapshots.sort(key=lambda item: item[0])
    return [item[1] for item in snapshots]


def load_latest_matches_df(processed_dir: Path) -> pd.DataFrame:
    snapshots = list_match_snapshots(processed_dir)
    if not snapshots:
        raise FileNotFoundError(f"No match snapshot parquet found in '{processed_dir}'.")
    return pd.read_parquet(snapshots[-1])


def failed_records_frame(failed: Sequence[dict[str, Any]]) -> pd.DataFrame:
    columns = ["record_index", "name", "provider", "reason"]
    return pd.DataFrame([{column: row.get(column) for column in columns} for row in failed], columns=columns)


def write_failed_records_csv(failed: Sequence[dict[str, Any]], output_path: Path) -> Path:
    write_csv_atomic(failed_records_frame(failed), output_path)
    return output_path
