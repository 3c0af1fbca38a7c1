from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from scholarmatch.ingest.base import InMemoryScholarshipRepository
from scholarmatch.ingest.importer import ImportOptions, drop_expired, import_scholarships, write_import_report
from scholarmatch.io.snapshotting import exception_summary, report_filename, write_json_atomic
from scholarmatch.normalize.schema import Scholarship

logger = logging.getLogger("import_scholarships")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import scholarships into the catalog with duplicate detection.")
    parser.add_argument("--input", type=Path, required=True, help="JSON array of candidate scholarships.")
    parser.add_argument("--catalog", type=Path, required=True, help="Catalog JSON file; updated in place.")
    parser.add_argument("--processed-dir", type=Path, default=Path("data") / "processed")
    parser.add_argument("--date", type=str, default=None, help="Run date in YYYYMMDD format.")
    parser.add_argument("--chunk-size", type=int, default=100)
    parser.add_argument("--duplicate-policy", choices=["skip", "merge"], default="skip")
    parser.add_argument("--threshold", type=float, default=0.9)
    parser.add_argument("--start-offset", type=int, default=0, help="Resume from a previous run's resume_offset.")
    parser.add_argument("--drop-expired", action="store_true")
    return parser.parse_args()


def _coerce_run_date(run_date: str | None) -> date:
    if run_date is None:
        return datetime.now(tz=UTC).date()
    return datetime.strptime(run_date, "%Y%m%d").date()


def load_scholarships(path: Path, *, required: bool = False) -> list[Scholarship]:
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Scholarship file '{path}' does not exist.")
        return []
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("scholarships", [])
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON array of scholarships in '{path}'.")
    return [Scholarship.from_mapping(item) for item in payload]


def write_catalog(records: list[Scholarship], path: Path) -> None:
    write_json_atomic({"scholarships": [asdict(record) for record in records]}, path)


def run_import(
    *,
    input_path: Path,
    catalog_path: Path,
    processed_dir: Path,
    run_date: date,
    options: ImportOptions,
    start_offset: int = 0,
    expire: bool = False,
) -> dict[str, Any]:
    report_path = processed_dir / report_filename("import", run_date)
    try:
        candidates = load_scholarships(input_path, required=True)
        catalog = load_scholarships(catalog_path)
    except (OSError, ValueError, TypeError) as exc:
        logger.exception("Could not load import inputs")
        payload = {
            "status": "failed",
            "run_date": run_date.isoformat(),
            "exception_summary": exception_summary(exc),
        }
        write_json_atomic(payload, report_path)
        return payload

    expired_count = 0
    if expire:
        candidates, expired = drop_expired(candidates, run_date)
        expired_count = len(expired)
        logger.info("Dropped %d expired scholarships before import", expired_count)

    repository = InMemoryScholarshipRepository(catalog)
    report = import_scholarships(candidates, repository, options=options, start_offset=start_offset)
    write_catalog(repository.load_catalog(), catalog_path)

    payload = write_import_report(
        report,
        candidates,
        report_path=report_path,
        failed_csv_path=processed_dir / f"failed_records_{run_date.strftime('%Y%m%d')}.csv",
    )
    payload["expired"] = expired_count
    return payload


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    options = ImportOptions.from_mapping(
        {
            "chunk_size": args.chunk_size,
            "duplicate_policy": args.duplicate_policy,
            "dedup": {"threshold": args.threshold},
        }
    )
    payload = run_import(
        input_path=args.input,
        catalog_path=args.catalog,
        processed_dir=args.processed_dir,
        run_date=_coerce_run_date(args.date),
        options=options,
        start_offset=args.start_offset,
        expire=args.drop_expired,
    )

    print(f"Import status: {payload['status']}")
    if "counts" not in payload:
        return 1
    counts = payload["counts"]
    print(
        "Counts: "
        f"inserted={counts['inserted']}, merged={counts['merged']}, "
        f"skipped={counts['skipped']}, failed={counts['failed']}, expired={payload['expired']}"
    )
    if payload.get("resume_offset") is not None:
        print(f"Resume with --start-offset {payload['resume_offset']}")
    return 0 if payload["status"] != "failed" else 1


if __name__ == "__main__":
    raise SystemExit(main())
