from __future__ import annotations

import argparse
import json
import logging
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from scholarmatch.ingest.base import InMemoryMatchRepository
from scholarmatch.io.snapshotting import exception_summary, report_filename, write_json_atomic, write_matches_snapshot
from scholarmatch.normalize.schema import Profile, Scholarship
from scholarmatch.rank.batch import matches_to_frame, run_matching_batch
from scholarmatch.rank.weights import MatchWeights

logger = logging.getLogger("run_matching")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Score student profiles against the scholarship catalog.")
    parser.add_argument("--profiles", type=Path, required=True, help="JSON array of student profiles.")
    parser.add_argument("--scholarships", type=Path, required=True, help="JSON array of scholarships.")
    parser.add_argument("--processed-dir", type=Path, default=Path("data") / "processed")
    parser.add_argument("--weights", type=Path, default=None, help="Optional JSON object of match weights.")
    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="Run date in YYYYMMDD format. Defaults to current UTC date.",
    )
    parser.add_argument("--chunk-size", type=int, default=100)
    parser.add_argument("--min-completion", type=int, default=50)
    parser.add_argument("--n-jobs", type=int, default=1)
    return parser.parse_args()


def _coerce_run_date(run_date: str | None) -> date:
    if run_date is None:
        return datetime.now(tz=UTC).date()
    return datetime.strptime(run_date, "%Y%m%d").date()


def _load_json_array(path: Path) -> list[dict[str, Any]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON array in '{path}'.")
    return payload


def run_matching(
    *,
    profiles_path: Path,
    scholarships_path: Path,
    processed_dir: Path,
    run_date: date,
    weights: MatchWeights | None = None,
    chunk_size: int = 100,
    min_completion: int = 50,
    n_jobs: int = 1,
) -> dict[str, Any]:
    report_path = processed_dir / report_filename("matching", run_date)
    try:
        profiles = [Profile.from_mapping(item) for item in _load_json_array(profiles_path)]
        scholarships = [Scholarship.from_mapping(item) for item in _load_json_array(scholarships_path)]
    except (OSError, ValueError, TypeError) as exc:
        logger.exception("Could not load matching inputs")
        report = {
            "status": "failed",
            "run_date": run_date.isoformat(),
            "exception_summary": exception_summary(exc),
        }
        write_json_atomic(report, report_path)
        return report

    repository = InMemoryMatchRepository()
    report = run_matching_batch(
        profiles,
        scholarships,
        repository,
        today=run_date,
        weights=weights or MatchWeights.baseline(),
        chunk_size=chunk_size,
        min_completion=min_completion,
        n_jobs=n_jobs,
    )
    snapshot_path = write_matches_snapshot(
        matches_to_frame(repository.rows), processed_dir=processed_dir, run_date=run_date
    )
    report["artifact_paths"] = {"matches": str(snapshot_path), "report": str(report_path)}
    write_json_atomic(report, report_path)
    return report


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    weights = None
    if args.weights is not None:
        weights = MatchWeights.from_mapping(json.loads(args.weights.read_text(encoding="utf-8")))
    report = run_matching(
        profiles_path=args.profiles,
        scholarships_path=args.scholarships,
        processed_dir=args.processed_dir,
        run_date=_coerce_run_date(args.date),
        weights=weights,
        chunk_size=args.chunk_size,
        min_completion=args.min_completion,
        n_jobs=args.n_jobs,
    )

    print(f"Run status: {report['status']}")
    if "counts" in report:
        counts = report["counts"]
        print(
            "Counts: "
            f"students={counts['students_selected']}/{counts['students_total']}, "
            f"matches={counts['matches_written']}, "
            f"notifiable={counts['notifiable_matches']}, "
            f"failed_pairs={counts['failed_pairs']}"
        )
        print(f"Wrote matches: {report['artifact_paths']['matches']}")
    return 0 if report["status"] != "failed" else 1


if __name__ == "__main__":
    raise SystemExit(main())
