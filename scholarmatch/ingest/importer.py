from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from scholarmatch.ingest.base import ChunkWriteError, ScholarshipRepository
from scholarmatch.ingest.dedup import SOURCE_BATCH, DedupOptions, DuplicateMatch, find_duplicates
from scholarmatch.ingest.merge import merge_duplicates
from scholarmatch.io.snapshotting import exception_summary, write_failed_records_csv, write_json_atomic
from scholarmatch.normalize.schema import Scholarship

logger = logging.getLogger(__name__)

POLICY_SKIP = "skip"
POLICY_MERGE = "merge"
DUPLICATE_POLICIES = (POLICY_SKIP, POLICY_MERGE)
DEFAULT_CHUNK_SIZE = 100

CHUNK_COMMITTED = "committed"
CHUNK_FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ImportOptions:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    duplicate_policy: str = POLICY_SKIP
    dedup: DedupOptions = field(default_factory=DedupOptions)

    def __post_init__(self) -> None:
        if int(self.chunk_size) < 1:
            raise ValueError("Import chunk_size must be at least 1.")
        if self.duplicate_policy not in DUPLICATE_POLICIES:
            raise ValueError(
                f"Unknown duplicate_policy '{self.duplicate_policy}'; expected one of {DUPLICATE_POLICIES}."
            )

    @classmethod
    def baseline(cls) -> ImportOptions:
        return cls()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> ImportOptions:
        values = payload or {}
        baseline = cls.baseline()
        return cls(
            chunk_size=int(values.get("chunk_size", baseline.chunk_size)),
            duplicate_policy=str(values.get("duplicate_policy", baseline.duplicate_policy)),
            dedup=DedupOptions.from_mapping(values.get("dedup")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk_size": self.chunk_size,
            "duplicate_policy": self.duplicate_policy,
            "dedup": self.dedup.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class ChunkFailure:
    record_index: int
    reason: str


@dataclass(frozen=True, slots=True)
class ChunkResult:
    index: int
    record_indices: tuple[int, ...]
    status: str
    inserted_ids: tuple[str, ...] = ()
    failure: Optional[ChunkFailure] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "first_record_index": self.record_indices[0] if self.record_indices else None,
            "size": len(self.record_indices),
            "status": self.status,
            "inserted_ids": list(self.inserted_ids),
            "failure": (
                {"record_index": self.failure.record_index, "reason": self.failure.reason}
                if self.failure
                else None
            ),
        }


@dataclass(slots=True)
class ImportReport:
    total: int = 0
    inserted: int = 0
    merged: int = 0
    skipped: int = 0
    failed: int = 0
    duplicates: list[DuplicateMatch] = field(default_factory=list)
    chunks: list[ChunkResult] = field(default_factory=list)
    merge_failures: list[ChunkFailure] = field(default_factory=list)

    @property
    def failed_chunks(self) -> list[ChunkResult]:
        return [chunk for chunk in self.chunks if chunk.status == CHUNK_FAILED]

    @property
    def resume_offset(self) -> Optional[int]:
        """Candidate index to resume from, or None when every chunk committed."""

        failed = self.failed_chunks
        if not failed:
            return None
        return failed[0].record_indices[0]

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "success"
        if self.inserted or self.merged or self.skipped:
            return "partial"
        return "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "counts": {
                "total": self.total,
                "inserted": self.inserted,
                "merged": self.merged,
                "skipped": self.skipped,
                "failed": self.failed,
                "duplicates": len(self.duplicates),
            },
            "chunks": [chunk.to_dict() for chunk in self.chunks],
            "merge_failures": [
                {"record_index": item.record_index, "reason": item.reason} for item in self.merge_failures
            ],
            "duplicates": [item.to_dict() for item in self.duplicates],
            "resume_offset": self.resume_offset,
        }

    def failed_records(self, candidates: Sequence[Scholarship]) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for chunk in self.failed_chunks:
            reason = chunk.failure.reason if chunk.failure else "unknown"
            for record_index in chunk.record_indices:
                candidate = candidates[record_index]
                rows.append(
                    {
                        "record_index": record_index,
                        "name": candidate.name,
                        "provider": candidate.provider,
                        "reason": reason,
                    }
                )
        for item in self.merge_failures:
            candidate = candidates[item.record_index]
            rows.append(
                {
                    "record_index": item.record_index,
                    "name": candidate.name,
                    "provider": candidate.provider,
                    "reason": item.reason,
                }
            )
        return rows


def drop_expired(
    candidates: Sequence[Scholarship], today: date | None = None
) -> tuple[list[Scholarship], list[Scholarship]]:
    effective_today = today or date.today()
    active: list[Scholarship] = []
    expired: list[Scholarship] = []
    for candidate in candidates:
        if candidate.deadline is not None and candidate.deadline < effective_today:
            expired.append(candidate)
        else:
            active.append(candidate)
    return active, expired


def _chunks(indices: list[int], size: int) -> list[list[int]]:
    return [indices[start : start + size] for start in range(0, len(indices), size)]


def import_scholarships(
    candidates: Sequence[Scholarship],
    repository: ScholarshipRepository,
    *,
    options: ImportOptions | None = None,
    now: datetime | None = None,
    start_offset: int = 0,
) -> ImportReport:
    """Deduplicate candidates against a catalog snapshot, then write them in transactional chunks.

    A failed chunk is reported with the offending candidate index; chunks already
    committed stay committed. Re-running from `resume_offset` is safe because
    records inserted by an earlier run are then detected as exact duplicates.
    """

    active_options = options or ImportOptions.baseline()
    merge_time = now or datetime.now(tz=UTC)
    report = ImportReport(total=max(len(candidates) - start_offset, 0))

    catalog = repository.load_catalog()
    catalog_by_id = {record.id: record for record in catalog if record.id}
    duplicates = find_duplicates(candidates, catalog, active_options.dedup)
    duplicate_by_index = {item.candidate_index: item for item in duplicates}

    pending_new: dict[int, Scholarship] = {}
    pending_updates: dict[str, tuple[int, Scholarship]] = {}
    for index in range(start_offset, len(candidates)):
        candidate = candidates[index]
        duplicate = duplicate_by_index.get(index)
        if duplicate is None:
            pending_new[index] = candidate
            continue

        report.duplicates.append(duplicate)
        if active_options.duplicate_policy != POLICY_MERGE:
            report.skipped += 1
            continue

        if duplicate.source == SOURCE_BATCH:
            first_index = duplicate.existing_index
            if first_index is not None and first_index in pending_new:
                pending_new[first_index] = merge_duplicates(pending_new[first_index], candidate, now=merge_time)
                report.merged += 1
            else:
                report.skipped += 1
            continue

        existing_id = duplicate.existing_id
        if existing_id is None or existing_id not in catalog_by_id:
            report.skipped += 1
            continue
        _, base = pending_updates.get(existing_id, (index, catalog_by_id[existing_id]))
        pending_updates[existing_id] = (index, merge_duplicates(base, candidate, now=merge_time))
        report.merged += 1

    for existing_id, (index, merged_record) in pending_updates.items():
        try:
            repository.update(merged_record)
        except Exception as exc:
            logger.exception("Failed to apply merge into scholarship %s (record %d)", existing_id, index)
            report.merge_failures.append(ChunkFailure(record_index=index, reason=str(exc) or type(exc).__name__))
            report.merged -= 1
            report.failed += 1

    new_indices = sorted(pending_new)
    for chunk_number, chunk_indices in enumerate(_chunks(new_indices, active_options.chunk_size)):
        records = [pending_new[index] for index in chunk_indices]
        try:
            inserted_ids = repository.insert_chunk(records)
        except ChunkWriteError as exc:
            offending = chunk_indices[min(max(exc.offset, 0), len(chunk_indices) - 1)]
            logger.exception("Import chunk %d rolled back at record %d: %s", chunk_number, offending, exc.reason)
            failure = ChunkFailure(record_index=offending, reason=exc.reason)
        except Exception as exc:
            offending = chunk_indices[0]
            logger.exception("Import chunk %d failed starting at record %d", chunk_number, offending)
            failure = ChunkFailure(record_index=offending, reason=f"{type(exc).__name__}: {exc}")
        else:
            report.chunks.append(
                ChunkResult(
                    index=chunk_number,
                    record_indices=tuple(chunk_indices),
                    status=CHUNK_COMMITTED,
                    inserted_ids=tuple(inserted_ids),
                )
            )
            report.inserted += len(inserted_ids)
            logger.info("Import chunk %d committed %d records", chunk_number, len(inserted_ids))
            continue

        report.chunks.append(
            ChunkResult(
                index=chunk_number,
                record_indices=tuple(chunk_indices),
                status=CHUNK_FAILED,
                failure=failure,
            )
        )
        report.failed += len(chunk_indices)

    logger.info(
        "Import finished: total=%d inserted=%d merged=%d skipped=%d failed=%d",
        report.total,
        report.inserted,
        report.merged,
        report.skipped,
        report.failed,
    )
    return report


def write_import_report(
    report: ImportReport,
    candidates: Sequence[Scholarship],
    *,
    report_path: Path,
    failed_csv_path: Path | None = None,
    exc: BaseException | None = None,
) -> dict[str, Any]:
    payload = report.to_dict()
    payload["exception_summary"] = exception_summary(exc) if exc is not None else None
    if failed_csv_path is not None and report.failed:
        write_failed_records_csv(report.failed_records(candidates), failed_csv_path)
        payload["failed_records_csv"] = str(failed_csv_path)
    write_json_atomic(payload, report_path)
    return payload
