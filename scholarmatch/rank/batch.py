from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

import pandas as pd
from joblib import Parallel, delayed

from scholarmatch.ingest.base import MatchRepository
from scholarmatch.io.snapshotting import exception_summary, write_json_atomic
from scholarmatch.normalize.numbers import is_number, safe_score
from scholarmatch.normalize.schema import Match, Profile, Scholarship
from scholarmatch.profile.completeness import calculate_completion_percentage
from scholarmatch.profile.strength import calculate_strength
from scholarmatch.rank.hooks import ScoringHook, emit
from scholarmatch.rank.probability import (
    DEFAULT_ESSAY_QUALITY,
    classify_success_tier,
    competition_factor_for,
    competition_level_from_factor,
    estimate_success_probability,
)
from scholarmatch.rank.stage1_eligibility import (
    DEFAULT_FILTER_CONFIG,
    FilterStatistics,
    HardFilterConfig,
    HardFilterResult,
    apply_hard_filter,
)
from scholarmatch.rank.stage2_scoring import score_dimensions
from scholarmatch.rank.strategic import calculate_strategic_value, classify_strategic_value, effort_level_for
from scholarmatch.rank.tiering import assign_priority_tier, should_notify
from scholarmatch.rank.weights import DEFAULT_MATCH_WEIGHTS, MatchWeights

logger = logging.getLogger(__name__)

MIN_COMPLETION_FOR_MATCHING = 50
DEFAULT_STUDENT_CHUNK_SIZE = 100

MATCH_COLUMNS = [
    "student_id",
    "scholarship_id",
    "academic_score",
    "demographic_score",
    "major_field_score",
    "experience_score",
    "financial_score",
    "special_score",
    "overall_match_score",
    "success_probability",
    "success_tier",
    "using_default_profile",
    "using_default_match",
    "using_default_quality",
    "competition_factor",
    "effort_level",
    "strategic_value",
    "strategic_value_tier",
    "priority_tier",
]


@dataclass(frozen=True, slots=True)
class ScoringFailure:
    student_id: Optional[str]
    scholarship_id: Optional[str]
    reason: str


@dataclass(slots=True)
class BatchScoringResult:
    student_id: Optional[str]
    matches: list[Match] = field(default_factory=list)
    rejected: list[HardFilterResult] = field(default_factory=list)
    failures: list[ScoringFailure] = field(default_factory=list)
    statistics: FilterStatistics = field(default_factory=FilterStatistics)


def score_pair(
    profile: Profile,
    scholarship: Scholarship,
    *,
    profile_strength: float,
    today: date,
    weights: MatchWeights = DEFAULT_MATCH_WEIGHTS,
    essay_quality: Optional[float] = None,
) -> Match:
    """Score one eligible (profile, scholarship) pair; deterministic for identical snapshots."""

    dimensions = score_dimensions(profile, scholarship.eligibility_criteria, today=today, weights=weights)
    competition_factor = competition_factor_for(scholarship)
    using_default_quality = not is_number(essay_quality)
    quality = DEFAULT_ESSAY_QUALITY if using_default_quality else safe_score(essay_quality)
    probability = estimate_success_probability(
        quality,
        profile_strength=profile_strength,
        match_score=dimensions.overall,
        competition=competition_level_from_factor(competition_factor),
    )
    effort_level = effort_level_for(scholarship)
    strategic_value = calculate_strategic_value(scholarship.award_amount, probability.probability, effort_level)
    return Match(
        student_id=profile.student_id,
        scholarship_id=scholarship.id,
        academic_score=dimensions.academic,
        demographic_score=dimensions.demographic,
        major_field_score=dimensions.major_field,
        experience_score=dimensions.experience,
        financial_score=dimensions.financial,
        special_score=dimensions.special,
        overall_match_score=dimensions.overall,
        success_probability=probability.probability,
        success_tier=classify_success_tier(probability.probability),
        using_default_profile=probability.using_default_profile,
        using_default_match=probability.using_default_match,
        using_default_quality=using_default_quality,
        competition_factor=competition_factor,
        effort_level=effort_level,
        strategic_value=strategic_value,
        strategic_value_tier=classify_strategic_value(strategic_value),
        priority_tier=assign_priority_tier(
            dimensions.overall, probability.probability, strategic_value, scholarship.award_amount
        ),
    )


def score_profile(
    profile: Profile,
    scholarships: Sequence[Scholarship],
    *,
    today: date | None = None,
    weights: MatchWeights = DEFAULT_MATCH_WEIGHTS,
    filter_config: HardFilterConfig = DEFAULT_FILTER_CONFIG,
    essay_scores: Mapping[str, float] | None = None,
    hook: Optional[ScoringHook] = None,
) -> BatchScoringResult:
    effective_today = today or date.today()
    result = BatchScoringResult(student_id=profile.student_id)
    profile_strength = calculate_strength(profile).overall
    scores = essay_scores or {}

    for scholarship in scholarships:
        try:
            filter_result = apply_hard_filter(
                profile, scholarship, today=effective_today, config=filter_config, hook=hook
            )
            result.statistics.record(filter_result)
            if not filter_result.passes:
                result.rejected.append(filter_result)
                emit(hook, "match.rejected", {"student_id": profile.student_id, "scholarship_id": scholarship.id})
                continue
            match = score_pair(
                profile,
                scholarship,
                profile_strength=profile_strength,
                today=effective_today,
                weights=weights,
                essay_quality=scores.get(scholarship.id or ""),
            )
        except Exception as exc:
            logger.warning(
                "Skipping pair student=%s scholarship=%s: %s",
                profile.student_id,
                scholarship.id,
                exc,
                exc_info=True,
            )
            result.failures.append(
                ScoringFailure(profile.student_id, scholarship.id, f"{type(exc).__name__}: {exc}")
            )
            continue
        result.matches.append(match)
        emit(hook, "match.scored", match.to_dict())
    return result


def score_students(
    profiles: Sequence[Profile],
    scholarships: Sequence[Scholarship],
    *,
    today: date | None = None,
    weights: MatchWeights = DEFAULT_MATCH_WEIGHTS,
    filter_config: HardFilterConfig = DEFAULT_FILTER_CONFIG,
    n_jobs: int = 1,
) -> list[BatchScoringResult]:
    """Score each profile against the same scholarship snapshot, one unit of work per student."""

    effective_today = today or date.today()
    if n_jobs == 1 or len(profiles) <= 1:
        return [
            score_profile(profile, scholarships, today=effective_today, weights=weights, filter_config=filter_config)
            for profile in profiles
        ]
    return Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(score_profile)(
            profile, scholarships, today=effective_today, weights=weights, filter_config=filter_config
        )
        for profile in profiles
    )


def select_students_for_matching(
    profiles: Iterable[Profile], min_completion: int = MIN_COMPLETION_FOR_MATCHING
) -> list[Profile]:
    return [profile for profile in profiles if calculate_completion_percentage(profile) >= min_completion]


def matches_to_frame(matches: Sequence[Match]) -> pd.DataFrame:
    frame = pd.DataFrame([match.to_dict() for match in matches], columns=MATCH_COLUMNS)
    if frame.empty:
        return frame
    frame = frame.sort_values(by=["scholarship_id"], kind="mergesort")
    frame = frame.sort_values(by=["overall_match_score"], ascending=False, kind="mergesort")
    return frame.reset_index(drop=True)


def _chunked(items: Sequence[Profile], size: int) -> list[Sequence[Profile]]:
    return [items[start : start + size] for start in range(0, len(items), size)]


def run_matching_batch(
    profiles: Sequence[Profile],
    scholarships: Sequence[Scholarship],
    repository: MatchRepository,
    *,
    today: date | None = None,
    weights: MatchWeights = DEFAULT_MATCH_WEIGHTS,
    chunk_size: int = DEFAULT_STUDENT_CHUNK_SIZE,
    min_completion: int = MIN_COMPLETION_FOR_MATCHING,
    n_jobs: int = 1,
    report_path: Path | None = None,
) -> dict[str, Any]:
    """Score eligible students against a scholarship slice and upsert their matches chunk by chunk."""

    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1.")

    started_at = datetime.now(tz=UTC)
    effective_today = today or date.today()
    selected = select_students_for_matching(profiles, min_completion)
    chunk_reports: list[dict[str, Any]] = []
    failures: list[ScoringFailure] = []
    matches_written = 0
    notifiable = 0
    rejected = 0

    for chunk_number, chunk in enumerate(_chunked(selected, chunk_size)):
        results = score_students(chunk, scholarships, today=effective_today, weights=weights, n_jobs=n_jobs)
        chunk_matches = [match for result in results for match in result.matches]
        for result in results:
            failures.extend(result.failures)
            rejected += len(result.rejected)
        try:
            written = repository.upsert_matches(chunk_matches)
        except Exception as exc:
            logger.exception("Failed to upsert matches for student chunk %d", chunk_number)
            chunk_reports.append(
                {
                    "index": chunk_number,
                    "status": "failed",
                    "students": [profile.student_id for profile in chunk],
                    "exception_summary": exception_summary(exc),
                }
            )
            continue
        matches_written += written
        notifiable += sum(1 for match in chunk_matches if should_notify(match.priority_tier))
        chunk_reports.append(
            {"index": chunk_number, "status": "committed", "students": len(chunk), "matches": written}
        )
        logger.info("Student chunk %d: %d students, %d matches upserted", chunk_number, len(chunk), written)

    failed_chunks = [entry for entry in chunk_reports if entry["status"] == "failed"]
    if not failed_chunks and not failures:
        status = "success"
    elif len(failed_chunks) == len(chunk_reports) and chunk_reports:
        status = "failed"
    else:
        status = "partial"

    finished_at = datetime.now(tz=UTC)
    report = {
        "status": status,
        "run_started_at": started_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "run_finished_at": finished_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "run_date": effective_today.isoformat(),
        "config": {
            "chunk_size": chunk_size,
            "min_completion": min_completion,
            "n_jobs": n_jobs,
            "weights": weights.to_dict(),
        },
        "counts": {
            "students_total": len(profiles),
            "students_selected": len(selected),
            "scholarships": len(scholarships),
            "matches_written": matches_written,
            "rejected_pairs": rejected,
            "failed_pairs": len(failures),
            "notifiable_matches": notifiable,
        },
        "chunks": chunk_reports,
        "exception_summary": failed_chunks[0]["exception_summary"] if failed_chunks else None,
        "failures": [
            {"student_id": item.student_id, "scholarship_id": item.scholarship_id, "reason": item.reason}
            for item in failures
        ],
    }
    if report_path is not None:
        write_json_atomic(report, report_path)
    return report
