from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import numpy as np
from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from scholarmatch.normalize.canonical_id import dedup_key, normalize_text
from scholarmatch.normalize.schema import Scholarship

NAME_WEIGHT = 0.7
PROVIDER_WEIGHT = 0.3
# Weighted scores are rounded to this many decimals before threshold comparison.
SIMILARITY_DECIMALS = 9
DEFAULT_THRESHOLD = 0.9
SOURCE_CATALOG = "catalog"
SOURCE_BATCH = "batch"

# Bounds the size of each candidate x catalog similarity matrix.
_SIMILARITY_BLOCK_ROWS = 1024


@dataclass(frozen=True, slots=True)
class DedupOptions:
    threshold: float = DEFAULT_THRESHOLD
    check_existing: bool = True
    check_within_batch: bool = True
    workers: int = 1

    def __post_init__(self) -> None:
        value = float(self.threshold)
        if not math.isfinite(value) or value < 0.0 or value > 1.0:
            raise ValueError("Dedup threshold must be between 0.0 and 1.0.")
        if self.workers == 0:
            raise ValueError("Dedup workers must be positive or -1 for all cores.")

    @classmethod
    def baseline(cls) -> DedupOptions:
        return cls()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> DedupOptions:
        values = payload or {}
        baseline = cls.baseline()
        return cls(
            threshold=float(values.get("threshold", baseline.threshold)),
            check_existing=bool(values.get("check_existing", baseline.check_existing)),
            check_within_batch=bool(values.get("check_within_batch", baseline.check_within_batch)),
            workers=int(values.get("workers", baseline.workers)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "threshold": self.threshold,
            "check_existing": self.check_existing,
            "check_within_batch": self.check_within_batch,
            "workers": self.workers,
        }


@dataclass(frozen=True, slots=True)
class DuplicateMatch:
    candidate_index: int
    candidate: Scholarship
    existing_id: Optional[str]
    existing_name: str
    existing_provider: str
    similarity: float
    is_exact: bool
    source: str
    existing_index: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate_index": self.candidate_index,
            "name": self.candidate.name,
            "provider": self.candidate.provider,
            "existing_id": self.existing_id,
            "existing_name": self.existing_name,
            "existing_provider": self.existing_provider,
            "similarity": self.similarity,
            "is_exact": self.is_exact,
            "source": self.source,
            "existing_index": self.existing_index,
        }


def record_similarity(name: str, provider: str, other_name: str, other_provider: str) -> float:
    """Weighted normalized Levenshtein similarity over name and provider, in [0, 1]."""

    name_score = Levenshtein.normalized_similarity(normalize_text(name), normalize_text(other_name))
    provider_score = Levenshtein.normalized_similarity(normalize_text(provider), normalize_text(other_provider))
    return round(NAME_WEIGHT * name_score + PROVIDER_WEIGHT * provider_score, SIMILARITY_DECIMALS)


def _similarity_matrix(queries: list[str], choices: list[str], workers: int) -> np.ndarray:
    return process.cdist(
        queries,
        choices,
        scorer=Levenshtein.normalized_similarity,
        dtype=np.float64,
        workers=workers,
    )


def _catalog_matches(
    candidates: Sequence[Scholarship],
    catalog: Sequence[Scholarship],
    options: DedupOptions,
) -> dict[int, DuplicateMatch]:
    matches: dict[int, DuplicateMatch] = {}
    if not candidates or not catalog:
        return matches

    exact_index: dict[str, int] = {}
    for position, existing in enumerate(catalog):
        exact_index.setdefault(dedup_key(existing.name, existing.provider), position)

    fuzzy_rows: list[int] = []
    for row, candidate in enumerate(candidates):
        position = exact_index.get(dedup_key(candidate.name, candidate.provider))
        if position is None:
            fuzzy_rows.append(row)
            continue
        existing = catalog[position]
        matches[row] = DuplicateMatch(
            candidate_index=row,
            candidate=candidate,
            existing_id=existing.id,
            existing_name=existing.name,
            existing_provider=existing.provider,
            similarity=1.0,
            is_exact=True,
            source=SOURCE_CATALOG,
            existing_index=position,
        )

    catalog_names = [normalize_text(item.name) for item in catalog]
    catalog_providers = [normalize_text(item.provider) for item in catalog]
    for block_start in range(0, len(fuzzy_rows), _SIMILARITY_BLOCK_ROWS):
        rows = fuzzy_rows[block_start : block_start + _SIMILARITY_BLOCK_ROWS]
        name_scores = _similarity_matrix(
            [normalize_text(candidates[row].name) for row in rows], catalog_names, options.workers
        )
        provider_scores = _similarity_matrix(
            [normalize_text(candidates[row].provider) for row in rows], catalog_providers, options.workers
        )
        combined = np.round(NAME_WEIGHT * name_scores + PROVIDER_WEIGHT * provider_scores, SIMILARITY_DECIMALS)
        # argmax returns the first maximum, so ties resolve to catalog order.
        best_positions = np.argmax(combined, axis=1)
        for offset, row in enumerate(rows):
            position = int(best_positions[offset])
            similarity = float(combined[offset, position])
            if similarity < options.threshold:
                continue
            existing = catalog[position]
            matches[row] = DuplicateMatch(
                candidate_index=row,
                candidate=candidates[row],
                existing_id=existing.id,
                existing_name=existing.name,
                existing_provider=existing.provider,
                similarity=similarity,
                is_exact=False,
                source=SOURCE_CATALOG,
                existing_index=position,
            )
    return matches


def _batch_matches(
    candidates: Sequence[Scholarship], already_matched: Mapping[int, DuplicateMatch]
) -> dict[int, DuplicateMatch]:
    matches: dict[int, DuplicateMatch] = {}
    first_seen: dict[str, int] = {}
    for row, candidate in enumerate(candidates):
        if row in already_matched:
            continue
        key = dedup_key(candidate.name, candidate.provider)
        first_row = first_seen.get(key)
        if first_row is None:
            first_seen[key] = row
            continue
        first = candidates[first_row]
        matches[row] = DuplicateMatch(
            candidate_index=row,
            candidate=candidate,
            existing_id=None,
            existing_name=first.name,
            existing_provider=first.provider,
            similarity=1.0,
            is_exact=True,
            source=SOURCE_BATCH,
            existing_index=first_row,
        )
    return matches


def find_duplicates(
    candidates: Sequence[Scholarship],
    catalog: Sequence[Scholarship],
    options: DedupOptions | None = None,
) -> list[DuplicateMatch]:
    """Classify each candidate at most once, preferring a catalog match over a batch match.

    `catalog` is a read-only snapshot; results are ordered by candidate position.
    """

    active_options = options or DedupOptions.baseline()
    matches: dict[int, DuplicateMatch] = {}
    if active_options.check_existing:
        matches.update(_catalog_matches(candidates, catalog, active_options))
    if active_options.check_within_batch:
        matches.update(_batch_matches(candidates, matches))
    return [matches[row] for row in sorted(matches)]


def check_duplicate(
    candidate: Scholarship,
    catalog: Sequence[Scholarship],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[DuplicateMatch]:
    options = DedupOptions(threshold=threshold, check_existing=True, check_within_batch=False)
    matches = find_duplicates([candidate], catalog, options)
    return matches[0] if matches else None
