from __future__ import annotations

from typing import Optional

from scholarmatch.normalize.numbers import is_number
from scholarmatch.normalize.schema import EffortLevel, Scholarship, StrategicValueTier

EFFORT_MULTIPLIERS: dict[str, float] = {
    EffortLevel.LOW: 1.0,
    EffortLevel.MEDIUM: 0.7,
    EffortLevel.HIGH: 0.4,
}

MAX_STRATEGIC_VALUE = 10.0

STRATEGIC_VALUE_THRESHOLDS: tuple[tuple[float, StrategicValueTier], ...] = (
    (5.0, StrategicValueTier.BEST_BET),
    (3.0, StrategicValueTier.HIGH_VALUE),
    (1.5, StrategicValueTier.MEDIUM_VALUE),
)


def estimate_effort_level(essay_count: int, document_count: int, recommendation_count: int) -> EffortLevel:
    if essay_count >= 3 or document_count >= 5 or recommendation_count >= 2:
        return EffortLevel.HIGH
    if essay_count >= 2 or document_count >= 3 or recommendation_count >= 1:
        return EffortLevel.MEDIUM
    return EffortLevel.LOW


def effort_level_for(scholarship: Scholarship) -> EffortLevel:
    return estimate_effort_level(
        len(scholarship.essay_prompts),
        len(scholarship.required_documents),
        scholarship.recommendation_count or 0,
    )


def calculate_strategic_value(
    award_amount: Optional[float], success_probability: float, effort_level: EffortLevel
) -> float:
    """Expected award per unit of effort, in thousands of dollars, capped at 10."""

    if not is_number(award_amount) or award_amount <= 0:
        return 0.0
    if not is_number(success_probability) or success_probability <= 0:
        return 0.0
    multiplier = EFFORT_MULTIPLIERS[effort_level]
    value = float(award_amount) * float(success_probability) / 100.0 * multiplier / 1000.0
    return round(min(value, MAX_STRATEGIC_VALUE), 4)


def classify_strategic_value(value: float) -> StrategicValueTier:
    for threshold, tier in STRATEGIC_VALUE_THRESHOLDS:
        if value >= threshold:
            return tier
    return StrategicValueTier.LOW_VALUE
