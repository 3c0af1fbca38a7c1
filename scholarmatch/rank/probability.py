from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from scholarmatch.normalize.numbers import is_number, round_half_up, safe_score
from scholarmatch.normalize.schema import Scholarship, SuccessTier
from scholarmatch.rank.weights import DEFAULT_PROBABILITY_WEIGHTS, ProbabilityWeights

# Omitted strength and match inputs default to 70, not 50.
DEFAULT_PROFILE_STRENGTH = 70.0
DEFAULT_MATCH_SCORE = 70.0
DEFAULT_ESSAY_QUALITY = 70.0
DEFAULT_COMPETITION = "medium"

COMPETITION_MULTIPLIERS: dict[str, float] = {
    "low": 1.0,
    "medium": 0.85,
    "high": 0.70,
}

DEFAULT_COMPETITION_FACTOR = 0.3
MIN_COMPETITION_FACTOR = 0.05
MAX_ACCEPTANCE_RATE = 0.95
MAX_POOL_FACTOR = 0.8

SUCCESS_TIER_THRESHOLDS: tuple[tuple[float, SuccessTier], ...] = (
    (70.0, SuccessTier.STRONG_MATCH),
    (40.0, SuccessTier.COMPETITIVE_MATCH),
    (10.0, SuccessTier.REACH),
)


@dataclass(frozen=True, slots=True)
class SuccessProbability:
    probability: int
    using_default_profile: bool
    using_default_match: bool
    competition: str
    confidence: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "probability": self.probability,
            "using_default_profile": self.using_default_profile,
            "using_default_match": self.using_default_match,
            "competition": self.competition,
            "confidence": self.confidence,
            "message": self.message,
        }


def _resolve_input(value: Optional[float], default: float) -> tuple[float, bool]:
    if not is_number(value):
        return default, True
    resolved = safe_score(value)
    return resolved, resolved == default


def _confidence(defaults_used: int) -> str:
    if defaults_used == 0:
        return "high"
    if defaults_used == 1:
        return "medium"
    return "low"


def _message(probability: int) -> str:
    if probability >= 70:
        return "Strong chance of success; this application is worth prioritizing."
    if probability >= 40:
        return "Competitive application; polish the essay to improve your odds."
    if probability >= 10:
        return "A reach, but possible with a standout essay."
    return "Long shot; consider focusing effort elsewhere."


def estimate_success_probability(
    essay_quality: float,
    profile_strength: Optional[float] = None,
    match_score: Optional[float] = None,
    competition: str = DEFAULT_COMPETITION,
    *,
    weights: ProbabilityWeights = DEFAULT_PROBABILITY_WEIGHTS,
) -> SuccessProbability:
    quality = safe_score(essay_quality)
    strength, using_default_profile = _resolve_input(profile_strength, DEFAULT_PROFILE_STRENGTH)
    fit, using_default_match = _resolve_input(match_score, DEFAULT_MATCH_SCORE)

    level = competition if competition in COMPETITION_MULTIPLIERS else DEFAULT_COMPETITION
    base = quality * weights.quality + strength * weights.profile + fit * weights.match
    probability = min(max(round_half_up(base * COMPETITION_MULTIPLIERS[level]), 0), 100)

    return SuccessProbability(
        probability=probability,
        using_default_profile=using_default_profile,
        using_default_match=using_default_match,
        competition=level,
        confidence=_confidence(int(using_default_profile) + int(using_default_match)),
        message=_message(probability),
    )


def calculate_competition_factor(
    acceptance_rate: Optional[float] = None,
    applicant_pool_size: Optional[int] = None,
    number_of_awards: Optional[int] = None,
) -> float:
    """Estimated chance of winning from the scholarship's historical numbers, in [0.05, 0.95]."""

    if is_number(acceptance_rate):
        return min(max(float(acceptance_rate), MIN_COMPETITION_FACTOR), MAX_ACCEPTANCE_RATE)

    if is_number(applicant_pool_size) and is_number(number_of_awards):
        if applicant_pool_size <= 0:
            return DEFAULT_COMPETITION_FACTOR
        if number_of_awards <= 0:
            return MIN_COMPETITION_FACTOR
        ratio = float(number_of_awards) / float(applicant_pool_size)
        return min(max(ratio, MIN_COMPETITION_FACTOR), MAX_POOL_FACTOR)

    return DEFAULT_COMPETITION_FACTOR


def competition_factor_for(scholarship: Scholarship) -> float:
    return calculate_competition_factor(
        scholarship.acceptance_rate,
        scholarship.applicant_pool_size,
        scholarship.number_of_awards,
    )


def competition_level_from_factor(factor: float) -> str:
    if factor >= 0.5:
        return "low"
    if factor >= 0.2:
        return "medium"
    return "high"


def classify_success_tier(probability: float) -> SuccessTier:
    for threshold, tier in SUCCESS_TIER_THRESHOLDS:
        if probability >= threshold:
            return tier
    return SuccessTier.LONG_SHOT
