from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from scholarmatch.normalize.schema import Profile
from scholarmatch.profile.completeness import CompletenessResult, calculate_completeness
from scholarmatch.profile.strength import StrengthBreakdown, calculate_strength
from scholarmatch.rank.weights import DEFAULT_STRENGTH_WEIGHTS, StrengthWeights


@dataclass(frozen=True, slots=True)
class ProfileEvaluation:
    completion_percentage: int
    strength_breakdown: StrengthBreakdown
    completeness: CompletenessResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "completion_percentage": self.completion_percentage,
            "strength_breakdown": self.strength_breakdown.to_dict(),
            "missing_required": self.completeness.missing_required,
            "missing_recommended": self.completeness.missing_recommended,
        }


def evaluate_profile(
    profile: Profile, *, weights: StrengthWeights = DEFAULT_STRENGTH_WEIGHTS
) -> ProfileEvaluation:
    """Recompute the derived profile fields persisted on every profile save."""

    completeness = calculate_completeness(profile, weights=weights)
    breakdown = calculate_strength(
        profile,
        completion_percentage=completeness.percentage,
        weights=weights,
    )
    return ProfileEvaluation(
        completion_percentage=completeness.percentage,
        strength_breakdown=breakdown,
        completeness=completeness,
    )
