from __future__ import annotations

from typing import Optional

from scholarmatch.normalize.numbers import is_number
from scholarmatch.normalize.schema import PriorityTier

MUST_APPLY_MIN_MATCH = 90.0
MUST_APPLY_MIN_PROBABILITY = 70.0
MUST_APPLY_MIN_STRATEGIC_VALUE = 3.0
SHOULD_APPLY_MIN_MATCH = 75.0
SHOULD_APPLY_MIN_PROBABILITY = 40.0
# CONSIDER is the high-value reach: a large award worth a long shot.
CONSIDER_MIN_AWARD = 10_000.0
CONSIDER_MAX_PROBABILITY = 25.0

TIER_ORDER: tuple[PriorityTier, ...] = (
    PriorityTier.MUST_APPLY,
    PriorityTier.SHOULD_APPLY,
    PriorityTier.CONSIDER,
    PriorityTier.LOW_PRIORITY,
    PriorityTier.INELIGIBLE,
)

NOTIFIABLE_TIERS = frozenset({PriorityTier.MUST_APPLY, PriorityTier.SHOULD_APPLY})


def is_high_value_reach(award_amount: Optional[float], success_probability: float) -> bool:
    if not is_number(award_amount):
        return False
    return float(award_amount) >= CONSIDER_MIN_AWARD and success_probability < CONSIDER_MAX_PROBABILITY


def assign_priority_tier(
    match_score: float,
    success_probability: float,
    strategic_value: float,
    award_amount: Optional[float] = None,
) -> PriorityTier:
    """Map a scored pair to its tier.

    Probability is on the 0-100 scale. Lower bounds are inclusive; the reach
    probability bound is exclusive. A missing award never qualifies as a reach.
    """

    if (
        match_score >= MUST_APPLY_MIN_MATCH
        and success_probability >= MUST_APPLY_MIN_PROBABILITY
        and strategic_value >= MUST_APPLY_MIN_STRATEGIC_VALUE
    ):
        return PriorityTier.MUST_APPLY
    if match_score >= SHOULD_APPLY_MIN_MATCH and success_probability >= SHOULD_APPLY_MIN_PROBABILITY:
        return PriorityTier.SHOULD_APPLY
    if is_high_value_reach(award_amount, success_probability):
        return PriorityTier.CONSIDER
    return PriorityTier.LOW_PRIORITY


def tier_rank(tier: PriorityTier) -> int:
    return TIER_ORDER.index(tier)


def should_notify(tier: PriorityTier) -> bool:
    return tier in NOTIFIABLE_TIERS


def tier_rationale(
    tier: PriorityTier,
    match_score: float,
    success_probability: float,
    strategic_value: float,
    award_amount: Optional[float] = None,
) -> str:
    award = f"${float(award_amount):,.0f} award, " if is_number(award_amount) else ""
    summary = (
        f"match {match_score:.0f}%, {award}success probability {success_probability:.0f}%, "
        f"strategic value {strategic_value:.1f}"
    )
    if tier == PriorityTier.MUST_APPLY:
        return f"Excellent fit with strong odds and a high return on effort ({summary})."
    if tier == PriorityTier.SHOULD_APPLY:
        return f"Strong fit with competitive odds ({summary})."
    if tier == PriorityTier.CONSIDER:
        return f"High-value opportunity worth the calculated risk ({summary})."
    if tier == PriorityTier.INELIGIBLE:
        return "Does not meet one or more hard eligibility requirements."
    return f"Decent fit, apply if time allows ({summary})."
