from __future__ import annotations

import pytest

from scholarmatch.normalize.schema import PriorityTier
from scholarmatch.rank.tiering import assign_priority_tier, should_notify, tier_rank, tier_rationale


@pytest.mark.parametrize(
    ("match_score", "probability", "strategic_value", "award", "tier"),
    [
        (94, 72, 5.0, 5000, PriorityTier.MUST_APPLY),
        (90, 70, 3.0, 5000, PriorityTier.MUST_APPLY),
        (90, 69, 3.0, 5000, PriorityTier.SHOULD_APPLY),
        (95, 65, 5.0, 5000, PriorityTier.SHOULD_APPLY),
        (89.9, 70, 3.0, 5000, PriorityTier.SHOULD_APPLY),
        (90, 70, 2.9, 5000, PriorityTier.SHOULD_APPLY),
        (75, 40, 2.0, 3000, PriorityTier.SHOULD_APPLY),
        (74, 50, 2.5, 3000, PriorityTier.LOW_PRIORITY),
        (75, 39, 2.5, 3000, PriorityTier.LOW_PRIORITY),
        (55, 15, 1.8, 15000, PriorityTier.CONSIDER),
        (60, 24, 2.0, 10000, PriorityTier.CONSIDER),
        (52, 8, 1.0, 50000, PriorityTier.CONSIDER),
        (60, 15, 1.8, 9999, PriorityTier.LOW_PRIORITY),
        (60, 25, 1.8, 15000, PriorityTier.LOW_PRIORITY),
        (65, 30, 2.0, 2000, PriorityTier.LOW_PRIORITY),
        (0, 0, 0, 0, PriorityTier.LOW_PRIORITY),
        (100, 100, 10.0, 100000, PriorityTier.MUST_APPLY),
    ],
)
def test_priority_tier_thresholds(
    match_score: float, probability: float, strategic_value: float, award: float, tier: PriorityTier
) -> None:
    assert assign_priority_tier(match_score, probability, strategic_value, award) == tier


def test_missing_award_is_never_a_reach() -> None:
    assert assign_priority_tier(50, 5, 0.0) == PriorityTier.LOW_PRIORITY
    assert assign_priority_tier(50, 5, 0.0, None) == PriorityTier.LOW_PRIORITY


def test_probability_is_compared_on_the_percentage_scale() -> None:
    # A 0-1 probability never qualifies for the top tiers.
    assert assign_priority_tier(95, 0.7, 5.0, 5000) == PriorityTier.LOW_PRIORITY


def test_only_top_tiers_notify_and_order_is_stable() -> None:
    assert should_notify(PriorityTier.MUST_APPLY)
    assert should_notify(PriorityTier.SHOULD_APPLY)
    assert not should_notify(PriorityTier.CONSIDER)
    assert not should_notify(PriorityTier.INELIGIBLE)
    ranks = [tier_rank(tier) for tier in PriorityTier]
    assert ranks == sorted(ranks)


def test_tier_rationale_mentions_inputs() -> None:
    assert "match 92%" in tier_rationale(PriorityTier.MUST_APPLY, 92, 72, 4.2, 5000)
    assert "$5,000 award" in tier_rationale(PriorityTier.MUST_APPLY, 92, 72, 4.2, 5000)
    assert "calculated risk" in tier_rationale(PriorityTier.CONSIDER, 50, 15, 1.5, 20000)
    assert "if time allows" in tier_rationale(PriorityTier.LOW_PRIORITY, 65, 30, 2.0)
    assert "hard eligibility" in tier_rationale(PriorityTier.INELIGIBLE, 0, 0, 0)
