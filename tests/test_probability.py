from __future__ import annotations

import pytest

from scholarmatch.normalize.schema import Scholarship, SuccessTier
from scholarmatch.rank.probability import (
    DEFAULT_MATCH_SCORE,
    DEFAULT_PROFILE_STRENGTH,
    calculate_competition_factor,
    classify_success_tier,
    competition_factor_for,
    competition_level_from_factor,
    estimate_success_probability,
)
from scholarmatch.rank.weights import ProbabilityWeights


def test_omitted_inputs_fall_back_to_defaults_and_lower_confidence() -> None:
    result = estimate_success_probability(93)

    # (93 * .40 + 70 * .25 + 70 * .20) * .85
    assert result.probability == 58
    assert result.using_default_profile
    assert result.using_default_match
    assert result.confidence == "low"
    assert result.competition == "medium"


def test_supplying_the_default_value_still_counts_as_default() -> None:
    result = estimate_success_probability(
        93, profile_strength=DEFAULT_PROFILE_STRENGTH, match_score=DEFAULT_MATCH_SCORE
    )

    assert result.probability == 58
    assert result.using_default_profile
    assert result.using_default_match


def test_real_inputs_raise_confidence() -> None:
    result = estimate_success_probability(93, profile_strength=80, match_score=90)

    assert result.probability == 64
    assert not result.using_default_profile
    assert not result.using_default_match
    assert result.confidence == "high"
    assert estimate_success_probability(93, profile_strength=80).confidence == "medium"


def test_competition_level_scales_the_base_score() -> None:
    assert estimate_success_probability(93, competition="low").probability == 69
    assert estimate_success_probability(93, competition="high").probability == 48
    unknown = estimate_success_probability(93, competition="fierce")
    assert unknown.competition == "medium"
    assert unknown.probability == 58


def test_probability_stays_within_bounds() -> None:
    assert estimate_success_probability(100, 100, 100, "low").probability == 85
    # NaN quality scores as 0, NaN strength falls back to 70, negative fit clamps to 0
    assert estimate_success_probability(float("nan"), float("nan"), -40).probability == 15
    lowest = estimate_success_probability(0, 0, 0, "high")
    assert lowest.probability == 0
    assert "Long shot" in lowest.message


def test_weights_are_not_renormalized() -> None:
    weights = ProbabilityWeights.baseline()

    assert sum(weights.to_dict().values()) == pytest.approx(0.85)
    with pytest.raises(ValueError):
        ProbabilityWeights(quality=1.2, profile=0.25, match=0.2)


@pytest.mark.parametrize(
    ("kwargs", "expected"),
    [
        ({"acceptance_rate": 0.01}, 0.05),
        ({"acceptance_rate": 0.99}, 0.95),
        ({"acceptance_rate": 0.25, "applicant_pool_size": 10, "number_of_awards": 10}, 0.25),
        ({"applicant_pool_size": 1000, "number_of_awards": 10}, 0.05),
        ({"applicant_pool_size": 100, "number_of_awards": 50}, 0.5),
        ({"applicant_pool_size": 10, "number_of_awards": 10}, 0.8),
        ({"applicant_pool_size": 0, "number_of_awards": 10}, 0.3),
        ({"applicant_pool_size": 100, "number_of_awards": 0}, 0.05),
        ({}, 0.3),
    ],
)
def test_competition_factor(kwargs: dict[str, float], expected: float) -> None:
    assert calculate_competition_factor(**kwargs) == pytest.approx(expected)


def test_competition_factor_reads_scholarship_fields_and_maps_to_levels() -> None:
    scholarship = Scholarship(id="s1", name="Fund", applicant_pool_size=400, number_of_awards=40)

    assert competition_factor_for(scholarship) == pytest.approx(0.1)
    assert competition_level_from_factor(0.1) == "high"
    assert competition_level_from_factor(0.2) == "medium"
    assert competition_level_from_factor(0.5) == "low"


@pytest.mark.parametrize(
    ("probability", "tier"),
    [
        (70, SuccessTier.STRONG_MATCH),
        (69, SuccessTier.COMPETITIVE_MATCH),
        (40, SuccessTier.COMPETITIVE_MATCH),
        (39, SuccessTier.REACH),
        (10, SuccessTier.REACH),
        (9, SuccessTier.LONG_SHOT),
    ],
)
def test_success_tier_boundaries(probability: int, tier: SuccessTier) -> None:
    assert classify_success_tier(probability) == tier
