from __future__ import annotations

import pytest

from scholarmatch.rank.weights import MatchWeights, ProbabilityWeights, StrengthWeights


def test_match_weights_require_sum_of_one() -> None:
    with pytest.raises(ValueError):
        MatchWeights(academic=0.5, demographic=0.15, major_field=0.2, experience=0.15, financial=0.1, special=0.1)


def test_strength_weights_reject_out_of_range_values() -> None:
    with pytest.raises(ValueError):
        StrengthWeights(academic=-0.1, experience=0.35, leadership=0.5, demographics=0.25)
    with pytest.raises(ValueError):
        StrengthWeights(academic=float("nan"), experience=0.25, leadership=0.25, demographics=0.15)


def test_from_mapping_falls_back_to_baseline() -> None:
    weights = MatchWeights.from_mapping({"academic": 0.25, "special": 0.15})

    assert weights.to_dict() == {
        "academic": 0.25,
        "demographic": 0.15,
        "major_field": 0.20,
        "experience": 0.15,
        "financial": 0.10,
        "special": 0.15,
    }
    assert MatchWeights.from_mapping(None) == MatchWeights.baseline()
    assert StrengthWeights.from_mapping({}) == StrengthWeights.baseline()


def test_probability_weights_keep_their_partial_sum() -> None:
    weights = ProbabilityWeights.from_mapping({"quality": 0.5})

    assert weights.to_dict() == {"quality": 0.5, "profile": 0.25, "match": 0.20}
