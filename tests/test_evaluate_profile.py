from __future__ import annotations

from scholarmatch.normalize.schema import LeadershipRole, Profile
from scholarmatch.profile.completeness import calculate_completion_percentage
from scholarmatch.profile.evaluate import evaluate_profile
from scholarmatch.profile.strength import calculate_strength


def test_evaluation_combines_completeness_and_gated_strength() -> None:
    profile = Profile(
        gpa=3.7,
        graduation_year=2027,
        state="OR",
        intended_major="Biology",
        leadership_roles=(LeadershipRole(title="Team Captain"),),
    )

    evaluation = evaluate_profile(profile)

    assert evaluation.completion_percentage == calculate_completion_percentage(profile)
    assert evaluation.strength_breakdown == calculate_strength(
        profile, completion_percentage=evaluation.completion_percentage
    )
    assert evaluation.strength_breakdown.overall <= evaluation.strength_breakdown.potential


def test_evaluation_payload_lists_missing_fields() -> None:
    payload = evaluate_profile(Profile()).to_dict()

    assert payload["completion_percentage"] == 0
    assert payload["strength_breakdown"]["overall"] == 0
    assert "GPA" in payload["missing_required"]
    assert payload["missing_recommended"][0] == "Leadership Roles"
