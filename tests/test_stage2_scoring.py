from __future__ import annotations

from datetime import date

import pytest

from scholarmatch.normalize.schema import (
    AcademicCriteria,
    DemographicCriteria,
    EligibilityCriteria,
    ExperienceCriteria,
    FinancialCriteria,
    MajorFieldCriteria,
    Profile,
    SpecialCriteria,
)
from scholarmatch.rank.stage2_scoring import (
    overall_match_score,
    score_academic,
    score_demographic,
    score_dimensions,
    score_experience,
    score_financial,
    score_major_field,
    score_special,
)
from scholarmatch.rank.weights import MatchWeights

TODAY = date(2026, 2, 22)


def test_no_criteria_scores_one_hundred_with_no_dimensions() -> None:
    scores = score_dimensions(Profile(), EligibilityCriteria(), today=TODAY)

    assert scores.present() == {}
    assert scores.overall == 100
    assert scores.academic is None


def test_academic_score_falls_off_below_the_minimum() -> None:
    assert score_academic(Profile(gpa=2.8), AcademicCriteria(min_gpa=3.5), TODAY) == pytest.approx(80.0)
    assert score_academic(Profile(gpa=3.9), AcademicCriteria(min_gpa=3.5), TODAY) == pytest.approx(100.0)
    assert score_academic(Profile(), AcademicCriteria(min_gpa=3.5), TODAY) == pytest.approx(0.0)


def test_academic_score_penalizes_exceeding_a_maximum() -> None:
    assert score_academic(Profile(gpa=3.5), AcademicCriteria(max_gpa=3.0), TODAY) == pytest.approx(90.0)
    assert score_academic(Profile(), AcademicCriteria(max_sat=1200), TODAY) == pytest.approx(100.0)


def test_academic_score_takes_the_better_test_and_weights_components() -> None:
    profile = Profile(gpa=4.0, sat_score=700, act_score=30, class_rank=20, class_size=100)
    criteria = AcademicCriteria(min_gpa=3.0, min_sat=1400, min_act=30, class_rank_percentile=10)

    # GPA 100 (.4), best test 100 (.3), rank 10/20 -> 50 (.3)
    assert score_academic(profile, criteria, TODAY) == pytest.approx(85.0)


def test_demographic_score_averages_matching_attributes() -> None:
    profile = Profile(gender="Female", state="TX")
    criteria = DemographicCriteria(required_gender="Female", required_state=("CA",))

    assert score_demographic(profile, criteria, TODAY) == pytest.approx(50.0)


def test_demographic_age_is_estimated_from_graduation_year() -> None:
    profile = Profile(graduation_year=2026)

    assert score_demographic(profile, DemographicCriteria(age_min=18, age_max=24), TODAY) == pytest.approx(100.0)
    assert score_demographic(profile, DemographicCriteria(age_max=16), TODAY) == pytest.approx(80.0)


def test_major_score_grades_exact_partial_and_related_majors() -> None:
    exact = MajorFieldCriteria(eligible_majors=("Computer Science",))
    partial = MajorFieldCriteria(eligible_majors=("Computer Science and Engineering",))
    related = MajorFieldCriteria(eligible_majors=("Chemistry",))

    assert score_major_field(Profile(intended_major="computer science"), exact, TODAY) == pytest.approx(100.0)
    assert score_major_field(Profile(intended_major="Computer Science"), partial, TODAY) == pytest.approx(75.0)
    assert score_major_field(Profile(intended_major="Biology"), related, TODAY) == pytest.approx(50.0)
    assert score_major_field(Profile(intended_major="History"), related, TODAY) == pytest.approx(0.0)


def test_major_score_is_zero_for_excluded_majors() -> None:
    criteria = MajorFieldCriteria(eligible_majors=("Biology",), excluded_majors=("biology",))

    assert score_major_field(Profile(intended_major="Biology"), criteria, TODAY) == pytest.approx(0.0)


def test_career_keywords_are_boosted_and_capped() -> None:
    profile = Profile(career_goals="I want to become a pediatric nurse in a rural clinic")
    two_of_three = MajorFieldCriteria(career_goals_keywords=("nurse", "rural", "surgeon"))
    all_hits = MajorFieldCriteria(career_goals_keywords=("nurse", "rural"))

    assert score_major_field(profile, two_of_three, TODAY) == pytest.approx(80.0)
    assert score_major_field(profile, all_hits, TODAY) == pytest.approx(100.0)


def test_experience_score_is_proportional_to_requirements() -> None:
    assert score_experience(Profile(volunteer_hours=50), ExperienceCriteria(min_volunteer_hours=100), TODAY) == pytest.approx(50.0)
    assert score_experience(Profile(), ExperienceCriteria(leadership_required=True), TODAY) == pytest.approx(0.0)


def test_financial_score_uses_need_level_ratio_and_efc() -> None:
    need = FinancialCriteria(requires_financial_need=True, financial_need_level="HIGH")
    efc = FinancialCriteria(max_efc=4000)

    assert score_financial(Profile(financial_need="MODERATE"), need, TODAY) == pytest.approx(200 / 3)
    assert score_financial(Profile(efc_range="0-8000"), efc, TODAY) == pytest.approx(50.0)
    assert score_financial(Profile(pell_grant_eligible=True), FinancialCriteria(pell_grant_required=True), TODAY) == pytest.approx(100.0)


def test_special_score_credits_related_affiliations() -> None:
    assert score_special(
        Profile(citizenship="US Citizen"), SpecialCriteria(citizenship_required="Permanent Resident"), TODAY
    ) == pytest.approx(100.0)
    assert score_special(
        Profile(citizenship="Permanent Resident"), SpecialCriteria(citizenship_required="US Citizen"), TODAY
    ) == pytest.approx(50.0)
    assert score_special(
        Profile(military_affiliation="Active Duty"), SpecialCriteria(military_affiliation="Veteran"), TODAY
    ) == pytest.approx(75.0)
    assert score_special(Profile(), SpecialCriteria(military_affiliation="None"), TODAY) == pytest.approx(100.0)


def test_overall_only_weighs_dimensions_with_criteria() -> None:
    profile = Profile(gpa=3.9, pell_grant_eligible=False)
    sparse = EligibilityCriteria(academic=AcademicCriteria(min_gpa=3.0))
    richer = EligibilityCriteria(
        academic=AcademicCriteria(min_gpa=3.0),
        financial=FinancialCriteria(pell_grant_required=True),
    )

    sparse_scores = score_dimensions(profile, sparse, today=TODAY)
    richer_scores = score_dimensions(profile, richer, today=TODAY)

    assert sparse_scores.overall == 100
    assert sparse_scores.present() == {"academic": 100}
    # academic 100 at weight .30, financial 0 at weight .10
    assert richer_scores.overall == 75
    assert richer_scores.financial == 0


def test_overall_respects_custom_weights() -> None:
    weights = MatchWeights.from_mapping(
        {"academic": 0.5, "financial": 0.5, "demographic": 0.0, "major_field": 0.0, "experience": 0.0, "special": 0.0}
    )

    assert overall_match_score({"academic": 100.0, "financial": 0.0}, weights) == 50


def test_scoring_is_deterministic() -> None:
    profile = Profile(gpa=3.3, state="CA", intended_major="Nursing", volunteer_hours=75)
    criteria = EligibilityCriteria(
        academic=AcademicCriteria(min_gpa=3.5),
        demographic=DemographicCriteria(required_state=("CA", "OR")),
        major_field=MajorFieldCriteria(eligible_majors=("Public Health",)),
        experience=ExperienceCriteria(min_volunteer_hours=100),
    )

    first = score_dimensions(profile, criteria, today=TODAY)
    second = score_dimensions(profile, criteria, today=TODAY)

    assert first == second
