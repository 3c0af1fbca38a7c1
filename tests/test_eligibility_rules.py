from __future__ import annotations

from datetime import date
from typing import Any, Mapping

from scholarmatch.normalize.schema import (
    AcademicCriteria,
    DemographicCriteria,
    EligibilityCriteria,
    ExperienceCriteria,
    Extracurricular,
    FilterDimension,
    FinancialCriteria,
    LeadershipRole,
    MajorFieldCriteria,
    Profile,
    Scholarship,
    SpecialCriteria,
    WorkExperience,
)
from scholarmatch.rank.stage1_eligibility import (
    HardFilterConfig,
    apply_hard_filter,
    filter_scholarships,
    results_to_frame,
)

TODAY = date(2026, 2, 22)


def _scholarship(scholarship_id: str = "s1", **blocks: Any) -> Scholarship:
    return Scholarship(id=scholarship_id, name=scholarship_id, provider="Fund", eligibility_criteria=EligibilityCriteria(**blocks))


def _check(profile: Profile, **blocks: Any) -> Any:
    return apply_hard_filter(profile, _scholarship(**blocks), today=TODAY)


def test_min_gpa_boundary_is_inclusive() -> None:
    criteria = AcademicCriteria(min_gpa=3.5)

    below = _check(Profile(gpa=3.4), academic=criteria)
    at = _check(Profile(gpa=3.5), academic=criteria)

    assert not below.passes
    assert below.reasons == ["GPA_BELOW_MIN"]
    assert below.first_failing_dimension == FilterDimension.ACADEMIC
    assert at.passes


def test_missing_value_fails_min_bound_but_not_max_bound() -> None:
    assert _check(Profile(), academic=AcademicCriteria(min_sat=1200)).reasons == ["SAT_MISSING"]
    assert _check(Profile(), academic=AcademicCriteria(max_sat=1400)).passes
    assert _check(Profile(act_score=35), academic=AcademicCriteria(max_act=32)).reasons == ["ACT_ABOVE_MAX"]


def test_gpa_on_another_scale_is_normalized_before_comparison() -> None:
    result = _check(Profile(gpa=4.5, gpa_scale=5.0), academic=AcademicCriteria(min_gpa=3.5))

    assert result.passes


def test_contradictory_bounds_fail_every_profile() -> None:
    criteria = AcademicCriteria(min_gpa=3.8, max_gpa=3.2)

    for gpa in (None, 2.0, 3.0, 3.5, 3.9, 4.0):
        assert not _check(Profile(gpa=gpa), academic=criteria).passes


def test_all_empty_block_is_vacuously_satisfied() -> None:
    result = _check(Profile(), academic=AcademicCriteria(), demographic=DemographicCriteria())

    assert result.passes
    assert result.failed_criteria == ()


def test_class_rank_percentile_requirement() -> None:
    criteria = AcademicCriteria(class_rank_percentile=10)

    assert _check(Profile(class_rank=5, class_size=100), academic=criteria).passes
    assert _check(Profile(class_rank=20, class_size=100), academic=criteria).reasons == [
        "CLASS_RANK_OUTSIDE_PERCENTILE"
    ]
    assert _check(Profile(class_rank=5), academic=criteria).reasons == ["CLASS_RANK_MISSING"]


def test_early_exit_stops_at_first_failing_dimension() -> None:
    profile = Profile(gpa=2.0, state="TX")
    scholarship = _scholarship(
        academic=AcademicCriteria(min_gpa=3.0),
        demographic=DemographicCriteria(required_state=("CA",)),
    )

    short = apply_hard_filter(profile, scholarship, today=TODAY)
    full = apply_hard_filter(profile, scholarship, today=TODAY, config=HardFilterConfig(early_exit=False))

    assert short.reasons == ["GPA_BELOW_MIN"]
    assert full.reasons == ["GPA_BELOW_MIN", "STATE_NOT_ALLOWED"]
    assert full.first_failing_dimension == FilterDimension.ACADEMIC


def test_disabled_dimensions_are_not_checked() -> None:
    config = HardFilterConfig(enabled_dimensions=frozenset({FilterDimension.DEMOGRAPHIC}))
    scholarship = _scholarship(academic=AcademicCriteria(min_gpa=3.9))

    assert apply_hard_filter(Profile(gpa=2.0), scholarship, today=TODAY, config=config).passes


def test_demographic_rules() -> None:
    profile = Profile(
        gender="Female",
        ethnicity=("Hispanic", "White"),
        date_of_birth=date(2008, 3, 1),
        state="CA",
        city="Fresno",
    )

    assert _check(profile, demographic=DemographicCriteria(required_gender="Any")).passes
    assert _check(profile, demographic=DemographicCriteria(required_gender="male")).reasons == ["GENDER_MISMATCH"]
    assert _check(profile, demographic=DemographicCriteria(required_ethnicity=("hispanic",))).passes
    # Turns 18 on 2026-03-01, one week after the evaluation date.
    assert _check(profile, demographic=DemographicCriteria(age_min=18)).reasons == ["AGE_BELOW_MIN"]
    assert _check(Profile(), demographic=DemographicCriteria(age_max=25)).reasons == ["AGE_UNKNOWN"]
    assert _check(profile, demographic=DemographicCriteria(required_city=("Fresno", "Oakland"))).passes
    out_of_state = DemographicCriteria(required_state=("NY",), residency_required="Out-of-State")
    assert _check(profile, demographic=out_of_state).reasons == ["STATE_NOT_ALLOWED"]
    assert _check(
        profile, demographic=DemographicCriteria(required_state=("CA",), residency_required="Out-of-State")
    ).reasons == ["RESIDENCY_MISMATCH"]


def test_major_field_rules() -> None:
    profile = Profile(
        intended_major="Computer Science",
        field_of_study="STEM",
        career_goals="Build accessible software for hospitals",
    )

    assert _check(profile, major_field=MajorFieldCriteria(eligible_majors=("computer science",))).passes
    assert _check(profile, major_field=MajorFieldCriteria(excluded_majors=("Computer Science",))).reasons == [
        "MAJOR_EXCLUDED"
    ]
    assert _check(profile, major_field=MajorFieldCriteria(required_field_of_study=("Humanities",))).reasons == [
        "FIELD_OF_STUDY_MISMATCH"
    ]
    assert _check(profile, major_field=MajorFieldCriteria(career_goals_keywords=("SOFTWARE", "law"))).passes
    assert not _check(Profile(), major_field=MajorFieldCriteria(career_goals_keywords=("software",))).passes


def test_experience_rules() -> None:
    profile = Profile(
        extracurriculars=(Extracurricular(name="Robotics Club"),),
        leadership_roles=(LeadershipRole(title="Captain"),),
        work_experience=(WorkExperience(employer="Cafe", start_date=date(2025, 6, 1), end_date=None),),
        volunteer_hours=40,
    )

    assert _check(profile, experience=ExperienceCriteria(required_extracurriculars=("robotics",))).passes
    assert _check(profile, experience=ExperienceCriteria(leadership_required=True)).passes
    # June 2025 through February 2026 with no end date counts as 8 months.
    assert _check(profile, experience=ExperienceCriteria(min_work_experience=8)).passes
    assert _check(profile, experience=ExperienceCriteria(min_work_experience=9)).reasons == ["WORK_MONTHS_BELOW_MIN"]
    assert _check(profile, experience=ExperienceCriteria(min_volunteer_hours=50)).reasons == [
        "VOLUNTEER_HOURS_BELOW_MIN"
    ]
    assert _check(profile, experience=ExperienceCriteria(awards_honors_required=True)).reasons == ["AWARDS_REQUIRED"]


def test_financial_rules() -> None:
    moderate = Profile(financial_need="MODERATE", efc_range="0-5000", pell_grant_eligible=True)

    assert _check(moderate, financial=FinancialCriteria(requires_financial_need=True)).passes
    assert _check(Profile(financial_need="LOW"), financial=FinancialCriteria(requires_financial_need=True)).reasons == [
        "FINANCIAL_NEED_REQUIRED"
    ]
    assert _check(moderate, financial=FinancialCriteria(max_efc=6000)).passes
    assert _check(Profile(efc_range="20000+"), financial=FinancialCriteria(max_efc=6000)).reasons == [
        "EFC_ABOVE_MAX"
    ]
    assert _check(Profile(), financial=FinancialCriteria(max_efc=6000)).reasons == ["EFC_MISSING"]
    assert _check(moderate, financial=FinancialCriteria(pell_grant_required=True)).passes
    assert _check(moderate, financial=FinancialCriteria(financial_need_level="HIGH")).reasons == [
        "FINANCIAL_NEED_TOO_LOW"
    ]
    assert _check(moderate, financial=FinancialCriteria(financial_need_level="LOW")).passes


def test_special_rules_and_informational_requirements() -> None:
    events: list[tuple[str, Mapping[str, Any]]] = []
    profile = Profile(first_generation=True, citizenship="US Citizen", military_affiliation="Veteran")
    criteria = SpecialCriteria(
        first_generation_required=True,
        citizenship_required="Any",
        military_affiliation="veteran",
        other_requirements=("Must attend the awards dinner",),
    )

    result = apply_hard_filter(
        profile, _scholarship(special=criteria), today=TODAY, hook=lambda event, payload: events.append((event, payload))
    )

    assert result.passes
    assert events == [("eligibility.other_requirements", {"requirements": ["Must attend the awards dinner"]})]
    assert _check(Profile(), special=SpecialCriteria(disability_required=True)).reasons == ["DISABILITY_REQUIRED"]
    assert _check(profile, special=SpecialCriteria(citizenship_required="Permanent Resident")).reasons == [
        "CITIZENSHIP_MISMATCH"
    ]


def test_filter_scholarships_partitions_and_counts_rejections() -> None:
    profile = Profile(gpa=3.2, state="CA")
    scholarships = [
        _scholarship("open"),
        _scholarship("gpa", academic=AcademicCriteria(min_gpa=3.5)),
        _scholarship("state", demographic=DemographicCriteria(required_state=("NV",))),
        _scholarship("state-ok", demographic=DemographicCriteria(required_state=("ca",))),
    ]

    eligible, rejected, statistics = filter_scholarships(profile, scholarships, today=TODAY)

    assert [item.id for item in eligible] == ["open", "state-ok"]
    assert [item.scholarship_id for item in rejected] == ["gpa", "state"]
    assert statistics.to_dict() == {
        "total": 4,
        "passed": 2,
        "failed": 2,
        "rejections_by_dimension": {"academic": 1, "demographic": 1},
    }

    frame = results_to_frame(rejected)
    assert frame["priority_tier"].tolist() == ["INELIGIBLE", "INELIGIBLE"]
    assert frame["first_failing_dimension"].tolist() == ["academic", "demographic"]
