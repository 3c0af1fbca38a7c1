from __future__ import annotations

from datetime import date, datetime

import pytest

from scholarmatch.normalize.schema import (
    AcademicCriteria,
    EligibilityCriteria,
    FilterDimension,
    Profile,
    Scholarship,
    SpecialCriteria,
)


def test_profile_rejects_rank_outside_class() -> None:
    with pytest.raises(ValueError):
        Profile(class_rank=120, class_size=100)
    assert Profile(class_rank=100, class_size=100).class_rank == 100


def test_profile_rejects_unknown_need_level() -> None:
    with pytest.raises(ValueError):
        Profile(financial_need="EXTREME")


def test_profile_from_mapping_builds_nested_records() -> None:
    profile = Profile.from_mapping(
        {
            "student_id": "stu-1",
            "gpa": 3.4,
            "ethnicity": "Asian",
            "date_of_birth": "2008-05-14",
            "work_experience": [{"employer": "Cafe", "start_date": "2025-06-01"}],
            "leadership_roles": [{"title": "Treasurer", "organization": "Key Club"}],
            "unknown_column": "ignored",
        }
    )

    assert profile.ethnicity == ("Asian",)
    assert profile.date_of_birth == date(2008, 5, 14)
    assert profile.work_experience[0].start_date == date(2025, 6, 1)
    assert profile.leadership_roles[0].organization == "Key Club"


def test_empty_criteria_blocks_are_treated_as_absent() -> None:
    criteria = EligibilityCriteria(
        academic=AcademicCriteria(),
        special=SpecialCriteria(other_requirements=("Attend the dinner",)),
    )

    assert criteria.block(FilterDimension.ACADEMIC) is None
    assert [dimension for dimension, _ in criteria.present_blocks()] == [FilterDimension.SPECIAL]


def test_scholarship_from_mapping_parses_criteria_and_dates() -> None:
    scholarship = Scholarship.from_mapping(
        {
            "id": "s-1",
            "name": "Rural Nursing Grant",
            "provider": "Health Trust",
            "deadline": "2026-04-15",
            "last_verified": "2026-02-01T08:00:00Z",
            "tags": ["health", "rural"],
            "eligibility_criteria": {
                "academic": {"min_gpa": 3.0},
                "demographic": {"required_state": ["CA", "OR"]},
            },
        }
    )

    assert scholarship.deadline == date(2026, 4, 15)
    assert isinstance(scholarship.last_verified, datetime)
    assert scholarship.tags == ("health", "rural")
    assert scholarship.eligibility_criteria.academic == AcademicCriteria(min_gpa=3.0)
    assert scholarship.eligibility_criteria.demographic is not None
    assert scholarship.eligibility_criteria.demographic.required_state == ("CA", "OR")
