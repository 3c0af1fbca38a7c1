from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from scholarmatch.normalize.numbers import is_number, round_half_up
from scholarmatch.normalize.schema import Profile
from scholarmatch.profile.derived import effective_volunteer_hours
from scholarmatch.rank.weights import DEFAULT_STRENGTH_WEIGHTS, StrengthWeights

REQUIRED_WEIGHT = 0.70
RECOMMENDED_WEIGHT = 0.30

REQUIRED_FIELDS: tuple[str, ...] = (
    "gpa",
    "graduation_year",
    "current_grade",
    "gender",
    "ethnicity",
    "state",
    "citizenship",
    "intended_major",
    "field_of_study",
    "financial_need",
)

# "test_score" is one slot satisfied by either an SAT or an ACT score.
RECOMMENDED_FIELDS: tuple[str, ...] = (
    "test_score",
    "class_rank",
    "extracurriculars",
    "volunteer_hours",
    "work_experience",
    "leadership_roles",
    "awards_honors",
    "city",
    "zip_code",
    "pell_grant_eligible",
    "efc_range",
)

FIELD_LABELS: dict[str, str] = {
    "gpa": "GPA",
    "graduation_year": "Graduation Year",
    "current_grade": "Current Grade",
    "gender": "Gender",
    "ethnicity": "Ethnicity",
    "state": "State",
    "citizenship": "Citizenship Status",
    "intended_major": "Intended Major",
    "field_of_study": "Field of Study",
    "financial_need": "Financial Need Level",
    "test_score": "SAT or ACT Score",
    "class_rank": "Class Rank",
    "extracurriculars": "Extracurricular Activities",
    "volunteer_hours": "Volunteer Hours",
    "work_experience": "Work Experience",
    "leadership_roles": "Leadership Roles",
    "awards_honors": "Awards & Honors",
    "city": "City",
    "zip_code": "ZIP Code",
    "pell_grant_eligible": "Pell Grant Eligibility",
    "efc_range": "Expected Family Contribution (EFC)",
}

FIELD_CATEGORIES: dict[str, str] = {
    "gpa": "academic",
    "graduation_year": "academic",
    "current_grade": "academic",
    "test_score": "academic",
    "class_rank": "academic",
    "awards_honors": "academic",
    "gender": "demographic",
    "ethnicity": "demographic",
    "state": "location",
    "city": "location",
    "zip_code": "location",
    "citizenship": "demographic",
    "intended_major": "major",
    "field_of_study": "major",
    "financial_need": "financial",
    "pell_grant_eligible": "financial",
    "efc_range": "financial",
    "extracurriculars": "experience",
    "volunteer_hours": "experience",
    "work_experience": "experience",
    "leadership_roles": "leadership",
}

# Strength points a student gains by first filling each recommended field.
_RECOMMENDED_STRENGTH_POINTS: dict[str, tuple[str, float]] = {
    "test_score": ("academic", 30.0),
    "class_rank": ("academic", 20.0),
    "awards_honors": ("academic", 2.0),
    "extracurriculars": ("experience", 8.0),
    "volunteer_hours": ("experience", 10.0),
    "work_experience": ("experience", 15.0),
    "leadership_roles": ("leadership", 50.0),
}


@dataclass(frozen=True, slots=True)
class MissingField:
    field: str
    label: str
    category: str
    required: bool
    impact: float


@dataclass(frozen=True, slots=True)
class CompletenessResult:
    percentage: int
    required_completed: int
    recommended_completed: int
    missing: tuple[MissingField, ...]

    @property
    def missing_required(self) -> list[str]:
        return [item.label for item in self.missing if item.required]

    @property
    def missing_recommended(self) -> list[str]:
        return [item.label for item in self.missing if not item.required]

    def to_dict(self) -> dict[str, Any]:
        return {
            "percentage": self.percentage,
            "required_completed": self.required_completed,
            "recommended_completed": self.recommended_completed,
            "missing_required": self.missing_required,
            "missing_recommended": self.missing_recommended,
        }


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (tuple, list, set, frozenset)):
        return len(value) > 0
    if isinstance(value, (int, float)):
        return is_number(value)
    return True


def is_field_complete(profile: Profile, field_name: str) -> bool:
    if field_name == "test_score":
        return is_number(profile.sat_score) or is_number(profile.act_score)
    if field_name == "volunteer_hours":
        return effective_volunteer_hours(profile) > 0
    return _has_value(getattr(profile, field_name, None))


def recommended_field_impact(
    field_name: str, weights: StrengthWeights = DEFAULT_STRENGTH_WEIGHTS
) -> float:
    dimension, points = _RECOMMENDED_STRENGTH_POINTS.get(field_name, ("", 0.0))
    if not dimension:
        return 0.0
    return points * getattr(weights, dimension)


def calculate_completeness(
    profile: Profile, *, weights: StrengthWeights = DEFAULT_STRENGTH_WEIGHTS
) -> CompletenessResult:
    missing_required = [name for name in REQUIRED_FIELDS if not is_field_complete(profile, name)]
    missing_recommended = [name for name in RECOMMENDED_FIELDS if not is_field_complete(profile, name)]

    required_completed = len(REQUIRED_FIELDS) - len(missing_required)
    recommended_completed = len(RECOMMENDED_FIELDS) - len(missing_recommended)
    ratio = (
        required_completed / len(REQUIRED_FIELDS) * REQUIRED_WEIGHT
        + recommended_completed / len(RECOMMENDED_FIELDS) * RECOMMENDED_WEIGHT
    )
    percentage = min(max(round_half_up(ratio * 100.0), 0), 100)

    required_gain = REQUIRED_WEIGHT / len(REQUIRED_FIELDS) * 100.0
    missing = [
        MissingField(
            field=name,
            label=FIELD_LABELS[name],
            category=FIELD_CATEGORIES[name],
            required=True,
            impact=required_gain,
        )
        for name in missing_required
    ]
    recommended_entries = [
        MissingField(
            field=name,
            label=FIELD_LABELS[name],
            category=FIELD_CATEGORIES[name],
            required=False,
            impact=recommended_field_impact(name, weights),
        )
        for name in missing_recommended
    ]
    # sorted() is stable, so equal impacts keep declaration order.
    missing.extend(sorted(recommended_entries, key=lambda item: -item.impact))

    return CompletenessResult(
        percentage=percentage,
        required_completed=required_completed,
        recommended_completed=recommended_completed,
        missing=tuple(missing),
    )


def calculate_completion_percentage(profile: Profile) -> int:
    return calculate_completeness(profile).percentage
