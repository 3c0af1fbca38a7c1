from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Iterable, Optional, Sequence

import pandas as pd

from scholarmatch.normalize.canonical_id import normalize_list, normalize_text
from scholarmatch.normalize.numbers import is_number
from scholarmatch.normalize.schema import (
    FINANCIAL_NEED_PRIORITY,
    AcademicCriteria,
    DemographicCriteria,
    ExperienceCriteria,
    FilterDimension,
    FinancialCriteria,
    FinancialNeed,
    MajorFieldCriteria,
    PriorityTier,
    Profile,
    Scholarship,
    SpecialCriteria,
)
from scholarmatch.profile.derived import (
    age_on,
    class_rank_percentile,
    effective_volunteer_hours,
    gpa_on_four_scale,
    parse_efc_upper,
    total_work_months,
)
from scholarmatch.rank.hooks import ScoringHook, emit

ANY = "any"


@dataclass(frozen=True, slots=True)
class FailedCriterion:
    dimension: FilterDimension
    reason: str
    required: Any = None
    actual: Any = None


@dataclass(frozen=True, slots=True)
class HardFilterResult:
    scholarship_id: Optional[str]
    passes: bool
    failed_criteria: tuple[FailedCriterion, ...] = ()

    @property
    def first_failing_dimension(self) -> Optional[FilterDimension]:
        if not self.failed_criteria:
            return None
        return self.failed_criteria[0].dimension

    @property
    def reasons(self) -> list[str]:
        return [item.reason for item in self.failed_criteria]


@dataclass(frozen=True, slots=True)
class HardFilterConfig:
    enabled_dimensions: frozenset[FilterDimension] = frozenset(FilterDimension)
    early_exit: bool = True

    def __post_init__(self) -> None:
        unknown = [item for item in self.enabled_dimensions if item not in set(FilterDimension)]
        if unknown:
            raise ValueError(f"Unknown filter dimensions: {unknown}.")


@dataclass(slots=True)
class FilterStatistics:
    total: int = 0
    passed: int = 0
    failed: int = 0
    rejections_by_dimension: dict[str, int] = field(default_factory=dict)

    def record(self, result: HardFilterResult) -> None:
        self.total += 1
        if result.passes:
            self.passed += 1
            return
        self.failed += 1
        dimension = result.first_failing_dimension
        if dimension is not None:
            key = dimension.value
            self.rejections_by_dimension[key] = self.rejections_by_dimension.get(key, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "rejections_by_dimension": dict(self.rejections_by_dimension),
        }


def _check_min(
    failures: list[FailedCriterion],
    dimension: FilterDimension,
    name: str,
    actual: Optional[float],
    minimum: Optional[float],
) -> None:
    if minimum is None:
        return
    if actual is None:
        failures.append(FailedCriterion(dimension, f"{name}_MISSING", minimum, None))
    elif actual < minimum:
        failures.append(FailedCriterion(dimension, f"{name}_BELOW_MIN", minimum, actual))


def _check_max(
    failures: list[FailedCriterion],
    dimension: FilterDimension,
    name: str,
    actual: Optional[float],
    maximum: Optional[float],
) -> None:
    if maximum is None or actual is None:
        return
    if actual > maximum:
        failures.append(FailedCriterion(dimension, f"{name}_ABOVE_MAX", maximum, actual))


def _number_or_none(value: Any) -> Optional[float]:
    return float(value) if is_number(value) else None


def check_academic(
    profile: Profile, criteria: AcademicCriteria, today: date, hook: Optional[ScoringHook] = None
) -> list[FailedCriterion]:
    dimension = FilterDimension.ACADEMIC
    failures: list[FailedCriterion] = []
    gpa = gpa_on_four_scale(profile)
    _check_min(failures, dimension, "GPA", gpa, criteria.min_gpa)
    _check_max(failures, dimension, "GPA", gpa, criteria.max_gpa)
    sat = _number_or_none(profile.sat_score)
    _check_min(failures, dimension, "SAT", sat, criteria.min_sat)
    _check_max(failures, dimension, "SAT", sat, criteria.max_sat)
    act = _number_or_none(profile.act_score)
    _check_min(failures, dimension, "ACT", act, criteria.min_act)
    _check_max(failures, dimension, "ACT", act, criteria.max_act)

    if criteria.class_rank_percentile is not None:
        percentile = class_rank_percentile(profile)
        if percentile is None:
            failures.append(
                FailedCriterion(dimension, "CLASS_RANK_MISSING", criteria.class_rank_percentile, None)
            )
        elif percentile > criteria.class_rank_percentile:
            failures.append(
                FailedCriterion(
                    dimension, "CLASS_RANK_OUTSIDE_PERCENTILE", criteria.class_rank_percentile, percentile
                )
            )
    return failures


def residency_satisfied(profile: Profile, criteria: DemographicCriteria) -> bool:
    requirement = normalize_text(criteria.residency_required)
    states = normalize_list(criteria.required_state)
    if not requirement or requirement == ANY or not states:
        return True
    in_state = normalize_text(profile.state) in states
    if requirement == "in-state":
        return in_state
    if requirement == "out-of-state":
        return not in_state
    return True


def check_demographic(
    profile: Profile, criteria: DemographicCriteria, today: date, hook: Optional[ScoringHook] = None
) -> list[FailedCriterion]:
    dimension = FilterDimension.DEMOGRAPHIC
    failures: list[FailedCriterion] = []

    required_gender = normalize_text(criteria.required_gender)
    if required_gender and required_gender != ANY and normalize_text(profile.gender) != required_gender:
        failures.append(FailedCriterion(dimension, "GENDER_MISMATCH", criteria.required_gender, profile.gender))

    required_ethnicity = set(normalize_list(criteria.required_ethnicity))
    if required_ethnicity and not required_ethnicity.intersection(normalize_list(profile.ethnicity)):
        failures.append(
            FailedCriterion(dimension, "ETHNICITY_MISMATCH", list(criteria.required_ethnicity), list(profile.ethnicity))
        )

    if criteria.age_min is not None or criteria.age_max is not None:
        age = age_on(profile.date_of_birth, today)
        if age is None:
            failures.append(FailedCriterion(dimension, "AGE_UNKNOWN", (criteria.age_min, criteria.age_max), None))
        else:
            _check_min(failures, dimension, "AGE", age, criteria.age_min)
            _check_max(failures, dimension, "AGE", age, criteria.age_max)

    states = normalize_list(criteria.required_state)
    if states and normalize_text(profile.state) not in states:
        failures.append(FailedCriterion(dimension, "STATE_NOT_ALLOWED", list(criteria.required_state), profile.state))

    cities = normalize_list(criteria.required_city)
    if cities and normalize_text(profile.city) not in cities:
        failures.append(FailedCriterion(dimension, "CITY_NOT_ALLOWED", list(criteria.required_city), profile.city))

    if not residency_satisfied(profile, criteria):
        failures.append(
            FailedCriterion(dimension, "RESIDENCY_MISMATCH", criteria.residency_required, profile.state)
        )
    return failures


def check_major_field(
    profile: Profile, criteria: MajorFieldCriteria, today: date, hook: Optional[ScoringHook] = None
) -> list[FailedCriterion]:
    dimension = FilterDimension.MAJOR_FIELD
    failures: list[FailedCriterion] = []
    major = normalize_text(profile.intended_major)

    eligible = normalize_list(criteria.eligible_majors)
    if eligible and major not in eligible:
        failures.append(
            FailedCriterion(dimension, "MAJOR_NOT_ELIGIBLE", list(criteria.eligible_majors), profile.intended_major)
        )

    if major and major in normalize_list(criteria.excluded_majors):
        failures.append(
            FailedCriterion(dimension, "MAJOR_EXCLUDED", list(criteria.excluded_majors), profile.intended_major)
        )

    fields_of_study = normalize_list(criteria.required_field_of_study)
    if fields_of_study and normalize_text(profile.field_of_study) not in fields_of_study:
        failures.append(
            FailedCriterion(
                dimension, "FIELD_OF_STUDY_MISMATCH", list(criteria.required_field_of_study), profile.field_of_study
            )
        )

    keywords = normalize_list(criteria.career_goals_keywords)
    if keywords:
        goals = normalize_text(profile.career_goals)
        if not goals or not any(keyword in goals for keyword in keywords):
            failures.append(
                FailedCriterion(
                    dimension, "CAREER_GOALS_MISMATCH", list(criteria.career_goals_keywords), profile.career_goals
                )
            )
    return failures


def check_experience(
    profile: Profile, criteria: ExperienceCriteria, today: date, hook: Optional[ScoringHook] = None
) -> list[FailedCriterion]:
    dimension = FilterDimension.EXPERIENCE
    failures: list[FailedCriterion] = []

    if criteria.min_volunteer_hours is not None:
        _check_min(
            failures, dimension, "VOLUNTEER_HOURS", effective_volunteer_hours(profile), criteria.min_volunteer_hours
        )

    if criteria.leadership_required and not profile.leadership_roles:
        failures.append(FailedCriterion(dimension, "LEADERSHIP_REQUIRED", True, 0))

    activity_names = normalize_list([activity.name for activity in profile.extracurriculars])
    for required in normalize_list(criteria.required_extracurriculars):
        if not any(required in name for name in activity_names):
            failures.append(FailedCriterion(dimension, "EXTRACURRICULAR_MISSING", required, None))

    if criteria.min_work_experience is not None:
        _check_min(failures, dimension, "WORK_MONTHS", total_work_months(profile, today), criteria.min_work_experience)

    if criteria.awards_honors_required and not profile.awards_honors:
        failures.append(FailedCriterion(dimension, "AWARDS_REQUIRED", True, 0))
    return failures


def check_financial(
    profile: Profile, criteria: FinancialCriteria, today: date, hook: Optional[ScoringHook] = None
) -> list[FailedCriterion]:
    dimension = FilterDimension.FINANCIAL
    failures: list[FailedCriterion] = []

    if criteria.requires_financial_need:
        if profile.financial_need is None or profile.financial_need == FinancialNeed.LOW:
            failures.append(FailedCriterion(dimension, "FINANCIAL_NEED_REQUIRED", True, profile.financial_need))

    if criteria.max_efc is not None:
        efc = parse_efc_upper(profile.efc_range)
        if efc is None:
            failures.append(FailedCriterion(dimension, "EFC_MISSING", criteria.max_efc, profile.efc_range))
        elif efc > criteria.max_efc:
            failures.append(FailedCriterion(dimension, "EFC_ABOVE_MAX", criteria.max_efc, efc))

    if criteria.pell_grant_required and profile.pell_grant_eligible is not True:
        failures.append(FailedCriterion(dimension, "PELL_GRANT_REQUIRED", True, profile.pell_grant_eligible))

    if criteria.financial_need_level is not None:
        required_priority = FINANCIAL_NEED_PRIORITY.get(criteria.financial_need_level, 0)
        actual_priority = FINANCIAL_NEED_PRIORITY.get(profile.financial_need or "", 0)
        if actual_priority < required_priority:
            failures.append(
                FailedCriterion(
                    dimension, "FINANCIAL_NEED_TOO_LOW", criteria.financial_need_level, profile.financial_need
                )
            )
    return failures


def check_special(
    profile: Profile, criteria: SpecialCriteria, today: date, hook: Optional[ScoringHook] = None
) -> list[FailedCriterion]:
    dimension = FilterDimension.SPECIAL
    failures: list[FailedCriterion] = []

    if criteria.first_generation_required and profile.first_generation is not True:
        failures.append(FailedCriterion(dimension, "FIRST_GENERATION_REQUIRED", True, profile.first_generation))

    military = normalize_text(criteria.military_affiliation)
    if military and military != ANY and normalize_text(profile.military_affiliation) != military:
        failures.append(
            FailedCriterion(
                dimension, "MILITARY_AFFILIATION_MISMATCH", criteria.military_affiliation, profile.military_affiliation
            )
        )

    citizenship = normalize_text(criteria.citizenship_required)
    if citizenship and citizenship != ANY and normalize_text(profile.citizenship) != citizenship:
        failures.append(
            FailedCriterion(dimension, "CITIZENSHIP_MISMATCH", criteria.citizenship_required, profile.citizenship)
        )

    if criteria.disability_required and not normalize_text(profile.disabilities):
        failures.append(FailedCriterion(dimension, "DISABILITY_REQUIRED", True, None))

    if criteria.other_requirements:
        emit(hook, "eligibility.other_requirements", {"requirements": list(criteria.other_requirements)})
    return failures


DimensionCheck = Callable[[Profile, Any, date, Optional[ScoringHook]], list[FailedCriterion]]

DIMENSION_CHECKS: dict[FilterDimension, DimensionCheck] = {
    FilterDimension.ACADEMIC: check_academic,
    FilterDimension.DEMOGRAPHIC: check_demographic,
    FilterDimension.MAJOR_FIELD: check_major_field,
    FilterDimension.EXPERIENCE: check_experience,
    FilterDimension.FINANCIAL: check_financial,
    FilterDimension.SPECIAL: check_special,
}

DEFAULT_FILTER_CONFIG = HardFilterConfig()


def apply_hard_filter(
    profile: Profile,
    scholarship: Scholarship,
    *,
    today: date | None = None,
    config: HardFilterConfig = DEFAULT_FILTER_CONFIG,
    hook: Optional[ScoringHook] = None,
) -> HardFilterResult:
    effective_today = today or date.today()
    failures: list[FailedCriterion] = []
    for dimension, block in scholarship.eligibility_criteria.present_blocks():
        if dimension not in config.enabled_dimensions:
            continue
        failures.extend(DIMENSION_CHECKS[dimension](profile, block, effective_today, hook))
        if failures and config.early_exit:
            break
    return HardFilterResult(
        scholarship_id=scholarship.id,
        passes=not failures,
        failed_criteria=tuple(failures),
    )


def filter_scholarships(
    profile: Profile,
    scholarships: Iterable[Scholarship],
    *,
    today: date | None = None,
    config: HardFilterConfig = DEFAULT_FILTER_CONFIG,
    hook: Optional[ScoringHook] = None,
) -> tuple[list[Scholarship], list[HardFilterResult], FilterStatistics]:
    eligible: list[Scholarship] = []
    rejected: list[HardFilterResult] = []
    statistics = FilterStatistics()
    for scholarship in scholarships:
        result = apply_hard_filter(profile, scholarship, today=today, config=config, hook=hook)
        statistics.record(result)
        if result.passes:
            eligible.append(scholarship)
        else:
            rejected.append(result)
    return eligible, rejected, statistics


def results_to_frame(results: Sequence[HardFilterResult]) -> pd.DataFrame:
    rows = [
        {
            "scholarship_id": result.scholarship_id,
            "eligible": result.passes,
            "first_failing_dimension": (
                result.first_failing_dimension.value if result.first_failing_dimension else None
            ),
            "reasons": result.reasons,
            "priority_tier": None if result.passes else PriorityTier.INELIGIBLE.value,
        }
        for result in results
    ]
    return pd.DataFrame(
        rows,
        columns=["scholarship_id", "eligible", "first_failing_dimension", "reasons", "priority_tier"],
    )
