from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import StrEnum
from typing import Any, Iterator, Mapping, Optional


class FinancialNeed(StrEnum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


FINANCIAL_NEED_PRIORITY: dict[str, int] = {
    FinancialNeed.LOW: 1,
    FinancialNeed.MODERATE: 2,
    FinancialNeed.HIGH: 3,
    FinancialNeed.VERY_HIGH: 4,
}


class FilterDimension(StrEnum):
    ACADEMIC = "academic"
    DEMOGRAPHIC = "demographic"
    MAJOR_FIELD = "major_field"
    EXPERIENCE = "experience"
    FINANCIAL = "financial"
    SPECIAL = "special"


class PriorityTier(StrEnum):
    MUST_APPLY = "MUST_APPLY"
    SHOULD_APPLY = "SHOULD_APPLY"
    CONSIDER = "CONSIDER"
    LOW_PRIORITY = "LOW_PRIORITY"
    INELIGIBLE = "INELIGIBLE"


class SuccessTier(StrEnum):
    STRONG_MATCH = "STRONG_MATCH"
    COMPETITIVE_MATCH = "COMPETITIVE_MATCH"
    REACH = "REACH"
    LONG_SHOT = "LONG_SHOT"


class EffortLevel(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class StrategicValueTier(StrEnum):
    BEST_BET = "BEST_BET"
    HIGH_VALUE = "HIGH_VALUE"
    MEDIUM_VALUE = "MEDIUM_VALUE"
    LOW_VALUE = "LOW_VALUE"


def _as_tuple(value: Any) -> tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(value)
    return (value,)


def _as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _known_values(cls: type, payload: Mapping[str, Any]) -> dict[str, Any]:
    names = {item.name for item in fields(cls)}
    return {key: value for key, value in payload.items() if key in names}


@dataclass(frozen=True, slots=True)
class Extracurricular:
    name: str
    category: Optional[str] = None
    hours_per_week: Optional[float] = None
    years_involved: Optional[float] = None
    description: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> Extracurricular:
        return cls(**_known_values(cls, payload))


@dataclass(frozen=True, slots=True)
class WorkExperience:
    employer: str
    position: Optional[str] = None
    months: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> WorkExperience:
        values = _known_values(cls, payload)
        values["start_date"] = _as_date(values.get("start_date"))
        values["end_date"] = _as_date(values.get("end_date"))
        return cls(**values)


@dataclass(frozen=True, slots=True)
class LeadershipRole:
    title: str
    organization: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> LeadershipRole:
        return cls(**_known_values(cls, payload))


@dataclass(frozen=True, slots=True)
class AwardHonor:
    name: str
    level: Optional[str] = None
    year: Optional[int] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> AwardHonor:
        return cls(**_known_values(cls, payload))


@dataclass(frozen=True, slots=True)
class Profile:
    """Immutable snapshot of one student's profile.

    Completion percentage and strength score are derived from these fields and are
    not stored here.
    """

    student_id: Optional[str] = None
    gpa: Optional[float] = None
    gpa_scale: float = 4.0
    sat_score: Optional[int] = None
    act_score: Optional[int] = None
    class_rank: Optional[int] = None
    class_size: Optional[int] = None
    graduation_year: Optional[int] = None
    current_grade: Optional[str] = None
    gender: Optional[str] = None
    ethnicity: tuple[str, ...] = ()
    date_of_birth: Optional[date] = None
    state: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    citizenship: Optional[str] = None
    intended_major: Optional[str] = None
    field_of_study: Optional[str] = None
    career_goals: Optional[str] = None
    financial_need: Optional[str] = None
    pell_grant_eligible: Optional[bool] = None
    efc_range: Optional[str] = None
    first_generation: Optional[bool] = None
    military_affiliation: Optional[str] = None
    disabilities: Optional[str] = None
    volunteer_hours: Optional[float] = None
    extracurriculars: tuple[Extracurricular, ...] = ()
    work_experience: tuple[WorkExperience, ...] = ()
    leadership_roles: tuple[LeadershipRole, ...] = ()
    awards_honors: tuple[AwardHonor, ...] = ()

    def __post_init__(self) -> None:
        if self.class_rank is not None and self.class_size is not None and self.class_size > 0:
            if self.class_rank > self.class_size:
                raise ValueError(
                    f"class_rank ({self.class_rank}) cannot exceed class_size ({self.class_size})."
                )
        if self.financial_need is not None and self.financial_need not in FINANCIAL_NEED_PRIORITY:
            raise ValueError(f"Unknown financial need level '{self.financial_need}'.")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> Profile:
        values = _known_values(cls, payload)
        values["ethnicity"] = tuple(str(item) for item in _as_tuple(values.get("ethnicity")))
        values["date_of_birth"] = _as_date(values.get("date_of_birth"))
        values["extracurriculars"] = tuple(
            Extracurricular.from_mapping(item) for item in _as_tuple(values.get("extracurriculars"))
        )
        values["work_experience"] = tuple(
            WorkExperience.from_mapping(item) for item in _as_tuple(values.get("work_experience"))
        )
        values["leadership_roles"] = tuple(
            LeadershipRole.from_mapping(item) for item in _as_tuple(values.get("leadership_roles"))
        )
        values["awards_honors"] = tuple(
            AwardHonor.from_mapping(item) for item in _as_tuple(values.get("awards_honors"))
        )
        return cls(**values)


def _block_is_empty(block: Any) -> bool:
    for item in fields(block):
        value = getattr(block, item.name)
        if value is None:
            continue
        if isinstance(value, tuple) and not value:
            continue
        return False
    return True


def _tupled(cls: type, payload: Mapping[str, Any]) -> dict[str, Any]:
    values = _known_values(cls, payload)
    for item in fields(cls):
        if item.name in values and str(item.type).startswith("tuple"):
            values[item.name] = tuple(str(v) for v in _as_tuple(values[item.name]))
    return values


@dataclass(frozen=True, slots=True)
class AcademicCriteria:
    min_gpa: Optional[float] = None
    max_gpa: Optional[float] = None
    min_sat: Optional[int] = None
    max_sat: Optional[int] = None
    min_act: Optional[int] = None
    max_act: Optional[int] = None
    class_rank_percentile: Optional[float] = None


@dataclass(frozen=True, slots=True)
class DemographicCriteria:
    required_gender: Optional[str] = None
    required_ethnicity: tuple[str, ...] = ()
    age_min: Optional[int] = None
    age_max: Optional[int] = None
    required_state: tuple[str, ...] = ()
    required_city: tuple[str, ...] = ()
    residency_required: Optional[str] = None


@dataclass(frozen=True, slots=True)
class MajorFieldCriteria:
    eligible_majors: tuple[str, ...] = ()
    excluded_majors: tuple[str, ...] = ()
    required_field_of_study: tuple[str, ...] = ()
    career_goals_keywords: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ExperienceCriteria:
    min_volunteer_hours: Optional[float] = None
    required_extracurriculars: tuple[str, ...] = ()
    leadership_required: Optional[bool] = None
    min_work_experience: Optional[float] = None
    awards_honors_required: Optional[bool] = None


@dataclass(frozen=True, slots=True)
class FinancialCriteria:
    requires_financial_need: Optional[bool] = None
    max_efc: Optional[float] = None
    pell_grant_required: Optional[bool] = None
    financial_need_level: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SpecialCriteria:
    first_generation_required: Optional[bool] = None
    military_affiliation: Optional[str] = None
    disability_required: Optional[bool] = None
    citizenship_required: Optional[str] = None
    other_requirements: tuple[str, ...] = ()


_BLOCK_TYPES: dict[FilterDimension, type] = {
    FilterDimension.ACADEMIC: AcademicCriteria,
    FilterDimension.DEMOGRAPHIC: DemographicCriteria,
    FilterDimension.MAJOR_FIELD: MajorFieldCriteria,
    FilterDimension.EXPERIENCE: ExperienceCriteria,
    FilterDimension.FINANCIAL: FinancialCriteria,
    FilterDimension.SPECIAL: SpecialCriteria,
}


@dataclass(frozen=True, slots=True)
class EligibilityCriteria:
    academic: Optional[AcademicCriteria] = None
    demographic: Optional[DemographicCriteria] = None
    major_field: Optional[MajorFieldCriteria] = None
    experience: Optional[ExperienceCriteria] = None
    financial: Optional[FinancialCriteria] = None
    special: Optional[SpecialCriteria] = None

    def block(self, dimension: FilterDimension) -> Any:
        """Return the criteria block for a dimension, or None when it is absent or all-empty."""

        value = getattr(self, dimension.value)
        if value is None or _block_is_empty(value):
            return None
        return value

    def present_blocks(self) -> Iterator[tuple[FilterDimension, Any]]:
        for dimension in FilterDimension:
            value = self.block(dimension)
            if value is not None:
                yield dimension, value

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> EligibilityCriteria:
        values = payload or {}
        blocks: dict[str, Any] = {}
        for dimension, block_type in _BLOCK_TYPES.items():
            raw_block = values.get(dimension.value)
            if raw_block is not None:
                blocks[dimension.value] = block_type(**_tupled(block_type, raw_block))
        return cls(**blocks)


@dataclass(frozen=True, slots=True)
class Scholarship:
    id: Optional[str] = None
    name: str = ""
    provider: str = ""
    description: Optional[str] = None
    website: Optional[str] = None
    award_amount: Optional[float] = None
    number_of_awards: Optional[int] = None
    deadline: Optional[date] = None
    eligibility_criteria: EligibilityCriteria = field(default_factory=EligibilityCriteria)
    essay_prompts: tuple[str, ...] = ()
    required_documents: tuple[str, ...] = ()
    recommendation_count: Optional[int] = None
    tags: tuple[str, ...] = ()
    acceptance_rate: Optional[float] = None
    applicant_pool_size: Optional[int] = None
    verified: Optional[bool] = None
    last_verified: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> Scholarship:
        values = _tupled(cls, payload)
        values["deadline"] = _as_date(values.get("deadline"))
        values["last_verified"] = _as_datetime(values.get("last_verified"))
        values["updated_at"] = _as_datetime(values.get("updated_at"))
        criteria = values.get("eligibility_criteria")
        if not isinstance(criteria, EligibilityCriteria):
            values["eligibility_criteria"] = EligibilityCriteria.from_mapping(criteria)
        return cls(**values)


@dataclass(frozen=True, slots=True)
class Match:
    student_id: Optional[str]
    scholarship_id: Optional[str]
    academic_score: Optional[int]
    demographic_score: Optional[int]
    major_field_score: Optional[int]
    experience_score: Optional[int]
    financial_score: Optional[int]
    special_score: Optional[int]
    overall_match_score: int
    success_probability: int
    success_tier: SuccessTier
    using_default_profile: bool
    using_default_match: bool
    using_default_quality: bool
    competition_factor: float
    effort_level: EffortLevel
    strategic_value: float
    strategic_value_tier: StrategicValueTier
    priority_tier: PriorityTier

    @property
    def key(self) -> tuple[Optional[str], Optional[str]]:
        return (self.student_id, self.scholarship_id)

    def dimension_scores(self) -> dict[str, Optional[int]]:
        return {dimension.value: getattr(self, f"{dimension.value}_score") for dimension in FilterDimension}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            payload[item.name] = value.value if isinstance(value, StrEnum) else value
        return payload
