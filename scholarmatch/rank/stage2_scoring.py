from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

from scholarmatch.normalize.canonical_id import normalize_list, normalize_text
from scholarmatch.normalize.numbers import is_number, safe_int_score, safe_ratio, weighted_average
from scholarmatch.normalize.schema import (
    FINANCIAL_NEED_PRIORITY,
    AcademicCriteria,
    DemographicCriteria,
    EligibilityCriteria,
    ExperienceCriteria,
    FilterDimension,
    FinancialCriteria,
    MajorFieldCriteria,
    Profile,
    SpecialCriteria,
)
from scholarmatch.profile.derived import (
    class_rank_percentile,
    effective_volunteer_hours,
    estimated_age,
    gpa_on_four_scale,
    parse_efc_upper,
    total_work_months,
)
from scholarmatch.rank.stage1_eligibility import ANY, residency_satisfied
from scholarmatch.rank.weights import DEFAULT_MATCH_WEIGHTS, MatchWeights

FULL = 100.0
ZERO = 0.0

MAJOR_FAMILIES: dict[str, tuple[str, ...]] = {
    "stem": ("biology", "chemistry", "physics", "mathematics", "engineering", "computer science", "science"),
    "engineering": ("mechanical", "electrical", "civil", "chemical", "computer", "aerospace", "biomedical"),
    "business": ("business", "finance", "accounting", "economics", "marketing", "management"),
    "health": ("nursing", "medicine", "pharmacy", "public health", "healthcare", "medical"),
    "arts": ("art", "music", "theater", "dance", "design", "fine arts", "performing arts"),
    "humanities": ("english", "history", "philosophy", "literature", "languages", "liberal arts"),
}

# required affiliation -> student affiliations that partially satisfy it
RELATED_MILITARY_AFFILIATIONS: dict[str, frozenset[str]] = {
    "veteran": frozenset({"active duty"}),
    "dependent": frozenset({"veteran", "active duty"}),
}


def _min_bound_score(actual: Optional[float], minimum: float) -> float:
    if actual is None:
        return ZERO
    if actual >= minimum:
        return FULL
    return safe_ratio(actual, minimum) * 100.0


def _range_score(
    actual: Optional[float],
    minimum: Optional[float],
    maximum: Optional[float],
    over_max_penalty: Callable[[float], float],
) -> float:
    if minimum is not None:
        if actual is None or actual < minimum:
            return _min_bound_score(actual, minimum)
    if maximum is not None and actual is not None and actual > maximum:
        return FULL - over_max_penalty(actual - maximum)
    return FULL


def score_academic(profile: Profile, criteria: AcademicCriteria, today: date) -> Optional[float]:
    components: list[tuple[float, float]] = []

    if criteria.min_gpa is not None or criteria.max_gpa is not None:
        gpa = gpa_on_four_scale(profile)
        components.append((_range_score(gpa, criteria.min_gpa, criteria.max_gpa, lambda over: over * 20.0), 0.40))

    test_scores: list[float] = []
    if criteria.min_sat is not None or criteria.max_sat is not None:
        sat = float(profile.sat_score) if is_number(profile.sat_score) else None
        test_scores.append(_range_score(sat, criteria.min_sat, criteria.max_sat, lambda over: over / 10.0))
    if criteria.min_act is not None or criteria.max_act is not None:
        act = float(profile.act_score) if is_number(profile.act_score) else None
        test_scores.append(_range_score(act, criteria.min_act, criteria.max_act, lambda over: over * 10.0))
    if test_scores:
        components.append((max(test_scores), 0.30))

    if criteria.class_rank_percentile is not None:
        percentile = class_rank_percentile(profile)
        if percentile is None:
            rank_score = ZERO
        elif percentile <= criteria.class_rank_percentile:
            rank_score = FULL
        else:
            rank_score = safe_ratio(criteria.class_rank_percentile, percentile) * 100.0
        components.append((rank_score, 0.30))

    return weighted_average(components)


def _membership_score(value: Optional[str], allowed: list[str]) -> float:
    return FULL if normalize_text(value) in allowed else ZERO


def score_demographic(profile: Profile, criteria: DemographicCriteria, today: date) -> Optional[float]:
    scores: list[float] = []

    required_gender = normalize_text(criteria.required_gender)
    if required_gender and required_gender != ANY:
        scores.append(FULL if normalize_text(profile.gender) == required_gender else ZERO)

    required_ethnicity = set(normalize_list(criteria.required_ethnicity))
    if required_ethnicity:
        overlap = required_ethnicity.intersection(normalize_list(profile.ethnicity))
        scores.append(FULL if overlap else ZERO)

    states = normalize_list(criteria.required_state)
    if states:
        scores.append(_membership_score(profile.state, states))

    cities = normalize_list(criteria.required_city)
    if cities:
        scores.append(_membership_score(profile.city, cities))

    if criteria.age_min is not None or criteria.age_max is not None:
        age = estimated_age(profile, today)
        if age is None:
            scores.append(ZERO)
        elif criteria.age_min is not None and age < criteria.age_min:
            scores.append(safe_ratio(age, criteria.age_min) * 100.0)
        elif criteria.age_max is not None and age > criteria.age_max:
            scores.append(FULL - 10.0 * (age - criteria.age_max))
        else:
            scores.append(FULL)

    residency = normalize_text(criteria.residency_required)
    if residency and residency != ANY and states:
        scores.append(FULL if residency_satisfied(profile, criteria) else ZERO)

    return weighted_average([(score, 1.0) for score in scores])


def _major_family(major: str) -> Optional[tuple[str, ...]]:
    for members in MAJOR_FAMILIES.values():
        if any(member in major for member in members):
            return members
    return None


def _eligible_major_score(major: str, eligible: list[str]) -> float:
    if not major:
        return ZERO
    if major in eligible:
        return FULL
    if any(major in candidate or candidate in major for candidate in eligible):
        return 75.0
    family = _major_family(major)
    if family and any(member in candidate for candidate in eligible for member in family):
        return 50.0
    return ZERO


def score_major_field(profile: Profile, criteria: MajorFieldCriteria, today: date) -> Optional[float]:
    major = normalize_text(profile.intended_major)
    if major and major in normalize_list(criteria.excluded_majors):
        return ZERO

    components: list[tuple[float, float]] = []
    eligible = normalize_list(criteria.eligible_majors)
    if eligible:
        components.append((_eligible_major_score(major, eligible), 0.5))

    fields_of_study = normalize_list(criteria.required_field_of_study)
    if fields_of_study:
        field_of_study = normalize_text(profile.field_of_study)
        if field_of_study and field_of_study in fields_of_study:
            field_score = FULL
        elif field_of_study and any(field_of_study in item or item in field_of_study for item in fields_of_study):
            field_score = 80.0
        else:
            field_score = ZERO
        components.append((field_score, 0.3))

    keywords = normalize_list(criteria.career_goals_keywords)
    if keywords:
        goals = normalize_text(profile.career_goals)
        hits = sum(1 for keyword in keywords if goals and keyword in goals)
        components.append((min(FULL, hits / len(keywords) * 100.0 * 1.2), 0.2))

    if not components and criteria.excluded_majors:
        return FULL
    return weighted_average(components)


def _proportional(actual: float, minimum: float) -> float:
    if minimum <= 0:
        return FULL
    return min(FULL, safe_ratio(actual, minimum) * 100.0)


def score_experience(profile: Profile, criteria: ExperienceCriteria, today: date) -> Optional[float]:
    components: list[tuple[float, float]] = []

    if criteria.min_volunteer_hours is not None:
        components.append((_proportional(effective_volunteer_hours(profile), criteria.min_volunteer_hours), 0.35))

    if criteria.leadership_required is not None:
        if criteria.leadership_required:
            components.append((FULL if profile.leadership_roles else ZERO, 0.25))
        else:
            components.append((FULL, 0.25))

    required_activities = normalize_list(criteria.required_extracurriculars)
    if required_activities:
        names = normalize_list([activity.name for activity in profile.extracurriculars])
        matched = sum(
            1 for required in required_activities if any(required in name or name in required for name in names)
        )
        components.append((matched / len(required_activities) * 100.0, 0.20))

    if criteria.min_work_experience is not None:
        components.append((_proportional(total_work_months(profile, today), criteria.min_work_experience), 0.15))

    if criteria.awards_honors_required is not None:
        if criteria.awards_honors_required:
            components.append((FULL if profile.awards_honors else ZERO, 0.05))
        else:
            components.append((FULL, 0.05))

    return weighted_average(components)


def _financial_need_score(profile: Profile, criteria: FinancialCriteria) -> float:
    required_level = criteria.financial_need_level
    if not criteria.requires_financial_need and required_level is None:
        return FULL
    if profile.financial_need is None:
        return ZERO
    if required_level is None:
        return FULL
    student_priority = FINANCIAL_NEED_PRIORITY.get(profile.financial_need, 0)
    required_priority = FINANCIAL_NEED_PRIORITY.get(required_level, 0)
    if student_priority >= required_priority:
        return FULL
    return safe_ratio(student_priority, required_priority) * 100.0


def score_financial(profile: Profile, criteria: FinancialCriteria, today: date) -> Optional[float]:
    components: list[tuple[float, float]] = []

    if criteria.requires_financial_need is not None or criteria.financial_need_level is not None:
        components.append((_financial_need_score(profile, criteria), 0.5))

    if criteria.pell_grant_required is not None:
        matches = bool(profile.pell_grant_eligible) == bool(criteria.pell_grant_required)
        components.append((FULL if matches else ZERO, 0.3))

    if criteria.max_efc is not None:
        student_efc = parse_efc_upper(profile.efc_range)
        if student_efc is None:
            efc_score = ZERO
        elif student_efc <= criteria.max_efc:
            efc_score = FULL
        else:
            efc_score = safe_ratio(criteria.max_efc, student_efc) * 100.0
        components.append((efc_score, 0.2))

    return weighted_average(components)


def _military_score(required: str, actual: str) -> float:
    if actual == required:
        return FULL
    if required == "none" and not actual:
        return FULL
    if actual in RELATED_MILITARY_AFFILIATIONS.get(required, frozenset()):
        return 75.0
    return ZERO


def _citizenship_score(required: str, actual: str) -> float:
    if actual == required:
        return FULL
    if required == "permanent resident" and actual == "us citizen":
        return FULL
    if required == "us citizen" and actual == "permanent resident":
        return 50.0
    return ZERO


def score_special(profile: Profile, criteria: SpecialCriteria, today: date) -> Optional[float]:
    scores: list[float] = []

    if criteria.first_generation_required is not None:
        scores.append(FULL if bool(profile.first_generation) == criteria.first_generation_required else ZERO)

    military = normalize_text(criteria.military_affiliation)
    if military and military != ANY:
        scores.append(_military_score(military, normalize_text(profile.military_affiliation)))

    if criteria.disability_required is not None:
        if criteria.disability_required:
            scores.append(FULL if normalize_text(profile.disabilities) else ZERO)
        else:
            scores.append(FULL)

    citizenship = normalize_text(criteria.citizenship_required)
    if citizenship and citizenship != ANY:
        scores.append(_citizenship_score(citizenship, normalize_text(profile.citizenship)))

    return weighted_average([(score, 1.0) for score in scores])


DimensionScorer = Callable[[Profile, Any, date], Optional[float]]

DIMENSION_SCORERS: dict[FilterDimension, DimensionScorer] = {
    FilterDimension.ACADEMIC: score_academic,
    FilterDimension.DEMOGRAPHIC: score_demographic,
    FilterDimension.MAJOR_FIELD: score_major_field,
    FilterDimension.EXPERIENCE: score_experience,
    FilterDimension.FINANCIAL: score_financial,
    FilterDimension.SPECIAL: score_special,
}


@dataclass(frozen=True, slots=True)
class DimensionalScores:
    academic: Optional[int] = None
    demographic: Optional[int] = None
    major_field: Optional[int] = None
    experience: Optional[int] = None
    financial: Optional[int] = None
    special: Optional[int] = None
    overall: int = 100

    def present(self) -> dict[str, int]:
        return {
            dimension.value: getattr(self, dimension.value)
            for dimension in FilterDimension
            if getattr(self, dimension.value) is not None
        }


def overall_match_score(scores: dict[str, float], weights: MatchWeights = DEFAULT_MATCH_WEIGHTS) -> int:
    """Weighted average over the dimensions that carry criteria; 100 when none do."""

    weight_by_dimension = weights.to_dict()
    components = [(score, weight_by_dimension[name]) for name, score in scores.items()]
    average = weighted_average(components)
    if average is None:
        return 100
    return safe_int_score(average)


def score_dimensions(
    profile: Profile,
    criteria: EligibilityCriteria,
    *,
    today: date | None = None,
    weights: MatchWeights = DEFAULT_MATCH_WEIGHTS,
) -> DimensionalScores:
    effective_today = today or date.today()
    raw_scores: dict[str, float] = {}
    for dimension, block in criteria.present_blocks():
        score = DIMENSION_SCORERS[dimension](profile, block, effective_today)
        if score is not None:
            raw_scores[dimension.value] = score

    rounded = {name: safe_int_score(score) for name, score in raw_scores.items()}
    return DimensionalScores(**rounded, overall=overall_match_score(raw_scores, weights))
