from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from scholarmatch.normalize.canonical_id import normalize_text
from scholarmatch.normalize.numbers import is_number, round_half_up, safe_int_score, safe_score
from scholarmatch.normalize.schema import FinancialNeed, Profile
from scholarmatch.profile.completeness import calculate_completion_percentage
from scholarmatch.profile.derived import effective_volunteer_hours
from scholarmatch.rank.weights import DEFAULT_STRENGTH_WEIGHTS, StrengthWeights

SAT_MIN, SAT_MAX = 400, 1600
ACT_MIN, ACT_MAX = 1, 36
MAX_RECOMMENDATIONS = 5

QUALIFYING_MILITARY_AFFILIATIONS = frozenset(
    {
        "active duty",
        "veteran",
        "reserves/national guard",
        "military dependent",
        "gold star family",
    }
)

NEED_LEVEL_POINTS: dict[str, int] = {
    FinancialNeed.VERY_HIGH: 30,
    FinancialNeed.HIGH: 20,
    FinancialNeed.MODERATE: 10,
    FinancialNeed.LOW: 0,
}

LEADERSHIP_STEPS = (0, 50, 75, 100)


@dataclass(frozen=True, slots=True)
class Recommendation:
    category: str
    message: str
    impact: int
    priority: int
    section: Optional[str] = None


@dataclass(frozen=True, slots=True)
class StrengthBreakdown:
    academic: int
    experience: int
    leadership: int
    demographics: int
    overall: int
    potential: int
    completion_percentage: int
    recommendations: tuple[Recommendation, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "academic": self.academic,
            "experience": self.experience,
            "leadership": self.leadership,
            "demographics": self.demographics,
            "overall": self.overall,
            "potential": self.potential,
            "completion_percentage": self.completion_percentage,
            "recommendations": [
                {
                    "category": item.category,
                    "message": item.message,
                    "impact": item.impact,
                    "priority": item.priority,
                    "section": item.section,
                }
                for item in self.recommendations
            ],
        }


def _test_score_points(profile: Profile) -> float:
    best = 0.0
    if is_number(profile.sat_score):
        sat = min(max(float(profile.sat_score), SAT_MIN), SAT_MAX)
        best = max(best, (sat - SAT_MIN) / (SAT_MAX - SAT_MIN) * 30.0)
    if is_number(profile.act_score):
        act = min(max(float(profile.act_score), ACT_MIN), ACT_MAX)
        best = max(best, (act - ACT_MIN) / (ACT_MAX - ACT_MIN) * 30.0)
    return best


def academic_strength(profile: Profile) -> int:
    points = 0.0
    if is_number(profile.gpa) and is_number(profile.gpa_scale) and profile.gpa_scale > 0:
        points += min(max(float(profile.gpa) / float(profile.gpa_scale), 0.0), 1.0) * 40.0
    points += _test_score_points(profile)
    if is_number(profile.class_rank) and is_number(profile.class_size) and profile.class_size > 0:
        points += max(1.0 - float(profile.class_rank) / float(profile.class_size), 0.0) * 20.0
    points += min(len(profile.awards_honors) * 2, 10)
    return safe_int_score(points)


def _volunteer_points(hours: float) -> float:
    if hours >= 200:
        return 30.0
    if hours >= 100:
        return 20.0
    if hours >= 50:
        return 10.0
    if hours > 0:
        return hours / 50.0 * 10.0
    return 0.0


def experience_strength(profile: Profile) -> int:
    points = min(len(profile.extracurriculars) * 8, 40)
    points += _volunteer_points(effective_volunteer_hours(profile))
    points += min(len(profile.work_experience) * 15, 30)
    return safe_int_score(points)


def leadership_strength(profile: Profile) -> int:
    return LEADERSHIP_STEPS[min(len(profile.leadership_roles), len(LEADERSHIP_STEPS) - 1)]


def has_qualifying_military_affiliation(profile: Profile) -> bool:
    return normalize_text(profile.military_affiliation) in QUALIFYING_MILITARY_AFFILIATIONS


def demographics_strength(profile: Profile) -> int:
    points = 0
    if profile.first_generation:
        points += 40
    if profile.financial_need is not None:
        points += NEED_LEVEL_POINTS.get(profile.financial_need, 0)
    if has_qualifying_military_affiliation(profile):
        points += 15
    if profile.disabilities and profile.disabilities.strip():
        points += 15
    return safe_int_score(points)


def _weighted_strength(scores: dict[str, int], weights: StrengthWeights) -> float:
    return sum(safe_score(scores[name]) * weight for name, weight in weights.to_dict().items())


def generate_recommendations(
    profile: Profile,
    scores: dict[str, int],
    weights: StrengthWeights = DEFAULT_STRENGTH_WEIGHTS,
) -> list[Recommendation]:
    recommendations: list[Recommendation] = []

    def add(category: str, message: str, points: float, weight: float, priority: int, section: str) -> None:
        recommendations.append(
            Recommendation(
                category=category,
                message=message,
                impact=round_half_up(points * weight),
                priority=priority,
                section=section,
            )
        )

    academic = scores["academic"]
    if academic < 60:
        add(
            "Academic",
            "Strengthen your academic record: GPA, test scores and class rank carry the most weight.",
            100 - academic,
            weights.academic,
            1,
            "/profile/academic",
        )
    if not is_number(profile.sat_score) and not is_number(profile.act_score):
        add("Academic", "Add your SAT or ACT score.", 30, weights.academic, 1, "/profile/academic")
    if not is_number(profile.class_rank) or not is_number(profile.class_size):
        add("Academic", "Add your class rank and class size.", 20, weights.academic, 2, "/profile/academic")

    experience = scores["experience"]
    if experience < 60:
        add(
            "Experience",
            "Add more extracurricular activities, volunteer work or jobs.",
            100 - experience,
            weights.experience,
            1,
            "/profile/experience",
        )
    hours = effective_volunteer_hours(profile)
    if hours < 50:
        add(
            "Experience",
            "Log at least 50 volunteer hours.",
            (100 - hours) / 100 * 20,
            weights.experience,
            2,
            "/profile/experience",
        )
    elif hours < 100:
        add("Experience", "Reach 100 volunteer hours.", 10, weights.experience, 2, "/profile/experience")
    if not profile.work_experience:
        add("Experience", "Add any part-time or summer work experience.", 30, weights.experience, 2, "/profile/experience")

    leadership = scores["leadership"]
    if leadership < 50:
        add(
            "Leadership",
            "Take on a leadership role in a club, team or community group.",
            100 - leadership,
            weights.leadership,
            1,
            "/profile/experience",
        )
    role_count = len(profile.leadership_roles)
    if role_count == 0:
        add("Leadership", "Add your leadership roles.", 100, weights.leadership, 1, "/profile/experience")
    elif role_count == 1:
        add("Leadership", "A second leadership role raises your score.", 25, weights.leadership, 2, "/profile/experience")
    elif role_count == 2:
        add("Leadership", "A third leadership role maxes out this dimension.", 25, weights.leadership, 3, "/profile/experience")

    if not profile.first_generation and not has_qualifying_military_affiliation(profile) and not profile.disabilities:
        recommendations.append(
            Recommendation(
                category="Demographics",
                message="Review your background details; some scholarships target specific circumstances.",
                impact=0,
                priority=3,
                section="/profile/personal",
            )
        )

    recommendations.sort(key=lambda item: (item.priority, -item.impact))
    return recommendations[:MAX_RECOMMENDATIONS]


def calculate_strength(
    profile: Profile,
    *,
    completion_percentage: int | None = None,
    weights: StrengthWeights = DEFAULT_STRENGTH_WEIGHTS,
) -> StrengthBreakdown:
    completion = (
        calculate_completion_percentage(profile) if completion_percentage is None else completion_percentage
    )
    completion = min(max(int(completion), 0), 100)
    scores = {
        "academic": academic_strength(profile),
        "experience": experience_strength(profile),
        "leadership": leadership_strength(profile),
        "demographics": demographics_strength(profile),
    }
    weighted = _weighted_strength(scores, weights)
    return StrengthBreakdown(
        academic=scores["academic"],
        experience=scores["experience"],
        leadership=scores["leadership"],
        demographics=scores["demographics"],
        overall=safe_int_score(weighted * completion / 100.0),
        potential=safe_int_score(weighted),
        completion_percentage=completion,
        recommendations=tuple(generate_recommendations(profile, scores, weights)),
    )


def score_band(score: float) -> tuple[str, str]:
    if score <= 50:
        return "red", "Needs Improvement"
    if score <= 75:
        return "yellow", "Good"
    return "green", "Excellent"
