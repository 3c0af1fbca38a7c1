from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from scholarmatch.normalize.canonical_id import normalize_text
from scholarmatch.normalize.numbers import is_number, safe_ratio
from scholarmatch.normalize.schema import Extracurricular, Profile, WorkExperience

COMMUNITY_SERVICE_CATEGORY = "community service"
WEEKS_PER_YEAR = 52
EFC_OPEN_ENDED_VALUE = 999_999
NOMINAL_GRADUATION_AGE = 18


def gpa_on_four_scale(profile: Profile) -> Optional[float]:
    if not is_number(profile.gpa):
        return None
    if profile.gpa_scale == 4.0:
        return float(profile.gpa)
    if not is_number(profile.gpa_scale) or profile.gpa_scale <= 0:
        return None
    return float(profile.gpa) / float(profile.gpa_scale) * 4.0


def class_rank_percentile(profile: Profile) -> Optional[float]:
    """Rank as a "top X%" percentile, or None without usable rank data."""

    if not is_number(profile.class_rank) or not is_number(profile.class_size):
        return None
    if profile.class_size <= 0:
        return None
    return safe_ratio(profile.class_rank, profile.class_size) * 100.0


def calculate_volunteer_hours(extracurriculars: Iterable[Extracurricular]) -> float:
    total = 0.0
    for activity in extracurriculars:
        if normalize_text(activity.category) != COMMUNITY_SERVICE_CATEGORY:
            continue
        if not is_number(activity.hours_per_week) or not is_number(activity.years_involved):
            continue
        total += float(activity.hours_per_week) * WEEKS_PER_YEAR * float(activity.years_involved)
    return total


def effective_volunteer_hours(profile: Profile) -> float:
    if is_number(profile.volunteer_hours):
        return max(float(profile.volunteer_hours), 0.0)
    return calculate_volunteer_hours(profile.extracurriculars)


def _months_between(start: date, end: date) -> int:
    return max((end.year - start.year) * 12 + (end.month - start.month), 0)


def work_months(job: WorkExperience, today: date) -> float:
    if is_number(job.months):
        return max(float(job.months), 0.0)
    if job.start_date is None:
        return 0.0
    return float(_months_between(job.start_date, job.end_date or today))


def total_work_months(profile: Profile, today: date) -> float:
    return sum(work_months(job, today) for job in profile.work_experience)


def age_on(date_of_birth: Optional[date], today: date) -> Optional[int]:
    if date_of_birth is None:
        return None
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def estimated_age(profile: Profile, today: date) -> Optional[int]:
    exact = age_on(profile.date_of_birth, today)
    if exact is not None:
        return exact
    if not is_number(profile.graduation_year):
        return None
    return NOMINAL_GRADUATION_AGE - (int(profile.graduation_year) - today.year)


def parse_efc_upper(efc_range: Optional[str]) -> Optional[int]:
    """Upper bound of an EFC range such as "0-5000", "20000+" or "7500"."""

    cleaned = (efc_range or "").strip().replace(",", "").replace("$", "")
    if not cleaned:
        return None
    if cleaned.endswith("+"):
        return EFC_OPEN_ENDED_VALUE
    if "-" in cleaned:
        upper = cleaned.split("-", 1)[1].strip()
        return int(upper) if upper.isdigit() else None
    return int(cleaned) if cleaned.isdigit() else None
