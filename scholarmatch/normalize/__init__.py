"""Typed records and normalization helpers shared across the engine."""

from scholarmatch.normalize.canonical_id import dedup_key, generate_scholarship_id, normalize_list, normalize_text
from scholarmatch.normalize.schema import (
    AcademicCriteria,
    AwardHonor,
    DemographicCriteria,
    EffortLevel,
    EligibilityCriteria,
    ExperienceCriteria,
    Extracurricular,
    FilterDimension,
    FinancialCriteria,
    FinancialNeed,
    LeadershipRole,
    MajorFieldCriteria,
    Match,
    PriorityTier,
    Profile,
    Scholarship,
    SpecialCriteria,
    StrategicValueTier,
    SuccessTier,
    WorkExperience,
)

__all__ = [
    "AcademicCriteria",
    "AwardHonor",
    "DemographicCriteria",
    "EffortLevel",
    "EligibilityCriteria",
    "ExperienceCriteria",
    "Extracurricular",
    "FilterDimension",
    "FinancialCriteria",
    "FinancialNeed",
    "LeadershipRole",
    "MajorFieldCriteria",
    "Match",
    "PriorityTier",
    "Profile",
    "Scholarship",
    "SpecialCriteria",
    "StrategicValueTier",
    "SuccessTier",
    "WorkExperience",
    "dedup_key",
    "generate_scholarship_id",
    "normalize_list",
    "normalize_text",
]
