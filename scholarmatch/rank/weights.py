from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

WEIGHT_TOLERANCE = 1e-6


def _validate_weights(label: str, values: Mapping[str, float]) -> None:
    for field_name, raw_value in values.items():
        value = float(raw_value)
        if not math.isfinite(value):
            raise ValueError(f"{label} weight '{field_name}' must be finite.")
        if value < 0.0 or value > 1.0:
            raise ValueError(f"{label} weight '{field_name}' must be between 0.0 and 1.0.")


def _validate_total(label: str, total: float) -> None:
    if not math.isclose(total, 1.0, abs_tol=WEIGHT_TOLERANCE):
        raise ValueError(
            f"{label} weights must sum to 1.0 "
            f"(received {total:.6f}, tolerance={WEIGHT_TOLERANCE})."
        )


@dataclass(frozen=True, slots=True)
class MatchWeights:
    academic: float
    demographic: float
    major_field: float
    experience: float
    financial: float
    special: float

    def __post_init__(self) -> None:
        values = self.to_dict()
        _validate_weights("Match", values)
        _validate_total("Match", sum(values.values()))

    @classmethod
    def baseline(cls) -> MatchWeights:
        return cls(
            academic=0.30,
            demographic=0.15,
            major_field=0.20,
            experience=0.15,
            financial=0.10,
            special=0.10,
        )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> MatchWeights:
        values = payload or {}
        baseline = cls.baseline()
        return cls(
            academic=float(values.get("academic", baseline.academic)),
            demographic=float(values.get("demographic", baseline.demographic)),
            major_field=float(values.get("major_field", baseline.major_field)),
            experience=float(values.get("experience", baseline.experience)),
            financial=float(values.get("financial", baseline.financial)),
            special=float(values.get("special", baseline.special)),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "academic": self.academic,
            "demographic": self.demographic,
            "major_field": self.major_field,
            "experience": self.experience,
            "financial": self.financial,
            "special": self.special,
        }


@dataclass(frozen=True, slots=True)
class StrengthWeights:
    academic: float
    experience: float
    leadership: float
    demographics: float

    def __post_init__(self) -> None:
        values = self.to_dict()
        _validate_weights("Strength", values)
        _validate_total("Strength", sum(values.values()))

    @classmethod
    def baseline(cls) -> StrengthWeights:
        return cls(academic=0.35, experience=0.25, leadership=0.25, demographics=0.15)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> StrengthWeights:
        values = payload or {}
        baseline = cls.baseline()
        return cls(
            academic=float(values.get("academic", baseline.academic)),
            experience=float(values.get("experience", baseline.experience)),
            leadership=float(values.get("leadership", baseline.leadership)),
            demographics=float(values.get("demographics", baseline.demographics)),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "academic": self.academic,
            "experience": self.experience,
            "leadership": self.leadership,
            "demographics": self.demographics,
        }


@dataclass(frozen=True, slots=True)
class ProbabilityWeights:
    """Success-probability weights.

    These sum to 0.85 rather than 1.0; the gap acts as a base-rate
    discount and must not be renormalized away.
    """

    quality: float
    profile: float
    match: float

    def __post_init__(self) -> None:
        _validate_weights("Probability", self.to_dict())

    @classmethod
    def baseline(cls) -> ProbabilityWeights:
        return cls(quality=0.40, profile=0.25, match=0.20)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> ProbabilityWeights:
        values = payload or {}
        baseline = cls.baseline()
        return cls(
            quality=float(values.get("quality", baseline.quality)),
            profile=float(values.get("profile", baseline.profile)),
            match=float(values.get("match", baseline.match)),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "quality": self.quality,
            "profile": self.profile,
            "match": self.match,
        }


DEFAULT_MATCH_WEIGHTS = MatchWeights.baseline()
DEFAULT_STRENGTH_WEIGHTS = StrengthWeights.baseline()
DEFAULT_PROBABILITY_WEIGHTS = ProbabilityWeights.baseline()
