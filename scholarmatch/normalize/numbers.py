from __future__ import annotations

import math
from typing import Any

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def is_number(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(float(value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def safe_score(value: Any) -> float:
    """Clamp a raw score into [0, 100], mapping NaN and infinities to 0."""

    if not is_number(value):
        return SCORE_MIN
    return min(max(float(value), SCORE_MIN), SCORE_MAX)


def safe_int_score(value: Any) -> int:
    return round_half_up(safe_score(value))


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    if not is_number(numerator) or not is_number(denominator) or denominator == 0:
        return default
    result = float(numerator) / float(denominator)
    return result if math.isfinite(result) else default


def weighted_average(components: list[tuple[float, float]]) -> float | None:
    total_weight = sum(weight for _, weight in components)
    if not components or total_weight <= 0.0:
        return None
    return sum(safe_score(score) * weight for score, weight in components) / total_weight
