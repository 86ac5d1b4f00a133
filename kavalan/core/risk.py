"""Risk scoring — maps a weather snapshot to a green/yellow/red level.

Each factor contributes from its own bucket table; the buckets are
independent and summed. ``reasons`` lists the triggered rules in table
order so the result can be explained to the fisherman.
"""

from __future__ import annotations

from datetime import datetime

from kavalan.core.models import RiskAssessment, WeatherSnapshot, utcnow

RED_THRESHOLD = 150
YELLOW_THRESHOLD = 100

# (exclusive lower bound km/h, score, reason), highest first.
_WIND_BUCKETS = (
    (40, 100, "Extreme wind conditions"),
    (30, 80, "High wind conditions"),
    (20, 60, "Moderate wind conditions"),
    (10, 30, "Light wind conditions"),
)

_SEA_SCORES = {
    "high": (100, "High sea conditions"),
    "very_rough": (80, "Very rough sea conditions"),
    "rough": (60, "Rough sea conditions"),
    "moderate": (40, "Moderate sea conditions"),
}

# (exclusive upper bound km, score, reason), lowest first.
_VISIBILITY_BUCKETS = (
    (1, 70, "Poor visibility"),
    (5, 40, "Reduced visibility"),
)

_TEMP_LOW = 0
_TEMP_HIGH = 45
_TEMP_SCORE = 30


def sea_condition(wind_speed: float) -> str:
    """Qualitative sea state derived from wind speed alone."""
    if wind_speed < 5:
        return "calm"
    if wind_speed < 10:
        return "slight"
    if wind_speed < 20:
        return "moderate"
    if wind_speed < 30:
        return "rough"
    if wind_speed < 40:
        return "very_rough"
    return "high"


def level_for(score: int) -> str:
    if score >= RED_THRESHOLD:
        return "red"
    if score >= YELLOW_THRESHOLD:
        return "yellow"
    return "green"


def assess(snapshot: WeatherSnapshot, now: datetime | None = None) -> RiskAssessment:
    score = 0
    reasons: list[str] = []

    for bound, points, reason in _WIND_BUCKETS:
        if snapshot.wind_speed > bound:
            score += points
            reasons.append(reason)
            break

    if snapshot.sea_condition in _SEA_SCORES:
        points, reason = _SEA_SCORES[snapshot.sea_condition]
        score += points
        reasons.append(reason)

    for bound, points, reason in _VISIBILITY_BUCKETS:
        if snapshot.visibility_km < bound:
            score += points
            reasons.append(reason)
            break

    if snapshot.temperature < _TEMP_LOW or snapshot.temperature > _TEMP_HIGH:
        score += _TEMP_SCORE
        reasons.append("Extreme temperature conditions")

    return RiskAssessment(
        level=level_for(score),
        score=score,
        reasons=tuple(reasons),
        computed_at=now or utcnow(),
    )
