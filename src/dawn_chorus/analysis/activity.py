"""Bird activity model: hour + weather + season -> 0-100 score.

A weighted heuristic, not a statistical model. The thresholds below are the
contract: the server endpoint and the client both import this module, so a
report refreshed locally against new weather matches what the server would
have returned.

Months are 0-indexed (January = 0) throughout.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from dawn_chorus.schemas import (
    ActivityCurve,
    ActivityLevel,
    ActivityPoint,
    CurrentActivity,
    Peak,
    WeatherSnapshot,
)

BASE_SCORE = 50
DEFAULT_LABEL = "Not much about"

# (first hour, last hour, adjustment, label); first match wins.
HOUR_BANDS: list[tuple[int, int, int, str]] = [
    (5, 7, 30, "Best time to spot birds"),
    (8, 8, 20, "Great for spotting"),
    (9, 11, 10, "Good chance of sightings"),
    (12, 14, -5, "Fewer birds around"),
    (15, 16, 10, "Birds picking up again"),
    (17, 18, 20, "Lots of activity"),
    (19, 19, 5, "Last chance today"),
]
NIGHT_ADJUSTMENT = -20

RAIN_LABEL = "Rain keeping birds hidden"
WIND_LABEL = "Too windy for most birds"
LOW_SCORE_LABEL_THRESHOLD = 40

SPRING_MONTHS = {2, 3, 4}  # migration
AUTUMN_MONTHS = {8, 9}  # migration
WINTER_MONTHS = {11, 0, 1}

DAWN_HOURS = range(5, 10)
DUSK_HOURS = range(15, 20)
DAWN_DEFAULT_HOUR = 6
DUSK_DEFAULT_HOUR = 17

HIGH_LEVEL = 70
MODERATE_LEVEL = 40


@dataclass(frozen=True)
class HourScore:
    score: int
    label: str


def _hour_band(hour: int) -> tuple[int, str]:
    for first, last, adjustment, label in HOUR_BANDS:
        if first <= hour <= last:
            return adjustment, label
    return NIGHT_ADJUSTMENT, DEFAULT_LABEL


def score_hour(hour: int, weather: WeatherSnapshot, month: int) -> HourScore:
    """
    Score bird activity for one hour.

    Args:
        hour: Hour of day (0-23).
        weather: Conditions for the day.
        month: Month, 0-indexed.

    Returns:
        Score clamped to [0, 100] and a short human label.
    """
    adjustment, label = _hour_band(hour)
    score = BASE_SCORE + adjustment

    # Weather penalties; labels only change once the score is already low.
    if weather.rain_probability > 60:
        score -= 20
        if score < LOW_SCORE_LABEL_THRESHOLD:
            label = RAIN_LABEL
    elif weather.rain_probability > 30:
        score -= 10

    if weather.wind_speed_ms > 10:
        score -= 15
        if score < LOW_SCORE_LABEL_THRESHOLD:
            label = WIND_LABEL
    elif weather.wind_speed_ms > 6:
        score -= 5

    if month in SPRING_MONTHS:
        score += 15
    elif month in AUTUMN_MONTHS:
        score += 10
    elif month in WINTER_MONTHS:
        score -= 5

    if 10 <= weather.temp_c <= 22:
        score += 5
    if weather.temp_c < 0:
        score -= 10
    if weather.temp_c > 30:
        score -= 10

    # Light overcast and dry
    if 30 < weather.cloud_percent < 70 and weather.rain_probability < 20:
        score += 5

    return HourScore(score=max(0, min(100, score)), label=label)


def classify_level(score: int) -> ActivityLevel:
    if score >= HIGH_LEVEL:
        return "high"
    if score >= MODERATE_LEVEL:
        return "moderate"
    return "low"


def build_curve(weather: WeatherSnapshot, month: int, current_hour: int) -> ActivityCurve:
    """
    Score every hour of the day and pick out the dawn and dusk peaks.

    Peaks are strict running maxima seeded at 6:00 and 17:00 with score 0,
    so a curve that is zero everywhere still reports those hours.

    Args:
        weather: Conditions for the day.
        month: Month, 0-indexed.
        current_hour: Hour to report as ``current`` (0-23).
    """
    curve: list[ActivityPoint] = []
    dawn = Peak(hour=DAWN_DEFAULT_HOUR, score=0)
    dusk = Peak(hour=DUSK_DEFAULT_HOUR, score=0)

    for hour in range(24):
        result = score_hour(hour, weather, month)
        curve.append(ActivityPoint(hour=hour, score=result.score, label=result.label))

        if hour in DAWN_HOURS and result.score > dawn.score:
            dawn = Peak(hour=hour, score=result.score)
        if hour in DUSK_HOURS and result.score > dusk.score:
            dusk = Peak(hour=hour, score=result.score)

    now = curve[current_hour]
    current = CurrentActivity(**now.model_dump(), level=classify_level(now.score))
    return ActivityCurve(curve=curve, current=current, dawn_peak=dawn, dusk_peak=dusk)


def local_hour_and_month(now: datetime | None = None) -> tuple[int, int]:
    """Current local hour and 0-indexed month."""
    now = now or datetime.now()
    return now.hour, now.month - 1
