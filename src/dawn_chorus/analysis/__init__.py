"""Pure domain logic on top of normalized data.

Dependency rule: analysis/ imports ``schemas`` models only. It never fetches
data and never touches a cache, which is what lets the client reuse it
verbatim to refresh a cached report offline.

Modules:
  - ranking: per-species dedup + time-of-day ranking of observations
  - activity: hour/weather/season activity score and 24-hour curve
"""

from dawn_chorus.analysis.activity import HourScore, build_curve, classify_level, score_hour
from dawn_chorus.analysis.ranking import hour_distance, rank, select_notable

__all__ = [
    "HourScore",
    "build_curve",
    "classify_level",
    "hour_distance",
    "rank",
    "score_hour",
    "select_notable",
]
