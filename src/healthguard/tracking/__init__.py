"""Lifestyle logging: daily health entries and the stats derived from them."""

from ..storage import HealthEntry
from .stats import HealthStats, Trend, compute_stats, load_stats, weekly_trend

__all__ = [
    "HealthEntry",
    "HealthStats",
    "Trend",
    "compute_stats",
    "load_stats",
    "weekly_trend",
]
