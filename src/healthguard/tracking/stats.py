"""Dashboard aggregates over logged health entries.

Stats are never stored; they are recomputed from the most recent entries
each time the dashboard asks for them.
"""

from collections.abc import Callable, Sequence
from enum import Enum

from pydantic import BaseModel, Field

from ..storage import HealthEntry, HealthStore

STATS_WINDOW = 30  # Entries read for the dashboard
TREND_MIN_ENTRIES = 7
TREND_THRESHOLD = 0.5  # Mood points between the two windows
NEUTRAL_MOOD = 5  # Stands in for entries without a mood score


class Trend(str, Enum):
    """Direction of mood over the last week."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class HealthStats(BaseModel):
    """Averages over a user's recent entries."""

    avg_sleep_hours: float = 0.0
    avg_sleep_quality: float = 0.0
    avg_stress_level: float = 0.0
    avg_mood: float = 0.0
    avg_diet_quality: float = 0.0
    avg_activity_minutes: int = 0
    total_entries: int = 0
    latest_entry: HealthEntry | None = None
    weekly_trend: Trend = Field(default=Trend.STABLE)


def _average(entries: Sequence[HealthEntry], value: Callable[[HealthEntry], float | None]) -> float:
    """Mean over the entries that have the metric; 0 when none do."""
    values = [v for v in map(value, entries) if v is not None]
    return sum(values) / len(values) if values else 0.0


def _mood(entries: Sequence[HealthEntry]) -> float:
    return sum(e.mood if e.mood is not None else NEUTRAL_MOOD for e in entries) / len(entries)


def weekly_trend(entries: Sequence[HealthEntry]) -> Trend:
    """Compare mood of the three newest entries with entries five to seven.

    Args:
        entries: Entries newest first

    Returns:
        STABLE when fewer than a week of entries exist
    """
    if len(entries) < TREND_MIN_ENTRIES:
        return Trend.STABLE
    recent = _mood(entries[:3])
    older = _mood(entries[4:7])
    if recent > older + TREND_THRESHOLD:
        return Trend.IMPROVING
    if recent < older - TREND_THRESHOLD:
        return Trend.DECLINING
    return Trend.STABLE


def compute_stats(entries: Sequence[HealthEntry]) -> HealthStats | None:
    """Aggregate entries (newest first) into dashboard stats.

    Returns:
        None when there are no entries
    """
    if not entries:
        return None
    return HealthStats(
        avg_sleep_hours=round(_average(entries, lambda e: e.sleep_hours), 1),
        avg_sleep_quality=round(_average(entries, lambda e: e.sleep_quality), 1),
        avg_stress_level=round(_average(entries, lambda e: e.stress_level), 1),
        avg_mood=round(_average(entries, lambda e: e.mood), 1),
        avg_diet_quality=round(_average(entries, lambda e: e.diet_quality), 1),
        avg_activity_minutes=round(_average(entries, lambda e: e.physical_activity_minutes)),
        total_entries=len(entries),
        latest_entry=entries[0],
        weekly_trend=weekly_trend(entries),
    )


async def load_stats(store: HealthStore, user_id: str, limit: int = STATS_WINDOW) -> HealthStats | None:
    """Read the most recent entries of a user and aggregate them."""
    return compute_stats(await store.get_health_entries(user_id, limit=limit))
