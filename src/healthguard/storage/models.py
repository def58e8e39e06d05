"""Row models for the health store.

These models define the persisted shape of chat messages, credit balances
and health entries, independent of the backend used.
"""

from datetime import date, datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredMessage(BaseModel):
    """A finalized chat message as persisted."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str = Field(description="Owner of the conversation")
    role: str = Field(description="'user' or 'assistant'")
    content: str
    created_at: datetime = Field(default_factory=_utcnow)


class UserCredits(BaseModel):
    """Credit balance row for one user."""

    user_id: str
    credits: int = Field(default=0, description="Spendable balance")
    total_earned: int = Field(default=0)
    total_spent: int = Field(default=0)
    last_login_credit_date: date | None = Field(
        default=None,
        description="Calendar day (IST) of the last daily credit grant"
    )


class HealthEntry(BaseModel):
    """One day of logged lifestyle metrics.

    Every metric is optional; scores are on a 1-10 scale.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str
    entry_date: date = Field(default_factory=lambda: _utcnow().date())
    sleep_hours: float | None = Field(default=None, ge=0, le=24)
    sleep_quality: int | None = Field(default=None, ge=1, le=10)
    stress_level: int | None = Field(default=None, ge=1, le=10)
    mood: int | None = Field(default=None, ge=1, le=10)
    diet_quality: int | None = Field(default=None, ge=1, le=10)
    physical_activity_minutes: int | None = Field(default=None, ge=0)
    activity_intensity: str | None = Field(default=None, description="'light', 'moderate' or 'vigorous'")
    water_intake_liters: float | None = Field(default=None, ge=0)
    heart_rate: int | None = Field(default=None, gt=0, description="Resting beats per minute")
    notes: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
