"""Row storage for healthguard.

Persists finalized chat messages, credit balances and health entries.
"""

from .base import HealthStore
from .factory import create_health_store
from .models import HealthEntry, StoredMessage, UserCredits

__all__ = [
    "HealthEntry",
    "HealthStore",
    "StoredMessage",
    "UserCredits",
    "create_health_store",
]
