"""Factory for creating health store backends."""

from typing import Any

from .base import HealthStore


def create_health_store(
    backend: str = "memory",
    **kwargs: Any
) -> HealthStore:
    """Create a health store backend.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration
            For sqlite:
                - path: str | Path (default: './healthguard.db')

    Returns:
        HealthStore instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryHealthStore
        return InMemoryHealthStore(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteHealthStore
        return SQLiteHealthStore(**kwargs)

    raise ValueError(
        f"Unsupported store backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )
