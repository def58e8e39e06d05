"""Static disease catalog shipped as package data."""

import json
from functools import lru_cache
from importlib import resources

from .models import Disease


@lru_cache(maxsize=1)
def load_catalog() -> tuple[Disease, ...]:
    """Load the bundled catalog (cached after the first call)."""
    raw = resources.files(__package__).joinpath("data/diseases.json").read_text(encoding="utf-8")
    return tuple(Disease.model_validate(entry) for entry in json.loads(raw))


def categories(catalog: tuple[Disease, ...] | None = None) -> list[str]:
    """Distinct categories in first-seen order."""
    seen: dict[str, None] = {}
    for disease in catalog if catalog is not None else load_catalog():
        seen.setdefault(disease.category, None)
    return list(seen)
