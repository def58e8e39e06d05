"""Data models for the disease catalog."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """How serious a condition is."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class Disease(BaseModel):
    """One catalog entry."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    category: str
    symptoms: list[str] = Field(default_factory=list)
    severity: Severity
    prevalence: str = Field(description="'Rare', 'Moderate', 'Common' or 'Very Common'")

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match on name, any symptom or category."""
        term = term.lower()
        return (
            term in self.name.lower()
            or any(term in symptom.lower() for symptom in self.symptoms)
            or term in self.category.lower()
        )


class DiseaseSearchResult(BaseModel):
    """Result of a catalog search."""

    diseases: list[Disease]
    total: int
    categories: list[str] = Field(description="Distinct categories of the whole catalog")
