from .catalog import categories, load_catalog
from .models import Disease, DiseaseSearchResult, Severity
from .search import search_diseases

__all__ = [
    "Disease",
    "DiseaseSearchResult",
    "Severity",
    "categories",
    "load_catalog",
    "search_diseases",
]
