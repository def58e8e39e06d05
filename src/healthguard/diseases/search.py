"""Linear filter over the disease catalog."""

from .catalog import categories, load_catalog
from .models import Disease, DiseaseSearchResult

ALL_CATEGORIES = "all"


def search_diseases(
    query: str | None = None,
    category: str | None = None,
    catalog: tuple[Disease, ...] | None = None,
) -> DiseaseSearchResult:
    """Filter the catalog by category and free-text query.

    Args:
        query: Substring matched against name, symptoms and category
        category: Exact category (case-insensitive); 'all' or None disables it
        catalog: Catalog to search (defaults to the bundled one)

    Returns:
        Matching diseases in catalog order, their count, and all categories
    """
    entries = catalog if catalog is not None else load_catalog()
    results = list(entries)

    if category and category.lower() != ALL_CATEGORIES:
        wanted = category.lower()
        results = [d for d in results if d.category.lower() == wanted]

    if query:
        results = [d for d in results if d.matches(query)]

    return DiseaseSearchResult(
        diseases=results,
        total=len(results),
        categories=categories(entries),
    )
