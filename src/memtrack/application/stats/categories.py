"""
Category classifier.

Games label their sessions inconsistently ("People", "name-that-memory-people",
"Category Match", "categorymatch", ...). Every per-category view goes through
`classify` so one table decides which canonical bucket a label belongs to.
"""

import re

from memtrack.domain.stats.models import CanonicalCategory

_WHITESPACE = re.compile(r"\s+")

_SPELLINGS: dict[str, CanonicalCategory] = {
    "people": CanonicalCategory.PEOPLE,
    "name-that-memory-people": CanonicalCategory.PEOPLE,
    "places": CanonicalCategory.PLACES,
    "name-that-memory-places": CanonicalCategory.PLACES,
    "objects": CanonicalCategory.OBJECTS,
    "name-that-memory-objects": CanonicalCategory.OBJECTS,
    "category-match": CanonicalCategory.CATEGORY_MATCH,
    "categorymatch": CanonicalCategory.CATEGORY_MATCH,
    "other": CanonicalCategory.OTHER,
}

# Display names used for chart legends and category tables
CATEGORY_LABELS: dict[CanonicalCategory, str] = {
    CanonicalCategory.PEOPLE: "Name That Memory - People",
    CanonicalCategory.PLACES: "Name That Memory - Places",
    CanonicalCategory.OBJECTS: "Name That Memory - Objects",
    CanonicalCategory.CATEGORY_MATCH: "Category Match",
    CanonicalCategory.OTHER: "Other",
}


def normalize_label(raw: object) -> str:
    """Lower-case and collapse whitespace runs to single hyphens."""
    if not isinstance(raw, str):
        return ""
    return _WHITESPACE.sub("-", raw.strip().lower())


def classify(raw: object) -> CanonicalCategory:
    """
    Map a free-form category label to its canonical category.

    Total: anything not in the spelling table (including non-strings) maps to OTHER.
    """
    if isinstance(raw, CanonicalCategory):
        return raw
    return _SPELLINGS.get(normalize_label(raw), CanonicalCategory.OTHER)
