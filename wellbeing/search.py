from typing import List

from wellbeing.models import JournalEntry, JournalSearchFilters


def search_entries(entries: List[JournalEntry], filters: JournalSearchFilters) -> List[JournalEntry]:
    """
    Filter journal entries. Every provided filter must hold (logical AND);
    a missing filter places no constraint. Input order is preserved.

    - search_text: case-insensitive substring of the title or the content
    - tags: the entry must carry every listed tag
    - mood: exact match
    - date_from / date_to: inclusive bounds on ``date``
    - favorites_only: only entries marked as favorite
    """
    results = list(entries)

    if filters.search_text:
        needle = filters.search_text.lower()
        results = [
            e for e in results
            if needle in e.title.lower() or needle in e.content.lower()
        ]

    if filters.tags:
        wanted = set(filters.tags)
        results = [e for e in results if wanted.issubset(e.tags)]

    if filters.mood:
        results = [e for e in results if e.mood == filters.mood]

    if filters.date_from:
        results = [e for e in results if e.date >= filters.date_from]

    if filters.date_to:
        results = [e for e in results if e.date <= filters.date_to]

    if filters.favorites_only:
        results = [e for e in results if e.is_favorite]

    return results
