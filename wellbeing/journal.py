from typing import Any, Dict, List, Optional

from wellbeing import keys
from wellbeing.models import JournalEntry, JournalSearchFilters, MoodType
from wellbeing.repository import EntityRepository
from wellbeing.search import search_entries
from wellbeing.utils.clock import system_clock


def count_words(content: str) -> int:
    return len(content.split())


class JournalRepository(EntityRepository[JournalEntry]):
    """Journal entries are returned in insertion order; callers sort."""

    def __init__(self, store, clock=system_clock):
        super().__init__(store, JournalEntry, keys.JOURNAL_ENTRIES, "journal", clock)

    def after_merge(self, existing: JournalEntry, merged: JournalEntry, patch: Dict[str, Any]) -> JournalEntry:
        if "content" in patch:
            merged.word_count = count_words(merged.content)
        return merged

    async def create_entry(
        self,
        user_id: str,
        title: str,
        content: str,
        tags: Optional[List[str]] = None,
        mood: Optional[MoodType] = None,
    ) -> JournalEntry:
        content = content.strip()
        return await self.insert(user_id, {
            "title": title.strip(),
            "content": content,
            "date": self.clock.now(),
            "tags": tags or [],
            "mood": mood,
            "is_favorite": False,
            "word_count": count_words(content),
        })

    async def toggle_favorite(self, user_id: str, entry_id: str) -> Optional[JournalEntry]:
        entry = await self.load_by_id(user_id, entry_id)
        if not entry:
            return None
        return await self.update(user_id, entry_id, {"is_favorite": not entry.is_favorite})

    async def search(self, user_id: str, filters: JournalSearchFilters) -> List[JournalEntry]:
        return search_entries(await self.load_all(user_id), filters)

    async def get_all_tags(self, user_id: str) -> List[str]:
        tags = set()
        for entry in await self.load_all(user_id):
            tags.update(entry.tags)
        return sorted(tags)
