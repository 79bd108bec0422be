from typing import List, Optional

from wellbeing import keys
from wellbeing.analytics import compute_mood_statistics
from wellbeing.models import MoodEntry, MoodStatistics, MoodType
from wellbeing.repository import EntityRepository
from wellbeing.utils.clock import system_clock


class MoodRepository(EntityRepository[MoodEntry]):
    def __init__(self, store, clock=system_clock):
        super().__init__(store, MoodEntry, keys.MOOD_ENTRIES, "mood", clock)

    def sort_records(self, records: List[MoodEntry]) -> List[MoodEntry]:
        # Newest first, re-sorted on every read
        return sorted(records, key=lambda e: e.date, reverse=True)

    async def create_entry(self, user_id: str, mood: MoodType, intensity: int, notes: Optional[str] = None) -> MoodEntry:
        return await self.insert(user_id, {
            "mood": mood,
            "intensity": intensity,
            "date": self.clock.now(),
            "notes": notes,
        })

    async def get_statistics(self, user_id: str) -> MoodStatistics:
        return compute_mood_statistics(await self.load_all(user_id))
