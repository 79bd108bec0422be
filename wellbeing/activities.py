import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from wellbeing import keys
from wellbeing.analytics import compute_activity_progress
from wellbeing.models import Activity, ActivityProgress, ActivitySession
from wellbeing.repository import EntityRepository
from wellbeing.utils.clock import system_clock

SEED_CREATED_AT = datetime(2025, 1, 1, tzinfo=timezone.utc)

# Built-in catalogue. Never persisted, never updated or deleted.
BUILTIN_ACTIVITIES: List[Activity] = [
    Activity(
        id="activity_1",
        title="Guided Meditation",
        description="A peaceful 10-minute guided meditation to help you relax and center yourself.",
        category="meditation",
        duration=10,
        instructions=[
            "Find a quiet, comfortable space",
            "Sit or lie down in a relaxed position",
            "Close your eyes and focus on your breath",
            "Follow the guided instructions",
            "Allow thoughts to pass without judgment",
        ],
        benefits=[
            "Reduces stress and anxiety",
            "Improves focus and concentration",
            "Promotes better sleep",
        ],
        difficulty="easy",
        icon="🧘",
        color="#E0CFF7",
        is_custom=False,
        created_at=SEED_CREATED_AT,
    ),
    Activity(
        id="activity_2",
        title="Breathing Exercise",
        description="Simple breathing technique to calm your mind and body.",
        category="breathing",
        duration=5,
        instructions=[
            "Inhale slowly for 4 counts",
            "Hold your breath for 4 counts",
            "Exhale slowly for 4 counts",
            "Repeat for 5 minutes",
        ],
        benefits=[
            "Calms the nervous system",
            "Reduces anxiety",
            "Increases oxygen flow",
        ],
        difficulty="easy",
        icon="💨",
        color="#B19CD9",
        is_custom=False,
        created_at=SEED_CREATED_AT,
    ),
    Activity(
        id="activity_3",
        title="Gratitude Journal",
        description="Write down three things you are grateful for today.",
        category="gratitude",
        duration=5,
        instructions=[
            "Take a moment to reflect on your day",
            "Write down three things you are grateful for",
            "Be specific and detailed",
            "Reflect on how these things make you feel",
        ],
        benefits=[
            "Increases positive emotions",
            "Improves mental well-being",
            "Enhances self-awareness",
        ],
        difficulty="easy",
        icon="✨",
        color="#8E6ABF",
        is_custom=False,
        created_at=SEED_CREATED_AT,
    ),
]


class ActivityRepository(EntityRepository[Activity]):
    """
    Built-in activities followed by the user's custom ones.
    Only custom activities are stored, so update/delete never reach a built-in.
    """

    def __init__(self, store, clock=system_clock):
        super().__init__(store, Activity, keys.ACTIVITIES, "activity_custom", clock)

    async def load_all(self, user_id: str) -> List[Activity]:
        customs = await self._read(self.key_for(user_id))
        return [a.model_copy(deep=True) for a in BUILTIN_ACTIVITIES] + customs

    async def load_custom(self, user_id: str) -> List[Activity]:
        return await self._read(self.key_for(user_id))

    def after_merge(self, existing: Activity, merged: Activity, patch: Dict[str, Any]) -> Activity:
        merged.is_custom = True
        merged.created_by = existing.created_by
        return merged

    async def create_custom(self, user_id: str, fields: Dict[str, Any]) -> Activity:
        fields = self.normalize_patch(fields)
        for generated in ("id", "is_custom", "created_by", "created_at"):
            fields.pop(generated, None)
        fields.update(is_custom=True, created_by=user_id)
        return await self.insert(user_id, fields)


def minutes_between(start: datetime, end: datetime) -> int:
    # Rounds half up
    return math.floor((end - start).total_seconds() / 60 + 0.5)


class SessionRepository(EntityRepository[ActivitySession]):
    def __init__(self, store, clock=system_clock):
        super().__init__(store, ActivitySession, keys.ACTIVITY_SESSIONS, "session", clock)

    def sort_records(self, records: List[ActivitySession]) -> List[ActivitySession]:
        return sorted(records, key=lambda s: s.start_time, reverse=True)

    def after_merge(self, existing: ActivitySession, merged: ActivitySession, patch: Dict[str, Any]) -> ActivitySession:
        # Duration is derived once, on the update that first sets end_time.
        # Later edits to start_time/end_time leave it untouched.
        if existing.end_time is None and patch.get("end_time") is not None:
            merged.duration = minutes_between(merged.start_time, merged.end_time)
        return merged

    async def create_session(self, user_id: str, activity_id: str) -> ActivitySession:
        return await self.insert(user_id, {
            "activity_id": activity_id,
            "start_time": self.clock.now(),
            "completed": False,
        })

    async def complete_session(
        self,
        user_id: str,
        session_id: str,
        rating: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Optional[ActivitySession]:
        patch: Dict[str, Any] = {"end_time": self.clock.now(), "completed": True}
        if rating is not None:
            patch["rating"] = rating
        if notes is not None:
            patch["notes"] = notes
        return await self.update(user_id, session_id, patch)

    async def recompute_duration(self, user_id: str, session_id: str) -> Optional[ActivitySession]:
        """Explicitly re-derive duration from the current start/end times."""
        session = await self.load_by_id(user_id, session_id)
        if not session:
            return None
        if session.end_time is None:
            return session
        return await self.update(user_id, session_id, {
            "duration": minutes_between(session.start_time, session.end_time),
        })

    async def get_progress(self, user_id: str, activity_id: str) -> ActivityProgress:
        return compute_activity_progress(await self.load_all(user_id), activity_id, self.clock.now())
