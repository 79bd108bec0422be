"""
Single entry point for callers (the HTTP layer, scripts, tests).

Wires one KeyValueStore and one clock into every repository and exposes the
per-entity functions. Absence is reported as None / [] and only storage
failures raise.
"""
from typing import Any, Dict, List, Optional

from wellbeing.activities import ActivityRepository, SessionRepository
from wellbeing.bookings import BookingRepository
from wellbeing.chat import ChatService
from wellbeing.community import CommunityChatRepository
from wellbeing.config import DB_PATH
from wellbeing.groups import CommunityGroupService
from wellbeing.journal import JournalRepository
from wellbeing.kv_store import KeyValueStore
from wellbeing.models import (
    Activity,
    ActivityProgress,
    ActivitySession,
    Booking,
    BookingStatus,
    ChatMessage,
    ChatSession,
    CommunityGroup,
    CommunityMessageView,
    GroupMessageView,
    JournalEntry,
    JournalSearchFilters,
    MoodEntry,
    MoodStatistics,
    MoodType,
    Therapist,
)
from wellbeing.moods import MoodRepository
from wellbeing.therapists import get_therapist, list_therapists
from wellbeing.users import UserStore
from wellbeing.utils.clock import system_clock


class Tracker:
    def __init__(self, store: KeyValueStore, clock=system_clock):
        self.store = store
        self.clock = clock
        self.moods = MoodRepository(store, clock)
        self.journal = JournalRepository(store, clock)
        self.activities = ActivityRepository(store, clock)
        self.sessions = SessionRepository(store, clock)
        self.chat = ChatService(store, clock)
        self.community = CommunityChatRepository(store, clock)
        self.groups = CommunityGroupService(store, clock)
        self.bookings = BookingRepository(store, clock)
        self.users = UserStore(store, clock)

    # --- Moods ---

    async def get_all_moods(self, user_id: str) -> List[MoodEntry]:
        return await self.moods.load_all(user_id)

    async def get_mood_by_id(self, user_id: str, entry_id: str) -> Optional[MoodEntry]:
        return await self.moods.load_by_id(user_id, entry_id)

    async def create_mood(self, user_id: str, mood: MoodType, intensity: int, notes: Optional[str] = None) -> MoodEntry:
        return await self.moods.create_entry(user_id, mood, intensity, notes)

    async def update_mood(self, user_id: str, entry_id: str, patch: Dict[str, Any]) -> Optional[MoodEntry]:
        return await self.moods.update(user_id, entry_id, patch)

    async def delete_mood(self, user_id: str, entry_id: str) -> bool:
        return await self.moods.delete(user_id, entry_id)

    async def get_mood_statistics(self, user_id: str) -> MoodStatistics:
        return await self.moods.get_statistics(user_id)

    # --- Journal ---

    async def get_all_journal_entries(self, user_id: str) -> List[JournalEntry]:
        return await self.journal.load_all(user_id)

    async def get_journal_entry_by_id(self, user_id: str, entry_id: str) -> Optional[JournalEntry]:
        return await self.journal.load_by_id(user_id, entry_id)

    async def create_journal_entry(
        self,
        user_id: str,
        title: str,
        content: str,
        tags: Optional[List[str]] = None,
        mood: Optional[MoodType] = None,
    ) -> JournalEntry:
        return await self.journal.create_entry(user_id, title, content, tags, mood)

    async def update_journal_entry(self, user_id: str, entry_id: str, patch: Dict[str, Any]) -> Optional[JournalEntry]:
        return await self.journal.update(user_id, entry_id, patch)

    async def delete_journal_entry(self, user_id: str, entry_id: str) -> bool:
        return await self.journal.delete(user_id, entry_id)

    async def toggle_journal_favorite(self, user_id: str, entry_id: str) -> Optional[JournalEntry]:
        return await self.journal.toggle_favorite(user_id, entry_id)

    async def search_journal(self, user_id: str, filters: JournalSearchFilters) -> List[JournalEntry]:
        return await self.journal.search(user_id, filters)

    async def get_journal_tags(self, user_id: str) -> List[str]:
        return await self.journal.get_all_tags(user_id)

    # --- Activities & sessions ---

    async def get_all_activities(self, user_id: str) -> List[Activity]:
        return await self.activities.load_all(user_id)

    async def get_activity_by_id(self, user_id: str, activity_id: str) -> Optional[Activity]:
        return await self.activities.load_by_id(user_id, activity_id)

    async def create_custom_activity(self, user_id: str, fields: Dict[str, Any]) -> Activity:
        return await self.activities.create_custom(user_id, fields)

    async def update_custom_activity(self, user_id: str, activity_id: str, patch: Dict[str, Any]) -> Optional[Activity]:
        return await self.activities.update(user_id, activity_id, patch)

    async def delete_custom_activity(self, user_id: str, activity_id: str) -> bool:
        return await self.activities.delete(user_id, activity_id)

    async def get_all_sessions(self, user_id: str) -> List[ActivitySession]:
        return await self.sessions.load_all(user_id)

    async def get_session_by_id(self, user_id: str, session_id: str) -> Optional[ActivitySession]:
        return await self.sessions.load_by_id(user_id, session_id)

    async def create_session(self, user_id: str, activity_id: str) -> ActivitySession:
        return await self.sessions.create_session(user_id, activity_id)

    async def update_session(self, user_id: str, session_id: str, patch: Dict[str, Any]) -> Optional[ActivitySession]:
        return await self.sessions.update(user_id, session_id, patch)

    async def complete_session(
        self,
        user_id: str,
        session_id: str,
        rating: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Optional[ActivitySession]:
        return await self.sessions.complete_session(user_id, session_id, rating, notes)

    async def recompute_session_duration(self, user_id: str, session_id: str) -> Optional[ActivitySession]:
        return await self.sessions.recompute_duration(user_id, session_id)

    async def get_activity_progress(self, user_id: str, activity_id: str) -> ActivityProgress:
        return await self.sessions.get_progress(user_id, activity_id)

    # --- Therapist chat ---

    async def get_messages(self, user_id: str, therapist_id: str) -> List[ChatMessage]:
        return await self.chat.get_messages(user_id, therapist_id)

    async def send_message(self, user_id: str, therapist_id: str, text: str, therapist_name: Optional[str] = None) -> ChatMessage:
        return await self.chat.send_message(user_id, therapist_id, text, therapist_name)

    async def initialize_chat(self, user_id: str, therapist_id: str, therapist_name: Optional[str] = None) -> ChatSession:
        return await self.chat.initialize_chat(user_id, therapist_id, therapist_name)

    async def get_chat_sessions(self, user_id: str) -> List[ChatSession]:
        return await self.chat.get_chat_sessions(user_id)

    # --- Community chat ---

    async def get_community_messages(self, reader_id: str) -> List[CommunityMessageView]:
        return await self.community.get_messages(reader_id)

    async def send_community_message(self, user_id: str, username: str, text: str) -> CommunityMessageView:
        return await self.community.send_message(user_id, username, text)

    async def clear_community_messages(self) -> None:
        await self.community.clear_messages()

    # --- Community groups ---

    async def get_user_groups(self, user_id: str, as_supervisor: Optional[bool] = None) -> List[CommunityGroup]:
        return await self.groups.get_user_groups(user_id, as_supervisor)

    async def get_group_by_id(self, group_id: str) -> Optional[CommunityGroup]:
        return await self.groups.get_group_by_id(group_id)

    async def create_group(
        self,
        supervisor_id: str,
        supervisor_name: str,
        theme: str,
        description: Optional[str] = None,
        max_members: int = 6,
    ) -> CommunityGroup:
        return await self.groups.create_group(supervisor_id, supervisor_name, theme, description, max_members)

    async def get_available_groups(self, user_id: str, as_supervisor: Optional[bool] = None) -> List[CommunityGroup]:
        return await self.groups.get_available_groups(user_id, as_supervisor)

    async def get_group_messages(self, group_id: str, reader_id: str) -> List[GroupMessageView]:
        return await self.groups.get_group_messages(group_id, reader_id)

    async def send_group_message(self, group_id: str, user_id: str, text: str) -> Optional[GroupMessageView]:
        return await self.groups.post_message(group_id, user_id, text)

    async def get_group_display_name(self, group_id: str, user_id: str) -> str:
        return await self.groups.get_user_display_name(group_id, user_id)

    async def join_group(self, group_id: str, user_id: str) -> Optional[CommunityGroup]:
        return await self.groups.join_group(group_id, user_id)

    async def leave_group(self, group_id: str, user_id: str) -> bool:
        return await self.groups.leave_group(group_id, user_id)

    # --- Bookings ---

    async def get_all_bookings(self, user_id: str) -> List[Booking]:
        return await self.bookings.load_all(user_id)

    async def get_booking_by_id(self, user_id: str, booking_id: str) -> Optional[Booking]:
        return await self.bookings.load_by_id(user_id, booking_id)

    async def create_booking(
        self,
        user_id: str,
        therapist_id: str,
        therapist_name: str,
        date: str,
        time: str,
        appointment_type: str,
        location: str,
    ) -> Booking:
        return await self.bookings.create_booking(
            user_id, therapist_id, therapist_name, date, time, appointment_type, location
        )

    async def update_booking_status(self, user_id: str, booking_id: str, status: BookingStatus) -> Optional[Booking]:
        return await self.bookings.update_status(user_id, booking_id, status)

    # --- Therapists ---

    def list_therapists(self) -> List[Therapist]:
        return list_therapists()

    def get_therapist(self, therapist_id: str) -> Optional[Therapist]:
        return get_therapist(therapist_id)


_tracker: Optional[Tracker] = None


def get_tracker() -> Tracker:
    """Process-wide tracker on the configured database, created on first use."""
    global _tracker
    if _tracker is None:
        _tracker = Tracker(KeyValueStore(DB_PATH))
    return _tracker
