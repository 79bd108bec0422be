"""
Typed records for everything the tracker persists.

Records are stored as JSON arrays with camelCase keys (``userId``,
``isFavorite``...). Python code uses the snake_case field names; both spellings
are accepted on input. Missing optional fields fall back to their defaults when
a collection is decoded.
"""
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 1

MoodType = Literal[
    "very_happy",
    "happy",
    "neutral",
    "sad",
    "very_sad",
    "anxious",
    "angry",
    "tired",
    "excited",
    "calm",
]

ActivityCategory = Literal[
    "meditation",
    "breathing",
    "exercise",
    "gratitude",
    "mindfulness",
    "creative",
    "social",
    "self_care",
    "other",
]

ActivityDifficulty = Literal["easy", "medium", "hard"]
SenderType = Literal["user", "therapist"]
BookingStatus = Literal["pending", "confirmed", "cancelled", "completed"]
ThemeMode = Literal["light", "dark", "system"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="after")
    @classmethod
    def _naive_as_utc(cls, value):
        # Older payloads may carry timestamps without an offset
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Record(CamelModel):
    """Base for persisted records."""
    schema_version: int = SCHEMA_VERSION

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Mood ---

class MoodEntry(Record):
    id: str
    user_id: str
    mood: MoodType
    intensity: int = Field(..., ge=1, le=10)
    date: datetime
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MoodStatistics(CamelModel):
    total_entries: int
    last_mood: Optional[MoodType] = None
    last_mood_date: Optional[datetime] = None
    average_intensity: Optional[float] = None


# --- Journal ---

class JournalEntry(Record):
    id: str
    user_id: str
    title: str
    content: str
    date: datetime
    tags: List[str] = Field(default_factory=list)
    mood: Optional[MoodType] = None
    is_favorite: bool = False
    word_count: int = 0
    created_at: datetime
    updated_at: datetime


class JournalSearchFilters(CamelModel):
    tags: Optional[List[str]] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    mood: Optional[MoodType] = None
    search_text: Optional[str] = None
    favorites_only: bool = False


# --- Activities ---

class Activity(Record):
    id: str
    title: str
    description: str = ""
    category: ActivityCategory = "other"
    duration: Optional[int] = None  # minutes
    instructions: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    difficulty: ActivityDifficulty = "easy"
    icon: Optional[str] = None
    color: Optional[str] = None
    is_custom: bool = False
    created_by: Optional[str] = None
    created_at: datetime


class ActivitySession(Record):
    id: str
    activity_id: str
    user_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None  # minutes, set once when end_time is first written
    notes: Optional[str] = None
    completed: bool = False
    rating: Optional[int] = Field(None, ge=1, le=5)
    mood_before: Optional[MoodType] = None
    mood_after: Optional[MoodType] = None
    created_at: datetime


class ActivityProgress(CamelModel):
    activity_id: str
    total_sessions: int = 0
    total_duration: int = 0
    last_completed: Optional[datetime] = None
    average_rating: Optional[float] = None
    streak: int = 0


# --- Chat ---

class ChatMessage(Record):
    id: str
    therapist_id: str
    sender_id: str
    sender_type: SenderType
    message: str
    timestamp: datetime


class ChatSession(Record):
    therapist_id: str
    therapist_name: str
    last_message: Optional[str] = None
    last_message_time: Optional[datetime] = None
    unread_count: int = 0


class CommunityMessage(Record):
    id: str
    user_id: str
    username: str
    message: str
    timestamp: datetime


class CommunityMessageView(CommunityMessage):
    """A community message as seen by one reader."""
    is_own: bool = False


# --- Community groups ---

class CommunityGroup(Record):
    """A supervised room of a few students, shown under an anonymous code."""
    id: str
    code: str
    theme: str
    supervisor_id: str
    supervisor_name: str
    member_ids: List[str] = Field(default_factory=list)
    max_members: int = 6
    created_at: datetime
    is_active: bool = True
    description: Optional[str] = None


class GroupMessage(Record):
    id: str
    group_id: str
    user_id: str
    user_display_name: str
    message: str
    timestamp: datetime
    is_supervisor: bool = False


class GroupMessageView(GroupMessage):
    is_own: bool = False


class GroupMembership(Record):
    user_id: str
    group_id: str
    joined_at: datetime
    display_name: str


# --- Bookings ---

class Booking(Record):
    id: str
    user_id: str
    therapist_id: str
    therapist_name: str
    date: str
    time: str  # HH:mm
    appointment_type: str = "First consultation"
    location: str = "On site"
    status: BookingStatus = "pending"
    created_at: datetime
    updated_at: datetime


class Therapist(CamelModel):
    id: str
    name: str
    specialization: str
    bio: str
    experience: int
    rating: float
    price_per_session: int
    available: bool = True


# --- Users ---

class User(Record):
    id: str
    username: str
    email: Optional[str] = None
    year: Optional[str] = None
    field: Optional[str] = None
    created_at: datetime
    last_login_at: datetime
    is_guest: bool = False
    profile_completed: bool = False


class UserProfile(CamelModel):
    username: str = Field(..., min_length=1)
    email: Optional[str] = None
    year: Optional[str] = None
    field: Optional[str] = None
