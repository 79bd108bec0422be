from dotenv import load_dotenv
load_dotenv()  # Load environment variables from .env file

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field, ValidationError

from wellbeing.config import ALLOWED_ORIGINS, LOG_DIR, LOG_LEVEL
from wellbeing.errors import NoCurrentUserError, StorageIOError
from wellbeing.groups import is_psychologist
from wellbeing.middleware.rate_limiter import limit_writes
from wellbeing.models import (
    ActivityCategory,
    ActivityDifficulty,
    ActivityProgress,
    BookingStatus,
    CamelModel,
    JournalSearchFilters,
    MoodStatistics,
    MoodType,
    ThemeMode,
    UserProfile,
)
from wellbeing.tracker import Tracker, get_tracker

# Configure logging with rotation
os.makedirs(LOG_DIR, exist_ok=True)
log_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# 5MB per file, keep 3 backup files
rotating_handler = RotatingFileHandler(
    os.path.join(LOG_DIR, "server.log"), maxBytes=5*1024*1024, backupCount=3
)
rotating_handler.setFormatter(log_formatter)

console_handler = logging.StreamHandler()
console_handler.setFormatter(log_formatter)

# Attach to the package logger so repositories log through the same handlers
package_logger = logging.getLogger("wellbeing")
package_logger.setLevel(LOG_LEVEL)
if not package_logger.handlers:
    package_logger.addHandler(rotating_handler)
    package_logger.addHandler(console_handler)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Open the database (schema, WAL) off the event loop before serving requests
    await asyncio.to_thread(get_tracker)
    yield


app = FastAPI(title="Wellbeing Tracker", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
    allow_headers=["*"],
)


# --- Error handling ---

@app.exception_handler(StorageIOError)
async def storage_error_handler(request: Request, exc: StorageIOError):
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "STORAGE_UNAVAILABLE"})


@app.exception_handler(ValidationError)
async def record_validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors(include_url=False, include_context=False))})


@app.exception_handler(NoCurrentUserError)
async def no_user_handler(request: Request, exc: NoCurrentUserError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def found(record, what: str):
    if record is None:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return record


# --- Request models ---

class MoodCreate(CamelModel):
    mood: MoodType
    intensity: int = Field(..., ge=1, le=10)
    notes: Optional[str] = None


class JournalCreate(CamelModel):
    title: str = Field(..., min_length=1)
    content: str
    tags: List[str] = Field(default_factory=list)
    mood: Optional[MoodType] = None


class ActivityCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    category: ActivityCategory = "other"
    duration: Optional[int] = Field(None, ge=0)
    instructions: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    difficulty: ActivityDifficulty = "easy"
    icon: Optional[str] = None
    color: Optional[str] = None


class SessionCreate(CamelModel):
    activity_id: str


class SessionComplete(CamelModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None


class ChatSend(CamelModel):
    message: str = Field(..., min_length=1, max_length=2000)
    therapist_name: Optional[str] = None


class ChatInit(CamelModel):
    therapist_name: Optional[str] = None


class CommunitySend(CamelModel):
    user_id: str
    username: str
    message: str = Field(..., min_length=1, max_length=2000)


class BookingCreate(CamelModel):
    therapist_id: str
    therapist_name: str
    date: str
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    appointment_type: str = "First consultation"
    location: str = "On site"


class BookingStatusUpdate(CamelModel):
    status: BookingStatus


class GroupCreate(CamelModel):
    theme: str = Field(..., min_length=1)
    description: Optional[str] = None
    max_members: int = 6
    supervisor_name: Optional[str] = None


class GroupSend(CamelModel):
    message: str = Field(..., min_length=1, max_length=2000)


class ThemeUpdate(CamelModel):
    mode: ThemeMode


@app.get("/health")
async def health_check():
    """Simple health check endpoint."""
    return {"status": "healthy"}


# --- Moods ---

@app.get("/api/users/{user_id}/moods")
async def get_all_moods(user_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_all_moods(user_id)


@app.get("/api/users/{user_id}/moods/statistics", response_model=MoodStatistics, response_model_exclude_none=True)
async def get_mood_statistics(user_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_mood_statistics(user_id)


@app.get("/api/users/{user_id}/moods/{entry_id}")
async def get_mood(user_id: str, entry_id: str, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.get_mood_by_id(user_id, entry_id), "Mood entry")


@app.post("/api/users/{user_id}/moods", status_code=201, dependencies=[Depends(limit_writes)])
async def create_mood(user_id: str, body: MoodCreate, tracker: Tracker = Depends(get_tracker)):
    return await tracker.create_mood(user_id, body.mood, body.intensity, body.notes)


@app.patch("/api/users/{user_id}/moods/{entry_id}", dependencies=[Depends(limit_writes)])
async def update_mood(user_id: str, entry_id: str, patch: Dict[str, Any] = Body(...), tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.update_mood(user_id, entry_id, patch), "Mood entry")


@app.delete("/api/users/{user_id}/moods/{entry_id}", dependencies=[Depends(limit_writes)])
async def delete_mood(user_id: str, entry_id: str, tracker: Tracker = Depends(get_tracker)):
    return {"deleted": await tracker.delete_mood(user_id, entry_id)}


# --- Journal ---

@app.get("/api/users/{user_id}/journal")
async def get_all_journal_entries(user_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_all_journal_entries(user_id)


@app.get("/api/users/{user_id}/journal/tags")
async def get_journal_tags(user_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_journal_tags(user_id)


@app.post("/api/users/{user_id}/journal/search")
async def search_journal(user_id: str, filters: JournalSearchFilters, tracker: Tracker = Depends(get_tracker)):
    return await tracker.search_journal(user_id, filters)


@app.get("/api/users/{user_id}/journal/{entry_id}")
async def get_journal_entry(user_id: str, entry_id: str, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.get_journal_entry_by_id(user_id, entry_id), "Journal entry")


@app.post("/api/users/{user_id}/journal", status_code=201, dependencies=[Depends(limit_writes)])
async def create_journal_entry(user_id: str, body: JournalCreate, tracker: Tracker = Depends(get_tracker)):
    return await tracker.create_journal_entry(user_id, body.title, body.content, body.tags, body.mood)


@app.patch("/api/users/{user_id}/journal/{entry_id}", dependencies=[Depends(limit_writes)])
async def update_journal_entry(user_id: str, entry_id: str, patch: Dict[str, Any] = Body(...), tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.update_journal_entry(user_id, entry_id, patch), "Journal entry")


@app.post("/api/users/{user_id}/journal/{entry_id}/favorite", dependencies=[Depends(limit_writes)])
async def toggle_journal_favorite(user_id: str, entry_id: str, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.toggle_journal_favorite(user_id, entry_id), "Journal entry")


@app.delete("/api/users/{user_id}/journal/{entry_id}", dependencies=[Depends(limit_writes)])
async def delete_journal_entry(user_id: str, entry_id: str, tracker: Tracker = Depends(get_tracker)):
    return {"deleted": await tracker.delete_journal_entry(user_id, entry_id)}


# --- Activities ---

@app.get("/api/users/{user_id}/activities")
async def get_all_activities(user_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_all_activities(user_id)


@app.get("/api/users/{user_id}/activities/{activity_id}")
async def get_activity(user_id: str, activity_id: str, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.get_activity_by_id(user_id, activity_id), "Activity")


@app.get("/api/users/{user_id}/activities/{activity_id}/progress", response_model=ActivityProgress, response_model_exclude_none=True)
async def get_activity_progress(user_id: str, activity_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_activity_progress(user_id, activity_id)


@app.post("/api/users/{user_id}/activities", status_code=201, dependencies=[Depends(limit_writes)])
async def create_custom_activity(user_id: str, body: ActivityCreate, tracker: Tracker = Depends(get_tracker)):
    return await tracker.create_custom_activity(user_id, body.model_dump())


@app.patch("/api/users/{user_id}/activities/{activity_id}", dependencies=[Depends(limit_writes)])
async def update_custom_activity(user_id: str, activity_id: str, patch: Dict[str, Any] = Body(...), tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.update_custom_activity(user_id, activity_id, patch), "Custom activity")


@app.delete("/api/users/{user_id}/activities/{activity_id}", dependencies=[Depends(limit_writes)])
async def delete_custom_activity(user_id: str, activity_id: str, tracker: Tracker = Depends(get_tracker)):
    return {"deleted": await tracker.delete_custom_activity(user_id, activity_id)}


# --- Activity sessions ---

@app.get("/api/users/{user_id}/sessions")
async def get_all_sessions(user_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_all_sessions(user_id)


@app.get("/api/users/{user_id}/sessions/{session_id}")
async def get_session(user_id: str, session_id: str, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.get_session_by_id(user_id, session_id), "Session")


@app.post("/api/users/{user_id}/sessions", status_code=201, dependencies=[Depends(limit_writes)])
async def create_session(user_id: str, body: SessionCreate, tracker: Tracker = Depends(get_tracker)):
    return await tracker.create_session(user_id, body.activity_id)


@app.patch("/api/users/{user_id}/sessions/{session_id}", dependencies=[Depends(limit_writes)])
async def update_session(user_id: str, session_id: str, patch: Dict[str, Any] = Body(...), tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.update_session(user_id, session_id, patch), "Session")


@app.post("/api/users/{user_id}/sessions/{session_id}/complete", dependencies=[Depends(limit_writes)])
async def complete_session(user_id: str, session_id: str, body: SessionComplete, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.complete_session(user_id, session_id, body.rating, body.notes), "Session")


@app.post("/api/users/{user_id}/sessions/{session_id}/recompute-duration", dependencies=[Depends(limit_writes)])
async def recompute_session_duration(user_id: str, session_id: str, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.recompute_session_duration(user_id, session_id), "Session")


# --- Therapist chat ---

@app.get("/api/users/{user_id}/chats")
async def get_chat_sessions(user_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_chat_sessions(user_id)


@app.post("/api/users/{user_id}/chats/{therapist_id}", dependencies=[Depends(limit_writes)])
async def initialize_chat(user_id: str, therapist_id: str, body: ChatInit, tracker: Tracker = Depends(get_tracker)):
    return await tracker.initialize_chat(user_id, therapist_id, body.therapist_name)


@app.get("/api/users/{user_id}/chats/{therapist_id}/messages")
async def get_messages(user_id: str, therapist_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_messages(user_id, therapist_id)


@app.post("/api/users/{user_id}/chats/{therapist_id}/messages", status_code=201, dependencies=[Depends(limit_writes)])
async def send_message(user_id: str, therapist_id: str, body: ChatSend, tracker: Tracker = Depends(get_tracker)):
    return await tracker.send_message(user_id, therapist_id, body.message, body.therapist_name)


# --- Bookings ---

@app.get("/api/users/{user_id}/bookings")
async def get_all_bookings(user_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_all_bookings(user_id)


@app.get("/api/users/{user_id}/bookings/{booking_id}")
async def get_booking(user_id: str, booking_id: str, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.get_booking_by_id(user_id, booking_id), "Booking")


@app.post("/api/users/{user_id}/bookings", status_code=201, dependencies=[Depends(limit_writes)])
async def create_booking(user_id: str, body: BookingCreate, tracker: Tracker = Depends(get_tracker)):
    return await tracker.create_booking(
        user_id, body.therapist_id, body.therapist_name, body.date, body.time, body.appointment_type, body.location
    )


@app.patch("/api/users/{user_id}/bookings/{booking_id}/status", dependencies=[Depends(limit_writes)])
async def update_booking_status(user_id: str, booking_id: str, body: BookingStatusUpdate, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.update_booking_status(user_id, booking_id, body.status), "Booking")


# --- Community ---

@app.get("/api/community/messages")
async def get_community_messages(reader_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_community_messages(reader_id)


@app.post("/api/community/messages", status_code=201, dependencies=[Depends(limit_writes)])
async def send_community_message(body: CommunitySend, tracker: Tracker = Depends(get_tracker)):
    return await tracker.send_community_message(body.user_id, body.username, body.message)


@app.delete("/api/community/messages", dependencies=[Depends(limit_writes)])
async def clear_community_messages(tracker: Tracker = Depends(get_tracker)):
    await tracker.clear_community_messages()
    return {"status": "cleared"}


# --- Community groups ---

@app.get("/api/users/{user_id}/groups")
async def get_user_groups(user_id: str, as_supervisor: Optional[bool] = None, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_user_groups(user_id, as_supervisor)


@app.get("/api/users/{user_id}/groups/available")
async def get_available_groups(user_id: str, as_supervisor: Optional[bool] = None, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_available_groups(user_id, as_supervisor)


@app.post("/api/users/{user_id}/groups", status_code=201, dependencies=[Depends(limit_writes)])
async def create_group(user_id: str, body: GroupCreate, tracker: Tracker = Depends(get_tracker)):
    if not is_psychologist(user_id):
        raise HTTPException(status_code=403, detail="Only psychologists can create groups")
    therapist = tracker.get_therapist(user_id)
    supervisor_name = body.supervisor_name or (therapist.name if therapist else "Dr. Supervisor")
    return await tracker.create_group(user_id, supervisor_name, body.theme, body.description, body.max_members)


@app.get("/api/users/{user_id}/groups/{group_id}")
async def get_group(user_id: str, group_id: str, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.get_group_by_id(group_id), "Group")


@app.post("/api/users/{user_id}/groups/{group_id}/join", dependencies=[Depends(limit_writes)])
async def join_group(user_id: str, group_id: str, tracker: Tracker = Depends(get_tracker)):
    found(await tracker.get_group_by_id(group_id), "Group")
    group = await tracker.join_group(group_id, user_id)
    if group is None:
        raise HTTPException(status_code=409, detail="GROUP_FULL")
    return group


@app.post("/api/users/{user_id}/groups/{group_id}/leave", dependencies=[Depends(limit_writes)])
async def leave_group(user_id: str, group_id: str, tracker: Tracker = Depends(get_tracker)):
    return {"left": await tracker.leave_group(group_id, user_id)}


@app.get("/api/users/{user_id}/groups/{group_id}/display-name")
async def get_group_display_name(user_id: str, group_id: str, tracker: Tracker = Depends(get_tracker)):
    return {"displayName": await tracker.get_group_display_name(group_id, user_id)}


@app.get("/api/users/{user_id}/groups/{group_id}/messages")
async def get_group_messages(user_id: str, group_id: str, tracker: Tracker = Depends(get_tracker)):
    return await tracker.get_group_messages(group_id, user_id)


@app.post("/api/users/{user_id}/groups/{group_id}/messages", status_code=201, dependencies=[Depends(limit_writes)])
async def send_group_message(user_id: str, group_id: str, body: GroupSend, tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.send_group_message(group_id, user_id, body.message), "Group")


# --- Therapists ---

@app.get("/api/therapists")
async def list_therapists(tracker: Tracker = Depends(get_tracker)):
    return tracker.list_therapists()


@app.get("/api/therapists/{therapist_id}")
async def get_therapist(therapist_id: str, tracker: Tracker = Depends(get_tracker)):
    return found(tracker.get_therapist(therapist_id), "Therapist")


# --- Device user & app state ---

@app.get("/api/me")
async def get_current_user(tracker: Tracker = Depends(get_tracker)):
    return found(await tracker.users.get_current_user(), "User")


@app.patch("/api/me")
async def update_current_user(patch: Dict[str, Any] = Body(...), tracker: Tracker = Depends(get_tracker)):
    return await tracker.users.update_user(patch)


@app.post("/api/auth/guest", status_code=201)
async def create_guest(tracker: Tracker = Depends(get_tracker)):
    user = await tracker.users.create_guest_user()
    logger.info(f"Created guest user {user.id}")
    return user


@app.post("/api/auth/register", status_code=201)
async def register(profile: UserProfile, tracker: Tracker = Depends(get_tracker)):
    user = await tracker.users.create_user(profile)
    logger.info(f"Registered user {user.id}")
    return user


@app.post("/api/auth/logout")
async def logout(tracker: Tracker = Depends(get_tracker)):
    await tracker.users.logout()
    return {"status": "logged_out"}


@app.get("/api/onboarding")
async def get_onboarding(tracker: Tracker = Depends(get_tracker)):
    return {"completed": await tracker.users.is_onboarding_completed()}


@app.post("/api/onboarding")
async def complete_onboarding(tracker: Tracker = Depends(get_tracker)):
    await tracker.users.set_onboarding_completed()
    return {"completed": True}


@app.get("/api/first-launch")
async def first_launch(tracker: Tracker = Depends(get_tracker)):
    return {"firstLaunch": await tracker.users.is_first_launch()}


@app.get("/api/theme")
async def get_theme(tracker: Tracker = Depends(get_tracker)):
    return {"mode": await tracker.users.get_theme_mode()}


@app.put("/api/theme")
async def set_theme(body: ThemeUpdate, tracker: Tracker = Depends(get_tracker)):
    await tracker.users.set_theme_mode(body.mode)
    return {"mode": body.mode}


@app.get("/api/export")
async def export_data(tracker: Tracker = Depends(get_tracker)):
    return await tracker.users.export_all_data()


@app.delete("/api/data")
async def clear_all_data(tracker: Tracker = Depends(get_tracker)):
    await tracker.users.clear_all_data()
    return {"status": "cleared"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
