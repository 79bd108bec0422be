import logging
from typing import List, Optional

from wellbeing import keys
from wellbeing.models import ChatMessage, ChatSession
from wellbeing.repository import EntityRepository
from wellbeing.therapists import get_therapist
from wellbeing.utils.clock import system_clock

logger = logging.getLogger(__name__)


class ChatMessageRepository(EntityRepository[ChatMessage]):
    """
    Messages between a user and one therapist. The repository is bound to the
    therapist, so every inherited operation addresses
    ``{prefix}:{user_id}:{therapist_id}``.
    """

    def __init__(self, store, therapist_id: str, clock=system_clock):
        super().__init__(store, ChatMessage, keys.CHAT_MESSAGES, "msg", clock)
        self.therapist_id = therapist_id

    def key_for(self, user_id: str) -> str:
        return keys.chat_messages_key(user_id, self.therapist_id)

    def sort_records(self, records: List[ChatMessage]) -> List[ChatMessage]:
        return sorted(records, key=lambda m: m.timestamp)

    async def save_message(self, user_id: str, message: ChatMessage) -> None:
        key = self.key_for(user_id)
        messages = await self._read(key)
        messages.append(message)
        await self._write(key, messages)

    async def send_message(self, user_id: str, text: str) -> ChatMessage:
        return await self.insert(user_id, {
            "therapist_id": self.therapist_id,
            "sender_id": user_id,
            "sender_type": "user",
            "message": text,
            "timestamp": self.clock.now(),
        })


class ChatSessionIndex(EntityRepository[ChatSession]):
    """
    One summary row per therapist, rebuilt from the message collection on
    every send and on chat initialization. Rows are keyed by therapist_id.
    """

    id_field = "therapist_id"

    def __init__(self, store, clock=system_clock):
        super().__init__(store, ChatSession, keys.CHAT_SESSIONS, "chat_session", clock)

    def resolve_name(self, therapist_id: str, existing: Optional[ChatSession]) -> str:
        if existing:
            return existing.therapist_name
        therapist = get_therapist(therapist_id)
        return therapist.name if therapist else therapist_id

    async def refresh(self, user_id: str, therapist_id: str, therapist_name: Optional[str] = None) -> ChatSession:
        key = self.key_for(user_id)
        sessions = await self._read(key)
        index = next((i for i, s in enumerate(sessions) if s.therapist_id == therapist_id), None)
        existing = sessions[index] if index is not None else None

        history = await ChatMessageRepository(self.store, therapist_id, self.clock).load_all(user_id)
        last = history[-1] if history else None

        summary = ChatSession(
            therapist_id=therapist_id,
            therapist_name=therapist_name or self.resolve_name(therapist_id, existing),
            last_message=last.message if last else None,
            last_message_time=last.timestamp if last else None,
            unread_count=0,  # read tracking not implemented
        )

        if index is not None:
            sessions[index] = summary
        else:
            sessions.append(summary)

        await self._write(key, sessions)
        return summary


class ChatService:
    """Messages plus the per-therapist summary index, kept in step."""

    def __init__(self, store, clock=system_clock):
        self.store = store
        self.clock = clock
        self.sessions = ChatSessionIndex(store, clock)

    def messages_for(self, therapist_id: str) -> ChatMessageRepository:
        return ChatMessageRepository(self.store, therapist_id, self.clock)

    async def get_messages(self, user_id: str, therapist_id: str) -> List[ChatMessage]:
        return await self.messages_for(therapist_id).load_all(user_id)

    async def send_message(self, user_id: str, therapist_id: str, text: str, therapist_name: Optional[str] = None) -> ChatMessage:
        message = await self.messages_for(therapist_id).send_message(user_id, text)
        await self.sessions.refresh(user_id, therapist_id, therapist_name)
        logger.info(f"Chat message {message.id} sent to {therapist_id}")
        return message

    async def initialize_chat(self, user_id: str, therapist_id: str, therapist_name: Optional[str] = None) -> ChatSession:
        return await self.sessions.refresh(user_id, therapist_id, therapist_name)

    async def get_chat_sessions(self, user_id: str) -> List[ChatSession]:
        return await self.sessions.load_all(user_id)
