from datetime import timedelta
from typing import List

from wellbeing import keys
from wellbeing.models import CommunityMessage, CommunityMessageView
from wellbeing.repository import EntityRepository, generate_id
from wellbeing.utils.clock import system_clock


class CommunityChatRepository(EntityRepository[CommunityMessage]):
    """
    The shared community channel: a single global key, no per-user namespace.
    Ownership (``is_own``) is computed for whoever is reading, never stored.
    """

    def __init__(self, store, clock=system_clock):
        super().__init__(store, CommunityMessage, keys.COMMUNITY_CHAT_MESSAGES, "community_msg", clock)

    def key_for(self, user_id: str = "") -> str:
        return self.prefix

    def sort_records(self, records: List[CommunityMessage]) -> List[CommunityMessage]:
        return sorted(records, key=lambda m: m.timestamp)

    def welcome_messages(self) -> List[CommunityMessage]:
        now = self.clock.now()
        return [
            CommunityMessage(
                id="welcome_1",
                user_id="system",
                username="Alice",
                message="Hello everyone! How are you doing today?",
                timestamp=now - timedelta(hours=1),
            ),
            CommunityMessage(
                id="welcome_2",
                user_id="system",
                username="Bob",
                message="Great! Just finished my morning meditation.",
                timestamp=now - timedelta(minutes=55),
            ),
        ]

    async def _load_or_seed(self) -> List[CommunityMessage]:
        messages = await self._read(self.prefix)
        if not messages:
            messages = self.welcome_messages()
            await self._write(self.prefix, messages)
        return self.sort_records(messages)

    async def get_messages(self, reader_id: str) -> List[CommunityMessageView]:
        return [
            CommunityMessageView(**m.model_dump(), is_own=(m.user_id == reader_id))
            for m in await self._load_or_seed()
        ]

    async def send_message(self, user_id: str, username: str, text: str) -> CommunityMessageView:
        message = CommunityMessage(
            id=generate_id(self.id_prefix, self.clock),
            user_id=user_id,
            username=username,
            message=text,
            timestamp=self.clock.now(),
        )
        messages = await self._load_or_seed()
        messages.append(message)
        await self._write(self.prefix, messages)
        return CommunityMessageView(**message.model_dump(), is_own=True)

    async def clear_messages(self) -> None:
        await self.store.remove(self.prefix)
