"""
Supervised community groups.

A group is a small room (6-7 students) run by one psychologist and shown
under an anonymous code such as "ULY32". Students appear in a group under a
per-group alias ("Student A", "Student B"...), recorded as a membership.

Groups share one global collection; messages and memberships are stored per
group. The catalogue and each group's opening messages are seeded the first
time they are read.
"""
import logging
import random
import string
from datetime import timedelta
from typing import List, Optional

from wellbeing import keys
from wellbeing.models import CommunityGroup, GroupMembership, GroupMessage, GroupMessageView
from wellbeing.repository import EntityRepository
from wellbeing.utils.clock import system_clock

logger = logging.getLogger(__name__)

MIN_GROUP_SIZE = 6
MAX_GROUP_SIZE = 7
FALLBACK_DISPLAY_NAME = "Student A"

# (id, code, theme, supervisor_id, supervisor_name, member_ids, max_members, days_old, description)
SEED_GROUPS = [
    ("group_1", "ULY32", "Anxiety & Stress", "therapist_1", "Dr. Sarah Johnson",
     ["user_1", "user_2", "user_3", "user_4", "user_5"], 6, 7,
     "A safe space to discuss anxiety management techniques and share experiences."),
    ("group_2", "KPM18", "First-Year Adjustment", "therapist_3", "Dr. Emily Rodriguez",
     ["user_1", "user_9", "user_10", "user_11"], 6, 5,
     "Support for first-year students adjusting to university life."),
    ("group_3", "RXT09", "Exam Pressure", "therapist_2", "Dr. Michael Chen",
     ["user_1", "user_6", "user_7", "user_8"], 7, 3,
     "Support group for managing exam stress and finding balance during study periods."),
    ("group_4", "BNA41", "Loneliness", "therapist_1", "Dr. Sarah Johnson",
     ["user_12", "user_13", "user_14"], 6, 2,
     "A supportive community for students experiencing loneliness and isolation."),
    ("group_5", "MOT27", "Motivation & Burnout", "therapist_2", "Dr. Michael Chen",
     ["user_15", "user_16"], 7, 4,
     "Share strategies for maintaining motivation and preventing academic burnout."),
    ("group_6", "SOC52", "Social Anxiety", "therapist_3", "Dr. Emily Rodriguez",
     ["user_17", "user_18", "user_19", "user_20"], 6, 1,
     "A supportive environment to discuss social anxiety and build confidence."),
    ("group_7", "SLP88", "Sleep Problems", "therapist_1", "Dr. Sarah Johnson",
     ["user_21", "user_22"], 7, 6,
     "Tips and support for improving sleep quality and establishing healthy sleep routines."),
]

# group_id -> [(message_id, user_id, display_name, text, hours_old, is_supervisor)]
SEED_MESSAGES = {
    "group_1": [
        ("msg_1_1", "therapist_1", "Dr. Sarah Johnson",
         "Welcome to the Anxiety & Stress group! This is a safe space to share what helps you.", 168, True),
        ("msg_1_2", "user_2", "Student A",
         "Hi everyone! I started the breathing exercises this week and they really help.", 144, False),
        ("msg_1_3", "user_3", "Student B",
         "Same here, I tried them while revising and it helped me focus.", 120, False),
        ("msg_1_4", "therapist_1", "Dr. Sarah Johnson",
         "Great to hear! Regularity is the key, keep sharing what works for you.", 96, True),
    ],
    "group_2": [
        ("msg_2_1", "therapist_3", "Dr. Emily Rodriguez",
         "Welcome to First-Year Adjustment! Share your experiences and support each other.", 120, True),
        ("msg_2_2", "user_9", "Student C",
         "I'm struggling with homesickness. Good to know I'm not the only one.", 108, False),
        ("msg_2_3", "user_10", "Student D",
         "Finding a routine really helped me settle in.", 96, False),
    ],
    "group_3": [
        ("msg_3_1", "therapist_2", "Dr. Michael Chen",
         "Welcome to Exam Pressure. Let's talk about healthy ways to handle stress during exams.", 72, True),
        ("msg_3_2", "user_7", "Student F",
         "I find it hard to plan my revision time. Any tips?", 48, False),
        ("msg_3_3", "user_8", "Student G",
         "25 minutes of work then a 5 minute break (Pomodoro) works well for me!", 36, False),
    ],
    "group_4": [
        ("msg_4_1", "therapist_1", "Dr. Sarah Johnson",
         "Welcome to the Loneliness group. You are not alone, and we are here to support each other.", 48, True),
        ("msg_4_2", "user_12", "Student H",
         "Thanks for this group. Sometimes I feel really isolated on campus.", 36, False),
    ],
    "group_5": [
        ("msg_5_1", "therapist_2", "Dr. Michael Chen",
         "Welcome to Motivation & Burnout. Let's share ways to stay balanced.", 96, True),
        ("msg_5_2", "user_16", "Student L",
         "I try to take at least one day off a week, it helps.", 72, False),
    ],
    "group_6": [
        ("msg_6_1", "therapist_3", "Dr. Emily Rodriguez",
         "Welcome to Social Anxiety. This is a judgement-free space to learn together.", 24, True),
        ("msg_6_2", "user_17", "Student M",
         "Even raising my hand in class stresses me out.", 18, False),
    ],
    "group_7": [
        ("msg_7_1", "therapist_1", "Dr. Sarah Johnson",
         "Welcome to Sleep Problems. Let's talk about healthy sleep habits and routines.", 144, True),
        ("msg_7_2", "user_21", "Student P",
         "I struggle to fall asleep, my brain never stops thinking.", 132, False),
    ],
}


def is_psychologist(user_id: str) -> bool:
    return user_id.startswith("therapist_") or "psychologist" in user_id


def generate_group_code() -> str:
    """Three capital letters then two digits, e.g. "ULY32"."""
    letters = "".join(random.choices(string.ascii_uppercase, k=3))
    digits = "".join(random.choices(string.digits, k=2))
    return letters + digits


def next_display_name(taken: List[str]) -> str:
    for letter in string.ascii_uppercase:
        name = f"Student {letter}"
        if name not in taken:
            return name
    return f"Student {len(taken) + 1}"


def clamp_group_size(max_members: int) -> int:
    return min(max(max_members, MIN_GROUP_SIZE), MAX_GROUP_SIZE)


# --- Repositories ---

class GroupRepository(EntityRepository[CommunityGroup]):
    """The group catalogue: one global key, seeded on first read."""

    def __init__(self, store, clock=system_clock):
        super().__init__(store, CommunityGroup, keys.COMMUNITY_GROUPS, "group", clock)

    def key_for(self, user_id: str = "") -> str:
        return self.prefix

    def seed_groups(self) -> List[CommunityGroup]:
        now = self.clock.now()
        return [
            CommunityGroup(
                id=group_id,
                code=code,
                theme=theme,
                supervisor_id=supervisor_id,
                supervisor_name=supervisor_name,
                member_ids=list(member_ids),
                max_members=max_members,
                created_at=now - timedelta(days=days_old),
                description=description,
            )
            for group_id, code, theme, supervisor_id, supervisor_name, member_ids, max_members, days_old, description
            in SEED_GROUPS
        ]

    async def load_or_seed(self) -> List[CommunityGroup]:
        groups = await self._read(self.prefix)
        if not groups:
            groups = self.seed_groups()
            await self._write(self.prefix, groups)
        return groups

    async def load_all(self, user_id: str = "") -> List[CommunityGroup]:
        return self.sort_records(await self.load_or_seed())


class GroupMessageRepository(EntityRepository[GroupMessage]):
    """Messages of one group under ``{prefix}:{group_id}``, oldest first."""

    def __init__(self, store, clock=system_clock):
        super().__init__(store, GroupMessage, keys.COMMUNITY_GROUP_MESSAGES, "group_msg", clock)

    def sort_records(self, records: List[GroupMessage]) -> List[GroupMessage]:
        return sorted(records, key=lambda m: m.timestamp)

    def seed_messages(self, group_id: str) -> List[GroupMessage]:
        now = self.clock.now()
        return [
            GroupMessage(
                id=message_id,
                group_id=group_id,
                user_id=user_id,
                user_display_name=display_name,
                message=text,
                timestamp=now - timedelta(hours=hours_old),
                is_supervisor=is_supervisor,
            )
            for message_id, user_id, display_name, text, hours_old, is_supervisor
            in SEED_MESSAGES.get(group_id, [])
        ]

    async def load_or_seed(self, group_id: str) -> List[GroupMessage]:
        key = self.key_for(group_id)
        messages = await self._read(key)
        if not messages:
            messages = self.seed_messages(group_id)
            if messages:
                await self._write(key, messages)
        return self.sort_records(messages)


class MembershipRepository(EntityRepository[GroupMembership]):
    """Per-group aliases, one row per member, keyed by user_id."""

    id_field = "user_id"

    def __init__(self, store, clock=system_clock):
        super().__init__(store, GroupMembership, keys.COMMUNITY_GROUP_MEMBERSHIPS, "membership", clock)


# --- Service ---

class CommunityGroupService:
    def __init__(self, store, clock=system_clock):
        self.clock = clock
        self.groups = GroupRepository(store, clock)
        self.messages = GroupMessageRepository(store, clock)
        self.memberships = MembershipRepository(store, clock)

    async def get_user_groups(self, user_id: str, as_supervisor: Optional[bool] = None) -> List[CommunityGroup]:
        """Groups the user supervises (psychologists) or belongs to (students)."""
        if as_supervisor is None:
            as_supervisor = is_psychologist(user_id)
        groups = await self.groups.load_all()
        if as_supervisor:
            return [g for g in groups if g.supervisor_id == user_id]
        return [g for g in groups if user_id in g.member_ids]

    async def get_group_by_id(self, group_id: str) -> Optional[CommunityGroup]:
        return await self.groups.load_by_id("", group_id)

    async def create_group(
        self,
        supervisor_id: str,
        supervisor_name: str,
        theme: str,
        description: Optional[str] = None,
        max_members: int = MIN_GROUP_SIZE,
    ) -> CommunityGroup:
        await self.groups.load_or_seed()
        group = await self.groups.insert("", {
            "code": generate_group_code(),
            "theme": theme,
            "supervisor_id": supervisor_id,
            "supervisor_name": supervisor_name,
            "member_ids": [],
            "max_members": clamp_group_size(max_members),
            "is_active": True,
            "description": description,
        })
        logger.info(f"Group {group.code} ({group.theme}) created by {supervisor_id}")
        return group

    async def get_available_groups(self, user_id: str, as_supervisor: Optional[bool] = None) -> List[CommunityGroup]:
        """Active groups with a free seat that the user is not already part of."""
        if as_supervisor is None:
            as_supervisor = is_psychologist(user_id)
        return [
            g for g in await self.groups.load_all()
            if g.is_active
            and len(g.member_ids) < g.max_members
            and user_id not in g.member_ids
            and not (as_supervisor and g.supervisor_id == user_id)
        ]

    # --- Messages ---

    async def get_group_messages(self, group_id: str, reader_id: str) -> List[GroupMessageView]:
        return [
            GroupMessageView(**m.model_dump(), is_own=(m.user_id == reader_id))
            for m in await self.messages.load_or_seed(group_id)
        ]

    async def send_group_message(
        self,
        group_id: str,
        user_id: str,
        display_name: str,
        text: str,
        is_supervisor: bool = False,
    ) -> GroupMessageView:
        await self.messages.load_or_seed(group_id)
        message = await self.messages.insert(group_id, {
            "group_id": group_id,
            "user_id": user_id,
            "user_display_name": display_name,
            "message": text,
            "timestamp": self.clock.now(),
            "is_supervisor": is_supervisor,
        })
        return GroupMessageView(**message.model_dump(), is_own=True)

    async def post_message(self, group_id: str, user_id: str, text: str) -> Optional[GroupMessageView]:
        """Send under the sender's alias; the group's own psychologist posts as supervisor."""
        group = await self.get_group_by_id(group_id)
        if not group:
            return None
        if is_psychologist(user_id) and group.supervisor_id == user_id:
            return await self.send_group_message(group_id, user_id, group.supervisor_name, text, is_supervisor=True)
        display_name = await self.get_user_display_name(group_id, user_id)
        return await self.send_group_message(group_id, user_id, display_name, text)

    # --- Membership ---

    async def _add_membership(self, group_id: str, user_id: str) -> GroupMembership:
        taken = [m.display_name for m in await self.memberships.load_all(group_id)]
        return await self.memberships.insert(group_id, {
            "user_id": user_id,
            "group_id": group_id,
            "joined_at": self.clock.now(),
            "display_name": next_display_name(taken),
        })

    async def get_user_display_name(self, group_id: str, user_id: str) -> str:
        membership = await self.memberships.load_by_id(group_id, user_id)
        if membership:
            return membership.display_name
        if not await self.get_group_by_id(group_id):
            return FALLBACK_DISPLAY_NAME
        return (await self._add_membership(group_id, user_id)).display_name

    async def join_group(self, group_id: str, user_id: str) -> Optional[CommunityGroup]:
        """None when the group does not exist or has no free seat."""
        group = await self.get_group_by_id(group_id)
        if not group:
            logger.warning(f"Join failed: group {group_id} not found")
            return None
        if user_id in group.member_ids:
            return group
        if len(group.member_ids) >= group.max_members:
            logger.info(f"Join failed: group {group_id} is full")
            return None

        joined = await self.groups.update("", group_id, {"member_ids": group.member_ids + [user_id]})
        if not await self.memberships.load_by_id(group_id, user_id):
            await self._add_membership(group_id, user_id)
        logger.info(f"User {user_id} joined group {group_id}")
        return joined

    async def leave_group(self, group_id: str, user_id: str) -> bool:
        """False when the group does not exist or the user is not a member."""
        group = await self.get_group_by_id(group_id)
        if not group or user_id not in group.member_ids:
            return False

        await self.groups.update("", group_id, {"member_ids": [m for m in group.member_ids if m != user_id]})
        await self.memberships.delete(group_id, user_id)
        logger.info(f"User {user_id} left group {group_id}")
        return True
