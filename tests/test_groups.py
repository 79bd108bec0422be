import asyncio
import json
import re
import string
from datetime import timedelta

from wellbeing.groups import CommunityGroupService, is_psychologist, next_display_name


def test_is_psychologist():
    assert is_psychologist("therapist_1")
    assert is_psychologist("psychologist_42")
    assert not is_psychologist("user_1")


def test_next_display_name():
    assert next_display_name([]) == "Student A"
    assert next_display_name(["Student A", "Student C"]) == "Student B"
    taken = [f"Student {letter}" for letter in string.ascii_uppercase]
    assert next_display_name(taken) == "Student 27"


def test_catalogue_is_seeded_once(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        first = await service.get_user_groups("user_1")
        clock.advance(timedelta(days=2))
        second = await service.get_user_groups("user_1")
        return first, second, json.loads(await store.get("@app:community_groups"))

    first, second, stored = asyncio.run(flow())
    assert [g.id for g in first] == ["group_1", "group_2", "group_3"]
    assert [g.created_at for g in second] == [g.created_at for g in first]
    assert len(stored) == 7
    assert stored[0]["code"] == "ULY32"
    assert stored[0]["memberIds"][0] == "user_1"


def test_psychologists_see_the_groups_they_supervise(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        return (
            await service.get_user_groups("therapist_1"),
            await service.get_user_groups("therapist_1", as_supervisor=False),
        )

    supervised, as_member = asyncio.run(flow())
    assert [g.id for g in supervised] == ["group_1", "group_4", "group_7"]
    assert as_member == []


def test_get_group_by_id(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        return await service.get_group_by_id("group_3"), await service.get_group_by_id("group_99")

    found, missing = asyncio.run(flow())
    assert found.theme == "Exam Pressure"
    assert found.max_members == 7
    assert missing is None


def test_create_group(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        large = await service.create_group("therapist_2", "Dr. Michael Chen", "Grief", "Loss and mourning", max_members=10)
        small = await service.create_group("therapist_2", "Dr. Michael Chen", "Procrastination", max_members=2)
        return large, small, await service.get_user_groups("therapist_2")

    large, small, supervised = asyncio.run(flow())
    assert re.fullmatch(r"[A-Z]{3}[0-9]{2}", large.code)
    assert large.id.startswith("group_")
    assert large.member_ids == []
    assert large.is_active is True
    assert large.created_at == clock.now()
    assert large.max_members == 7
    assert small.max_members == 6
    # Seeds are kept alongside new groups
    assert [g.id for g in supervised] == ["group_3", "group_5", large.id, small.id]


def test_available_groups(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        return (
            await service.get_available_groups("user_new"),
            await service.get_available_groups("user_1"),
            await service.get_available_groups("therapist_1"),
        )

    for_newcomer, for_member, for_supervisor = asyncio.run(flow())
    assert len(for_newcomer) == 7
    assert [g.id for g in for_member] == ["group_4", "group_5", "group_6", "group_7"]
    assert [g.id for g in for_supervisor] == ["group_2", "group_3", "group_5", "group_6"]


def test_join_until_full(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        joined = await service.join_group("group_1", "user_new")
        full = await service.join_group("group_1", "user_late")
        again = await service.join_group("group_1", "user_new")
        missing = await service.join_group("group_99", "user_new")
        available = await service.get_available_groups("user_late")
        alias = await service.get_user_display_name("group_1", "user_new")
        return joined, full, again, missing, available, alias

    joined, full, again, missing, available, alias = asyncio.run(flow())
    assert joined.member_ids[-1] == "user_new"
    assert len(joined.member_ids) == joined.max_members
    assert full is None
    # An existing member is never turned away
    assert again.id == "group_1"
    assert missing is None
    assert "group_1" not in [g.id for g in available]
    assert alias == "Student A"


def test_display_names_are_unique_per_group(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        await service.join_group("group_4", "user_a")
        await service.join_group("group_4", "user_b")
        names = [
            await service.get_user_display_name("group_4", "user_a"),
            await service.get_user_display_name("group_4", "user_b"),
            await service.get_user_display_name("group_4", "user_c"),
            await service.get_user_display_name("group_5", "user_a"),
        ]
        unknown = await service.get_user_display_name("group_99", "user_a")
        return names, unknown, await store.list_keys()

    names, unknown, stored_keys = asyncio.run(flow())
    assert names == ["Student A", "Student B", "Student C", "Student A"]
    assert unknown == "Student A"
    assert "@app:community_group_memberships:group_99" not in stored_keys


def test_leave_group(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        await service.join_group("group_5", "user_new")
        left = await service.leave_group("group_5", "user_new")
        again = await service.leave_group("group_5", "user_new")
        missing = await service.leave_group("group_99", "user_new")
        group = await service.get_group_by_id("group_5")
        memberships = await service.memberships.load_all("group_5")
        return left, again, missing, group, memberships

    left, again, missing, group, memberships = asyncio.run(flow())
    assert left is True
    assert again is False
    assert missing is False
    assert "user_new" not in group.member_ids
    assert memberships == []


def test_group_messages_are_seeded_once_and_ordered(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        first = await service.get_group_messages("group_1", "user_2")
        clock.advance(timedelta(hours=5))
        second = await service.get_group_messages("group_1", "user_2")
        return first, second

    first, second = asyncio.run(flow())
    assert [m.id for m in first] == ["msg_1_1", "msg_1_2", "msg_1_3", "msg_1_4"]
    assert [m.is_own for m in first] == [False, True, False, False]
    assert [m.is_supervisor for m in first] == [True, False, False, True]
    assert [m.timestamp for m in second] == [m.timestamp for m in first]


def test_new_group_has_no_messages(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        group = await service.create_group("therapist_1", "Dr. Sarah Johnson", "Homesickness")
        messages = await service.get_group_messages(group.id, "therapist_1")
        return group, messages, await store.list_keys()

    group, messages, stored_keys = asyncio.run(flow())
    assert messages == []
    assert f"@app:community_group_messages:{group.id}" not in stored_keys


def test_post_message_uses_alias_or_supervisor_name(store, clock):
    service = CommunityGroupService(store, clock)

    async def flow():
        clock.advance(timedelta(minutes=1))
        student = await service.post_message("group_1", "user_1", "Thanks everyone")
        clock.advance(timedelta(minutes=1))
        supervisor = await service.post_message("group_1", "therapist_1", "Glad to hear it")
        clock.advance(timedelta(minutes=1))
        other_therapist = await service.post_message("group_1", "therapist_2", "Hello")
        missing = await service.post_message("group_99", "user_1", "anyone?")
        history = await service.get_group_messages("group_1", "user_1")
        return student, supervisor, other_therapist, missing, history

    student, supervisor, other_therapist, missing, history = asyncio.run(flow())
    assert student.user_display_name == "Student A"
    assert student.is_supervisor is False
    assert student.is_own is True
    assert student.id.startswith("group_msg_")

    assert supervisor.user_display_name == "Dr. Sarah Johnson"
    assert supervisor.is_supervisor is True

    assert other_therapist.user_display_name == "Student B"
    assert other_therapist.is_supervisor is False

    assert missing is None
    # Seeds first, then the new messages in send order
    assert [m.id for m in history[-3:]] == [student.id, supervisor.id, other_therapist.id]
    assert len(history) == 7
    assert [m.is_own for m in history[-3:]] == [True, False, False]
