import asyncio
from datetime import timedelta

import pytest

from wellbeing.errors import NoCurrentUserError
from wellbeing.models import UserProfile
from wellbeing.moods import MoodRepository
from wellbeing.users import UserStore
from wellbeing.utils.clock import epoch_millis


def test_no_user_by_default(store, clock):
    users = UserStore(store, clock)
    assert asyncio.run(users.get_current_user()) is None


def test_create_guest_user(store, clock):
    users = UserStore(store, clock)

    async def flow():
        guest = await users.create_guest_user()
        return guest, await users.get_current_user(), await store.get("@app:is_guest")

    guest, current, flag = asyncio.run(flow())
    assert guest.id == f"guest_{epoch_millis(clock.now())}"
    assert guest.is_guest is True
    assert guest.profile_completed is False
    assert current == guest
    assert flag == "true"


def test_create_user_clears_guest_flag(store, clock):
    users = UserStore(store, clock)

    async def flow():
        await users.create_guest_user()
        clock.advance(timedelta(seconds=1))
        user = await users.create_user(UserProfile(username="sam", email="sam@example.com", year="2"))
        return user, await store.get("@app:is_guest")

    user, flag = asyncio.run(flow())
    assert user.id.startswith("user_")
    assert user.profile_completed is True
    assert user.email == "sam@example.com"
    assert flag is None


def test_update_user_without_user_raises(store, clock):
    users = UserStore(store, clock)
    with pytest.raises(NoCurrentUserError):
        asyncio.run(users.update_user({"username": "x"}))


def test_update_user_keeps_id_and_stamps_login(store, clock):
    users = UserStore(store, clock)

    async def flow():
        created = await users.create_user(UserProfile(username="sam"))
        clock.advance(timedelta(hours=2))
        updated = await users.update_user({"id": "other", "field": "Biology", "profileCompleted": True})
        return created, updated, await users.get_current_user()

    created, updated, current = asyncio.run(flow())
    assert updated.id == created.id
    assert updated.field == "Biology"
    assert updated.last_login_at == clock.now()
    assert updated.created_at == created.created_at
    assert current == updated


def test_malformed_user_record_reads_as_none(store, clock):
    users = UserStore(store, clock)

    async def flow():
        await store.set("@app:user_id", "user_1")
        await store.set("@app:user_data", '{"id": "user_1"}')
        return await users.get_current_user()

    assert asyncio.run(flow()) is None


def test_logout_keeps_user_data_collections(store, clock):
    users = UserStore(store, clock)
    moods = MoodRepository(store, clock)

    async def flow():
        user = await users.create_guest_user()
        await moods.create_entry(user.id, "happy", 6)
        await users.logout()
        return user, await users.get_current_user(), await moods.load_all(user.id)

    user, current, entries = asyncio.run(flow())
    assert current is None
    assert len(entries) == 1


def test_first_launch_is_true_once(store, clock):
    users = UserStore(store, clock)

    async def flow():
        return [await users.is_first_launch() for _ in range(3)]

    assert asyncio.run(flow()) == [True, False, False]


def test_onboarding_flag(store, clock):
    users = UserStore(store, clock)

    async def flow():
        before = await users.is_onboarding_completed()
        await users.set_onboarding_completed()
        return before, await users.is_onboarding_completed()

    assert asyncio.run(flow()) == (False, True)


def test_theme_mode(store, clock):
    users = UserStore(store, clock)

    async def flow():
        default = await users.get_theme_mode()
        await users.set_theme_mode("dark")
        return default, await users.get_theme_mode()

    assert asyncio.run(flow()) == ("light", "dark")

    with pytest.raises(ValueError):
        asyncio.run(users.set_theme_mode("neon"))


def test_unknown_stored_theme_falls_back_to_light(store, clock):
    users = UserStore(store, clock)

    async def flow():
        await store.set("@app:theme_mode", "sepia")
        return await users.get_theme_mode()

    assert asyncio.run(flow()) == "light"


def test_export_all_data(store, clock):
    users = UserStore(store, clock)
    moods = MoodRepository(store, clock)

    async def flow():
        user = await users.create_guest_user()
        await moods.create_entry(user.id, "calm", 3)
        await users.set_theme_mode("system")
        return user, await users.export_all_data()

    user, export = asyncio.run(flow())
    assert export["exportedAt"] == clock.now().isoformat()
    assert export["user"]["id"] == user.id
    assert export["user"]["isGuest"] is True

    data = export["allStorageData"]
    assert data["@app:theme_mode"] == "system"
    assert data["@app:is_guest"] is True
    assert data[f"@app:mood_entries:{user.id}"][0]["mood"] == "calm"


def test_clear_all_data(store, clock):
    users = UserStore(store, clock)

    async def flow():
        await users.create_guest_user()
        await users.set_onboarding_completed()
        await users.clear_all_data()
        return await users.get_current_user(), await store.list_keys()

    current, remaining = asyncio.run(flow())
    assert current is None
    assert remaining == []
