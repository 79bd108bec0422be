import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from wellbeing import keys
from wellbeing.errors import NoCurrentUserError
from wellbeing.kv_store import KeyValueStore
from wellbeing.models import ThemeMode, User, UserProfile
from wellbeing.utils.clock import epoch_millis, system_clock

logger = logging.getLogger(__name__)

DEFAULT_THEME: ThemeMode = "light"
THEME_MODES = ("light", "dark", "system")


class UserStore:
    """
    Device-level identity and app flags. These keys are not namespaced by
    user: there is one signed-in user per device.
    """

    def __init__(self, store: KeyValueStore, clock=system_clock):
        self.store = store
        self.clock = clock

    # --- Current user ---

    async def get_current_user(self) -> Optional[User]:
        user_id = await self.store.get(keys.USER_ID)
        if not user_id:
            return None

        user_data = await self.store.get(keys.USER_DATA)
        if not user_data:
            return None

        try:
            return User.model_validate_json(user_data)
        except ValidationError as e:
            logger.warning(f"Stored user record is malformed, ignoring it: {e.error_count()} error(s)")
            return None

    async def save_user(self, user: User) -> None:
        await self.store.set(keys.USER_ID, user.id)
        await self.store.set(keys.USER_DATA, json.dumps(user.to_storage(), ensure_ascii=False))
        if user.is_guest:
            await self.store.set(keys.IS_GUEST, "true")
        else:
            await self.store.remove(keys.IS_GUEST)

    async def create_guest_user(self) -> User:
        now = self.clock.now()
        user = User(
            id=f"guest_{epoch_millis(now)}",
            username="Guest",
            created_at=now,
            last_login_at=now,
            is_guest=True,
            profile_completed=False,
        )
        await self.save_user(user)
        return user

    async def create_user(self, profile: UserProfile) -> User:
        now = self.clock.now()
        user = User(
            id=f"user_{epoch_millis(now)}",
            username=profile.username,
            email=profile.email,
            year=profile.year,
            field=profile.field,
            created_at=now,
            last_login_at=now,
            is_guest=False,
            profile_completed=True,
        )
        await self.save_user(user)
        return user

    async def update_user(self, patch: Dict[str, Any]) -> User:
        current = await self.get_current_user()
        if not current:
            raise NoCurrentUserError("No user found")

        by_alias = {f.alias: name for name, f in User.model_fields.items() if f.alias}
        data = current.model_dump()
        data.update({by_alias.get(k, k): v for k, v in patch.items()})
        data["id"] = current.id
        data["last_login_at"] = self.clock.now()

        updated = User.model_validate(data)
        await self.save_user(updated)
        return updated

    async def logout(self) -> None:
        await self.store.remove(keys.USER_ID)
        await self.store.remove(keys.USER_DATA)
        await self.store.remove(keys.IS_GUEST)

    # --- Flags ---

    async def is_onboarding_completed(self) -> bool:
        return await self.store.get(keys.ONBOARDING_COMPLETED) == "true"

    async def set_onboarding_completed(self) -> None:
        await self.store.set(keys.ONBOARDING_COMPLETED, "true")

    async def is_first_launch(self) -> bool:
        """True exactly once: the first call records that the app has launched."""
        if await self.store.get(keys.IS_FIRST_LAUNCH) is None:
            await self.store.set(keys.IS_FIRST_LAUNCH, "false")
            return True
        return False

    async def get_theme_mode(self) -> ThemeMode:
        mode = await self.store.get(keys.THEME_MODE)
        return mode if mode in THEME_MODES else DEFAULT_THEME

    async def set_theme_mode(self, mode: ThemeMode) -> None:
        if mode not in THEME_MODES:
            raise ValueError(f"Unknown theme mode: {mode}")
        await self.store.set(keys.THEME_MODE, mode)

    # --- Whole-device data ---

    async def export_all_data(self) -> Dict[str, Any]:
        """Every stored key, JSON-decoded where possible."""
        data: Dict[str, Any] = {}
        for key in await self.store.list_keys():
            value = await self.store.get(key)
            if not value:
                continue
            try:
                data[key] = json.loads(value)
            except json.JSONDecodeError:
                data[key] = value
        user = await self.get_current_user()
        return {
            "exportedAt": self.clock.now().isoformat(),
            "user": user.to_storage() if user else None,
            "allStorageData": data,
        }

    async def clear_all_data(self) -> None:
        logger.warning("Clearing all local data")
        await self.store.clear()
