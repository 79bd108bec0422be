"""Storage key layout shared by every repository.

Per-user collections live under ``{prefix}:{user_id}``; chat messages add the
counterpart (``{prefix}:{user_id}:{therapist_id}``). Community messages use the
bare prefix and are shared by every user on the device, as are community
groups. Group messages and memberships live under ``{prefix}:{group_id}``.
"""

# --- Identity / app state (unscoped) ---
USER_ID = "@app:user_id"
USER_DATA = "@app:user_data"
IS_FIRST_LAUNCH = "@app:is_first_launch"
ONBOARDING_COMPLETED = "@app:onboarding_completed"
IS_GUEST = "@app:is_guest"
THEME_MODE = "@app:theme_mode"

# --- Per-user collections ---
MOOD_ENTRIES = "@app:mood_entries"
JOURNAL_ENTRIES = "@app:journal_entries"
ACTIVITIES = "@app:activities"
ACTIVITY_SESSIONS = "@app:activity_sessions"
BOOKINGS = "@app:bookings"
CHAT_MESSAGES = "@app:chat_messages"
CHAT_SESSIONS = "@app:chat_sessions"

# --- Global ---
COMMUNITY_CHAT_MESSAGES = "@app:community_chat_messages"
COMMUNITY_GROUPS = "@app:community_groups"

# --- Per-group collections ---
COMMUNITY_GROUP_MESSAGES = "@app:community_group_messages"
COMMUNITY_GROUP_MEMBERSHIPS = "@app:community_group_memberships"


def user_key(prefix: str, user_id: str) -> str:
    return f"{prefix}:{user_id}"


def chat_messages_key(user_id: str, therapist_id: str) -> str:
    return f"{CHAT_MESSAGES}:{user_id}:{therapist_id}"
