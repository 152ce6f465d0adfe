"""Helper functions for user-related data."""

from __future__ import annotations

from typing import Any

from volleyroster.utils import mask_email

from .models import UserSession


def smart_display_name(user: dict[str, Any]) -> str:
    """Return the name a user shows on rosters.

    A custom display name set by the user wins over the identity provider's
    name. Without either, fall back to a masked email, then 'Player'.
    """
    if custom := (user.get("customDisplayName") or "").strip():
        return custom
    if name := (user.get("displayName") or "").strip():
        return name
    if email := user.get("email"):
        return mask_email(email)
    return "Player"


def wrap_user(
    user_data: dict[str, Any] | None, uid: str | None = None
) -> UserSession | None:
    """Wrap a user dictionary in a UserSession object.

    Args:
        user_data: The user data dictionary from Firestore.
        uid: Optional user ID if not present in user_data.

    Returns:
        A UserSession object or None if user_data is None.
    """
    if user_data is None:
        return None
    if isinstance(user_data, UserSession):
        return user_data

    data = dict(user_data)
    if uid:
        data["uid"] = uid
    return UserSession(data)
