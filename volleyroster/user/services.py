"""Service layer for user profiles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from volleyroster.core.constants import USERS_COLLECTION
from volleyroster.errors import NotFoundError, UnauthorizedError, ValidationError

from .models import Role, empty_stats

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

MAX_DISPLAY_NAME_LENGTH = 40


def is_super_admin_email(email: str | None, super_admin_email: str | None) -> bool:
    """Compare an email against the configured super-admin, ignoring case."""
    if not email or not super_admin_email:
        return False
    return email.strip().lower() == super_admin_email.strip().lower()


class UserService:
    """Handles data access for user profiles."""

    @staticmethod
    def get_user_by_id(db: Client, user_id: str) -> dict[str, Any] | None:
        """Fetch a user by their ID."""
        user_doc = cast(
            "DocumentSnapshot", db.collection(USERS_COLLECTION).document(user_id).get()
        )
        if not user_doc.exists:
            return None
        data = user_doc.to_dict()
        if data is None:
            return None
        data["uid"] = user_id
        return data

    @staticmethod
    def upsert_login(
        db: Client, identity: dict[str, Any], super_admin_email: str | None = None
    ) -> dict[str, Any]:
        """Create or refresh a profile from an identity provider login.

        New profiles start with the ``user`` role and zeroed stats. The
        configured super-admin is always stored with the super-admin role.
        """
        uid = identity["uid"]
        user_ref = db.collection(USERS_COLLECTION).document(uid)
        existing = UserService.get_user_by_id(db, uid)

        payload: dict[str, Any] = {
            "email": identity.get("email"),
            "displayName": identity.get("name") or identity.get("displayName"),
            "photoURL": identity.get("picture") or identity.get("photoURL"),
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        payload["lastLogin"] = firestore.SERVER_TIMESTAMP
        if is_super_admin_email(identity.get("email"), super_admin_email):
            payload["role"] = Role.SUPER_ADMIN.value
        elif existing is None or "role" not in existing:
            payload["role"] = Role.USER.value
        elif existing.get("role") == Role.SUPER_ADMIN.value:
            # Super-admin moved to another account in configuration.
            payload["role"] = Role.ADMIN.value

        if existing is None:
            payload["stats"] = empty_stats()
            payload["createdAt"] = firestore.SERVER_TIMESTAMP
            user_ref.set(payload)
        else:
            user_ref.update(payload)

        profile = {**(existing or {}), **payload, "uid": uid}
        return profile

    @staticmethod
    def set_custom_display_name(db: Client, user_id: str, name: str | None) -> None:
        """Set or clear the name shown on future roster entries."""
        value = (name or "").strip()
        if len(value) > MAX_DISPLAY_NAME_LENGTH:
            raise ValidationError(
                f"Display names are limited to {MAX_DISPLAY_NAME_LENGTH} characters."
            )
        user_ref = db.collection(USERS_COLLECTION).document(user_id)
        user_ref.update({"customDisplayName": value or None})

    @staticmethod
    def set_role(
        db: Client, user_id: str, role: str, super_admin_email: str | None = None
    ) -> Role:
        """Change a user's role. The configured super-admin cannot be changed."""
        try:
            new_role = Role(role)
        except ValueError as e:
            raise ValidationError(f"Unknown role: {role}") from e
        if new_role is Role.SUPER_ADMIN:
            raise ValidationError("The super-admin is fixed by configuration.")

        user = UserService.get_user_by_id(db, user_id)
        if user is None:
            raise NotFoundError("User not found.")
        if is_super_admin_email(user.get("email"), super_admin_email):
            raise UnauthorizedError("The super-admin cannot be demoted.")

        db.collection(USERS_COLLECTION).document(user_id).update(
            {"role": new_role.value}
        )
        return new_role

    @staticmethod
    def list_users(db: Client) -> list[dict[str, Any]]:
        """Fetch every profile, sorted by display name."""
        users = []
        for doc in db.collection(USERS_COLLECTION).stream():
            data = doc.to_dict()
            if not doc.exists or not data:
                continue
            data["uid"] = doc.id
            users.append(data)
        users.sort(key=lambda u: (u.get("displayName") or "").lower())
        return users
