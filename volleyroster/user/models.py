"""Data models for the user blueprint."""

from __future__ import annotations

import enum
from collections import UserDict
from typing import TypedDict, cast

from flask_login import UserMixin

from volleyroster.core.constants import STAT_FIELDS


class Role(str, enum.Enum):
    """The flat set of roles a profile can hold."""

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super-admin"
    CAPITANA = "capitana"

    @classmethod
    def parse(cls, value: str | None) -> Role:
        try:
            return cls(value)
        except ValueError:
            return cls.USER


ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


class UserStats(TypedDict, total=False):
    """Aggregate counters kept on a user profile."""

    totalSessions: int
    asParticipant: int
    asReserve: int
    friendsBrought: int
    setsPlayed: int
    setsWon: int
    setsLost: int
    pointDifference: int


def empty_stats() -> UserStats:
    """Return a stats map with every counter at zero."""
    return cast(UserStats, {name: 0 for name in STAT_FIELDS})


class UserSession(UserDict, UserMixin):
    """A wrapper class for user data that provides properties for Flask-Login."""

    def get_id(self) -> str:
        """Return the user ID."""
        return str(self.get("uid", ""))

    @property
    def role(self) -> Role:
        return Role.parse(self.get("role"))

    @property
    def is_admin(self) -> bool:
        """Return True if the user may run admin roster operations."""
        return self.role in ADMIN_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.role is Role.SUPER_ADMIN
