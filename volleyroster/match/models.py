"""Data models for the match blueprint."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, TypedDict, Union, cast

from volleyroster.core.constants import (
    ENTRY_KIND_GUEST,
    ENTRY_KIND_USER,
    GUEST_ID_PREFIX,
    MATCH_STATUS_ACTIVE,
)
from volleyroster.core.types import FirestoreDocument

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot


class EntryDocument(TypedDict, total=False):
    """A roster entry as stored inside a match or session document."""

    kind: str
    uid: str
    guestId: str
    sponsorUid: str
    displayName: str
    photoURL: Optional[str]
    joinedAt: Any


class MatchDocument(FirestoreDocument, total=False):
    """An active match document in Firestore."""

    date: Any
    participants: list[EntryDocument]
    reserves: list[EntryDocument]
    status: str
    createdBy: str
    version: int


class SessionDocument(FirestoreDocument, total=False):
    """An archived match (session) document in Firestore."""

    matchId: str
    date: Any
    participants: list[EntryDocument]
    reserves: list[EntryDocument]
    participantUids: list[str]
    reserveUids: list[str]
    guestSponsorUids: list[str]
    ignoredFromStats: bool
    createdBy: str
    closedAt: Any
    version: int


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _isoformat(value: Any) -> Any:
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class UserEntry:
    """A registered user on a roster."""

    uid: str
    display_name: str
    photo_url: Optional[str] = None
    joined_at: Any = field(default_factory=_now)

    is_guest = False

    @property
    def entry_id(self) -> str:
        return self.uid

    def to_dict(self) -> EntryDocument:
        return {
            "kind": ENTRY_KIND_USER,
            "uid": self.uid,
            "displayName": self.display_name,
            "photoURL": self.photo_url,
            "joinedAt": self.joined_at,
        }


@dataclass(frozen=True)
class GuestEntry:
    """A guest ("friend") brought to a match by a registered sponsor."""

    guest_id: str
    sponsor_uid: str
    display_name: str
    joined_at: Any = field(default_factory=_now)

    is_guest = True

    @property
    def entry_id(self) -> str:
        return self.guest_id

    @classmethod
    def create(
        cls, sponsor_uid: str, display_name: str, joined_at: Any = None
    ) -> GuestEntry:
        """Build a guest entry with a freshly generated id."""
        return cls(
            guest_id=f"{GUEST_ID_PREFIX}{uuid.uuid4().hex}",
            sponsor_uid=sponsor_uid,
            display_name=display_name,
            joined_at=joined_at or _now(),
        )

    def to_dict(self) -> EntryDocument:
        return {
            "kind": ENTRY_KIND_GUEST,
            "guestId": self.guest_id,
            "sponsorUid": self.sponsor_uid,
            "displayName": self.display_name,
            "joinedAt": self.joined_at,
        }


RosterEntry = Union[UserEntry, GuestEntry]


def entry_from_dict(data: dict[str, Any]) -> RosterEntry:
    """Rebuild a roster entry from its Firestore representation."""
    if data.get("kind") == ENTRY_KIND_GUEST:
        return GuestEntry(
            guest_id=data["guestId"],
            sponsor_uid=data["sponsorUid"],
            display_name=data.get("displayName") or "",
            joined_at=data.get("joinedAt"),
        )
    return UserEntry(
        uid=data["uid"],
        display_name=data.get("displayName") or "",
        photo_url=data.get("photoURL"),
        joined_at=data.get("joinedAt"),
    )


def entry_to_json(entry: RosterEntry) -> dict[str, Any]:
    """Serialize an entry for API responses."""
    data = dict(entry.to_dict())
    data["entryId"] = entry.entry_id
    data["joinedAt"] = _isoformat(data.get("joinedAt"))
    return data


@dataclass
class Match:
    """An active match and its two rosters."""

    id: str
    date: Any
    participants: list[RosterEntry] = field(default_factory=list)
    reserves: list[RosterEntry] = field(default_factory=list)
    status: str = MATCH_STATUS_ACTIVE
    created_by: Optional[str] = None
    version: int = 0

    @classmethod
    def from_dict(cls, match_id: str, data: dict[str, Any]) -> Match:
        return cls(
            id=match_id,
            date=data.get("date"),
            participants=[entry_from_dict(e) for e in data.get("participants") or []],
            reserves=[entry_from_dict(e) for e in data.get("reserves") or []],
            status=data.get("status", MATCH_STATUS_ACTIVE),
            created_by=data.get("createdBy"),
            version=int(data.get("version") or 0),
        )

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Match:
        return cls.from_dict(snapshot.id, snapshot.to_dict() or {})

    def roster_fields(self) -> dict[str, Any]:
        """Return the fields a roster transaction rewrites."""
        return {
            "participants": [e.to_dict() for e in self.participants],
            "reserves": [e.to_dict() for e in self.reserves],
        }

    def to_dict(self) -> MatchDocument:
        data = self.roster_fields()
        data.update(
            {
                "date": self.date,
                "status": self.status,
                "createdBy": self.created_by,
                "version": self.version,
            }
        )
        return cast(MatchDocument, data)

    def to_json(self, capacity: int) -> dict[str, Any]:
        """Serialize the match, with derived counters, for API responses."""
        registered = sum(1 for e in self.participants if not e.is_guest)
        return {
            "id": self.id,
            "date": _isoformat(self.date),
            "status": self.status,
            "createdBy": self.created_by,
            "version": self.version,
            "capacity": capacity,
            "registeredCount": registered,
            "isFull": registered >= capacity,
            "participants": [entry_to_json(e) for e in self.participants],
            "reserves": [entry_to_json(e) for e in self.reserves],
        }


@dataclass
class Session:
    """An archived, read-only snapshot of a closed match."""

    id: str
    match_id: str
    date: Any
    participants: list[RosterEntry] = field(default_factory=list)
    reserves: list[RosterEntry] = field(default_factory=list)
    ignored_from_stats: bool = False
    created_by: Optional[str] = None
    closed_at: Any = None
    version: int = 0

    @property
    def participant_uids(self) -> list[str]:
        return [e.uid for e in self.participants if isinstance(e, UserEntry)]

    @property
    def reserve_uids(self) -> list[str]:
        return [e.uid for e in self.reserves if isinstance(e, UserEntry)]

    @property
    def guest_sponsor_uids(self) -> list[str]:
        guests = [*self.participants, *self.reserves]
        return [e.sponsor_uid for e in guests if isinstance(e, GuestEntry)]

    @classmethod
    def from_match(cls, session_id: str, match: Match, closed_at: Any) -> Session:
        return cls(
            id=session_id,
            match_id=match.id,
            date=match.date,
            participants=list(match.participants),
            reserves=list(match.reserves),
            created_by=match.created_by,
            closed_at=closed_at,
            version=match.version,
        )

    @classmethod
    def from_dict(cls, session_id: str, data: dict[str, Any]) -> Session:
        return cls(
            id=session_id,
            match_id=data.get("matchId") or session_id,
            date=data.get("date"),
            participants=[entry_from_dict(e) for e in data.get("participants") or []],
            reserves=[entry_from_dict(e) for e in data.get("reserves") or []],
            ignored_from_stats=bool(data.get("ignoredFromStats", False)),
            created_by=data.get("createdBy"),
            closed_at=data.get("closedAt"),
            version=int(data.get("version") or 0),
        )

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Session:
        return cls.from_dict(snapshot.id, snapshot.to_dict() or {})

    def to_dict(self) -> SessionDocument:
        data = {
            "matchId": self.match_id,
            "date": self.date,
            "participants": [e.to_dict() for e in self.participants],
            "reserves": [e.to_dict() for e in self.reserves],
            "participantUids": self.participant_uids,
            "reserveUids": self.reserve_uids,
            "guestSponsorUids": self.guest_sponsor_uids,
            "ignoredFromStats": self.ignored_from_stats,
            "createdBy": self.created_by,
            "closedAt": self.closed_at,
            "version": self.version,
        }
        return cast(SessionDocument, data)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "matchId": self.match_id,
            "date": _isoformat(self.date),
            "closedAt": _isoformat(self.closed_at),
            "ignoredFromStats": self.ignored_from_stats,
            "participants": [entry_to_json(e) for e in self.participants],
            "reserves": [entry_to_json(e) for e in self.reserves],
            "participantUids": self.participant_uids,
            "reserveUids": self.reserve_uids,
        }


@dataclass
class SignupResult:
    """Outcome of a signup transaction."""

    placement: str
    redirected: bool = False
    guests: list[GuestEntry] = field(default_factory=list)


@dataclass
class RemovalResult:
    """Outcome of a removal; ``promoted`` is the reserve moved up, if any."""

    removed: RosterEntry
    promoted: Optional[UserEntry] = None


@dataclass
class CloseResult:
    """Outcome of closing a match."""

    empty: bool
    session_id: Optional[str] = None
