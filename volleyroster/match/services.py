"""Service layer for roster transactions on an active match."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence, cast

from firebase_admin import firestore

from volleyroster.core.constants import (
    ACTIVE_MATCHES_COLLECTION,
    MATCH_STATUS_ACTIVE,
    MAX_GUESTS_PER_USER,
    MAX_PARTICIPANTS,
)
from volleyroster.core.transactions import run_in_transaction
from volleyroster.errors import MatchNotFoundError
from volleyroster.user.helpers import smart_display_name

from . import roster
from .models import GuestEntry, Match, RemovalResult, SignupResult, UserEntry

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction


def build_user_entry(uid: str, user_data: dict[str, Any]) -> UserEntry:
    """Snapshot a user's public identity for a roster entry."""
    return UserEntry(
        uid=uid,
        display_name=smart_display_name(user_data),
        photo_url=user_data.get("photoURL"),
        joined_at=datetime.datetime.now(datetime.timezone.utc),
    )


def build_guest_entries(sponsor_uid: str, names: Sequence[str]) -> list[GuestEntry]:
    """Create guest entries with fresh ids; done before entering a transaction."""
    return [GuestEntry.create(sponsor_uid, name.strip()) for name in names]


class RosterService:
    """Service class for roster operations on one match document."""

    @staticmethod
    def _match_ref(db: Client, match_id: str) -> DocumentReference:
        return db.collection(ACTIVE_MATCHES_COLLECTION).document(match_id)

    @staticmethod
    def read_active_match(
        transaction: Transaction, match_ref: DocumentReference
    ) -> Match:
        snapshot = cast("DocumentSnapshot", match_ref.get(transaction=transaction))
        if not snapshot.exists:
            raise MatchNotFoundError()
        match = Match.from_snapshot(snapshot)
        if match.status != MATCH_STATUS_ACTIVE:
            raise MatchNotFoundError("This match is no longer open.")
        return match

    @staticmethod
    def _write_roster(
        transaction: Transaction, match_ref: DocumentReference, match: Match
    ) -> None:
        updates = match.roster_fields()
        updates["version"] = match.version + 1
        updates["lastUpdated"] = firestore.SERVER_TIMESTAMP
        transaction.update(match_ref, updates)

    @staticmethod
    def _signup_transaction(  # noqa: PLR0913
        transaction: Transaction,
        match_ref: DocumentReference,
        entry: UserEntry,
        as_reserve: bool,
        guests: list[GuestEntry],
        max_guests: Optional[int],
        capacity: int,
    ) -> SignupResult:
        """Read the match, apply the signup rules and write the rosters back."""
        match = RosterService.read_active_match(transaction, match_ref)
        result = roster.signup(
            match,
            entry,
            as_reserve=as_reserve,
            guests=guests,
            max_guests=max_guests,
            capacity=capacity,
        )
        RosterService._write_roster(transaction, match_ref, match)
        return result

    @staticmethod
    def _unsubscribe_transaction(
        transaction: Transaction,
        match_ref: DocumentReference,
        uid: str,
        capacity: int,
    ) -> RemovalResult:
        match = RosterService.read_active_match(transaction, match_ref)
        result = roster.unsubscribe(match, uid, capacity=capacity)
        RosterService._write_roster(transaction, match_ref, match)
        return result

    @staticmethod
    def _remove_entry_transaction(
        transaction: Transaction,
        match_ref: DocumentReference,
        entry_id: str,
        from_reserves: bool,
        capacity: int,
    ) -> RemovalResult:
        match = RosterService.read_active_match(transaction, match_ref)
        result = roster.remove_entry(
            match, entry_id, from_reserves=from_reserves, capacity=capacity
        )
        RosterService._write_roster(transaction, match_ref, match)
        return result

    @staticmethod
    def _promote_transaction(
        transaction: Transaction,
        match_ref: DocumentReference,
        entry_id: str,
        capacity: int,
    ) -> UserEntry:
        match = RosterService.read_active_match(transaction, match_ref)
        promoted = roster.promote_reserve(match, entry_id, capacity=capacity)
        RosterService._write_roster(transaction, match_ref, match)
        return promoted

    @staticmethod
    def _remove_guest_transaction(
        transaction: Transaction,
        match_ref: DocumentReference,
        guest_id: str,
        sponsor_uid: Optional[str],
    ) -> GuestEntry:
        match = RosterService.read_active_match(transaction, match_ref)
        guest = roster.remove_guest(match, guest_id, sponsor_uid=sponsor_uid)
        RosterService._write_roster(transaction, match_ref, match)
        return guest

    @staticmethod
    def signup(  # noqa: PLR0913
        db: Client,
        match_id: str,
        entry: UserEntry,
        as_reserve: bool = False,
        guest_names: Sequence[str] = (),
        max_guests: Optional[int] = MAX_GUESTS_PER_USER,
        capacity: int = MAX_PARTICIPANTS,
    ) -> SignupResult:
        """Sign a user up as participant or reserve, with optional guests."""
        guests = build_guest_entries(entry.uid, guest_names)
        return run_in_transaction(
            db,
            RosterService._signup_transaction,
            RosterService._match_ref(db, match_id),
            entry,
            as_reserve,
            guests,
            max_guests,
            capacity,
        )

    @staticmethod
    def unsubscribe(
        db: Client, match_id: str, uid: str, capacity: int = MAX_PARTICIPANTS
    ) -> RemovalResult:
        """Take a user off the roster, promoting the first reserve if needed."""
        return run_in_transaction(
            db,
            RosterService._unsubscribe_transaction,
            RosterService._match_ref(db, match_id),
            uid,
            capacity,
        )

    @staticmethod
    def admin_remove(
        db: Client,
        match_id: str,
        entry_id: str,
        from_reserves: bool,
        capacity: int = MAX_PARTICIPANTS,
    ) -> RemovalResult:
        """Remove any entry; the caller is responsible for the admin check."""
        return run_in_transaction(
            db,
            RosterService._remove_entry_transaction,
            RosterService._match_ref(db, match_id),
            entry_id,
            from_reserves,
            capacity,
        )

    @staticmethod
    def promote_reserve(
        db: Client, match_id: str, entry_id: str, capacity: int = MAX_PARTICIPANTS
    ) -> UserEntry:
        """Move a named reserve into the participants."""
        return run_in_transaction(
            db,
            RosterService._promote_transaction,
            RosterService._match_ref(db, match_id),
            entry_id,
            capacity,
        )

    @staticmethod
    def remove_guest(
        db: Client, match_id: str, guest_id: str, sponsor_uid: Optional[str] = None
    ) -> GuestEntry:
        """Remove a guest; pass ``sponsor_uid`` to restrict it to its sponsor."""
        return run_in_transaction(
            db,
            RosterService._remove_guest_transaction,
            RosterService._match_ref(db, match_id),
            guest_id,
            sponsor_uid,
        )

    @staticmethod
    def get_match(db: Client, match_id: str) -> Match:
        """Fetch the current committed state of an active match."""
        snapshot = cast(
            "DocumentSnapshot", RosterService._match_ref(db, match_id).get()
        )
        if not snapshot.exists:
            raise MatchNotFoundError()
        return Match.from_snapshot(snapshot)

    @staticmethod
    def watch_match(
        db: Client, match_id: str, callback: Callable[[Optional[Match]], None]
    ) -> Any:
        """Deliver the full match to ``callback`` on every committed write.

        ``callback`` receives ``None`` once the match has been closed or
        deleted. Returns the watch handle; call ``unsubscribe()`` on it to stop.
        """

        def on_snapshot(snapshots: list[Any], changes: Any, read_time: Any) -> None:
            for snapshot in snapshots:
                if snapshot.exists:
                    callback(Match.from_snapshot(snapshot))
                else:
                    callback(None)

        return RosterService._match_ref(db, match_id).on_snapshot(on_snapshot)
