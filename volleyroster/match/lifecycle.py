"""Creating, closing and reopening matches."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists

from volleyroster.core.constants import (
    ACTIVE_MATCHES_COLLECTION,
    DEFAULT_MATCH_TIME,
    DEFAULT_MATCH_WEEKDAY,
    MATCH_STATUS_ACTIVE,
    SESSIONS_COLLECTION,
)
from volleyroster.core.transactions import run_in_transaction
from volleyroster.errors import (
    DuplicateScheduleError,
    SessionNotFoundError,
    ValidationError,
)

from .models import CloseResult, Match, Session
from .services import RosterService

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction


def normalize_match_date(value: datetime.datetime) -> datetime.datetime:
    """Store schedule times as UTC, to the minute."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc).replace(second=0, microsecond=0)


def next_default_match_date(
    now: Optional[datetime.datetime] = None,
    weekday: int = DEFAULT_MATCH_WEEKDAY,
    time_of_day: str = DEFAULT_MATCH_TIME,
) -> datetime.datetime:
    """Return the next ``weekday`` (Monday is 0) at ``time_of_day``, never today."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    try:
        hour, minute = (int(part) for part in time_of_day.split(":"))
    except ValueError as e:
        raise ValidationError(f"Invalid default match time: {time_of_day}") from e

    days_ahead = (weekday - now.weekday()) % 7 or 7
    target = now + datetime.timedelta(days=days_ahead)
    return normalize_match_date(
        target.replace(hour=hour, minute=minute, second=0, microsecond=0)
    )


def match_id_for(date: datetime.datetime) -> str:
    """Key active matches by their UTC slot, so one slot holds one match."""
    return normalize_match_date(date).strftime("%Y%m%dT%H%MZ")


class MatchLifecycleService:
    """Moves matches between the active collection and the session history."""

    @staticmethod
    def _claim_slot(
        transaction: Transaction, match_ref: DocumentReference, payload: dict[str, Any]
    ) -> None:
        current = cast("DocumentSnapshot", match_ref.get(transaction=transaction))
        if current.exists and current.to_dict():
            raise DuplicateScheduleError()
        payload["createdAt"] = firestore.SERVER_TIMESTAMP
        payload["lastUpdated"] = firestore.SERVER_TIMESTAMP
        transaction.create(match_ref, payload)

    @staticmethod
    def create_match(
        db: Client, date: datetime.datetime, created_by: str
    ) -> Match:
        """Schedule a new match with empty rosters."""
        date = normalize_match_date(date)
        match_ref = db.collection(ACTIVE_MATCHES_COLLECTION).document(
            match_id_for(date)
        )
        match = Match(id=match_ref.id, date=date, created_by=created_by)
        try:
            run_in_transaction(
                db, MatchLifecycleService._claim_slot, match_ref, dict(match.to_dict())
            )
        except AlreadyExists as e:
            raise DuplicateScheduleError() from e
        return match

    @staticmethod
    def list_active_matches(db: Client) -> list[Match]:
        """Fetch every open match, soonest first."""
        matches = [
            Match.from_snapshot(doc)
            for doc in db.collection(ACTIVE_MATCHES_COLLECTION).stream()
            if doc.exists and doc.to_dict()
        ]
        matches.sort(key=lambda m: m.date)
        return matches

    @staticmethod
    def _close_transaction(
        transaction: Transaction,
        match_ref: DocumentReference,
        session_ref: DocumentReference,
        closed_at: datetime.datetime,
    ) -> tuple[CloseResult, Optional[Session]]:
        match = RosterService.read_active_match(transaction, match_ref)
        if not match.participants:
            transaction.delete(match_ref)
            return CloseResult(empty=True), None

        session = Session.from_match(session_ref.id, match, closed_at)
        transaction.set(session_ref, session.to_dict())
        transaction.delete(match_ref)
        return CloseResult(empty=False, session_id=session.id), session

    @staticmethod
    def close_match(db: Client, match_id: str) -> CloseResult:
        """Archive a match into the session history and credit attendance.

        A match nobody joined is simply deleted. The stat increments run after
        the archive commits and are best-effort per user.
        """
        from volleyroster.stats.services import (  # noqa: PLC0415
            StatsService,
            session_deltas,
        )

        match_ref = db.collection(ACTIVE_MATCHES_COLLECTION).document(match_id)
        session_ref = db.collection(SESSIONS_COLLECTION).document()
        closed_at = datetime.datetime.now(datetime.timezone.utc)
        result, session = run_in_transaction(
            db,
            MatchLifecycleService._close_transaction,
            match_ref,
            session_ref,
            closed_at,
        )
        if session is not None:
            StatsService.apply_deltas_best_effort(db, session_deltas(session))
        return result

    @staticmethod
    def _reopen_transaction(
        transaction: Transaction, db: Client, session_id: str
    ) -> Match:
        from volleyroster.stats.services import (  # noqa: PLC0415
            StatsService,
            session_deltas,
        )

        session_ref, session = StatsService.read_session_in_transaction(
            transaction, db, session_id
        )
        deltas = {} if session.ignored_from_stats else session_deltas(session, sign=-1)
        users = StatsService.read_users_in_transaction(transaction, db, deltas)

        # Versions keep counting from the closed match so pollers see a change.
        match = Match(
            id=session.match_id,
            date=session.date,
            participants=list(session.participants),
            reserves=list(session.reserves),
            status=MATCH_STATUS_ACTIVE,
            created_by=session.created_by,
            version=session.version + 1,
        )
        match_ref = db.collection(ACTIVE_MATCHES_COLLECTION).document(match.id)
        MatchLifecycleService._claim_slot(
            transaction, match_ref, dict(match.to_dict())
        )
        StatsService.write_deltas_in_transaction(transaction, users, deltas)
        transaction.delete(session_ref)
        return match

    @staticmethod
    def reopen_match(db: Client, session_id: str) -> Match:
        """Turn a session back into an active match and take back its stats."""
        try:
            return run_in_transaction(
                db, MatchLifecycleService._reopen_transaction, db, session_id
            )
        except AlreadyExists as e:
            raise DuplicateScheduleError() from e

    @staticmethod
    def get_session(db: Client, session_id: str) -> Session:
        snapshot = cast(
            "DocumentSnapshot",
            db.collection(SESSIONS_COLLECTION).document(session_id).get(),
        )
        if not snapshot.exists:
            raise SessionNotFoundError()
        return Session.from_snapshot(snapshot)

    @staticmethod
    def list_sessions(db: Client, uid: Optional[str] = None) -> list[Session]:
        """Fetch the session history, newest first; optionally only ``uid``'s."""
        collection = db.collection(SESSIONS_COLLECTION)
        if uid is None:
            docs: list[Any] = list(collection.stream())
        else:
            docs = []
            for field in ("participantUids", "reserveUids"):
                docs.extend(
                    collection.where(
                        filter=firestore.FieldFilter(field, "array_contains", uid)
                    ).stream()
                )

        sessions: dict[str, Session] = {}
        for doc in docs:
            if doc.exists and doc.to_dict() and doc.id not in sessions:
                sessions[doc.id] = Session.from_snapshot(doc)
        return sorted(sessions.values(), key=lambda s: s.date, reverse=True)
