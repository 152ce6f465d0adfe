"""Service layer for per-user attendance statistics."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Iterable, cast

from volleyroster.core.constants import (
    ATTENDANCE_STAT_FIELDS,
    FIRESTORE_BATCH_LIMIT,
    LEADERBOARD_LIMIT,
    SESSIONS_COLLECTION,
    STAT_FIELDS,
    USERS_COLLECTION,
)
from volleyroster.core.transactions import run_in_transaction
from volleyroster.errors import SessionNotFoundError
from volleyroster.match.models import Session
from volleyroster.user.helpers import smart_display_name
from volleyroster.user.models import empty_stats

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

StatDeltas = dict[str, dict[str, int]]


def session_deltas(session: Session, sign: int = 1) -> StatDeltas:
    """Return the counter changes a session contributes, keyed by uid.

    Participants count as a played session, reserves as a reserve
    appearance, and every guest is credited to its sponsor.
    """
    deltas: StatDeltas = defaultdict(lambda: defaultdict(int))
    for uid in session.participant_uids:
        deltas[uid]["totalSessions"] += sign
        deltas[uid]["asParticipant"] += sign
    for uid in session.reserve_uids:
        deltas[uid]["asReserve"] += sign
    for sponsor_uid in session.guest_sponsor_uids:
        deltas[sponsor_uid]["friendsBrought"] += sign
    return {uid: dict(fields) for uid, fields in deltas.items()}


def merge_deltas(all_deltas: Iterable[StatDeltas]) -> StatDeltas:
    merged: StatDeltas = defaultdict(lambda: defaultdict(int))
    for deltas in all_deltas:
        for uid, fields in deltas.items():
            for name, value in fields.items():
                merged[uid][name] += value
    return {uid: dict(fields) for uid, fields in merged.items()}


def _stat(data: dict[str, Any] | None, key: str) -> int:
    if not data:
        return 0
    return int((data.get("stats") or {}).get(key) or 0)


def _delta_updates(user_data: dict[str, Any], delta: dict[str, int]) -> dict[str, int]:
    """Turn a delta into absolute dotted-path updates, never below zero."""
    return {
        f"stats.{name}": max(0, _stat(user_data, name) + value)
        for name, value in delta.items()
        if value
    }


class StatsService:
    """Keeps user counters in step with the archived sessions."""

    @staticmethod
    def _user_ref(db: Client, uid: str) -> DocumentReference:
        return db.collection(USERS_COLLECTION).document(uid)

    @staticmethod
    def read_users_in_transaction(
        transaction: Transaction, db: Client, uids: Iterable[str]
    ) -> dict[str, tuple[DocumentReference, dict[str, Any]]]:
        """Read the profiles a delta touches; missing profiles are skipped."""
        users = {}
        for uid in uids:
            ref = StatsService._user_ref(db, uid)
            snapshot = cast("DocumentSnapshot", ref.get(transaction=transaction))
            if snapshot.exists:
                users[uid] = (ref, snapshot.to_dict() or {})
            else:
                logging.warning(f"Skipping stats for missing user profile {uid}.")
        return users

    @staticmethod
    def write_deltas_in_transaction(
        transaction: Transaction,
        users: dict[str, tuple[DocumentReference, dict[str, Any]]],
        deltas: StatDeltas,
    ) -> None:
        """Queue the counter updates; call only after all transaction reads."""
        for uid, delta in deltas.items():
            if uid not in users:
                continue
            ref, data = users[uid]
            updates = _delta_updates(data, delta)
            if updates:
                transaction.update(ref, updates)

    @staticmethod
    def _apply_user_delta_transaction(
        transaction: Transaction, db: Client, uid: str, delta: dict[str, int]
    ) -> bool:
        users = StatsService.read_users_in_transaction(transaction, db, [uid])
        StatsService.write_deltas_in_transaction(transaction, users, {uid: delta})
        return uid in users

    @staticmethod
    def apply_deltas_best_effort(db: Client, deltas: StatDeltas) -> int:
        """Apply each user's delta independently; failures are logged, not raised.

        Returns the number of profiles updated. Anything missed here is
        repaired by ``recalculate_all``.
        """
        applied = 0
        for uid, delta in deltas.items():
            try:
                if run_in_transaction(
                    db, StatsService._apply_user_delta_transaction, db, uid, delta
                ):
                    applied += 1
            except Exception as e:
                logging.error(f"Failed to update stats for user {uid}: {e}")
        return applied

    @staticmethod
    def read_session_in_transaction(
        transaction: Transaction, db: Client, session_id: str
    ) -> tuple[DocumentReference, Session]:
        ref = db.collection(SESSIONS_COLLECTION).document(session_id)
        snapshot = cast("DocumentSnapshot", ref.get(transaction=transaction))
        if not snapshot.exists:
            raise SessionNotFoundError()
        return ref, Session.from_snapshot(snapshot)

    @staticmethod
    def _ignore_session_transaction(
        transaction: Transaction, db: Client, session_id: str, ignored: bool
    ) -> bool:
        session_ref, session = StatsService.read_session_in_transaction(
            transaction, db, session_id
        )
        if session.ignored_from_stats == ignored:
            return False

        deltas = session_deltas(session, sign=-1 if ignored else 1)
        users = StatsService.read_users_in_transaction(transaction, db, deltas)
        StatsService.write_deltas_in_transaction(transaction, users, deltas)
        transaction.update(session_ref, {"ignoredFromStats": ignored})
        return True

    @staticmethod
    def ignore_session(db: Client, session_id: str, ignored: bool) -> bool:
        """Exclude a session from (or restore it to) everyone's counters.

        Returns False when the flag already had the requested value.
        """
        return run_in_transaction(
            db, StatsService._ignore_session_transaction, db, session_id, ignored
        )

    @staticmethod
    def _delete_session_transaction(
        transaction: Transaction, db: Client, session_id: str
    ) -> Session:
        session_ref, session = StatsService.read_session_in_transaction(
            transaction, db, session_id
        )
        if not session.ignored_from_stats:
            deltas = session_deltas(session, sign=-1)
            users = StatsService.read_users_in_transaction(transaction, db, deltas)
            StatsService.write_deltas_in_transaction(transaction, users, deltas)
        transaction.delete(session_ref)
        return session

    @staticmethod
    def delete_session(db: Client, session_id: str) -> Session:
        """Reverse a session's contribution and delete it permanently."""
        return run_in_transaction(
            db, StatsService._delete_session_transaction, db, session_id
        )

    @staticmethod
    def recalculate_all(db: Client) -> dict[str, int]:
        """Rebuild every user's attendance counters from the session history.

        Result counters (sets, points) have no source in the session history
        and are left as they are.
        """
        sessions = []
        for doc in db.collection(SESSIONS_COLLECTION).stream():
            if not doc.exists or not doc.to_dict():
                continue
            session = Session.from_snapshot(doc)
            if not session.ignored_from_stats:
                sessions.append(session)

        totals = merge_deltas(session_deltas(s) for s in sessions)

        batch = db.batch()
        pending = 0
        users = 0
        for user_doc in db.collection(USERS_COLLECTION).stream():
            if not user_doc.exists or not user_doc.to_dict():
                continue
            counters = totals.get(user_doc.id, {})
            batch.update(
                user_doc.reference,
                {
                    f"stats.{name}": counters.get(name, 0)
                    for name in ATTENDANCE_STAT_FIELDS
                },
            )
            users += 1
            pending += 1
            if pending >= FIRESTORE_BATCH_LIMIT:
                batch.commit()
                batch = db.batch()
                pending = 0
        if pending:
            batch.commit()

        logging.info(
            f"Recalculated stats for {users} users from {len(sessions)} sessions."
        )
        return {"users": users, "sessions": len(sessions)}

    @staticmethod
    def reset_user_stats(db: Client, uid: str) -> None:
        """Zero every counter of one user."""
        StatsService._user_ref(db, uid).update({"stats": empty_stats()})

    @staticmethod
    def get_user_stats(db: Client, uid: str) -> dict[str, int] | None:
        snapshot = cast("DocumentSnapshot", StatsService._user_ref(db, uid).get())
        if not snapshot.exists:
            return None
        data = snapshot.to_dict() or {}
        return {name: _stat(data, name) for name in STAT_FIELDS}

    @staticmethod
    def leaderboard(db: Client, limit: int = LEADERBOARD_LIMIT) -> list[dict[str, Any]]:
        """Rank users by sessions played, then by participant appearances."""
        rows = []
        for doc in db.collection(USERS_COLLECTION).stream():
            data = doc.to_dict()
            if not doc.exists or not data:
                continue
            rows.append(
                {
                    "uid": doc.id,
                    "displayName": smart_display_name(data),
                    "photoURL": data.get("photoURL"),
                    **{name: _stat(data, name) for name in ATTENDANCE_STAT_FIELDS},
                }
            )
        rows.sort(key=lambda r: (-r["totalSessions"], -r["asParticipant"], r["uid"]))
        return rows[:limit]

