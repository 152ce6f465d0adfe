"""Routes for the stats blueprint."""

from __future__ import annotations

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from volleyroster.auth.decorators import login_required
from volleyroster.core.constants import LEADERBOARD_LIMIT
from volleyroster.errors import NotFoundError

from . import bp
from .services import StatsService


@bp.route("/users/<string:uid>", methods=["GET"])
@login_required
def user_stats(uid: str):
    """Return one user's counters."""
    db = firestore.client()
    stats = StatsService.get_user_stats(db, uid)
    if stats is None:
        raise NotFoundError("User not found.")
    return jsonify({"status": "success", "data": {"uid": uid, "stats": stats}})


@bp.route("/leaderboard", methods=["GET"])
@login_required
def leaderboard():
    """Return the attendance ranking."""
    limit = request.args.get("limit", default=LEADERBOARD_LIMIT, type=int)
    limit = max(1, min(limit, 100))
    db = firestore.client()
    return jsonify({"status": "success", "data": StatsService.leaderboard(db, limit)})


@bp.route("/recalculate", methods=["POST"])
@login_required(super_admin_required=True)
def recalculate():
    """Rebuild attendance counters from the session history."""
    db = firestore.client()
    summary = StatsService.recalculate_all(db)
    current_app.logger.info(
        f"Super-admin {g.user['uid']} recalculated stats: {summary}"
    )
    return jsonify(
        {"status": "success", "message": "Stats recalculated.", "data": summary}
    )
