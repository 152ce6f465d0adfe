from firebase_admin import firestore
from flask import current_app, g, jsonify

from volleyroster.auth.decorators import login_required
from volleyroster.errors import ValidationError
from volleyroster.match.lifecycle import MatchLifecycleService
from volleyroster.stats.services import StatsService
from volleyroster.utils import first_form_error

from . import bp
from .forms import IgnoreSessionForm


@bp.route("/", methods=["GET"])
@login_required
def list_sessions():
    """List every archived session, newest first."""
    db = firestore.client()
    sessions = MatchLifecycleService.list_sessions(db)
    return jsonify({"status": "success", "data": [s.to_json() for s in sessions]})


@bp.route("/mine", methods=["GET"])
@login_required
def my_sessions():
    """List the sessions the current user played in or was a reserve for."""
    db = firestore.client()
    sessions = MatchLifecycleService.list_sessions(db, uid=g.user["uid"])
    return jsonify({"status": "success", "data": [s.to_json() for s in sessions]})


@bp.route("/<string:session_id>", methods=["GET"])
@login_required
def view_session(session_id):
    db = firestore.client()
    session = MatchLifecycleService.get_session(db, session_id)
    return jsonify({"status": "success", "data": session.to_json()})


@bp.route("/<string:session_id>/reopen", methods=["POST"])
@login_required(admin_required=True)
def reopen_session(session_id):
    """Turn a session back into an active match."""
    db = firestore.client()
    match = MatchLifecycleService.reopen_match(db, session_id)
    current_app.logger.info(
        f"Admin {g.user['uid']} reopened session {session_id} as match {match.id}."
    )
    return jsonify(
        {
            "status": "success",
            "message": "Session reopened.",
            "data": match.to_json(current_app.config["MAX_PARTICIPANTS"]),
        }
    )


@bp.route("/<string:session_id>/ignore", methods=["POST"])
@login_required(admin_required=True)
def ignore_session(session_id):
    """Exclude the session from everyone's stats, or include it again."""
    form = IgnoreSessionForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    db = firestore.client()
    changed = StatsService.ignore_session(db, session_id, form.ignored.data)
    if changed:
        current_app.logger.info(
            f"Session {session_id} ignoredFromStats set to {form.ignored.data}."
        )
    session = MatchLifecycleService.get_session(db, session_id)
    return jsonify(
        {"status": "success", "data": {**session.to_json(), "changed": changed}}
    )


@bp.route("/<string:session_id>", methods=["DELETE"])
@login_required(admin_required=True)
def delete_session(session_id):
    """Delete a session for good, taking back its stats."""
    db = firestore.client()
    StatsService.delete_session(db, session_id)
    current_app.logger.info(f"Admin {g.user['uid']} deleted session {session_id}.")
    return jsonify({"status": "success", "message": "Session deleted."})
