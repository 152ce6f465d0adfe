from firebase_admin import firestore
from flask import current_app, g, jsonify, request
from google.api_core.exceptions import GoogleAPICallError

from volleyroster.auth.decorators import login_required
from volleyroster.errors import NotFoundError, ValidationError
from volleyroster.user.services import UserService
from volleyroster.utils import EmailError, first_form_error, send_email

from . import bp
from .forms import CreateMatchForm, RemoveEntryForm, SignupForm
from .lifecycle import MatchLifecycleService, next_default_match_date
from .models import entry_to_json
from .services import RosterService, build_user_entry


def _capacity():
    return current_app.config["MAX_PARTICIPANTS"]


def _match_response(db, match_id, message=None, **extra):
    """Return the committed match so clients can render it straight away."""
    match = RosterService.get_match(db, match_id)
    body = {"status": "success", "data": match.to_json(_capacity())}
    if message:
        body["message"] = message
    body["data"].update(extra)
    return jsonify(body)


def _notify_promoted(db, match_id, promoted):
    """Email a reserve who was moved up. Failures are logged and ignored."""
    if promoted is None or not current_app.config.get("NOTIFY_PROMOTIONS"):
        return
    try:
        user = UserService.get_user_by_id(db, promoted.uid)
        if not user or not user.get("email"):
            return
        match = RosterService.get_match(db, match_id)
        send_email(
            to=user["email"],
            subject="You're in! A spot opened up",
            template="email/reserve_promoted.html",
            user=user,
            match_date=match.date,
        )
    except (EmailError, NotFoundError, GoogleAPICallError) as e:
        current_app.logger.warning(
            f"Could not notify promoted reserve {promoted.uid}: {e}"
        )


@bp.route("/", methods=["GET"])
@login_required
def list_matches():
    """List every open match, soonest first."""
    db = firestore.client()
    matches = MatchLifecycleService.list_active_matches(db)
    return jsonify(
        {"status": "success", "data": [m.to_json(_capacity()) for m in matches]}
    )


@bp.route("/", methods=["POST"])
@login_required(admin_required=True)
def create_match():
    """Schedule a new match; without a date the next default slot is used."""
    form = CreateMatchForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    date = form.date.data or next_default_match_date(
        weekday=current_app.config["DEFAULT_MATCH_WEEKDAY"],
        time_of_day=current_app.config["DEFAULT_MATCH_TIME"],
    )
    db = firestore.client()
    match = MatchLifecycleService.create_match(db, date, g.user["uid"])
    current_app.logger.info(f"Match {match.id} scheduled for {match.date}.")
    return (
        jsonify(
            {
                "status": "success",
                "message": "Match created.",
                "data": match.to_json(_capacity()),
            }
        ),
        201,
    )


@bp.route("/<string:match_id>", methods=["GET"])
@login_required
def view_match(match_id):
    """Return the match. With ``?since=<version>`` answer 304 if nothing changed."""
    db = firestore.client()
    match = RosterService.get_match(db, match_id)
    since = request.args.get("since", type=int)
    if since is not None and since == match.version:
        return "", 304
    return jsonify({"status": "success", "data": match.to_json(_capacity())})


@bp.route("/<string:match_id>/signup", methods=["POST"])
@login_required
def signup(match_id):
    """Sign the current user up, as participant or reserve, with optional guests."""
    form = SignupForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    max_guests = (
        None if g.user.is_admin else current_app.config["MAX_GUESTS_PER_USER"]
    )
    db = firestore.client()
    result = RosterService.signup(
        db,
        match_id,
        build_user_entry(g.user["uid"], g.user),
        as_reserve=form.asReserve.data,
        guest_names=form.guests.data or [],
        max_guests=max_guests,
        capacity=_capacity(),
    )
    current_app.logger.info(
        f"User {g.user['uid']} signed up for match {match_id} "
        f"({result.placement}, {len(result.guests)} guests)."
    )

    message = "You are signed up."
    if result.redirected:
        message = "The match is full, so you were added to the reserves."
    return _match_response(
        db,
        match_id,
        message,
        placement=result.placement,
        redirected=result.redirected,
        addedGuests=[entry_to_json(guest) for guest in result.guests],
    )


@bp.route("/<string:match_id>/unsubscribe", methods=["POST"])
@login_required
def unsubscribe(match_id):
    """Take the current user off the roster."""
    db = firestore.client()
    result = RosterService.unsubscribe(
        db, match_id, g.user["uid"], capacity=_capacity()
    )
    current_app.logger.info(f"User {g.user['uid']} left match {match_id}.")
    _notify_promoted(db, match_id, result.promoted)
    return _match_response(
        db,
        match_id,
        "You have been removed from the match.",
        promoted=entry_to_json(result.promoted) if result.promoted else None,
    )


@bp.route("/<string:match_id>/guests/<string:guest_id>", methods=["DELETE"])
@login_required
def remove_guest(match_id, guest_id):
    """Remove a guest; regular users may only remove their own guests."""
    db = firestore.client()
    sponsor_uid = None if g.user.is_admin else g.user["uid"]
    RosterService.remove_guest(db, match_id, guest_id, sponsor_uid=sponsor_uid)
    return _match_response(db, match_id, "Guest removed.")


@bp.route("/<string:match_id>/entries/<string:entry_id>/remove", methods=["POST"])
@login_required(admin_required=True)
def remove_entry(match_id, entry_id):
    """Remove any entry from the participants or the reserves."""
    form = RemoveEntryForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    db = firestore.client()
    result = RosterService.admin_remove(
        db,
        match_id,
        entry_id,
        from_reserves=form.fromReserves.data,
        capacity=_capacity(),
    )
    current_app.logger.info(
        f"Admin {g.user['uid']} removed {entry_id} from match {match_id}."
    )
    _notify_promoted(db, match_id, result.promoted)
    return _match_response(
        db,
        match_id,
        "Entry removed.",
        promoted=entry_to_json(result.promoted) if result.promoted else None,
    )


@bp.route("/<string:match_id>/reserves/<string:entry_id>/promote", methods=["POST"])
@login_required(admin_required=True)
def promote_reserve(match_id, entry_id):
    """Move a named reserve into the participants."""
    db = firestore.client()
    promoted = RosterService.promote_reserve(
        db, match_id, entry_id, capacity=_capacity()
    )
    _notify_promoted(db, match_id, promoted)
    return _match_response(
        db, match_id, "Reserve promoted.", promoted=entry_to_json(promoted)
    )


@bp.route("/<string:match_id>/close", methods=["POST"])
@login_required(admin_required=True)
def close_match(match_id):
    """Archive the match into the session history."""
    db = firestore.client()
    result = MatchLifecycleService.close_match(db, match_id)
    if result.empty:
        current_app.logger.info(f"Empty match {match_id} deleted on close.")
        message = "Nobody signed up, so the match was deleted."
    else:
        current_app.logger.info(
            f"Match {match_id} closed into session {result.session_id}."
        )
        message = "Match closed."
    return jsonify(
        {
            "status": "success",
            "message": message,
            "data": {"empty": result.empty, "sessionId": result.session_id},
        }
    )
