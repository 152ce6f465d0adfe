from firebase_admin import firestore
from flask import current_app, g, jsonify

from volleyroster.auth.decorators import login_required
from volleyroster.core.constants import STAT_FIELDS
from volleyroster.errors import NotFoundError, ValidationError
from volleyroster.utils import first_form_error

from . import bp
from .forms import DisplayNameForm
from .helpers import smart_display_name
from .services import UserService


def _profile_json(user):
    stats = user.get("stats") or {}
    return {
        "uid": user["uid"],
        "email": user.get("email"),
        "displayName": user.get("displayName"),
        "customDisplayName": user.get("customDisplayName"),
        "effectiveName": smart_display_name(user),
        "photoURL": user.get("photoURL"),
        "role": user.get("role"),
        "stats": {name: int(stats.get(name) or 0) for name in STAT_FIELDS},
    }


@bp.route("/me")
@login_required
def me():
    """Return the logged-in user's profile and stats."""
    return jsonify({"status": "success", "data": _profile_json(g.user)})


@bp.route("/display_name", methods=["POST"])
@login_required
def update_display_name():
    """Set the name shown on future roster entries; an empty value clears it."""
    form = DisplayNameForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    db = firestore.client()
    UserService.set_custom_display_name(
        db, g.user["uid"], form.customDisplayName.data
    )
    user = UserService.get_user_by_id(db, g.user["uid"])
    if user is None:
        raise NotFoundError("User not found.")
    current_app.logger.info(f"User {g.user['uid']} changed their display name.")
    return jsonify(
        {
            "status": "success",
            "message": "Display name updated.",
            "data": _profile_json(user),
        }
    )
