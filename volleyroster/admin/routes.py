"""Admin routes for the application."""

from firebase_admin import firestore
from flask import current_app, g, jsonify

from volleyroster.auth.decorators import login_required
from volleyroster.core.constants import STAT_FIELDS
from volleyroster.errors import NotFoundError, ValidationError
from volleyroster.stats.services import StatsService
from volleyroster.user.helpers import smart_display_name
from volleyroster.user.services import UserService
from volleyroster.utils import first_form_error

from . import bp
from .forms import RoleForm


def _user_row(user):
    stats = user.get("stats") or {}
    return {
        "uid": user["uid"],
        "email": user.get("email"),
        "displayName": smart_display_name(user),
        "photoURL": user.get("photoURL"),
        "role": user.get("role"),
        "stats": {name: int(stats.get(name) or 0) for name in STAT_FIELDS},
    }


@bp.route("/users", methods=["GET"])
@login_required(admin_required=True)
def list_users():
    """List every profile with its role and counters."""
    db = firestore.client()
    users = UserService.list_users(db)
    return jsonify({"status": "success", "data": [_user_row(u) for u in users]})


@bp.route("/users/<string:uid>/role", methods=["POST"])
@login_required(super_admin_required=True)
def set_role(uid):
    """Promote or demote a user."""
    form = RoleForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    db = firestore.client()
    role = UserService.set_role(
        db, uid, form.role.data, current_app.config.get("SUPER_ADMIN_EMAIL")
    )
    current_app.logger.info(f"Super-admin {g.user['uid']} set {uid} to {role.value}.")
    return jsonify(
        {
            "status": "success",
            "message": "Role updated.",
            "data": {"uid": uid, "role": role.value},
        }
    )


@bp.route("/users/<string:uid>/reset_stats", methods=["POST"])
@login_required(admin_required=True)
def reset_stats(uid):
    """Zero every counter of one user."""
    db = firestore.client()
    if UserService.get_user_by_id(db, uid) is None:
        raise NotFoundError("User not found.")
    StatsService.reset_user_stats(db, uid)
    current_app.logger.info(f"Admin {g.user['uid']} reset the stats of {uid}.")
    return jsonify({"status": "success", "message": "Stats reset."})
