from firebase_admin import auth, firestore
from flask import current_app, jsonify, request, session
from flask_wtf.csrf import generate_csrf

from volleyroster.user.services import UserService

from . import bp


@bp.route("/session_login", methods=["POST"])
def session_login():
    """
    Called by the client after a successful Firebase sign-in.
    It verifies the ID token, creates or refreshes the profile and opens a
    server-side session.
    """
    id_token = (request.get_json(silent=True) or {}).get("idToken")
    if not id_token:
        return (
            jsonify(
                {
                    "status": "error",
                    "code": "validation_error",
                    "message": "Missing idToken.",
                }
            ),
            400,
        )
    try:
        decoded_token = auth.verify_id_token(id_token)
    except Exception as e:
        current_app.logger.error(f"Error during session login: {e}")
        return (
            jsonify(
                {
                    "status": "error",
                    "code": "invalid_token",
                    "message": "Invalid token or server error.",
                }
            ),
            401,
        )

    db = firestore.client()
    profile = UserService.upsert_login(
        db, decoded_token, current_app.config.get("SUPER_ADMIN_EMAIL")
    )
    session.clear()
    session["user_id"] = profile["uid"]
    current_app.logger.info(f"User {profile['uid']} logged in.")
    # Clearing the session dropped the old token, so hand out a fresh one.
    return jsonify(
        {
            "status": "success",
            "data": {
                "uid": profile["uid"],
                "role": profile.get("role"),
                "csrfToken": generate_csrf(),
            },
        }
    )


@bp.route("/logout", methods=["POST"])
def logout():
    """
    The Firebase sign-out itself happens on the client.
    This clears the server-side session.
    """
    session.clear()
    return jsonify({"status": "success", "message": "You have been logged out."})


@bp.route("/csrf_token", methods=["GET"])
def csrf_token():
    """Every write request must echo this token back in the X-CSRFToken header."""
    return jsonify({"status": "success", "data": {"csrfToken": generate_csrf()}})
