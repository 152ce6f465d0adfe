from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError

from .errors import AppError, NotFoundError, RosterError, ValidationError

error_handlers_bp = Blueprint("error_handlers", __name__)


def error_response(code, message, status_code):
    """Build the JSON body every error shares."""
    return (
        jsonify({"status": "error", "code": code, "message": message}),
        status_code,
    )


@error_handlers_bp.app_errorhandler(RosterError)
def handle_roster_error(error):
    """Handles expected roster conditions such as a full list or a double signup."""
    current_app.logger.info(f"Roster: {error.code}: {error.message}")
    return error_response(error.code, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return error_response(error.code, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return error_response(error.code, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return error_response(error.code, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return error_response("not_found", "Resource not found.", 404)


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    return error_response("method_not_allowed", "Method not allowed.", 405)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return error_response("internal_error", "An unexpected error occurred.", 500)


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """
    Handles CSRF errors, which usually indicate a session timeout or invalid form submission.
    """
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return error_response(
        "csrf_error",
        "Your session may have expired. Please try your action again.",
        400,
    )
