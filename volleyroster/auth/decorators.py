"""Decorators for the auth blueprint."""

from functools import wraps

from flask import g, jsonify

from volleyroster.errors import UnauthorizedError


def login_required(f=None, admin_required=False, super_admin_required=False):
    """Reject the request if nobody is logged in or the role is too low.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(admin_required=True)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            user = g.get("user")
            if user is None:
                return (
                    jsonify(
                        {
                            "status": "error",
                            "code": "unauthenticated",
                            "message": "Please log in to continue.",
                        }
                    ),
                    401,
                )
            if super_admin_required and not user.is_super_admin:
                raise UnauthorizedError("Only the super-admin can do this.")
            if admin_required and not user.is_admin:
                raise UnauthorizedError()
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
