"""Decorators for routes that need a signed-in user."""

from functools import wraps

from flask import current_app, jsonify, session


def current_user_id():
    """Return the id of the signed-in user, if any."""
    return session.get("user_id")


def login_required(f=None, admin_required=False):
    """Reject the request unless a user is signed in.

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
            if "user_id" not in session:
                return jsonify({"success": False, "message": "Please sign in."}), 401
            if admin_required and not session.get("is_admin"):
                current_app.logger.warning(
                    f"User {session['user_id']} denied admin access to {func.__name__}"
                )
                return (
                    jsonify({"success": False, "message": "Admin access required."}),
                    403,
                )
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
