"""
Custom route decorators for access control.

- role_required: ensures user is logged in AND the session's live-resolved
  role is one of the allowed roles.
- staff_required / admin_required: shorthands for manager+admin and admin.
"""

from functools import wraps

from flask import abort
from flask_login import current_user, login_required

from app.navigation import Role


def current_role():
    """Live-resolved role of the signed-in account (employee until resolved)."""
    from app.extensions import role_sessions

    controller = role_sessions.controller_for(current_user.id)
    return controller.role or Role.EMPLOYEE


def role_required(*roles):
    """Require login + one of `roles`."""

    def decorator(f):
        @wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            if current_role() not in roles:
                abort(403)
            return f(*args, **kwargs)

        return decorated

    return decorator


staff_required = role_required(Role.MANAGER, Role.ADMIN)
admin_required = role_required(Role.ADMIN)
