"""User service — profile rows in the `users` table.

The only writer of `role`. Every write commits and publishes a "users"
change so live profile queries (the session role controller) refresh.
Write failures propagate to the caller.
"""

import logging
from datetime import datetime, timezone

from app import realtime
from app.extensions import db
from app.models.user import User
from app.navigation import Role

logger = logging.getLogger(__name__)

# Client field name -> column name for merge writes.
_FIELDS = {
    "email": "email",
    "fullName": "full_name",
    "role": "role",
    "pushToken": "push_token",
}


def create_user(user_id, data):
    """Create or merge a profile row.

    Fields absent from `data` keep their stored value. `role` defaults to
    employee when not supplied. `createdAt` is rewritten on every call.

    Args:
        user_id: Account UID.
        data: Dict with any of email, fullName, role, pushToken.

    Returns:
        The profile dict.
    """
    user = db.session.get(User, user_id)
    if user is None:
        user = User(id=user_id)
        db.session.add(user)

    for key, column in _FIELDS.items():
        if key in data:
            setattr(user, column, data[key])
    user.role = data.get("role") or Role.EMPLOYEE.value
    # TODO: write createdAt only on insert once existing clients stop relying on the reset
    user.created_at = datetime.now(timezone.utc)

    realtime.commit("users")
    logger.info(f"Profile saved for {user_id} (role={user.role})")
    return user.to_dict()


def get_user(user_id):
    """Profile dict for a UID, or None if there is no profile row."""
    user = db.session.get(User, user_id)
    return user.to_dict() if user is not None else None


def get_all_users():
    """Every profile, unfiltered. Callers enforce who may see this."""
    return [u.to_dict() for u in User.query.all()]


def update_user_role(user_id, role):
    """Set a user's role.

    Raises:
        ValueError: If the role is not employee/manager/admin or the user has no profile.
    """
    value = str(role or "").strip().lower()
    if value not in [r.value for r in Role]:
        raise ValueError(
            f"Invalid role '{role}'. Must be one of: {', '.join(r.value for r in Role)}"
        )

    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError(f"User {user_id} not found.")

    user.role = value
    realtime.commit("users")
    logger.info(f"Role for {user_id} set to {value}")
    return user.to_dict()


def update_push_token(user_id, token):
    """Store the device push token on a profile.

    Raises:
        ValueError: If the user has no profile.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError(f"User {user_id} not found.")
    user.push_token = token
    realtime.commit("users")


def update_full_name(user_id, full_name):
    """Rename a profile. A missing profile is left alone."""
    user = db.session.get(User, user_id)
    if user is None:
        return None
    user.full_name = full_name
    realtime.commit("users")
    return user.to_dict()


def delete_user(user_id):
    """Hard-delete the profile row only. The account and its issues stay."""
    user = db.session.get(User, user_id)
    if user is None:
        return False
    db.session.delete(user)
    realtime.commit("users")
    logger.info(f"Profile deleted for {user_id}")
    return True


def subscribe_to_user(user_id, on_snapshot, on_error=None):
    """Live query on one profile.

    `on_snapshot` receives the profile dict, or None while no row exists.
    `on_error` receives the exception if a read fails.

    Returns:
        realtime.Subscription
    """

    def fetch():
        user = db.session.get(User, user_id, populate_existing=True)
        return user.to_dict() if user is not None else None

    return realtime.subscribe("users", fetch, on_snapshot, on_error)
