"""
Deferred extension instances.

Created here, bound to the app in create_app() via init_app().
"""

from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from app.role_resolution import SessionRegistry

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # No global limit; auth routes set their own
    storage_uri="memory://",
)
role_sessions = SessionRegistry()


@login_manager.user_loader
def load_user(user_id):
    """Load the signed-in account by UID. Imports lazily to avoid circular deps."""
    from app.models.account import Account

    return db.session.get(Account, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    """JSON clients get a 401 instead of a redirect to a login page."""
    return jsonify({"error": "Authentication required."}), 401
