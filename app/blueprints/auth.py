"""Auth blueprint — /auth/*

JSON sign-up, sign-in, sign-out and display-name update for the mobile
client. Errors come back as {"error": "<message>"} so the client can show
the message as-is.

Signing in fires Flask-Login's user_logged_in signal, which starts the
session's role controller (see app.role_resolution).
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from app.extensions import db, limiter, role_sessions
from app.models.account import Account
from app.navigation import Role
from app.services import user_service

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _error(message, status=400):
    return jsonify({"error": message}), status


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text(data, key):
    """String field from a JSON body; any other type counts as missing."""
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _session_payload(account):
    controller = role_sessions.controller_for(account.id)
    return {
        "user": {
            "id": account.id,
            "email": account.email,
            "displayName": account.display_name,
        },
        "session": controller.to_dict(),
    }


# ──────────────────────────────────────────────
# POST /auth/register
# ──────────────────────────────────────────────

@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per minute")
def register():
    """Create an account + employee profile, then sign in.

    Body: {"email", "password", "fullName", "pushToken"?}
    """
    data = _json_body()
    email = _text(data, "email").lower().strip()
    password = _text(data, "password")
    full_name = _text(data, "fullName").strip()

    # --- Validation ---
    if not email or not password or not full_name:
        return _error("Please fill in all fields.")
    if len(password) < 6:
        return _error("Password should be at least 6 characters.")
    if Account.query.filter_by(email=email).first():
        return _error("An account with this email already exists.")

    # --- Create identity ---
    account = Account(
        email=email,
        password_hash=generate_password_hash(password),
        display_name=full_name,
    )
    db.session.add(account)
    db.session.commit()

    # --- Create profile ---
    user_service.create_user(account.id, {
        "email": email,
        "fullName": full_name,
        "role": Role.EMPLOYEE.value,
    })

    login_user(account)
    logger.info(f"Registered {email}")
    return jsonify(_session_payload(account)), 201


# ──────────────────────────────────────────────
# POST /auth/login
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("15 per minute")
def login():
    """Email + password sign-in.

    Body: {"email", "password", "pushToken"?}
    """
    data = _json_body()
    email = _text(data, "email").lower().strip()
    password = _text(data, "password")

    if not email or not password:
        return _error("Please enter email and password.")

    account = Account.query.filter_by(email=email).first()
    if account is None or not check_password_hash(account.password_hash, password):
        return _error("Invalid email or password.", 401)

    if not account.is_active:
        return _error("This account has been disabled.", 403)

    login_user(account, remember=bool(data.get("remember")))
    return jsonify(_session_payload(account))


# ──────────────────────────────────────────────
# POST /auth/logout
# ──────────────────────────────────────────────

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Sign out; the session's profile query is closed by the logout signal."""
    logout_user()
    return jsonify({"status": "signed_out"})


# ──────────────────────────────────────────────
# PATCH /auth/profile
# ──────────────────────────────────────────────

@auth_bp.route("/profile", methods=["PATCH"])
@login_required
def update_profile():
    """Change the display name on the account and the profile."""
    data = _json_body()
    full_name = _text(data, "fullName").strip()
    if not full_name:
        return _error("Full name is required.")

    current_user.display_name = full_name
    db.session.commit()
    user_service.update_full_name(current_user.id, full_name)
    return jsonify(_session_payload(current_user))
