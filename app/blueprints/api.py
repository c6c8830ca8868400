"""API blueprint — /api/*

JSON endpoints behind the mobile screens. Every route requires a signed-in
account; triage and user management also require the session's live role.

  GET   /api/session                  — resolved role + navigation tree
  POST  /api/devices                  — register the device push token
  GET   /api/issues                   — own issues (employee) or all (staff)
  POST  /api/issues                   — file an issue
  GET   /api/issues/<id>              — issue detail + comment thread
  POST  /api/issues/<id>/comments     — add a comment
  POST  /api/issues/<id>/status       — change status (staff)
  GET   /api/notifications            — own notifications
  GET   /api/users                    — all profiles (admin)
  PATCH /api/users/<id>/role          — change a role (admin)
  GET   /api/analytics/status         — status distribution (staff)
  GET   /api/analytics/trend          — issues per day, last 7 days (staff)
"""

import logging

from flask import Blueprint, abort, jsonify, request
from flask_login import current_user, login_required

from app.decorators import admin_required, current_role, staff_required
from app.extensions import role_sessions
from app.models.issue import Issue
from app.services import (
    analytics_service,
    issue_service,
    notification_service,
    user_service,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")


def _error(message, status=400):
    return jsonify({"error": message}), status


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text(data, key):
    """String field from a JSON body; any other type counts as missing."""
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _load_visible_issue(issue_id):
    """Issue dict the current session may see, or abort 404/403."""
    issue = issue_service.get_issue(issue_id)
    if issue is None:
        abort(404)
    if not current_role().is_staff and issue.get("userId") != current_user.id:
        abort(403)
    return issue


# ──────────────────────────────────────────────
# SESSION
# ──────────────────────────────────────────────

@api_bp.route("/session")
@login_required
def session_state():
    """Role and navigation tree for the signed-in account."""
    controller = role_sessions.controller_for(current_user.id)
    return jsonify(controller.to_dict())


@api_bp.route("/devices", methods=["POST"])
@login_required
def register_device():
    """Store the push token the device obtained. Body: {"pushToken"}."""
    token = _text(_json_body(), "pushToken").strip()
    if not token:
        return _error("pushToken is required.")
    try:
        user_service.update_push_token(current_user.id, token)
    except ValueError as e:
        return _error(str(e), 404)
    return jsonify({"status": "registered"})


# ──────────────────────────────────────────────
# ISSUES
# ──────────────────────────────────────────────

@api_bp.route("/issues")
@login_required
def issue_list():
    """Employees see their own issues; managers and admins see all.

    Query params: category, q (free-text search).
    """
    user_id = None if current_role().is_staff else current_user.id
    issues = issue_service.get_issues(user_id)
    issues = issue_service.filter_issues(
        issues,
        category=request.args.get("category"),
        search=request.args.get("q"),
    )
    return jsonify({"issues": issues})


@api_bp.route("/issues", methods=["POST"])
@login_required
def issue_create():
    """File an issue as the signed-in account.

    Body: {"description", "category", ...optional descriptive fields}.
    The reporter identity always comes from the session.
    """
    data = _json_body()
    description = _text(data, "description").strip()
    category = _text(data, "category")

    if not description or not category:
        return _error("Please describe the issue and select a category.")
    if category not in Issue.CATEGORIES:
        return _error(
            f"Invalid category '{category}'. Must be one of: {', '.join(Issue.CATEGORIES)}"
        )

    data["description"] = description
    data["userId"] = current_user.id
    data["userEmail"] = current_user.email

    issue = issue_service.add_issue(data)
    return jsonify({"issue": issue}), 201


@api_bp.route("/issues/<issue_id>")
@login_required
def issue_detail(issue_id):
    return jsonify({"issue": _load_visible_issue(issue_id)})


@api_bp.route("/issues/<issue_id>/comments", methods=["POST"])
@login_required
def issue_comment(issue_id):
    """Comment on an issue. Staff comments are posted as the manager side."""
    _load_visible_issue(issue_id)

    text = _text(_json_body(), "text").strip()
    if not text:
        return _error("Comment cannot be empty.")

    if current_role().is_staff:
        role = "manager"
        author_name = current_user.display_name or "Manager"
    else:
        role = "employee"
        author_name = current_user.display_name or current_user.email

    comment = issue_service.add_comment(issue_id, text, role, author_name)
    return jsonify({"comment": comment}), 201


@api_bp.route("/issues/<issue_id>/status", methods=["POST"])
@staff_required
def issue_status(issue_id):
    """Change an issue's status. Body: {"status"}."""
    new_status = _text(_json_body(), "status").strip()
    if not new_status:
        return _error("Status is required.")

    if issue_service.get_issue(issue_id) is None:
        abort(404)

    try:
        issue = issue_service.update_issue_status(issue_id, new_status)
    except ValueError as e:
        return _error(str(e))
    return jsonify({"issue": issue})


# ──────────────────────────────────────────────
# NOTIFICATIONS
# ──────────────────────────────────────────────

@api_bp.route("/notifications")
@login_required
def notification_list():
    return jsonify({
        "notifications": notification_service.list_notifications(current_user.id)
    })


# ──────────────────────────────────────────────
# USERS (admin)
# ──────────────────────────────────────────────

@api_bp.route("/users")
@admin_required
def user_list():
    return jsonify({"users": user_service.get_all_users()})


@api_bp.route("/users/<user_id>/role", methods=["PATCH"])
@admin_required
def user_role(user_id):
    """Change a user's role. Body: {"role"}.

    Admins cannot change their own role here, to avoid locking themselves out.
    """
    if user_id == current_user.id:
        return _error("You cannot change your own role here.", 403)

    role = _json_body().get("role")
    if user_service.get_user(user_id) is None:
        abort(404)

    try:
        user = user_service.update_user_role(user_id, role)
    except ValueError as e:
        return _error(str(e))
    return jsonify({"user": user})


# ──────────────────────────────────────────────
# ANALYTICS (manager/admin)
# ──────────────────────────────────────────────

@api_bp.route("/analytics/status")
@staff_required
def analytics_status():
    return jsonify({"statuses": analytics_service.get_status_distribution()})


@api_bp.route("/analytics/trend")
@staff_required
def analytics_trend():
    return jsonify(analytics_service.get_weekly_trend())
