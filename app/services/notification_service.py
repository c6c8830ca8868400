"""Notification service — reporter pushes for status changes and manager replies.

The triggering write has always committed before anything here runs.
Nothing in this module raises into the caller: a missing profile, a missing
push token or a relay failure only ends up in the log.

Flow for one notification:
    1. Load the issue and its reporter's profile.
    2. No push token -> stop (nothing sent, nothing stored).
    3. Send the push through push_service.
    4. Store a `notifications` row and publish the change.
"""

import logging
import threading
from datetime import datetime, timezone

import bleach
from flask import current_app

from app import realtime
from app.extensions import db
from app.models.issue import Issue
from app.models.notification import Notification
from app.models.user import User
from app.services import push_service

logger = logging.getLogger(__name__)

STATUS_UPDATE_TITLE = "Status Updated"
COMMENT_TITLE = "New Comment"


def _plain(text):
    """Strip HTML tags; push bodies are shown as plain text."""
    if text is None:
        return ""
    return bleach.clean(str(text), tags=[], strip=True).strip()


def issue_label(issue):
    """Short name for an issue in notification text: its title, else its category."""
    return _plain(issue.title or issue.category or "issue")


def status_update_body(issue, new_status):
    return f'Your issue "{issue_label(issue)}" is now {new_status}'


def comment_body(text):
    return f"Manager replied: {_plain(text)}"


def notify_reporter(issue_id, title, body_builder, notification_type):
    """Push to an issue's reporter and record it.

    Args:
        issue_id: Issue UUID string.
        title: Notification title.
        body_builder: Callable taking the Issue and returning the body text.
        notification_type: "status_update" or "comment".

    Returns:
        The stored notification dict, or None if nothing was sent.
    """
    issue = db.session.get(Issue, issue_id)
    if issue is None or not issue.user_id:
        logger.info(f"No reporter to notify for issue {issue_id}")
        return None

    reporter = db.session.get(User, issue.user_id)
    if reporter is None or not reporter.push_token:
        logger.info(f"Reporter {issue.user_id} has no push token; skipping {notification_type}")
        return None

    body = body_builder(issue)
    push_service.send_push_notification(
        reporter.push_token, title, body, data={"issueId": issue_id}
    )

    notification = Notification(
        user_id=reporter.id,
        title=title,
        body=body,
        type=notification_type,
        issue_id=issue_id,
        read=False,
        created_at=datetime.now(timezone.utc),
    )
    db.session.add(notification)
    realtime.commit("notifications")
    return notification.to_dict()


def dispatch(fn, *args, **kwargs):
    """Run a notification task after the primary write.

    With NOTIFICATIONS_ASYNC the task runs on a daemon thread in its own app
    context; otherwise it runs inline. Either way any exception is logged
    with its traceback and not re-raised.

    Returns:
        The started Thread (async), or the task's return value (inline).
    """
    app = current_app._get_current_object()

    if app.config.get("NOTIFICATIONS_ASYNC"):
        thread = threading.Thread(target=_run_in_context, args=(app, fn, args, kwargs))
        thread.daemon = True
        thread.start()
        return thread

    try:
        return fn(*args, **kwargs)
    except Exception:
        db.session.rollback()
        logger.exception(f"Notification task {fn.__name__} failed")
        return None


def _run_in_context(app, fn, args, kwargs):
    with app.app_context():
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception(f"Notification task {fn.__name__} failed")


def notify_status_update(issue_id, new_status):
    return notify_reporter(
        issue_id,
        STATUS_UPDATE_TITLE,
        lambda issue: status_update_body(issue, new_status),
        "status_update",
    )


def notify_manager_comment(issue_id, text):
    return notify_reporter(
        issue_id,
        COMMENT_TITLE,
        lambda issue: comment_body(text),
        "comment",
    )


def list_notifications(user_id):
    """A user's notifications, newest first."""
    rows = (
        Notification.query
        .filter_by(user_id=user_id)
        .order_by(Notification.created_at.desc())
        .all()
    )
    return [n.to_dict() for n in rows]


def subscribe_to_notifications(user_id, callback):
    """Live list of a user's notifications, newest first.

    A failed read delivers an empty list.
    """
    return realtime.subscribe(
        "notifications",
        lambda: list_notifications(user_id),
        callback,
        on_error=lambda e: callback([]),
    )
