"""Issue service — create, list, live queries, comments, status changes.

The only reader/writer of issue rows, and the one place that triggers
reporter notifications. Each write commits and publishes an "issues"
change before any notification runs, so a notification failure never
undoes the write. Write failures propagate to the caller.
"""

import logging
from datetime import datetime, timezone

from app import realtime
from app.extensions import db
from app.models.issue import Issue, IssueComment
from app.services import notification_service

logger = logging.getLogger(__name__)


def add_issue(data):
    """File a new issue.

    Caller-supplied fields are stored as given (no validation here).
    Status always starts as "Open" and createdAt is set to now.

    Args:
        data: Dict of client fields (userId, userEmail, description, category, ...).

    Returns:
        The created issue dict.
    """
    columns = {}
    extra = {}
    for key, value in data.items():
        if key in Issue.FIELDS:
            columns[Issue.FIELDS[key]] = value
        elif key not in ("id", "status", "createdAt", "updatedAt", "comments"):
            extra[key] = value

    issue = Issue(
        **columns,
        extra=extra,
        status="Open",
        created_at=datetime.now(timezone.utc),
    )
    db.session.add(issue)
    realtime.commit("issues")

    logger.info(f"Issue {issue.id} filed by {issue.user_id} ({issue.category})")
    return issue.to_dict()


def _issue_query(user_id=None):
    if user_id:
        query = Issue.query.filter_by(user_id=user_id)
    else:
        query = Issue.query
    return query.order_by(Issue.created_at.desc())


def get_issues(user_id=None):
    """One-shot read: a reporter's issues, or every issue when user_id is None.

    Both are ordered by createdAt, newest first.
    """
    return [i.to_dict() for i in _issue_query(user_id).all()]


def get_issue(issue_id):
    """Issue dict with its comment thread, or None if not found."""
    issue = db.session.get(Issue, issue_id)
    return issue.to_dict() if issue is not None else None


def subscribe_to_issues(user_id, callback):
    """Live issue list.

    Args:
        user_id: Only this reporter's issues; None for every issue.
        callback: Receives the full list on every change. A failed read
            delivers an empty list instead of raising.

    Returns:
        realtime.Subscription — call unsubscribe() when done.
    """
    return realtime.subscribe(
        "issues",
        lambda: get_issues(user_id),
        callback,
        on_error=lambda e: callback([]),
    )


def update_issue_status(issue_id, new_status):
    """Change an issue's status, then notify its reporter.

    Any status may follow any other. The reporter notification runs after
    the commit and cannot fail this call.

    Returns:
        The updated issue dict.

    Raises:
        ValueError: If the issue is not found or the status is not valid.
    """
    if new_status not in Issue.STATUSES:
        raise ValueError(
            f"Invalid status '{new_status}'. Must be one of: {', '.join(Issue.STATUSES)}"
        )

    issue = db.session.get(Issue, issue_id)
    if issue is None:
        raise ValueError(f"Issue {issue_id} not found.")

    old_status = issue.status
    issue.status = new_status
    realtime.commit("issues")
    logger.info(f"Issue {issue_id} status {old_status} -> {new_status}")

    notification_service.dispatch(
        notification_service.notify_status_update, issue_id, new_status
    )
    return issue.to_dict()


def add_comment(issue_id, text, role, author_name):
    """Append a comment to an issue's thread.

    The thread only grows: each comment is its own row, so concurrent
    commenters never overwrite one another. Manager comments notify the
    reporter; employee comments notify no one.

    Returns:
        The comment dict.

    Raises:
        ValueError: If the issue is not found.
    """
    issue = db.session.get(Issue, issue_id)
    if issue is None:
        raise ValueError(f"Issue {issue_id} not found.")

    now = datetime.now(timezone.utc)
    comment = IssueComment(
        issue_id=issue_id,
        text=text,
        role=role,
        author_name=author_name,
        created_at=now,
    )
    db.session.add(comment)
    issue.updated_at = now
    realtime.commit("issues")

    if role == "manager":
        notification_service.dispatch(
            notification_service.notify_manager_comment, issue_id, text
        )
    return comment.to_dict()


def filter_issues(issues, category=None, search=None):
    """Narrow an issue list the way the list screens do.

    Args:
        issues: List of issue dicts.
        category: Keep only this category; None or "All" keeps everything.
        search: Case-insensitive substring matched against title,
            description and reporter email.
    """
    result = issues
    if category and category != "All":
        result = [i for i in result if i.get("category") == category]
    if search:
        needle = search.lower()
        result = [
            i for i in result
            if any(
                needle in str(i.get(field) or "").lower()
                for field in ("title", "description", "userEmail")
            )
        ]
    return result
