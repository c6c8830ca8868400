"""Analytics service — issue counts for the manager/admin analytics screen."""

import logging
from datetime import datetime, timedelta, timezone

from app.extensions import db
from app.models.issue import Issue

logger = logging.getLogger(__name__)

TRACKED_STATUSES = ["Open", "In Progress", "Resolved"]


def get_status_distribution():
    """Issue count per status, plus "Other" for unrecognised values.

    Returns:
        List of {"name", "count"} for non-empty buckets, or [] if the read fails.
    """
    try:
        rows = (
            db.session.query(Issue.status, db.func.count(Issue.id))
            .group_by(Issue.status)
            .all()
        )
    except Exception as e:
        logger.error(f"Status distribution failed: {e}")
        return []

    counts = {status: 0 for status in TRACKED_STATUSES}
    counts["Other"] = 0
    for status, count in rows:
        key = status if status in counts else "Other"
        counts[key] += count

    return [
        {"name": name, "count": count}
        for name, count in counts.items()
        if count > 0
    ]


def get_weekly_trend(today=None):
    """Issues created per day over the last 7 days (oldest first).

    Args:
        today: Last day of the window; defaults to the current UTC date.

    Returns:
        {"labels": ["MM-DD", ...], "data": [int, ...]}, or empty lists if the read fails.
    """
    today = today or datetime.now(timezone.utc).date()
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
    counts = [0] * len(days)
    index = {day: i for i, day in enumerate(days)}

    try:
        created = (
            db.session.query(Issue.created_at)
            .filter(Issue.created_at.isnot(None))
            .order_by(Issue.created_at.asc())
            .all()
        )
    except Exception as e:
        logger.error(f"Weekly trend failed: {e}")
        return {"labels": [], "data": []}

    for (created_at,) in created:
        i = index.get(created_at.date())
        if i is not None:
            counts[i] += 1

    return {
        "labels": [day.strftime("%m-%d") for day in days],
        "data": counts,
    }
