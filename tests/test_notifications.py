"""Tests for push_service and notification_service.

Covers:
- send_push_notification: relay payload, auth header, disabled relay, failures
- notify_reporter: push + stored record, skips without reporter/token
- Message bodies are plain text
- dispatch: inline and background modes, failures logged not raised
- list_notifications / subscribe_to_notifications ordering
"""

import logging
from datetime import datetime, timedelta
from unittest.mock import patch

import requests

from app.extensions import db
from app.models.issue import Issue
from app.models.notification import Notification
from app.services import issue_service, notification_service, push_service


# ─── Helpers ───────────────────────────────────────────────

def _file_issue(seed_data, reporter="employee", **fields):
    data = {
        "userId": seed_data[f"{reporter}_id"],
        "userEmail": seed_data[f"{reporter}_email"],
        "description": "Forklift battery swelling",
        "category": "Safety",
    }
    data.update(fields)
    return issue_service.add_issue(data)


def _store_notification(user_id, title, created_at):
    n = Notification(
        user_id=user_id,
        title=title,
        body=title,
        type="status_update",
        created_at=created_at,
    )
    db.session.add(n)
    db.session.commit()
    return n


# ─── push_service ──────────────────────────────────────────

class TestSendPushNotification:

    def test_posts_to_relay(self, app, push_relay):
        with app.app_context():
            ok = push_service.send_push_notification(
                "ExponentPushToken[abc]", "Hello", "World", data={"issueId": "i-1"},
            )
            assert ok is True
            args, kwargs = push_relay.call_args
            assert args[0] == "https://push.test/--/api/v2/push/send"
            assert kwargs["json"] == {
                "to": "ExponentPushToken[abc]",
                "sound": "default",
                "title": "Hello",
                "body": "World",
                "data": {"issueId": "i-1"},
            }
            assert "Authorization" not in kwargs["headers"]
            assert kwargs["timeout"] == 10

    def test_access_token_sent_as_bearer(self, app, push_relay):
        with app.app_context():
            with patch.dict(app.config, {"PUSH_ACCESS_TOKEN": "secret"}):
                push_service.send_push_notification("ExponentPushToken[abc]", "T", "B")
            headers = push_relay.call_args.kwargs["headers"]
            assert headers["Authorization"] == "Bearer secret"

    def test_empty_token_not_sent(self, app, push_relay):
        with app.app_context():
            assert push_service.send_push_notification("", "T", "B") is False
            assert push_service.send_push_notification(None, "T", "B") is False
            push_relay.assert_not_called()

    def test_disabled_relay(self, app, push_relay):
        with app.app_context():
            with patch.dict(app.config, {"PUSH_ENABLED": False}):
                assert push_service.send_push_notification("ExponentPushToken[abc]", "T", "B") is False
            push_relay.assert_not_called()

    def test_connection_error_returns_false(self, app, push_relay):
        with app.app_context():
            push_relay.side_effect = requests.ConnectionError("down")
            assert push_service.send_push_notification("ExponentPushToken[abc]", "T", "B") is False

    def test_http_error_returns_false(self, app, push_relay):
        with app.app_context():
            push_relay.return_value.raise_for_status.side_effect = requests.HTTPError("500")
            assert push_service.send_push_notification("ExponentPushToken[abc]", "T", "B") is False


class TestDeviceTokenFromRequest:

    def test_token_in_body(self, app):
        with app.test_request_context("/auth/login", method="POST",
                                      json={"pushToken": "  ExponentPushToken[x]  "}):
            assert push_service.device_token_from_request() == "ExponentPushToken[x]"

    def test_no_token(self, app):
        with app.test_request_context("/auth/login", method="POST", json={"email": "a@b.c"}):
            assert push_service.device_token_from_request() is None

    def test_non_json_body(self, app):
        with app.test_request_context("/auth/login", method="POST", data="not json"):
            assert push_service.device_token_from_request() is None


# ─── notification_service ─────────────────────────────────

class TestNotifyReporter:

    def test_status_update_stored(self, app, seed_data):
        with app.app_context():
            issue = _file_issue(seed_data, title="Battery")
            result = notification_service.notify_status_update(issue["id"], "Resolved")

            assert result["title"] == "Status Updated"
            assert result["body"] == 'Your issue "Battery" is now Resolved'
            assert result["userId"] == seed_data["employee_id"]
            assert result["issueId"] == issue["id"]
            assert result["read"] is False

    def test_no_token_returns_none(self, app, seed_data, push_relay):
        with app.app_context():
            issue = _file_issue(seed_data, reporter="other")
            assert notification_service.notify_status_update(issue["id"], "Resolved") is None
            push_relay.assert_not_called()

    def test_missing_reporter_profile(self, app, seed_data, push_relay):
        with app.app_context():
            issue = issue_service.add_issue({
                "userId": "deleted-profile-uid",
                "description": "Orphan",
                "category": "Supply",
            })
            assert notification_service.notify_manager_comment(issue["id"], "Hi") is None
            push_relay.assert_not_called()

    def test_missing_issue(self, app):
        with app.app_context():
            assert notification_service.notify_status_update("no-such-issue", "Open") is None

    def test_html_stripped_from_body(self, app, seed_data, push_relay):
        with app.app_context():
            issue = _file_issue(seed_data)
            notification_service.notify_manager_comment(
                issue["id"], "<b>Fixed</b><script>x</script> today",
            )
            body = push_relay.call_args.kwargs["json"]["body"]
            assert "<" not in body
            assert body.startswith("Manager replied: Fixed")
            assert "today" in body

    def test_issue_label(self, app, seed_data):
        with app.app_context():
            titled = Issue(title="Door jammed", category="Maintenance")
            untitled = Issue(category="Supply")
            bare = Issue()
            assert notification_service.issue_label(titled) == "Door jammed"
            assert notification_service.issue_label(untitled) == "Supply"
            assert notification_service.issue_label(bare) == "issue"


class TestDispatch:

    def test_inline_returns_result(self, app):
        with app.app_context():
            assert notification_service.dispatch(lambda a, b=0: a + b, 2, b=3) == 5

    def test_inline_failure_logged(self, app, caplog):
        def boom():
            raise RuntimeError("push exploded")

        with app.app_context():
            with caplog.at_level(logging.ERROR, logger="app.services.notification_service"):
                assert notification_service.dispatch(boom) is None
            assert "boom failed" in caplog.text
            assert "push exploded" in caplog.text

    def test_background_thread(self, app, seed_data):
        with app.app_context():
            issue = _file_issue(seed_data)
            with patch.dict(app.config, {"NOTIFICATIONS_ASYNC": True}):
                thread = notification_service.dispatch(
                    notification_service.notify_status_update, issue["id"], "Resolved",
                )
            thread.join(timeout=5)
            assert not thread.is_alive()
            assert thread.daemon
            assert Notification.query.count() == 1

    def test_background_failure_logged(self, app, caplog):
        def boom():
            raise RuntimeError("push exploded")

        with app.app_context():
            with caplog.at_level(logging.ERROR, logger="app.services.notification_service"):
                with patch.dict(app.config, {"NOTIFICATIONS_ASYNC": True}):
                    thread = notification_service.dispatch(boom)
                thread.join(timeout=5)
            assert "push exploded" in caplog.text


class TestNotificationLists:

    def test_newest_first(self, app, seed_data):
        with app.app_context():
            base = datetime(2026, 5, 1, 8, 0, 0)
            uid = seed_data["employee_id"]
            _store_notification(uid, "first", base)
            _store_notification(uid, "third", base + timedelta(hours=2))
            _store_notification(uid, "second", base + timedelta(hours=1))
            _store_notification(seed_data["other_id"], "someone else", base)

            titles = [n["title"] for n in notification_service.list_notifications(uid)]
            assert titles == ["third", "second", "first"]

    def test_subscription_updates(self, app, seed_data):
        with app.app_context():
            snapshots = []
            sub = notification_service.subscribe_to_notifications(
                seed_data["employee_id"], snapshots.append,
            )
            try:
                issue = _file_issue(seed_data)
                issue_service.update_issue_status(issue["id"], "In Progress")
            finally:
                sub.unsubscribe()

            assert snapshots[0] == []
            assert [n["type"] for n in snapshots[-1]] == ["status_update"]

    def test_subscription_failed_read(self, app, seed_data):
        with app.app_context():
            snapshots = []
            with patch.object(notification_service, "list_notifications",
                              side_effect=RuntimeError("read failed")):
                sub = notification_service.subscribe_to_notifications(
                    seed_data["employee_id"], snapshots.append,
                )
                sub.unsubscribe()
            assert snapshots == [[]]
