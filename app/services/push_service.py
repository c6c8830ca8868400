"""Push service — device notifications through the Expo push relay.

Relay: PUSH_RELAY_URL (default https://exp.host/--/api/v2/push/send).
Delivery is best-effort: no receipts are read back, relay errors are
logged and reported as False, never raised.
"""

import logging

import requests
from flask import current_app, request

logger = logging.getLogger(__name__)


def send_push_notification(token, title, body, data=None):
    """Send one push message to a device.

    Args:
        token: Device push token (e.g. "ExponentPushToken[...]").
        title: Notification title.
        body: Notification body text.
        data: Optional dict delivered to the app with the notification.

    Returns:
        True if the relay accepted the message, False otherwise.
    """
    if not token:
        return False

    if not current_app.config.get("PUSH_ENABLED", True):
        logger.info(f"Push disabled, not sending '{title}' to {token}")
        return False

    message = {
        "to": token,
        "sound": "default",
        "title": title,
        "body": body,
        "data": data or {},
    }

    headers = {
        "Accept": "application/json",
        "Accept-Encoding": "gzip, deflate",
        "Content-Type": "application/json",
    }
    access_token = current_app.config.get("PUSH_ACCESS_TOKEN")
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"

    try:
        resp = requests.post(
            current_app.config["PUSH_RELAY_URL"],
            json=message,
            headers=headers,
            timeout=current_app.config.get("PUSH_TIMEOUT", 10),
        )
        resp.raise_for_status()
        logger.info(f"Push sent to {token}: {title}")
        return True
    except Exception as e:
        logger.error(f"Push to {token} failed: {e}")
        return False


def device_token_from_request():
    """Push token the device registered with, from the JSON body of the request.

    Returns None when the device sent none (simulators, denied permission,
    no project id); that is not an error.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None
    token = payload.get("pushToken")
    if not isinstance(token, str) or not token.strip():
        return None
    return token.strip()
