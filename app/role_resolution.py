"""Role resolution — which navigation tree a signed-in session gets.

RoleResolutionController follows one session: when the auth state says
"signed in as X" it opens a live query on X's profile and re-derives the
role on every snapshot, so an admin's role change reaches the session
without a new sign-in. Signing out closes the query and clears the role.

SessionRegistry owns one controller per signed-in UID and drives it from
Flask-Login's user_logged_in / user_logged_out signals. Each lookup also
re-reads the profile, which covers writes the in-process feed never sees.
"""

import logging
import threading
import time

from flask_login import user_logged_in, user_logged_out

from app.navigation import Role, navigation_for

logger = logging.getLogger(__name__)


class RoleResolutionController:
    """Tracks the role and navigation tree of one authenticated session.

    Args:
        register_device: Optional zero-arg callable returning the device push
            token (or None). Called once per sign-in; failures are logged and
            ignored.
        on_change: Optional callable(controller) fired whenever the resolved
            role changes (including being cleared on sign-out).
    """

    def __init__(self, register_device=None, on_change=None):
        self.user_id = None
        self.role = None
        self.loading = False
        self._register_device = register_device
        self._on_change = on_change
        self._subscription = None

    @property
    def navigation(self):
        """The selected NavigationTree, or None while signed out / still loading."""
        if self.role is None:
            return None
        return navigation_for(self.role)

    @property
    def subscribed(self):
        return self._subscription is not None and self._subscription.active

    def handle_auth_state(self, user_id):
        """Feed one auth-state event: a UID when signed in, None when signed out."""
        if user_id is None:
            self._teardown()
            self.loading = False
            return

        if user_id == self.user_id and self.subscribed:
            return

        self._teardown()
        self.user_id = user_id
        self.loading = True
        logger.info(f"Resolving role for {user_id}")

        self._register_push_token(user_id)

        from app.services import user_service
        self._subscription = user_service.subscribe_to_user(
            user_id, self._on_profile, self._on_profile_error
        )

    def refresh(self):
        """Re-read the profile now.

        Live snapshots only follow writes made in this process; a role changed
        by another worker, the CLI or a direct database write shows up here.
        """
        if self._subscription is not None:
            self._subscription.refresh()

    def close(self):
        self.handle_auth_state(None)

    def _on_profile(self, profile):
        if profile is None:
            role = Role.EMPLOYEE
        else:
            role = Role.resolve(profile.get("role"))
        self.loading = False
        self._set_role(role)

    def _on_profile_error(self, error):
        logger.warning(f"Profile query for {self.user_id} failed: {error}")
        self.loading = False
        if self.role is None:
            self._set_role(Role.EMPLOYEE)

    def _set_role(self, role):
        if role == self.role:
            return
        self.role = role
        if role is not None:
            logger.info(f"Session {self.user_id} now uses the {role.value} navigation")
        if self._on_change is not None:
            self._on_change(self)

    def _register_push_token(self, user_id):
        if self._register_device is None:
            return
        try:
            token = self._register_device()
            if token:
                from app.services import user_service
                user_service.update_push_token(user_id, token)
        except Exception as e:
            logger.warning(f"Push token registration failed for {user_id}: {e}")

    def _teardown(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self.user_id = None
        self._set_role(None)

    def to_dict(self):
        navigation = self.navigation
        return {
            "userId": self.user_id,
            "role": self.role.value if self.role else None,
            "loading": self.loading,
            "navigation": navigation.to_dict() if navigation else None,
        }

    def __repr__(self):
        return f"<RoleResolutionController {self.user_id} role={self.role}>"


class SessionRegistry:
    """One RoleResolutionController per signed-in UID, bound to an app.

    Every lookup re-reads the profile, so authorization always uses the
    stored role. Controllers unused for longer than ROLE_SESSION_IDLE_TIMEOUT
    seconds are closed; sessions that expire without a sign-out never hold a
    live query for long.
    """

    def __init__(self, clock=time.monotonic):
        self._controllers = {}
        self._last_seen = {}
        self._lock = threading.Lock()
        self.clock = clock
        self.idle_timeout = None

    def init_app(self, app):
        app.extensions["role_sessions"] = self
        self.idle_timeout = app.config.get("ROLE_SESSION_IDLE_TIMEOUT")
        user_logged_in.connect(self._on_login, app)
        user_logged_out.connect(self._on_logout, app)

    def controller_for(self, user_id, register_device=None):
        """Controller for a UID with a freshly read role, started on first use."""
        self.evict_idle()
        with self._lock:
            controller = self._controllers.get(user_id)
            if controller is None:
                controller = RoleResolutionController(register_device=register_device)
                self._controllers[user_id] = controller
            self._last_seen[user_id] = self.clock()
        if controller.user_id != user_id:
            controller.handle_auth_state(user_id)
        else:
            controller.refresh()
        return controller

    def get(self, user_id):
        return self._controllers.get(user_id)

    def end(self, user_id):
        """Sign a UID out: close its controller and forget it."""
        with self._lock:
            controller = self._controllers.pop(user_id, None)
            self._last_seen.pop(user_id, None)
        if controller is not None:
            controller.handle_auth_state(None)

    def evict_idle(self, now=None):
        """Close controllers idle for longer than idle_timeout. Returns the evicted UIDs."""
        if not self.idle_timeout:
            return []
        now = self.clock() if now is None else now
        with self._lock:
            stale = [
                user_id for user_id, seen in self._last_seen.items()
                if now - seen > self.idle_timeout
            ]
        for user_id in stale:
            logger.info(f"Closing idle role session for {user_id}")
            self.end(user_id)
        return stale

    def clear(self):
        for user_id in list(self._controllers):
            self.end(user_id)

    def _on_login(self, sender, user, **kwargs):
        from app.services.push_service import device_token_from_request

        # A new sign-in replaces any session already open for this UID.
        self.end(user.id)
        self.controller_for(user.id, register_device=device_token_from_request)

    def _on_logout(self, sender, user, **kwargs):
        if user is not None and getattr(user, "id", None):
            self.end(user.id)
