"""Live queries over the issue database.

Each collection ("users", "issues", "notifications") has a blinker signal.
Services call publish() after they commit; every open subscription on that
collection re-runs its query and hands the full result to its callback.

Usage:
    from app import realtime

    sub = realtime.subscribe("issues", fetch=load_issues, on_snapshot=render)
    ...
    sub.unsubscribe()

Snapshots are delivered synchronously on the publishing thread, in publish
order. Subscriptions on different collections are not coordinated.
"""

import logging
import threading

from blinker import Namespace

logger = logging.getLogger(__name__)

_signals = Namespace()


def collection_signal(collection):
    """Return the change signal for a collection (created on first use)."""
    return _signals.signal(f"{collection}-changed")


class Subscription:
    """Handle for one live query. Call unsubscribe() when done with it.

    After unsubscribe() no further callback is made, including one for a
    fetch that was already running when the handle was disposed.
    """

    def __init__(self, collection, fetch, on_snapshot, on_error=None):
        self.collection = collection
        self._fetch = fetch
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._active = True
        self._lock = threading.RLock()

    @property
    def active(self):
        return self._active

    def refresh(self):
        """Run the query and deliver its result (or the error)."""
        if not self._active:
            return
        try:
            snapshot = self._fetch()
        except Exception as e:
            logger.error(f"Live query on '{self.collection}' failed: {e}")
            if self._active and self._on_error is not None:
                self._on_error(e)
            return
        with self._lock:
            if not self._active:
                return
            self._on_snapshot(snapshot)

    def unsubscribe(self):
        with self._lock:
            if not self._active:
                return
            self._active = False
        collection_signal(self.collection).disconnect(self._receive)

    def _receive(self, sender, **kwargs):
        self.refresh()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.unsubscribe()

    def __repr__(self):
        state = "active" if self._active else "closed"
        return f"<Subscription {self.collection} ({state})>"


def subscribe(collection, fetch, on_snapshot, on_error=None):
    """Open a live query and deliver the first snapshot immediately.

    Args:
        collection: Collection name the query reads from.
        fetch: Zero-arg callable returning the current result.
        on_snapshot: Called with every result.
        on_error: Called with the exception when fetch fails. Optional.

    Returns:
        The Subscription handle.
    """
    sub = Subscription(collection, fetch, on_snapshot, on_error)
    collection_signal(collection).connect(sub._receive, weak=False)
    sub.refresh()
    return sub


def publish(collection):
    """Tell every live query on `collection` that its data changed."""
    collection_signal(collection).send(collection)


def commit(*collections):
    """Commit the session, then publish each changed collection.

    A failed commit is rolled back and re-raised; nothing is published.
    """
    from app.extensions import db

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    for collection in collections:
        publish(collection)
