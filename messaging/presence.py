"""
Presence registry: which live connections belong to which user.

Connection handles are Channels channel names.  The registry never owns
a connection; it only records the names so the router can address each
connection's outbound queue.  A session removes its own name when it
closes.

Locking is striped by user id: operations on the same user are
serialized, operations on different users only contend when they hash
to the same stripe.  All methods are plain (non-async) and never block
on I/O, so they are safe to call from the event loop and from ORM
worker threads alike.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, FrozenSet, Hashable, Set

log = logging.getLogger(__name__)

DEFAULT_STRIPES = 64


class PresenceRegistry:
    """Maps user id -> set of live connection handles.

    A user id is present if and only if it has at least one live
    connection; the entry disappears with the last one.
    """

    def __init__(self, stripes: int = DEFAULT_STRIPES):
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._entries: Dict[Hashable, Set[str]] = {}
        self._locks = [threading.Lock() for _ in range(stripes)]

    def _lock_for(self, user_id: Hashable) -> threading.Lock:
        return self._locks[hash(user_id) % len(self._locks)]

    def register(self, user_id: Hashable, connection: str) -> None:
        with self._lock_for(user_id):
            self._entries.setdefault(user_id, set()).add(connection)
        log.debug("registered %s for user %s", connection, user_id)

    def unregister(self, user_id: Hashable, connection: str) -> None:
        with self._lock_for(user_id):
            conns = self._entries.get(user_id)
            if conns is None:
                return
            conns.discard(connection)
            if not conns:
                del self._entries[user_id]
        log.debug("unregistered %s for user %s", connection, user_id)

    def connections_for(self, user_id: Hashable) -> FrozenSet[str]:
        """Snapshot of the user's live connections; empty when offline."""
        with self._lock_for(user_id):
            return frozenset(self._entries.get(user_id, ()))

    def is_online(self, user_id: Hashable) -> bool:
        with self._lock_for(user_id):
            return user_id in self._entries

    def snapshot(self) -> Dict[Hashable, FrozenSet[str]]:
        """Point-in-time copy of every entry, taken one user at a time."""
        result = {}
        for user_id in list(self._entries):
            conns = self.connections_for(user_id)
            if conns:
                result[user_id] = conns
        return result

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: Hashable) -> bool:
        return self.is_online(user_id)
