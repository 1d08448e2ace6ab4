"""
History replay: the one-shot batch a connection receives after its
handshake.

The batch is bounded to ``limit`` messages and cut at a snapshot
boundary, the highest message id persisted *after* the connection was
registered for presence.  Anything persisted later reaches the
connection through live delivery instead, so the two paths never carry
the same message.  Order is ascending ``id`` across all of the user's
conversations.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from .models import PrivateMessage
from .store import MessageStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayBatch:
    boundary: Optional[int]
    messages: List[PrivateMessage] = field(default_factory=list)

    @property
    def message_ids(self) -> FrozenSet[int]:
        return frozenset(m.id for m in self.messages)


class HistoryReplay:
    def __init__(self, store: MessageStore, limit: int):
        if limit < 1:
            raise ValueError("replay limit must be positive")
        self.store = store
        self.limit = limit

    def replay(self, user_id: int) -> ReplayBatch:
        """Must be called after the user's connection is registered."""
        boundary = self.store.latest_id()
        messages = self.store.recent_for_user(user_id, self.limit, boundary)
        logger.debug("replay for user %s: %d message(s) up to id %s", user_id, len(messages), boundary)
        return ReplayBatch(boundary=boundary, messages=messages)
