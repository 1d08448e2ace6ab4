"""
Message store: durable, append-only persistence of private messages.

Synchronous ORM code; async callers wrap these methods with
``database_sync_to_async``.  Database failures surface as
:class:`~messaging.exceptions.StorageError` with the cause logged, so
nothing above this layer ever sees driver exceptions.
"""
from __future__ import annotations

import functools
import logging
from typing import List, Optional

from django.db import DatabaseError, transaction
from django.db.models import Max

from .exceptions import StorageError
from .models import PrivateMessage

logger = logging.getLogger(__name__)


def storage_guard(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.exception("Message store failure in %s", func.__name__)
            raise StorageError() from exc

    return wrapper


class MessageStore:
    """ORM-backed store.  Holds no state, so one instance can be shared."""

    @storage_guard
    def insert_message(self, sender_id: int, receiver_id: int, content: str) -> PrivateMessage:
        """Persist a message; ``id`` and ``created_at`` are assigned here."""
        with transaction.atomic():
            return PrivateMessage.objects.create(
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=content,
            )

    @storage_guard
    def query_conversation(
        self, user_a: int, user_b: int, since: Optional[int] = None
    ) -> List[PrivateMessage]:
        """Full conversation of a pair in ascending id order, optionally after ``since``."""
        qs = PrivateMessage.objects.between(user_a, user_b)
        if since is not None:
            qs = qs.filter(id__gt=since)
        return list(qs.order_by("id"))

    @storage_guard
    def latest_id(self) -> Optional[int]:
        """Highest id persisted so far, or None for an empty store."""
        return PrivateMessage.objects.aggregate(top=Max("id"))["top"]

    @storage_guard
    def recent_for_user(self, user_id: int, limit: int, up_to_id: Optional[int]) -> List[PrivateMessage]:
        """The ``limit`` newest messages involving ``user_id`` with id <= ``up_to_id``,
        returned oldest first."""
        if up_to_id is None or limit < 1:
            return []
        newest_first = (
            PrivateMessage.objects.involving(user_id)
            .filter(id__lte=up_to_id)
            .order_by("-id")[:limit]
        )
        return list(reversed(list(newest_first)))

    @storage_guard
    def latest_per_peer(self, user_id: int) -> List[PrivateMessage]:
        """Latest message of each of the user's conversations, newest first."""
        latest = {}
        sent = (
            PrivateMessage.objects.filter(sender_id=user_id)
            .values("receiver_id")
            .annotate(top=Max("id"))
        )
        for row in sent:
            latest[row["receiver_id"]] = row["top"]
        received = (
            PrivateMessage.objects.filter(receiver_id=user_id)
            .values("sender_id")
            .annotate(top=Max("id"))
        )
        for row in received:
            peer = row["sender_id"]
            latest[peer] = max(latest.get(peer, 0), row["top"])
        return list(PrivateMessage.objects.filter(id__in=list(latest.values())).order_by("-id"))
