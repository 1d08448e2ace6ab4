# messaging/models.py
from django.conf import settings
from django.db import models
from django.db.models import Q


class PrivateMessageQuerySet(models.QuerySet):
    def involving(self, user_id: int):
        """Messages where ``user_id`` is either party."""
        return self.filter(Q(sender_id=user_id) | Q(receiver_id=user_id))

    def between(self, user_a: int, user_b: int):
        """The conversation of a pair, independent of who sent what."""
        return self.filter(
            Q(sender_id=user_a, receiver_id=user_b) | Q(sender_id=user_b, receiver_id=user_a)
        )


class PrivateMessage(models.Model):
    """
    One durable, immutable point-to-point message.

    ``id`` and ``created_at`` are assigned when the row is inserted;
    ascending ``id`` is the canonical conversation order.
    """

    id = models.BigAutoField(primary_key=True)
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="sent_private_messages"
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="received_private_messages"
    )
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = PrivateMessageQuerySet.as_manager()

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["sender", "receiver", "id"], name="pm_pair_idx"),
            models.Index(fields=["receiver", "id"], name="pm_receiver_idx"),
        ]

    def __str__(self):
        return f"PrivateMessage({self.id}: {self.sender_id} -> {self.receiver_id})"
