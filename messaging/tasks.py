"""
messaging/tasks.py

Offline notification: when a private message finds its receiver with no
live connection, email them that something is waiting.  Queued by the
router only when MESSAGING["NOTIFY_OFFLINE_BY_EMAIL"] is on.
"""
import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from users.directory import display_label_for

from .models import PrivateMessage

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 140


@shared_task
def notify_offline_recipient(message_id: int) -> bool:
    """Email the receiver of ``message_id``.  Returns True if a mail was sent."""
    msg = (
        PrivateMessage.objects.select_related("sender", "receiver")
        .filter(pk=message_id)
        .first()
    )
    if msg is None:
        logger.warning("Offline notification for missing message %s", message_id)
        return False
    if not msg.receiver.email:
        return False

    sender_label = display_label_for(msg.sender)
    preview = msg.content[:PREVIEW_CHARS]
    send_mail(
        subject=f"New message from {sender_label}",
        message=f"{sender_label} wrote:\n\n{preview}",
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[msg.receiver.email],
        fail_silently=False,
    )
    logger.info("Sent offline notification for message %s to user %s", msg.pk, msg.receiver_id)
    return True
