"""
Message router: validate, persist, then deliver.

``MessageRouter.send`` is the only way a message enters the system,
whatever the transport.  The order of its steps is the contract:

1. content policy (nothing is written for invalid input),
2. recipient lookup,
3. durable insert (a failure here means no delivery at all),
4. fan-out to the recipient's live connections, found through the
   presence registry and addressed through the channel layer.

An offline recipient is not an error; the message waits in the store
for the recipient's next history replay.
"""
from __future__ import annotations

import logging
from typing import Callable

from channels import DEFAULT_CHANNEL_LAYER
from channels.db import database_sync_to_async
from channels.exceptions import ChannelFull
from channels.layers import get_channel_layer
from django.core.exceptions import ImproperlyConfigured

from common.identity import Identity

from .exceptions import InvalidContent, RecipientUnknown
from .models import PrivateMessage
from .presence import PresenceRegistry
from .serializers import serialize_message
from .store import MessageStore

logger = logging.getLogger(__name__)

# Channel-layer event type; handled by PrivateChatConsumer.private_message
DELIVERY_EVENT = "private.message"


def parse_user_id(value) -> int:
    """Coerce a client-supplied user id, or raise RecipientUnknown."""
    if isinstance(value, bool):
        raise RecipientUnknown()
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise RecipientUnknown()


class MessageRouter:
    def __init__(
        self,
        registry: PresenceRegistry,
        store: MessageStore,
        *,
        is_known_user: Callable[[int], bool],
        max_content_length: int,
        notify_offline: bool = False,
        channel_layer_alias: str = DEFAULT_CHANNEL_LAYER,
    ):
        self.registry = registry
        self.store = store
        self.is_known_user = is_known_user
        self.max_content_length = max_content_length
        self.notify_offline = notify_offline
        self.channel_layer_alias = channel_layer_alias

    @property
    def channel_layer(self):
        layer = get_channel_layer(self.channel_layer_alias)
        if layer is None:
            raise ImproperlyConfigured(f"Channel layer {self.channel_layer_alias!r} is not configured")
        return layer

    def validate_content(self, content) -> str:
        if not isinstance(content, str) or not content.strip():
            raise InvalidContent("Message content must be a non-empty string.")
        if len(content) > self.max_content_length:
            raise InvalidContent(
                f"Message content exceeds {self.max_content_length} characters."
            )
        return content

    async def send(self, sender: Identity, receiver_id, content) -> PrivateMessage:
        """Persist a message from ``sender`` and deliver it to the receiver's
        live connections.  Returns the persisted message as acknowledgment."""
        content = self.validate_content(content)
        receiver_id = parse_user_id(receiver_id)
        if not await database_sync_to_async(self.is_known_user)(receiver_id):
            raise RecipientUnknown()

        message = await database_sync_to_async(self.store.insert_message)(
            sender.user_id, receiver_id, content
        )
        delivered = await self.deliver(message)
        logger.info(
            "message %s from %s to %s delivered to %d connection(s)",
            message.id, sender.user_id, receiver_id, delivered,
        )
        if not delivered and self.notify_offline:
            await self._notify_offline(message)
        return message

    async def deliver(self, message: PrivateMessage) -> int:
        """Enqueue ``message`` on every live connection of its receiver.

        Returns the number of connections it was enqueued on.  A full
        connection queue is skipped without affecting the others.
        """
        connections = self.registry.connections_for(message.receiver_id)
        if not connections:
            return 0
        event = {"type": DELIVERY_EVENT, "message": serialize_message(message)}
        layer = self.channel_layer
        delivered = 0
        for channel_name in connections:
            try:
                await layer.send(channel_name, event)
            except ChannelFull:
                logger.warning("Outbound queue full for %s; dropped message %s", channel_name, message.id)
                continue
            delivered += 1
        return delivered

    async def _notify_offline(self, message: PrivateMessage) -> None:
        from .tasks import notify_offline_recipient

        try:
            await database_sync_to_async(notify_offline_recipient.delay)(message.id)
        except Exception:
            # Notification is best effort; the message is already stored.
            logger.exception("Could not queue offline notification for message %s", message.id)
