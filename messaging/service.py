"""
The messaging service: one explicitly constructed bundle of the
presence registry, message store, history replay and router.

``MessagingConfig.ready()`` builds the process-wide instance; the ASGI
composition passes it into every consumer, and the REST views fetch it
from the app config.  Tests construct their own.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from channels import DEFAULT_CHANNEL_LAYER

from .conf import messaging_settings
from .presence import PresenceRegistry
from .replay import HistoryReplay
from .router import MessageRouter
from .store import MessageStore, storage_guard

logger = logging.getLogger(__name__)

# Channel-layer event type; handled by PrivateChatConsumer.session_shutdown
SHUTDOWN_EVENT = "session.shutdown"


class MessagingService:
    def __init__(
        self,
        *,
        is_known_user: Callable[[int], bool],
        registry: Optional[PresenceRegistry] = None,
        store: Optional[MessageStore] = None,
        max_content_length: int = 2000,
        replay_limit: int = 50,
        handshake_timeout: float = 10.0,
        token_expiry_grace: float = 30.0,
        notify_offline: bool = False,
        channel_layer_alias: str = DEFAULT_CHANNEL_LAYER,
    ):
        # Directory lookups hit the same database as the store.
        self.is_known_user = storage_guard(is_known_user)
        self.registry = registry if registry is not None else PresenceRegistry()
        self.store = store if store is not None else MessageStore()
        self.replay = HistoryReplay(self.store, replay_limit)
        self.router = MessageRouter(
            self.registry,
            self.store,
            is_known_user=self.is_known_user,
            max_content_length=max_content_length,
            notify_offline=notify_offline,
            channel_layer_alias=channel_layer_alias,
        )
        self.handshake_timeout = handshake_timeout
        self.token_expiry_grace = token_expiry_grace
        self.channel_layer_alias = channel_layer_alias

    @classmethod
    def from_settings(cls, **overrides) -> "MessagingService":
        """Build a service from ``settings.MESSAGING``; keyword arguments win."""
        from users.directory import is_known_user

        conf = messaging_settings()
        kwargs = {
            "is_known_user": is_known_user,
            "max_content_length": conf["MAX_CONTENT_LENGTH"],
            "replay_limit": conf["REPLAY_LIMIT"],
            "handshake_timeout": conf["HANDSHAKE_TIMEOUT"],
            "token_expiry_grace": conf["TOKEN_EXPIRY_GRACE"],
            "notify_offline": conf["NOTIFY_OFFLINE_BY_EMAIL"],
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    async def shutdown(self) -> int:
        """Ask every live connection to close.  Returns how many were asked."""
        layer = self.router.channel_layer
        asked = 0
        for connections in self.registry.snapshot().values():
            for channel_name in connections:
                await layer.send(channel_name, {"type": SHUTDOWN_EVENT})
                asked += 1
        logger.info("Shutdown requested for %d connection(s)", asked)
        return asked
