"""
Channels consumer for private messaging.

One consumer instance is one connection session:

    Connecting --verify ok--> Authenticated --close/expiry--> Closed
    Connecting --verify failed / timeout / lookup error----> Closed

The credential arrives with the handshake (``Authorization: Bearer`` or
``?token=``, lifted into the scope by ``common.channels_jwt_auth``).
Nothing is accepted from the client before the session is
Authenticated.  Entering Authenticated registers the connection for
presence *before* history is replayed, so a message sent meanwhile is
delivered live; live deliveries already present in the replay batch are
dropped here.

Message Formats
---------------
>>> client -> server: {"type": "send_private", "receiver_id": 2, "content": "hi", "ref": "c-1"}
<<< server -> sender: {"type": "message_sent", "message": {...}, "ref": "c-1"}
<<< server -> receiver(s): {"type": "new_private_message", "message": {...}}

>>> client -> server: {"type": "get_conversation", "peer_id": 2, "since": 10}
<<< server -> client: {"type": "conversation", "peer_id": 2, "messages": [...]}

<<< server -> client, once after the handshake: {"type": "previous_messages", "messages": [...]}
<<< server -> client on a request error: {"type": "error", "error": "<code>", "detail": "..."}
"""
from __future__ import annotations

import asyncio
import enum
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.core.exceptions import ImproperlyConfigured

from common.identity import AuthError, Identity, UnknownAccount, verify_credential

from .exceptions import InvalidRequest, MessagingError, RecipientUnknown, StorageError
from .replay import ReplayBatch
from .router import parse_user_id
from .serializers import serialize_message, serialize_messages

log = logging.getLogger(__name__)

CLOSE_GOING_AWAY = 1001
CLOSE_INTERNAL_ERROR = 1011
CLOSE_UNAUTHORIZED = 4401
CLOSE_HANDSHAKE_TIMEOUT = 4408

EXPIRED_EVENT = "session.expired"


class SessionState(str, enum.Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


class PrivateChatConsumer(AsyncJsonWebsocketConsumer):
    """Realtime WebSocket consumer for per-user private messaging."""

    def __init__(self, *args, service=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service
        self.state = SessionState.CONNECTING
        self.identity: Optional[Identity] = None
        self.replayed_ids = frozenset()
        self._expiry_task: Optional[asyncio.Task] = None

    # ---------- lifecycle ----------

    async def connect(self) -> None:
        if self.service is None:
            raise ImproperlyConfigured("PrivateChatConsumer needs as_asgi(service=...)")
        try:
            identity = await asyncio.wait_for(self._verify(), timeout=self.service.handshake_timeout)
        except AuthError as exc:
            log.info("Rejected connection on %s: %s", self.scope.get("path"), exc.code)
            await self._terminate(CLOSE_UNAUTHORIZED)
            return
        except asyncio.TimeoutError:
            log.warning("Handshake not completed within %ss", self.service.handshake_timeout)
            await self._terminate(CLOSE_HANDSHAKE_TIMEOUT)
            return
        except StorageError:
            log.error("Account lookup failed during handshake on %s", self.scope.get("path"))
            await self._terminate(CLOSE_INTERNAL_ERROR)
            return

        await self.accept()
        await self._enter_authenticated(identity)

    async def disconnect(self, code: int) -> None:
        self._close_session()

    async def _verify(self) -> Identity:
        identity = verify_credential(self.scope.get("bearer_token"))
        if not await database_sync_to_async(self.service.is_known_user)(identity.user_id):
            raise UnknownAccount()
        return identity

    async def _enter_authenticated(self, identity: Identity) -> None:
        self.identity = identity
        self.state = SessionState.AUTHENTICATED
        # Registration must precede the replay snapshot.
        self.service.registry.register(identity.user_id, self.channel_name)
        log.info("User %s connected on %s", identity.user_id, self.channel_name)

        try:
            batch = await database_sync_to_async(self.service.replay.replay)(identity.user_id)
        except StorageError as exc:
            batch = ReplayBatch(boundary=None)
            await self.send_error(exc)
        self.replayed_ids = batch.message_ids
        await self.send_json({"type": "previous_messages", "messages": serialize_messages(batch.messages)})

        if identity.expires_at is not None:
            self._expiry_task = asyncio.ensure_future(self._expire_after(identity.expires_at))
            self._expiry_task.add_done_callback(self._expiry_done)

    async def _expire_after(self, expires_at: datetime) -> None:
        remaining = (expires_at - datetime.now(timezone.utc)).total_seconds()
        await asyncio.sleep(max(remaining, 0) + self.service.token_expiry_grace)
        # Routed through our own channel so it is handled in order with other events.
        await self.channel_layer.send(self.channel_name, {"type": EXPIRED_EVENT})

    def _expiry_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Expiry timer of %s failed", self.channel_name, exc_info=exc)

    def _close_session(self) -> None:
        """Enter Closed.  Idempotent; safe from any state."""
        if self.state is SessionState.CLOSED:
            return
        was_registered = self.state is SessionState.AUTHENTICATED
        self.state = SessionState.CLOSED
        if self._expiry_task is not None and not self._expiry_task.done():
            self._expiry_task.cancel()
        if was_registered:
            self.service.registry.unregister(self.identity.user_id, self.channel_name)
            log.info("User %s disconnected from %s", self.identity.user_id, self.channel_name)

    async def _terminate(self, code: int) -> None:
        self._close_session()
        await self.close(code=code)

    # ---------- inbound ----------

    # override to prevent JSONDecodeError on empty/invalid frames
    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        if self.state is not SessionState.AUTHENTICATED:
            return
        if not text_data:
            return  # ignore empty frame
        try:
            content = json.loads(text_data)
        except ValueError:
            await self.send_error(InvalidRequest("Invalid JSON"))
            return
        await self.receive_json(content)

    async def receive_json(self, content: Any, **kwargs: Any) -> None:
        if self.state is not SessionState.AUTHENTICATED:
            return
        if not isinstance(content, dict):
            await self.send_error(InvalidRequest("Frames must be JSON objects"))
            return

        ref = content.get("ref")
        handler = {
            "send_private": self._handle_send_private,
            "get_conversation": self._handle_get_conversation,
            "ping": self._handle_ping,
        }.get(content.get("type"))
        try:
            if handler is None:
                raise InvalidRequest(f"Unknown message type {content.get('type')!r}")
            await handler(content, ref)
        except MessagingError as exc:
            await self.send_error(exc, ref)

    async def _handle_send_private(self, content: Dict[str, Any], ref) -> None:
        message = await self.service.router.send(
            self.identity, content.get("receiver_id"), content.get("content")
        )
        await self._send_frame("message_sent", ref, message=serialize_message(message))

    async def _handle_get_conversation(self, content: Dict[str, Any], ref) -> None:
        peer_id = parse_user_id(content.get("peer_id"))
        since = content.get("since")
        if since is not None and (isinstance(since, bool) or not isinstance(since, int)):
            raise InvalidRequest("'since' must be a message id")
        if not await database_sync_to_async(self.service.is_known_user)(peer_id):
            raise RecipientUnknown()
        messages = await database_sync_to_async(self.service.store.query_conversation)(
            self.identity.user_id, peer_id, since
        )
        await self._send_frame(
            "conversation", ref, peer_id=peer_id, messages=serialize_messages(messages)
        )

    async def _handle_ping(self, content: Dict[str, Any], ref) -> None:
        await self._send_frame("pong", ref)

    # ---------- outbound ----------

    async def _send_frame(self, kind: str, ref=None, **fields: Any) -> None:
        frame = {"type": kind, **fields}
        if ref is not None:
            frame["ref"] = ref
        await self.send_json(frame)

    async def send_error(self, exc: MessagingError, ref=None) -> None:
        await self._send_frame("error", ref, error=exc.code, detail=exc.detail)

    async def private_message(self, event: Dict[str, Any]) -> None:
        """Handler for router deliveries of type 'private.message'."""
        if self.state is not SessionState.AUTHENTICATED:
            return
        message = event["message"]
        if message["id"] in self.replayed_ids:
            return
        await self.send_json({"type": "new_private_message", "message": message})

    async def session_expired(self, event: Dict[str, Any]) -> None:
        if self.state is not SessionState.AUTHENTICATED:
            return
        log.info("Token of user %s expired; closing %s", self.identity.user_id, self.channel_name)
        await self._send_frame("error", error="token_expired", detail="Access token expired; reconnect with a fresh one.")
        await self._terminate(CLOSE_UNAUTHORIZED)

    async def session_shutdown(self, event: Dict[str, Any]) -> None:
        if self.state is not SessionState.AUTHENTICATED:
            return
        await self._terminate(CLOSE_GOING_AWAY)
