"""
Views for the messaging app.

REST companion to the WebSocket endpoint.  Sending over HTTP goes
through the same MessageRouter, so live connections of the receiver
get ``new_private_message`` exactly as for a WebSocket send.
"""
from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from django.apps import apps
from rest_framework import permissions, status
from rest_framework.exceptions import APIException, NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from common.identity import Identity
from users.directory import display_label_for

from .exceptions import InvalidContent, InvalidRequest, MessagingError, RecipientUnknown
from .router import parse_user_id
from .serializers import (
    ConversationSummarySerializer,
    PrivateMessageSerializer,
    SendMessageSerializer,
)

logger = logging.getLogger(__name__)


class ServiceUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service temporarily unavailable, try again later."
    default_code = "storage_error"


def _as_api_error(exc: MessagingError) -> APIException:
    if isinstance(exc, (InvalidContent, InvalidRequest)):
        return ValidationError({"error": exc.code, "detail": exc.detail})
    if isinstance(exc, RecipientUnknown):
        return NotFound(exc.detail)
    return ServiceUnavailable(exc.detail)


class MessagingAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @property
    def service(self):
        return apps.get_app_config("messaging").service

    def _peer_id(self, raw) -> int:
        try:
            peer_id = parse_user_id(raw)
            if not self.service.is_known_user(peer_id):
                raise RecipientUnknown()
        except MessagingError as exc:
            raise _as_api_error(exc)
        return peer_id


class ConversationListView(MessagingAPIView):
    """GET /api/messaging/conversations/ : latest message per peer, newest first."""

    def get(self, request, *args, **kwargs):
        try:
            latest = self.service.store.latest_per_peer(request.user.pk)
        except MessagingError as exc:
            raise _as_api_error(exc)
        serializer = ConversationSummarySerializer(latest, many=True, context={"user_id": request.user.pk})
        return Response(serializer.data)


class ConversationMessagesView(MessagingAPIView):
    """
    GET  /api/messaging/conversations/<peer_id>/messages/?since=<id>
    POST /api/messaging/conversations/<peer_id>/messages/  {"content": "..."}
    """

    def get(self, request, peer_id, *args, **kwargs):
        peer = self._peer_id(peer_id)
        since = request.query_params.get("since")
        if since is not None and not since.isdigit():
            raise ValidationError({"since": "Must be a message id."})
        try:
            messages = self.service.store.query_conversation(
                request.user.pk, peer, int(since) if since is not None else None
            )
        except MessagingError as exc:
            raise _as_api_error(exc)
        return Response(PrivateMessageSerializer(messages, many=True).data)

    def post(self, request, peer_id, *args, **kwargs):
        peer = self._peer_id(peer_id)
        payload = SendMessageSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        sender = Identity(user_id=request.user.pk, display_label=display_label_for(request.user))
        try:
            message = async_to_sync(self.service.router.send)(
                sender, peer, payload.validated_data["content"]
            )
        except MessagingError as exc:
            raise _as_api_error(exc)
        return Response(PrivateMessageSerializer(message).data, status=status.HTTP_201_CREATED)
