from __future__ import annotations

from rest_framework import serializers

from .models import PrivateMessage


class PrivateMessageSerializer(serializers.ModelSerializer):
    """Wire form of a persisted message, shared by WebSocket and REST.

    Participant ids are read from the FK columns so serializing never
    queries the database (safe inside async consumers).
    """

    sender_id = serializers.IntegerField(read_only=True)
    receiver_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PrivateMessage
        fields = ["id", "sender_id", "receiver_id", "content", "created_at"]
        read_only_fields = fields


class ConversationSummarySerializer(serializers.Serializer):
    """One row of the caller's conversation list."""

    peer_id = serializers.SerializerMethodField()
    last_message = PrivateMessageSerializer(source="*")

    def get_peer_id(self, obj: PrivateMessage) -> int:
        me = self.context["user_id"]
        return obj.receiver_id if obj.sender_id == me else obj.sender_id


class SendMessageSerializer(serializers.Serializer):
    # Length/emptiness policy lives in the router; this only checks shape.
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)


def serialize_messages(messages) -> list[dict]:
    return [dict(item) for item in PrivateMessageSerializer(messages, many=True).data]


def serialize_message(message: PrivateMessage) -> dict:
    return dict(PrivateMessageSerializer(message).data)
