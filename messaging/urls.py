# messaging/urls.py
"""
URL configuration for the messaging app.

These routes are included under the ``/api/messaging/`` prefix at the
project level.
"""

from django.urls import path

from .views import ConversationListView, ConversationMessagesView

app_name = "messaging"

urlpatterns = [
    path("conversations/", ConversationListView.as_view(), name="conversation-list"),
    path(
        "conversations/<int:peer_id>/messages/",
        ConversationMessagesView.as_view(),
        name="conversation-messages",
    ),
]
