"""
WebSocket routing for the messaging app.

Exposes a single URL for the private messaging endpoint.  The service
instance is passed in explicitly so every connection of one process
shares the same presence registry and router.
"""
from django.urls import re_path

from .consumers import PrivateChatConsumer


def build_websocket_urlpatterns(service):
    return [
        re_path(r"^ws/messaging/$", PrivateChatConsumer.as_asgi(service=service)),
    ]
