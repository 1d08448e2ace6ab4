"""
Common test fixtures.

Provides users, signed access tokens, a fresh in-memory channel layer
per test, an explicitly built messaging service with its ASGI
application, and an authenticated REST client.
"""
import uuid
from datetime import timedelta

import jwt
import pytest
from channels.layers import InMemoryChannelLayer, channel_layers
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import User
from django.utils import timezone
from rest_framework_simplejwt.settings import api_settings

from messaging.service import MessagingService


@pytest.fixture(autouse=True)
def channel_layer():
    """Isolate every test on its own in-memory channel layer."""
    layer = InMemoryChannelLayer()
    previous = channel_layers.set("default", layer)
    yield layer
    if previous is None:
        channel_layers.backends.pop("default", None)
    else:
        channel_layers.set("default", previous)


@pytest.fixture
def alice(db):
    return User.objects.create_user(username="alice", password="pass12345", email="alice@example.com", first_name="Alice")


@pytest.fixture
def bob(db):
    return User.objects.create_user(username="bob", password="pass12345", email="bob@example.com")


@pytest.fixture
def carol(db):
    return User.objects.create_user(username="carol", password="pass12345", email="")


@pytest.fixture
def make_token():
    """Mint an access token the way the token endpoint does, with knobs for bad ones."""

    def _make(user_id, *, lifetime=timedelta(minutes=5), key=None, token_type="access",
              display_label="tester", **claims):
        now = timezone.now()
        payload = {
            api_settings.TOKEN_TYPE_CLAIM: token_type,
            api_settings.USER_ID_CLAIM: user_id,
            "exp": now + lifetime,
            "iat": now,
            "jti": uuid.uuid4().hex,
            "display_label": display_label,
        }
        payload.update(claims)
        return jwt.encode(payload, key or api_settings.SIGNING_KEY, algorithm=api_settings.ALGORITHM)

    return _make


@pytest.fixture
def messaging_service():
    """A service of its own, so presence state never leaks between tests."""
    return MessagingService.from_settings()


@pytest.fixture
def build_ws_app():
    from privmsg_backend.asgi import build_application

    return build_application


@pytest.fixture
def ws_app(build_ws_app, messaging_service):
    return build_ws_app(messaging_service)


@pytest.fixture
def ws_connect(ws_app, make_token):
    """Open an authenticated session; returns (communicator, replayed messages)."""

    async def _connect(user, app=None, token=None):
        token = token or make_token(user.pk, display_label=user.username)
        communicator = WebsocketCommunicator(
            app or ws_app,
            "/ws/messaging/",
            headers=[(b"authorization", f"Bearer {token}".encode())],
        )
        connected, code = await communicator.connect()
        assert connected, f"handshake rejected with {code}"
        frame = await communicator.receive_json_from()
        assert frame["type"] == "previous_messages"
        return communicator, frame["messages"]

    return _connect


@pytest.fixture
def auth_client(client, db, alice):
    """Authenticate the Django test client using JWT tokens."""
    resp = client.post(
        "/api/auth/token/",
        {"username": "alice", "password": "pass12345"},
        content_type="application/json",
    )
    assert resp.status_code == 200
    token = resp.json()["access"]
    client.defaults["HTTP_AUTHORIZATION"] = f"Bearer {token}"
    return client
