"""
Bearer-credential middleware for Django Channels.

This middleware extracts a JWT either from the WebSocket's
`Authorization: Bearer <token>` header or from a `token` query parameter
(browsers cannot set headers on WebSocket handshakes) and stores it as
`scope["bearer_token"]`.  It does not verify anything: verification is
the connection session's handshake step, so that the session alone
decides between `Authenticated` and `Closed`.
"""

import urllib.parse
from typing import Callable, Optional

from channels.middleware import BaseMiddleware


def extract_bearer_token(scope) -> Optional[str]:
    """Return the raw credential carried by a connection scope, if any."""
    headers = dict(scope.get("headers", []))

    # Check Authorization header for Bearer token
    auth_header = headers.get(b"authorization", b"").decode("latin-1")
    if auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token

    # Fallback: check query string for token parameter
    qs = scope.get("query_string", b"").decode("latin-1")
    params = urllib.parse.parse_qs(qs)
    return (params.get("token") or [None])[0] or None


class _JWTMiddleware(BaseMiddleware):
    """Low-level middleware to lift the credential into the scope."""

    async def __call__(self, scope, receive, send):
        scope = dict(scope, bearer_token=extract_bearer_token(scope))
        return await super().__call__(scope, receive, send)


def JWTAuthMiddlewareStack(inner: Callable):
    """Entry point for the middleware stack used by Channels routing."""
    return _JWTMiddleware(inner)
