"""
Identity verification for real-time connections.

``verify_credential`` turns an opaque bearer credential (a SimpleJWT
access token) into an immutable :class:`Identity` or raises one of the
:class:`AuthError` subclasses.  It reads the same signing configuration
as the token issuer (``rest_framework_simplejwt.settings.api_settings``)
and touches no database or shared state, so it may be called from any
number of connections at once.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import jwt
from rest_framework_simplejwt.settings import api_settings


class AuthError(Exception):
    """Connection-level authentication failure; always fatal to the connection."""

    code = "auth_failed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class MissingToken(AuthError):
    """No credential was supplied."""

    code = "missing_token"


class MalformedToken(AuthError):
    """Credential could not be parsed as an access token."""

    code = "malformed_token"


class InvalidSignature(AuthError):
    """Credential signature does not match the signing key."""

    code = "invalid_signature"


class Expired(AuthError):
    """Credential has expired."""

    code = "token_expired"


class UnknownAccount(AuthError):
    """Credential refers to an account that no longer exists or is disabled."""

    code = "unknown_account"


@dataclass(frozen=True)
class Identity:
    """A verified user reference, fixed for the lifetime of a connection."""

    user_id: int
    display_label: str
    expires_at: Optional[datetime] = None


def _verifying_key() -> str:
    # Asymmetric algorithms verify with the public key; HMAC reuses the signing key.
    if api_settings.ALGORITHM.startswith("HS"):
        return api_settings.SIGNING_KEY
    return api_settings.VERIFYING_KEY or api_settings.SIGNING_KEY


def _coerce_user_id(raw) -> int:
    if isinstance(raw, bool):
        raise MalformedToken("Token carries no usable user id")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise MalformedToken("Token carries no usable user id") from None


def verify_credential(token: Optional[str]) -> Identity:
    """Validate ``token`` and return the identity it was issued for."""
    if not token or not token.strip():
        raise MissingToken()

    try:
        payload = jwt.decode(
            token.strip(),
            _verifying_key(),
            algorithms=[api_settings.ALGORITHM],
            audience=api_settings.AUDIENCE,
            issuer=api_settings.ISSUER,
            leeway=api_settings.LEEWAY,
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise Expired() from None
    except jwt.InvalidSignatureError:
        raise InvalidSignature() from None
    except jwt.InvalidTokenError as exc:
        raise MalformedToken(str(exc)) from None

    if payload.get(api_settings.TOKEN_TYPE_CLAIM) != "access":
        raise MalformedToken("Only access tokens may open a connection")

    user_id = _coerce_user_id(payload.get(api_settings.USER_ID_CLAIM))
    label = payload.get("display_label") or payload.get("username") or f"user-{user_id}"
    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    return Identity(user_id=user_id, display_label=str(label), expires_at=expires_at)
