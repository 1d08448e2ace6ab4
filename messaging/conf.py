"""Settings access for the messaging app, with defaults."""
from django.conf import settings

DEFAULTS = {
    "MAX_CONTENT_LENGTH": 2000,
    "REPLAY_LIMIT": 50,
    "HANDSHAKE_TIMEOUT": 10.0,
    "TOKEN_EXPIRY_GRACE": 30.0,
    "NOTIFY_OFFLINE_BY_EMAIL": False,
}


def messaging_settings() -> dict:
    """``settings.MESSAGING`` merged over the defaults."""
    merged = dict(DEFAULTS)
    merged.update(getattr(settings, "MESSAGING", {}) or {})
    if merged["REPLAY_LIMIT"] < 1:
        raise ValueError("MESSAGING['REPLAY_LIMIT'] must be a positive number")
    return merged
