"""
Development settings for the private messaging backend.

Extends the base settings by enabling debugging, allowing all hosts and
swapping Redis for in-process cache and channel layers.  Do not use these
settings in production.
"""
from .base import *  # noqa

# Development toggles
DEBUG = True
ALLOWED_HOSTS = ["*", "127.0.0.1", "localhost"]
CSRF_TRUSTED_ORIGINS = ["http://127.0.0.1:8000", "http://localhost:8000"]

CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}
CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}
EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

LOGGING["loggers"]["messaging"]["level"] = "DEBUG"  # noqa: F405
LOGGING["loggers"]["common"]["level"] = "DEBUG"  # noqa: F405
LOGGING["loggers"]["channels"]["level"] = "DEBUG"  # noqa: F405
