"""
ASGI entry point for Django Channels.
This file configures HTTP, WebSocket and lifespan protocols by composing
the Django ASGI application with Channels routing.  The default settings
module is the development configuration.
"""

import os
import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "privmsg_backend.settings.dev")
django.setup()
from django.apps import apps
from django.conf import settings
from django.core.asgi import get_asgi_application
from django.contrib.staticfiles.handlers import ASGIStaticFilesHandler

from channels.routing import ProtocolTypeRouter, URLRouter
from channels.security.websocket import AllowedHostsOriginValidator

from common.channels_jwt_auth import JWTAuthMiddlewareStack
from messaging.routing import build_websocket_urlpatterns
from privmsg_backend.lifespan import LifespanApp


def build_application(service):
    """Compose the ASGI application around an explicit messaging service."""
    django_asgi_app = get_asgi_application()

    # Serve /static/ when running under an ASGI server in DEBUG mode
    if settings.DEBUG:
        django_asgi_app = ASGIStaticFilesHandler(django_asgi_app)

    return ProtocolTypeRouter({
        "http": django_asgi_app,
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddlewareStack(
                URLRouter(build_websocket_urlpatterns(service))
            )
        ),
        "lifespan": LifespanApp(service),
    })


application = build_application(apps.get_app_config("messaging").service)
