from django.apps import AppConfig


class MessagingConfig(AppConfig):
    """Configuration for the messaging app.

    Builds the process-wide :class:`~messaging.service.MessagingService`
    once the app registry is ready; the ASGI application and the REST
    views both use that instance.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "messaging"
    service = None

    def ready(self) -> None:
        from .service import MessagingService

        self.service = MessagingService.from_settings()
