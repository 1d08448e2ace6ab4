from django.apps import AppConfig


class UsersConfig(AppConfig):
    """Account registration and credential issuance.

    Accounts are Django's built-in ``auth.User``; this app only adds the
    REST endpoints that mint access tokens for them and the directory
    lookups the messaging core consults.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "users"
