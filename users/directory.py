"""
Lookups into the account space, for collaborators that must not know
how accounts are stored.
"""
from django.contrib.auth import get_user_model

User = get_user_model()


def is_known_user(user_id: int) -> bool:
    """True if ``user_id`` names an active account."""
    return User.objects.filter(pk=user_id, is_active=True).exists()


def display_label_for(user) -> str:
    """Best-effort printable name for a user."""
    full = (user.get_full_name() or "").strip()
    if full:
        return full
    if user.username:
        return user.username
    if user.email:
        return user.email.split("@")[0]
    return f"user-{user.pk}"
