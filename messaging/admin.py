# messaging/admin.py
from django.contrib import admin

from .models import PrivateMessage


@admin.register(PrivateMessage)
class PrivateMessageAdmin(admin.ModelAdmin):
    """Messages are immutable once stored; the admin only reads them."""

    list_display = ("id", "sender", "receiver", "short_content", "created_at")
    list_filter = ("created_at",)
    search_fields = ("sender__username", "receiver__username", "content")
    ordering = ("-id",)
    readonly_fields = ("sender", "receiver", "content", "created_at")

    def short_content(self, obj):
        return obj.content[:80]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
