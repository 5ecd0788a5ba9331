from django.contrib import admin

from .models import NotificationLog


@admin.register(NotificationLog)
class NotificationLogAdmin(admin.ModelAdmin):
    list_display = ("event_code", "recipient_role", "channel", "status", "sent_at")
    list_filter = ("channel", "status", "recipient_role")
    search_fields = ("event_code", "appointment__reference")
    raw_id_fields = ("appointment",)
