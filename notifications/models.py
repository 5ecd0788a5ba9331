from django.db import models

from core.models import BaseModel


class NotificationLog(BaseModel):
    """Un aviso de cita para un destinatario y canal concretos."""

    class Channel(models.TextChoices):
        EMAIL = "EMAIL", "Email"
        SMS = "SMS", "SMS"

    class RecipientRole(models.TextChoices):
        CUSTOMER = "CUSTOMER", "Cliente"
        VENDOR = "VENDOR", "Tienda"
        RIDER = "RIDER", "Rider"

    class Status(models.TextChoices):
        QUEUED = "QUEUED", "Encolada"
        SENT = "SENT", "Enviada"
        FAILED = "FAILED", "Fallida"

    appointment = models.ForeignKey(
        "appointments.Appointment",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notification_logs",
    )
    event_code = models.SlugField(max_length=64)
    channel = models.CharField(max_length=10, choices=Channel.choices)
    recipient = models.CharField(max_length=254)
    recipient_role = models.CharField(max_length=10, choices=RecipientRole.choices)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.QUEUED)
    error_message = models.TextField(blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    payload = models.JSONField(default=dict, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        verbose_name = "Registro de Notificación"
        verbose_name_plural = "Registros de Notificación"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event_code", "channel"], name="notif_event_channel_idx"),
            models.Index(fields=["appointment", "created_at"], name="notif_appt_created_idx"),
            models.Index(fields=["status", "created_at"], name="notif_status_created_idx"),
        ]

    def __str__(self):
        return f"{self.event_code} -> {self.channel} ({self.status})"
