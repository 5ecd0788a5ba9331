"""
Efectos compartidos por todas las transiciones: historial y avisos.
"""
import logging

from django.db import transaction
from django.utils import timezone

from core.metrics import get_counter
from ..models import AppointmentStatusLog

logger = logging.getLogger(__name__)

transitions_applied = get_counter(
    "appointment_transitions_total",
    "Transiciones de estado aplicadas a citas",
    ["event"],
)


def record_status_change(
    appointment,
    from_status,
    to_status,
    event,
    *,
    actor=None,
    reason="",
    related=None,
    occurred_at=None,
):
    transitions_applied.labels(event).inc()
    return AppointmentStatusLog.objects.create(
        appointment=appointment,
        from_status=from_status or "",
        to_status=to_status,
        event=event,
        actor=actor if getattr(actor, "is_authenticated", False) else None,
        reason=reason or "",
        related_appointment=related,
        occurred_at=occurred_at or timezone.now(),
    )


def notify_after_commit(appointment, event):
    """Encola el aviso solo si la transacción actual confirma."""
    from notifications.services import NotificationService

    appointment_id = appointment.pk
    transaction.on_commit(lambda: NotificationService.notify_transition(appointment_id, event))
