import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from ..exceptions import AppointmentNotFound, IllegalTransition
from ..models import Appointment, AppointmentStatus
from .availability import SlotAvailabilityIndex, TimeSlot, ensure_not_past
from .booking import BookingEngine
from .catalog import ServiceCatalog
from .events import notify_after_commit, record_status_change
from .lifecycle import AppointmentLifecycle, can_transition, lock_appointment

logger = logging.getLogger(__name__)

# Campos que la cita sucesora hereda tal cual.
CARRIED_FIELDS = (
    "customer_id",
    "customer_name",
    "customer_email",
    "customer_phone",
    "customer_address",
    "customer_city",
    "emergency_contact_name",
    "emergency_contact_phone",
    "vendor_store_id",
    "service_id",
    "duration_minutes",
    "service_price",
    "additional_charges",
    "discount_amount",
    "total_amount",
    "currency",
    "requirements",
    "customer_notes",
    "internal_notes",
    "sms_notifications",
    "email_notifications",
    "is_home_service",
    "service_address",
)


@dataclass(frozen=True)
class RescheduleResult:
    original: Appointment
    successor: Appointment


class RescheduleCoordinator:
    """
    Mueve una cita a otra franja de la misma tienda y servicio.

    La original queda en `rescheduled` enlazada a una cita nueva que ocupa la
    franja destino; todo ocurre en una sola transacción. Si la validación de la
    nueva franja falla la original no cambia.
    """

    def __init__(self, availability=None, engine=None, catalog=None):
        self.availability = availability or SlotAvailabilityIndex()
        self.engine = engine or BookingEngine(availability=self.availability)
        self.catalog = catalog or ServiceCatalog

    def reschedule(self, appointment_id, new_date, new_time, *, actor=None, now=None) -> RescheduleResult:
        now = now or timezone.now()
        original = Appointment.objects.select_related("rescheduled_to").filter(pk=appointment_id).first()
        if original is None:
            raise AppointmentNotFound()

        if original.status == AppointmentStatus.RESCHEDULED:
            return self._already_rescheduled(original, new_date, new_time)
        if not can_transition(original.status, AppointmentStatus.RESCHEDULED):
            raise IllegalTransition(original.status, AppointmentStatus.RESCHEDULED)

        ensure_not_past(new_date, new_time, now)
        snapshot = self.catalog.lookup(original.vendor_store_id, original.service_id)
        slot = TimeSlot(
            store_id=original.vendor_store_id,
            service_id=original.service_id,
            day=new_date,
            start_time=new_time,
            duration_minutes=original.duration_minutes,
        )
        status, confirmed_at = BookingEngine.initial_status(snapshot.instant_booking, now)

        token = self.availability.reserve(slot, now, exclude_ids=[original.pk])
        try:
            with transaction.atomic():
                # Fila del servicio antes que la de la cita, igual que toda escritura de agenda.
                self.availability.verify(token)
                original = lock_appointment(appointment_id)
                if original.status == AppointmentStatus.RESCHEDULED:
                    return self._already_rescheduled(original, new_date, new_time)
                if not can_transition(original.status, AppointmentStatus.RESCHEDULED):
                    raise IllegalTransition(original.status, AppointmentStatus.RESCHEDULED)

                previous_status = original.status
                original.status = AppointmentStatus.RESCHEDULED
                original.rescheduled_at = now
                original.save(update_fields=["status", "rescheduled_at", "updated_at"])

                fields = {name: getattr(original, name) for name in CARRIED_FIELDS}
                fields.update(
                    appointment_date=slot.day,
                    appointment_time=slot.start_time,
                    estimated_end_time=slot.end_time,
                    status=status,
                    confirmed_at=confirmed_at,
                    reschedule_count=original.reschedule_count + 1,
                )
                successor = self.engine.create_appointment(fields, now)

                original.rescheduled_to = successor
                original.save(update_fields=["rescheduled_to", "updated_at"])

                record_status_change(
                    original,
                    previous_status,
                    AppointmentStatus.RESCHEDULED,
                    "rescheduled",
                    actor=actor,
                    related=successor,
                    occurred_at=now,
                )
                record_status_change(
                    successor,
                    "",
                    status,
                    "booked",
                    actor=actor,
                    related=original,
                    occurred_at=now,
                )
                self.availability.release_appointment(original)
                self.availability.invalidate(slot.store_id, slot.service_id, slot.day)
                notify_after_commit(successor, "rescheduled")
        finally:
            self.availability.release(token)

        logger.info(
            "Cita %s reprogramada a %s (%s %s)",
            original.reference,
            successor.reference,
            slot.day.isoformat(),
            slot.start_time.isoformat(),
        )
        return RescheduleResult(original=original, successor=successor)

    def cancel(self, appointment_id, reason, details="", *, actor=None, now=None) -> Appointment:
        return AppointmentLifecycle(availability=self.availability).cancel(
            appointment_id, reason, details, actor=actor, now=now
        )

    @staticmethod
    def _already_rescheduled(original, new_date, new_time) -> RescheduleResult:
        successor = original.rescheduled_to
        if successor and successor.appointment_date == new_date and successor.appointment_time == new_time:
            logger.info("Reprogramación repetida ignorada cita=%s", original.reference)
            return RescheduleResult(original=original, successor=successor)
        raise IllegalTransition(original.status, AppointmentStatus.RESCHEDULED)
