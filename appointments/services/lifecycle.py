import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..exceptions import (
    AppointmentNotFound,
    BookingValidationError,
    IllegalTransition,
    RiderUnavailable,
    StartWindowNotOpen,
    TotalLocked,
)
from ..models import Appointment, AppointmentStatus, Rider
from ..requests import TransitionAction, TransitionRequest
from .availability import SlotAvailabilityIndex
from .events import notify_after_commit, record_status_change
from .pricing import PricingCalculator

logger = logging.getLogger(__name__)

S = AppointmentStatus

# destino -> estados de origen permitidos
TRANSITIONS = {
    S.CONFIRMED: frozenset({S.PENDING}),
    S.IN_PROGRESS: frozenset({S.PENDING, S.CONFIRMED}),
    S.COMPLETED: frozenset({S.IN_PROGRESS}),
    S.CANCELLED: frozenset({S.PENDING, S.CONFIRMED}),
    S.NO_SHOW: frozenset({S.PENDING, S.CONFIRMED, S.IN_PROGRESS}),
    S.RESCHEDULED: frozenset({S.PENDING, S.CONFIRMED}),
}

TIMESTAMP_FIELDS = {
    S.CONFIRMED: "confirmed_at",
    S.IN_PROGRESS: "started_at",
    S.COMPLETED: "completed_at",
    S.CANCELLED: "cancelled_at",
    S.NO_SHOW: "no_show_at",
    S.RESCHEDULED: "rescheduled_at",
}

EVENTS = {
    S.CONFIRMED: "confirmed",
    S.IN_PROGRESS: "started",
    S.COMPLETED: "completed",
    S.CANCELLED: "cancelled",
    S.NO_SHOW: "no_show",
    S.RESCHEDULED: "rescheduled",
}

# Estados destino que liberan la franja.
RELEASING_STATUSES = frozenset({S.CANCELLED, S.NO_SHOW, S.RESCHEDULED})


def can_transition(from_status, to_status) -> bool:
    return from_status in TRANSITIONS.get(to_status, ())


def lock_appointment(appointment_id) -> Appointment:
    """Bloquea la fila de la cita; debe llamarse dentro de transaction.atomic."""
    try:
        return Appointment.objects.select_for_update().get(pk=appointment_id)
    except Appointment.DoesNotExist as exc:
        raise AppointmentNotFound() from exc


class AppointmentLifecycle:
    """
    Máquina de estados de una cita.

    Cada verbo bloquea la cita, valida la transición contra TRANSITIONS,
    aplica sus efectos (timestamp, historial, liberación de franja) y deja el
    aviso encolado para después del commit. Reaplicar el estado actual no hace
    nada y devuelve la cita tal cual.
    """

    def __init__(self, availability=None, grace_minutes=None):
        self.availability = availability or SlotAvailabilityIndex()
        if grace_minutes is None:
            grace_minutes = getattr(settings, "APPOINTMENT_START_GRACE_MINUTES", 15)
        self.grace = timedelta(minutes=grace_minutes)

    # ------------------------------------------------------------------
    # Verbos
    # ------------------------------------------------------------------
    def confirm(self, appointment_id, *, actor=None, now=None) -> Appointment:
        return self._transition(appointment_id, S.CONFIRMED, actor=actor, now=now)

    def start(self, appointment_id, *, actor=None, now=None) -> Appointment:
        return self._transition(appointment_id, S.IN_PROGRESS, actor=actor, now=now, precheck=self._check_start_window)

    def complete(self, appointment_id, *, actor=None, now=None) -> Appointment:
        return self._transition(appointment_id, S.COMPLETED, actor=actor, now=now)

    def cancel(self, appointment_id, reason, details="", *, actor=None, now=None) -> Appointment:
        reason = (reason or "").strip()
        if not reason:
            raise BookingValidationError({"reason": "El motivo de cancelación es obligatorio."})

        def apply_reason(appointment, _now):
            appointment.cancellation_reason = reason[:255]
            appointment.cancellation_details = (details or "").strip()
            return ["cancellation_reason", "cancellation_details"]

        return self._transition(
            appointment_id,
            S.CANCELLED,
            actor=actor,
            now=now,
            reason=reason,
            mutate=apply_reason,
        )

    def mark_no_show(self, appointment_id, *, actor=None, now=None) -> Appointment:
        return self._transition(appointment_id, S.NO_SHOW, actor=actor, now=now)

    def reschedule(self, appointment_id, new_date, new_time, *, actor=None, now=None):
        from .rescheduling import RescheduleCoordinator

        return RescheduleCoordinator(availability=self.availability).reschedule(
            appointment_id, new_date, new_time, actor=actor, now=now
        )

    def apply(self, request: TransitionRequest, now=None):
        """Despacha una TransitionRequest validada al verbo correspondiente."""
        request.validate()
        action = request.action
        if action == TransitionAction.CONFIRM:
            return self.confirm(request.appointment_id, actor=request.actor, now=now)
        if action == TransitionAction.START:
            return self.start(request.appointment_id, actor=request.actor, now=now)
        if action == TransitionAction.COMPLETE:
            return self.complete(request.appointment_id, actor=request.actor, now=now)
        if action == TransitionAction.CANCEL:
            return self.cancel(
                request.appointment_id, request.reason, request.details, actor=request.actor, now=now
            )
        if action == TransitionAction.NO_SHOW:
            return self.mark_no_show(request.appointment_id, actor=request.actor, now=now)
        return self.reschedule(
            request.appointment_id, request.new_date, request.new_time, actor=request.actor, now=now
        )

    # ------------------------------------------------------------------
    # Operaciones complementarias
    # ------------------------------------------------------------------
    def assign_rider(self, appointment_id, rider_id, *, actor=None, now=None) -> Appointment:
        now = now or timezone.now()
        with transaction.atomic():
            appointment = lock_appointment(appointment_id)
            if appointment.rider_id == rider_id:
                logger.info("Rider %s ya asignado a cita %s", rider_id, appointment.reference)
                return appointment
            if appointment.status != S.CONFIRMED:
                raise RiderUnavailable("Solo las citas confirmadas admiten rider.")
            if appointment.rider_id is not None:
                raise RiderUnavailable("La cita ya tiene un rider asignado.")

            rider = Rider.objects.filter(pk=rider_id, is_active=True).first()
            if rider is None:
                raise RiderUnavailable()

            appointment.rider = rider
            appointment.save(update_fields=["rider", "updated_at"])
            record_status_change(
                appointment,
                appointment.status,
                appointment.status,
                "rider_assigned",
                actor=actor,
                occurred_at=now,
            )
            notify_after_commit(appointment, "rider_assigned")

        logger.info("Rider %s asignado a cita %s", rider.pk, appointment.reference)
        return appointment

    def adjust_pricing(self, appointment_id, *, additional_charges=None, discount_amount=None, actor=None, now=None):
        """Recalcula el total con el precio ya pactado; prohibido en estados finales."""
        now = now or timezone.now()
        with transaction.atomic():
            appointment = lock_appointment(appointment_id)
            if appointment.is_terminal:
                raise TotalLocked()

            breakdown = PricingCalculator.apply_adjustments(
                appointment.service_price,
                appointment.additional_charges if additional_charges is None else additional_charges,
                appointment.discount_amount if discount_amount is None else discount_amount,
            )
            appointment.additional_charges = breakdown.additional_charges
            appointment.discount_amount = breakdown.discount_amount
            appointment.total_amount = breakdown.total
            appointment.save(update_fields=["additional_charges", "discount_amount", "total_amount", "updated_at"])
            record_status_change(
                appointment,
                appointment.status,
                appointment.status,
                "pricing_adjusted",
                actor=actor,
                reason=f"total={breakdown.total}",
                occurred_at=now,
            )

        logger.info("Total ajustado en cita %s: %s", appointment.reference, breakdown.total)
        return appointment, breakdown

    # ------------------------------------------------------------------
    # Núcleo
    # ------------------------------------------------------------------
    def _check_start_window(self, appointment, now):
        opens_at = appointment.scheduled_start - self.grace
        if now < opens_at:
            raise StartWindowNotOpen(extra={"opens_at": opens_at.isoformat()})

    def _transition(self, appointment_id, target, *, actor=None, now=None, reason="", precheck=None, mutate=None):
        now = now or timezone.now()
        with transaction.atomic():
            appointment = lock_appointment(appointment_id)
            current = appointment.status

            if current == target:
                logger.info("Transición repetida ignorada cita=%s estado=%s", appointment.reference, target)
                return appointment
            if not can_transition(current, target):
                logger.warning(
                    "Transición ilegal cita=%s %s -> %s",
                    appointment.reference,
                    current,
                    target,
                )
                raise IllegalTransition(current, target)
            if precheck:
                precheck(appointment, now)

            timestamp_field = TIMESTAMP_FIELDS[target]
            appointment.status = target
            setattr(appointment, timestamp_field, now)
            update_fields = ["status", timestamp_field, "updated_at"]
            if mutate:
                update_fields += mutate(appointment, now)
            appointment.save(update_fields=update_fields)

            record_status_change(
                appointment,
                current,
                target,
                EVENTS[target],
                actor=actor,
                reason=reason,
                occurred_at=now,
            )
            if target in RELEASING_STATUSES:
                self.availability.release_appointment(appointment)
            notify_after_commit(appointment, EVENTS[target])

        logger.info("Cita %s: %s -> %s", appointment.reference, current, target)
        return appointment
