import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.metrics import get_counter
from ..exceptions import ReferenceGenerationExhausted, SlotConflict
from ..models import Appointment, AppointmentStatus
from ..requests import BookingRequest
from .availability import SlotAvailabilityIndex, TimeSlot, ensure_not_past
from .catalog import ServiceCatalog
from .events import notify_after_commit, record_status_change
from .pricing import PricingCalculator
from .reference import ReferenceGenerator

logger = logging.getLogger(__name__)

appointments_booked = get_counter(
    "appointments_booked_total",
    "Citas creadas por estado inicial",
    ["initial_status"],
)
reference_retries = get_counter(
    "appointment_reference_retries_total",
    "Colisiones de referencia que obligaron a regenerarla",
)


class BookingEngine:
    """
    Convierte una solicitud de reserva en una cita sin solapamientos.

    Orden: validar, rechazar fechas pasadas, leer el catálogo, calcular el
    total, reservar la franja y, dentro de una transacción, revalidar, asignar
    referencia y persistir.
    Cualquier fallo deja la base sin cita parcial y libera la reserva.
    """

    def __init__(self, availability=None, reference_generator=None, catalog=None, max_reference_attempts=None):
        self.availability = availability or SlotAvailabilityIndex()
        self.reference_generator = reference_generator or ReferenceGenerator()
        self.catalog = catalog or ServiceCatalog
        self.max_reference_attempts = max_reference_attempts or getattr(
            settings, "APPOINTMENT_REFERENCE_MAX_ATTEMPTS", 5
        )

    @staticmethod
    def initial_status(instant_booking, now):
        if instant_booking:
            return AppointmentStatus.CONFIRMED, now
        return AppointmentStatus.PENDING, None

    def book(self, request: BookingRequest, now=None) -> Appointment:
        now = now or timezone.now()
        request.validate()
        ensure_not_past(request.appointment_date, request.appointment_time, now)

        snapshot = self.catalog.lookup(request.store_id, request.service_id)
        slot = TimeSlot(
            store_id=snapshot.store_id,
            service_id=snapshot.service_id,
            day=request.appointment_date,
            start_time=request.appointment_time,
            duration_minutes=snapshot.duration_minutes,
        )
        breakdown = PricingCalculator.compute_total(
            snapshot.price_range,
            additional_charges=request.additional_charges,
            discount_amount=request.discount_amount,
            explicit_price=request.explicit_price,
        )
        status, confirmed_at = self.initial_status(snapshot.instant_booking, now)

        token = self.availability.reserve(slot, now)
        try:
            with transaction.atomic():
                self.availability.verify(token)
                appointment = self.create_appointment(
                    {
                        "customer": request.customer if getattr(request.customer, "pk", None) else None,
                        "customer_name": request.customer_name,
                        "customer_email": request.customer_email,
                        "customer_phone": request.customer_phone,
                        "customer_address": request.customer_address,
                        "customer_city": request.customer_city,
                        "emergency_contact_name": request.emergency_contact_name,
                        "emergency_contact_phone": request.emergency_contact_phone,
                        "vendor_store_id": snapshot.store_id,
                        "service_id": snapshot.service_id,
                        "appointment_date": slot.day,
                        "appointment_time": slot.start_time,
                        "estimated_end_time": slot.end_time,
                        "duration_minutes": slot.duration_minutes,
                        "service_price": breakdown.base_price,
                        "additional_charges": breakdown.additional_charges,
                        "discount_amount": breakdown.discount_amount,
                        "total_amount": breakdown.total,
                        "currency": snapshot.currency,
                        "requirements": list(request.requirements),
                        "customer_notes": request.customer_notes,
                        "is_home_service": request.is_home_service,
                        "service_address": request.service_address,
                        "sms_notifications": request.sms_notifications,
                        "email_notifications": request.email_notifications,
                        "status": status,
                        "confirmed_at": confirmed_at,
                    },
                    now,
                )
                record_status_change(
                    appointment,
                    "",
                    status,
                    "booked",
                    actor=request.customer,
                    occurred_at=now,
                )
                self.availability.invalidate(slot.store_id, slot.service_id, slot.day)
                notify_after_commit(appointment, "booked")
        finally:
            self.availability.release(token)

        appointments_booked.labels(status).inc()
        logger.info(
            "Cita creada ref=%s store=%s service=%s fecha=%s hora=%s estado=%s",
            appointment.reference,
            snapshot.store_id,
            snapshot.service_id,
            slot.day.isoformat(),
            slot.start_time.isoformat(),
            status,
        )
        if breakdown.discount_clamped:
            logger.info("Descuento recortado en cita ref=%s", appointment.reference)
        appointment.discount_clamped = breakdown.discount_clamped
        return appointment

    def create_appointment(self, fields: dict, now) -> Appointment:
        """
        Inserta la cita asignando una referencia única.

        Una colisión de referencia se reintenta hasta `max_reference_attempts`;
        cualquier otra violación de integridad es la restricción de franja y se
        traduce a SlotConflict.
        """
        for attempt in range(1, self.max_reference_attempts + 1):
            reference = self.reference_generator.generate(now)
            if Appointment.objects.filter(reference=reference).exists():
                reference_retries.inc()
                logger.warning("Referencia duplicada %s (intento %s)", reference, attempt)
                continue
            try:
                with transaction.atomic():
                    return Appointment.objects.create(reference=reference, **fields)
            except IntegrityError as exc:
                if Appointment.objects.filter(reference=reference).exists():
                    reference_retries.inc()
                    logger.warning("Referencia tomada en carrera %s (intento %s)", reference, attempt)
                    continue
                logger.warning(
                    "Restricción de franja rechazó la cita store=%s service=%s fecha=%s hora=%s",
                    fields.get("vendor_store_id"),
                    fields.get("service_id"),
                    fields.get("appointment_date"),
                    fields.get("appointment_time"),
                )
                raise SlotConflict() from exc

        logger.error("No se pudo generar referencia única tras %s intentos", self.max_reference_attempts)
        raise ReferenceGenerationExhausted()
