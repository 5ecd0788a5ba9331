from datetime import datetime, timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from core.exceptions import ResourceConflictError
from core.models import BaseModel
from .catalog import Rider, VendorService, VendorStore


def _default_currency():
    return getattr(settings, "APPOINTMENT_DEFAULT_CURRENCY", "PHP")


class AppointmentStatus(models.TextChoices):
    PENDING = "pending", "Pendiente"
    CONFIRMED = "confirmed", "Confirmada"
    IN_PROGRESS = "in_progress", "En curso"
    COMPLETED = "completed", "Completada"
    CANCELLED = "cancelled", "Cancelada"
    NO_SHOW = "no_show", "No asistió"
    RESCHEDULED = "rescheduled", "Reprogramada"


# Estados que ocupan su franja en la agenda.
ACTIVE_STATUSES = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.IN_PROGRESS,
    AppointmentStatus.COMPLETED,
})

TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
    AppointmentStatus.RESCHEDULED,
})


def is_active_status(status) -> bool:
    """Única fuente de verdad sobre si un estado bloquea su franja horaria."""
    return status in ACTIVE_STATUSES


class AppointmentQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status__in=ACTIVE_STATUSES)

    def in_bucket(self, store_id, service_id, day):
        return self.filter(vendor_store_id=store_id, service_id=service_id, appointment_date=day)

    def overlapping(self, start_time, end_time):
        # Intervalos semiabiertos [inicio, fin): las citas contiguas no chocan.
        return self.filter(appointment_time__lt=end_time, estimated_end_time__gt=start_time)


class Appointment(BaseModel):
    Status = AppointmentStatus

    reference = models.CharField(max_length=32, unique=True, editable=False)
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="appointments",
    )
    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=32)
    customer_address = models.TextField(blank=True)
    customer_city = models.CharField(max_length=128, blank=True)
    emergency_contact_name = models.CharField(max_length=255, blank=True)
    emergency_contact_phone = models.CharField(max_length=32, blank=True)

    vendor_store = models.ForeignKey(
        VendorStore,
        on_delete=models.PROTECT,
        related_name="appointments",
    )
    service = models.ForeignKey(
        VendorService,
        on_delete=models.PROTECT,
        related_name="appointments",
    )
    rider = models.ForeignKey(
        Rider,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="appointments",
    )

    appointment_date = models.DateField()
    appointment_time = models.TimeField()
    estimated_end_time = models.TimeField()
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    service_price = models.DecimalField(max_digits=10, decimal_places=2)
    additional_charges = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Discount actually applied after clamping.",
    )
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default=_default_currency)

    requirements = models.JSONField(default=list, blank=True)
    customer_notes = models.TextField(blank=True)
    internal_notes = models.TextField(blank=True)

    status = models.CharField(
        max_length=16,
        choices=AppointmentStatus.choices,
        default=AppointmentStatus.PENDING,
    )
    cancellation_reason = models.CharField(max_length=255, blank=True)
    cancellation_details = models.TextField(blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    rescheduled_at = models.DateTimeField(null=True, blank=True)
    no_show_at = models.DateTimeField(null=True, blank=True)

    sms_notifications = models.BooleanField(default=True)
    email_notifications = models.BooleanField(default=True)
    is_home_service = models.BooleanField(default=False)
    service_address = models.TextField(blank=True)

    rescheduled_to = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="rescheduled_from",
    )
    reschedule_count = models.PositiveIntegerField(default=0)

    objects = AppointmentQuerySet.as_manager()

    class Meta:
        verbose_name = "Cita"
        verbose_name_plural = "Citas"
        ordering = ["-appointment_date", "-appointment_time"]
        constraints = [
            models.UniqueConstraint(
                fields=["vendor_store", "service", "appointment_date", "appointment_time"],
                condition=models.Q(status__in=sorted(status.value for status in ACTIVE_STATUSES)),
                name="unique_active_appointment_slot",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name="appointment_total_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["vendor_store", "service", "appointment_date"], name="appt_store_service_date_idx"),
            models.Index(fields=["status", "appointment_date"], name="appt_status_date_idx"),
            models.Index(fields=["customer", "status"], name="appt_customer_status_idx"),
            models.Index(fields=["rider", "status"], name="appt_rider_status_idx"),
        ]

    def __str__(self):
        return f"{self.reference} ({self.get_status_display()})"

    def delete(self, using=None, keep_parents=False):
        raise ResourceConflictError("Las citas no se eliminan; cancélalas para liberar su franja.")

    @property
    def is_active(self) -> bool:
        return is_active_status(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def scheduled_start(self) -> datetime:
        """Inicio programado como datetime aware en la zona horaria del proyecto."""
        naive = datetime.combine(self.appointment_date, self.appointment_time)
        return timezone.make_aware(naive, timezone.get_current_timezone())

    @property
    def scheduled_end(self) -> datetime:
        return self.scheduled_start + timedelta(minutes=self.duration_minutes)

    def recompute_total(self) -> Decimal:
        from appointments.services.pricing import PricingCalculator

        return PricingCalculator.total_from_components(
            self.service_price,
            self.additional_charges,
            self.discount_amount,
        )


class AppointmentStatusLog(models.Model):
    appointment = models.ForeignKey(
        Appointment,
        on_delete=models.CASCADE,
        related_name="status_logs",
    )
    from_status = models.CharField(max_length=16, choices=AppointmentStatus.choices, blank=True)
    to_status = models.CharField(max_length=16, choices=AppointmentStatus.choices)
    event = models.CharField(max_length=32)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="appointment_status_changes",
    )
    reason = models.TextField(blank=True)
    related_appointment = models.ForeignKey(
        Appointment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    occurred_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = "Historial de estado"
        verbose_name_plural = "Historial de estados"
        ordering = ["occurred_at", "id"]

    def __str__(self):
        return f"{self.appointment_id}: {self.from_status or '-'} -> {self.to_status}"
