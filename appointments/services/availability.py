import logging
import time as monotonic_time
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

from core.caching import CacheKeys, acquire_lock, release_lock
from core.metrics import get_counter, get_histogram
from ..exceptions import BookingValidationError, SlotBusy, SlotConflict, SlotInPast
from ..models import Appointment, VendorService

logger = logging.getLogger(__name__)

booking_conflicts = get_counter(
    "appointment_slot_conflicts_total",
    "Conflictos de agenda detectados al reservar",
    ["stage"],
)
lock_contention = get_counter(
    "appointment_slot_lock_busy_total",
    "Reservas rechazadas por lock de franja ocupado",
)
availability_duration = get_histogram(
    "appointment_availability_duration_seconds",
    "Duración del cálculo de horarios disponibles",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2],
)


def ensure_not_past(day: date, start_time: time, now: datetime) -> None:
    """Rechaza con SlotInPast un inicio igual o anterior a `now`."""
    start_at = timezone.make_aware(datetime.combine(day, start_time), timezone.get_current_timezone())
    if start_at <= now:
        raise SlotInPast(
            extra={
                "appointment_date": day.isoformat(),
                "appointment_time": start_time.isoformat(),
            }
        )


@dataclass(frozen=True)
class TimeSlot:
    """
    Intervalo semiabierto [inicio, fin) de un servicio de una tienda en una fecha.

    Las horas son locales a la zona horaria del proyecto. Una franja no puede
    cruzar la medianoche porque la agenda se agrupa por fecha.
    """
    store_id: int
    service_id: int
    day: date
    start_time: time
    duration_minutes: int

    def __post_init__(self):
        if not self.duration_minutes or self.duration_minutes <= 0:
            raise BookingValidationError({"duration_minutes": "La duración debe ser positiva."})
        naive_end = datetime.combine(self.day, self.start_time) + timedelta(minutes=self.duration_minutes)
        if naive_end.date() != self.day:
            raise BookingValidationError(
                {"appointment_time": "La cita debe terminar antes de la medianoche."}
            )

    @property
    def resource_key(self) -> str:
        return CacheKeys.slot_bucket(self.store_id, self.service_id, self.day)

    @property
    def end_time(self) -> time:
        naive_end = datetime.combine(self.day, self.start_time) + timedelta(minutes=self.duration_minutes)
        return naive_end.time()

    @property
    def start_at(self) -> datetime:
        return timezone.make_aware(
            datetime.combine(self.day, self.start_time),
            timezone.get_current_timezone(),
        )

    @property
    def end_at(self) -> datetime:
        return self.start_at + timedelta(minutes=self.duration_minutes)

    def overlaps(self, other_start: time, other_end: time) -> bool:
        return self.start_time < other_end and other_start < self.end_time


@dataclass
class ReservationToken:
    """Reserva provisional: el lock de la franja mientras se escribe la cita."""
    slot: TimeSlot
    lock_key: str
    acquired_at: datetime
    exclude_ids: tuple = field(default_factory=tuple)
    released: bool = False


class SlotAvailabilityIndex:
    """
    Vista de ocupación por (tienda, servicio, fecha).

    La verificación y la reserva se serializan con un lock de caché por clave
    de recurso; dentro de la transacción de escritura se vuelve a verificar
    bajo el lock de fila del servicio y la restricción única parcial de la
    tabla actúa como respaldo final.
    """

    def __init__(self, lock_timeout=None, lock_wait=None, cache_timeout=None):
        self.lock_timeout = lock_timeout or getattr(settings, "APPOINTMENT_LOCK_TIMEOUT_SECONDS", 10)
        self.lock_wait = lock_wait if lock_wait is not None else getattr(settings, "APPOINTMENT_LOCK_WAIT_SECONDS", 2)
        self.cache_timeout = cache_timeout or getattr(settings, "APPOINTMENT_SLOT_CACHE_TIMEOUT", 60)

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------
    @staticmethod
    def _conflicts(slot: TimeSlot, exclude_ids=()):
        qs = (
            Appointment.objects.active()
            .in_bucket(slot.store_id, slot.service_id, slot.day)
            .overlapping(slot.start_time, slot.end_time)
        )
        if exclude_ids:
            qs = qs.exclude(pk__in=exclude_ids)
        return qs

    def busy_intervals(self, store_id, service_id, day) -> list[tuple[time, time]]:
        """Intervalos ocupados del día, cacheados por clave de recurso."""
        key = CacheKeys.busy_intervals(CacheKeys.slot_bucket(store_id, service_id, day))
        intervals = cache.get(key)
        if intervals is None:
            intervals = list(
                Appointment.objects.active()
                .in_bucket(store_id, service_id, day)
                .order_by("appointment_time")
                .values_list("appointment_time", "estimated_end_time")
            )
            cache.set(key, intervals, timeout=self.cache_timeout)
        return intervals

    def is_available(self, slot: TimeSlot, now=None, exclude_ids=()) -> bool:
        now = now or timezone.now()
        if slot.start_at <= now:
            return False
        return not self._conflicts(slot, exclude_ids).exists()

    def available_slots(self, store_id, service_id, day, now=None) -> list[time]:
        """Horas de inicio libres según el horario y la grilla de la tienda."""
        from .catalog import ServiceCatalog

        started = monotonic_time.monotonic()
        now = now or timezone.now()
        snapshot = ServiceCatalog.lookup(store_id, service_id)
        busy = self.busy_intervals(store_id, service_id, day)

        duration = timedelta(minutes=snapshot.duration_minutes)
        step = timedelta(minutes=snapshot.slot_interval_minutes)
        cursor = datetime.combine(day, snapshot.opens_at)
        closing = datetime.combine(day, snapshot.closes_at)

        slots = []
        while cursor + duration <= closing:
            candidate = TimeSlot(store_id, service_id, day, cursor.time(), snapshot.duration_minutes)
            if candidate.start_at > now and not any(
                candidate.overlaps(busy_start, busy_end) for busy_start, busy_end in busy
            ):
                slots.append(candidate.start_time)
            cursor += step

        availability_duration.observe(monotonic_time.monotonic() - started)
        return slots

    # ------------------------------------------------------------------
    # Reserva
    # ------------------------------------------------------------------
    def reserve(self, slot: TimeSlot, now=None, exclude_ids=()) -> ReservationToken:
        now = now or timezone.now()
        ensure_not_past(slot.day, slot.start_time, now)

        lock_key = slot.resource_key
        if not acquire_lock(lock_key, timeout=self.lock_timeout, wait=self.lock_wait):
            lock_contention.inc()
            logger.warning("Lock de agenda ocupado key=%s", lock_key)
            raise SlotBusy()

        token = ReservationToken(slot=slot, lock_key=lock_key, acquired_at=now, exclude_ids=tuple(exclude_ids))
        try:
            self._raise_on_conflict(slot, token.exclude_ids, stage="reserve")
        except SlotConflict:
            self.release(token)
            raise
        return token

    def verify(self, token: ReservationToken) -> None:
        """
        Revalida la franja dentro de la transacción de escritura.

        Bloquea la fila del servicio para serializar escritores del mismo
        recurso aunque el lock de caché haya expirado. Es el primer lock de
        fila que toma cualquier escritura de agenda; la consulta de conflictos
        solo lee.
        """
        slot = token.slot
        VendorService.all_objects.select_for_update().filter(pk=slot.service_id).first()
        self._raise_on_conflict(slot, token.exclude_ids, stage="verify")

    def _raise_on_conflict(self, slot: TimeSlot, exclude_ids, stage):
        conflict = self._conflicts(slot, exclude_ids).only("pk", "reference").first()
        if conflict is None:
            return
        booking_conflicts.labels(stage).inc()
        logger.warning(
            "Conflicto de agenda key=%s start=%s end=%s existente=%s",
            slot.resource_key,
            slot.start_time.isoformat(),
            slot.end_time.isoformat(),
            conflict.reference,
        )
        raise SlotConflict()

    def release(self, token: ReservationToken) -> None:
        if token.released:
            return
        release_lock(token.lock_key)
        token.released = True

    # ------------------------------------------------------------------
    # Invalidación
    # ------------------------------------------------------------------
    def invalidate(self, store_id, service_id, day) -> None:
        key = CacheKeys.busy_intervals(CacheKeys.slot_bucket(store_id, service_id, day))
        cache.delete(key)
        # Otro lector pudo recachear el estado previo antes del commit.
        transaction.on_commit(lambda: cache.delete(key))

    def release_appointment(self, appointment: Appointment) -> None:
        """La cita dejó de ocupar su franja: refresca la vista del día."""
        self.invalidate(appointment.vendor_store_id, appointment.service_id, appointment.appointment_date)
