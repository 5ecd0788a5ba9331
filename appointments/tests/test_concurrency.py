from concurrent.futures import ThreadPoolExecutor
from datetime import date, time
from threading import Barrier

import pytest
from django.db import transaction

from appointments.exceptions import IllegalTransition, SlotBusy, SlotConflict
from appointments.models import Appointment, AppointmentStatus
from appointments.services import SlotAvailabilityIndex
from appointments.services import rescheduling as rescheduling_module
from appointments.services.availability import TimeSlot
from core.caching import release_lock

S = AppointmentStatus


def test_parallel_reserves_leave_a_single_holder(mocker, now):
    # Solo se mide el lock por recurso; la consulta de conflictos no aplica.
    mocker.patch.object(SlotAvailabilityIndex, "_raise_on_conflict")
    availability = SlotAvailabilityIndex(lock_wait=0)
    workers = 8
    barrier = Barrier(workers)

    def attempt(start):
        slot = TimeSlot(store_id=1, service_id=2, day=date(2025, 2, 28), start_time=start, duration_minutes=30)
        barrier.wait()
        try:
            return availability.reserve(slot, now)
        except SlotBusy as exc:
            return exc

    starts = [time(10, 0), time(10, 15)] * (workers // 2)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(attempt, starts))

    tokens = [r for r in results if not isinstance(r, SlotBusy)]
    busy = [r for r in results if isinstance(r, SlotBusy)]
    assert len(tokens) == 1
    assert len(busy) == workers - 1

    availability.release(tokens[0])
    assert tokens[0].released is True


@pytest.mark.django_db
class TestInterleavedBookings:
    def test_second_booker_waits_for_the_lock_then_conflicts(self, engine, availability, make_booking_request, service, booking_day, now):
        in_flight = availability.reserve(TimeSlot(service.store_id, service.pk, booking_day, time(10, 0), 30), now)
        with pytest.raises(SlotBusy):
            engine.book(make_booking_request(appointment_time=time(10, 15)), now=now)

        availability.release(in_flight)
        winner = engine.book(make_booking_request(appointment_time=time(10, 0)), now=now)

        with pytest.raises(SlotConflict):
            engine.book(make_booking_request(appointment_time=time(10, 15)), now=now)
        assert list(Appointment.objects.active().values_list("pk", flat=True)) == [winner.pk]

    def test_expired_lock_is_caught_inside_the_transaction(self, engine, availability, make_booking_request, service, booking_day, now):
        slot = TimeSlot(service.store_id, service.pk, booking_day, time(10, 0), 30)
        stale = availability.reserve(slot, now)
        # El lock de caché expira antes de que el primer escritor persista.
        release_lock(stale.lock_key)
        winner = engine.book(make_booking_request(appointment_time=time(10, 15)), now=now)

        with pytest.raises(SlotConflict), transaction.atomic():
            availability.verify(stale)
        assert Appointment.objects.active().count() == 1
        assert Appointment.objects.get().pk == winner.pk


@pytest.mark.django_db
class TestInterleavedTransitions:
    def test_second_of_two_conflicting_transitions_is_rejected(self, lifecycle, book, now):
        appointment = book()
        # Ambos operadores ven la cita pendiente.
        seen_by_second = Appointment.objects.get(pk=appointment.pk)

        lifecycle.cancel(appointment.pk, "Agenda llena", now=now)

        assert seen_by_second.status == S.PENDING
        with pytest.raises(IllegalTransition):
            lifecycle.mark_no_show(seen_by_second.pk, now=now)

        appointment.refresh_from_db()
        assert appointment.status == S.CANCELLED
        assert appointment.no_show_at is None
        assert list(appointment.status_logs.values_list("to_status", flat=True)) == [S.PENDING, S.CANCELLED]

    def test_cancel_between_check_and_lock_aborts_reschedule(self, coordinator, lifecycle, availability, book, now, mocker):
        appointment = book()
        real_reserve = availability.reserve

        def reserve_then_cancel(slot, now=None, exclude_ids=()):
            token = real_reserve(slot, now, exclude_ids=exclude_ids)
            lifecycle.cancel(appointment.pk, "Cliente canceló", now=now)
            return token

        mocker.patch.object(availability, "reserve", side_effect=reserve_then_cancel)

        with pytest.raises(IllegalTransition):
            coordinator.reschedule(appointment.pk, date(2025, 3, 1), time(10, 0), now=now)

        appointment.refresh_from_db()
        assert appointment.status == S.CANCELLED
        assert appointment.rescheduled_to_id is None
        assert Appointment.objects.count() == 1

    def test_reschedule_locks_service_before_appointment(self, coordinator, availability, book, now, mocker):
        appointment = book()
        order = []
        real_verify = availability.verify
        real_lock = rescheduling_module.lock_appointment

        def verify(token):
            order.append("service")
            return real_verify(token)

        def lock(appointment_id):
            order.append("appointment")
            return real_lock(appointment_id)

        mocker.patch.object(availability, "verify", side_effect=verify)
        mocker.patch.object(rescheduling_module, "lock_appointment", side_effect=lock)

        coordinator.reschedule(appointment.pk, date(2025, 3, 1), time(10, 0), now=now)
        assert order == ["service", "appointment"]
