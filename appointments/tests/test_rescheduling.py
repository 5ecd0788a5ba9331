from datetime import date, time

import pytest

from appointments.exceptions import AppointmentNotFound, IllegalTransition, SlotConflict, SlotInPast
from appointments.models import Appointment, AppointmentStatus

S = AppointmentStatus


@pytest.fixture
def original(book):
    return book(appointment_time=time(10, 0))


@pytest.mark.django_db
class TestReschedule:
    def test_moves_to_new_slot(self, coordinator, original, booking_day, now):
        result = coordinator.reschedule(original.pk, booking_day, time(11, 0), now=now)
        original.refresh_from_db()
        successor = result.successor

        assert original.status == S.RESCHEDULED
        assert original.rescheduled_at == now
        assert original.rescheduled_to_id == successor.pk
        assert successor.rescheduled_from == original
        assert successor.status == S.PENDING
        assert successor.appointment_time == time(11, 0)
        assert successor.estimated_end_time == time(11, 30)
        assert successor.reschedule_count == 1
        assert successor.reference != original.reference
        assert successor.total_amount == original.total_amount
        assert successor.customer_name == original.customer_name

        original_log = original.status_logs.last()
        assert original_log.event == "rescheduled"
        assert original_log.related_appointment_id == successor.pk
        successor_log = successor.status_logs.get()
        assert successor_log.related_appointment_id == original.pk

    def test_original_slot_is_released(self, coordinator, original, book, booking_day, now):
        coordinator.reschedule(original.pk, booking_day, time(11, 0), now=now)
        replacement = book(appointment_time=time(10, 0))
        assert replacement.status == S.PENDING

    def test_can_overlap_own_previous_slot(self, coordinator, original, booking_day, now):
        result = coordinator.reschedule(original.pk, booking_day, time(10, 15), now=now)
        assert result.successor.appointment_time == time(10, 15)

    def test_conflict_leaves_original_untouched(self, coordinator, original, book, booking_day, now):
        book(appointment_time=time(11, 0))
        with pytest.raises(SlotConflict):
            coordinator.reschedule(original.pk, booking_day, time(11, 15), now=now)

        original.refresh_from_db()
        assert original.status == S.PENDING
        assert original.rescheduled_to_id is None
        assert Appointment.objects.count() == 2

    def test_past_target(self, coordinator, original, booking_day, now):
        with pytest.raises(SlotInPast):
            coordinator.reschedule(original.pk, booking_day, time(8, 0), now=now)
        original.refresh_from_db()
        assert original.status == S.PENDING

    def test_past_target_near_midnight(self, coordinator, original, now):
        with pytest.raises(SlotInPast):
            coordinator.reschedule(original.pk, date(2025, 2, 27), time(23, 45), now=now)

    def test_repeated_request_returns_same_successor(self, coordinator, original, booking_day, now):
        first = coordinator.reschedule(original.pk, booking_day, time(11, 0), now=now)
        second = coordinator.reschedule(original.pk, booking_day, time(11, 0), now=now)
        assert second.successor.pk == first.successor.pk
        assert Appointment.objects.count() == 2

    def test_rescheduled_original_cannot_move_elsewhere(self, coordinator, original, booking_day, now):
        coordinator.reschedule(original.pk, booking_day, time(11, 0), now=now)
        with pytest.raises(IllegalTransition):
            coordinator.reschedule(original.pk, booking_day, time(12, 0), now=now)

    def test_successor_can_be_rescheduled_again(self, coordinator, original, now):
        first = coordinator.reschedule(original.pk, date(2025, 3, 1), time(9, 0), now=now)
        second = coordinator.reschedule(first.successor.pk, date(2025, 3, 2), time(9, 0), now=now)
        assert second.successor.reschedule_count == 2
        assert second.successor.appointment_date == date(2025, 3, 2)

    def test_in_progress_cannot_be_rescheduled(self, coordinator, lifecycle, original, booking_day, now):
        lifecycle.start(original.pk, now=now.replace(hour=9, minute=50))
        with pytest.raises(IllegalTransition):
            coordinator.reschedule(original.pk, booking_day, time(12, 0), now=now)

    def test_instant_booking_confirms_successor(self, coordinator, original, store, booking_day, now):
        store.instant_booking = True
        store.save()
        result = coordinator.reschedule(original.pk, booking_day, time(12, 0), now=now)
        assert result.successor.status == S.CONFIRMED
        assert result.successor.confirmed_at == now

    def test_rider_is_not_carried(self, coordinator, lifecycle, original, rider, booking_day, now):
        lifecycle.confirm(original.pk, now=now)
        lifecycle.assign_rider(original.pk, rider.pk, now=now)
        result = coordinator.reschedule(original.pk, booking_day, time(12, 0), now=now)
        assert result.successor.rider_id is None

    def test_missing(self, coordinator, db, booking_day, now):
        with pytest.raises(AppointmentNotFound):
            coordinator.reschedule(999999, booking_day, time(12, 0), now=now)

    def test_lifecycle_delegates(self, lifecycle, original, booking_day, now):
        result = lifecycle.reschedule(original.pk, booking_day, time(13, 0), now=now)
        assert result.successor.appointment_time == time(13, 0)

    def test_cancel_delegates_to_lifecycle(self, coordinator, original, now):
        cancelled = coordinator.cancel(original.pk, "Viaje", now=now)
        assert cancelled.status == S.CANCELLED
