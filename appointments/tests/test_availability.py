from datetime import date, time, timedelta

import pytest
from django.core.cache import cache
from django.db import IntegrityError, transaction

from appointments.exceptions import BookingValidationError, SlotBusy, SlotConflict, SlotInPast
from appointments.services.availability import TimeSlot
from core.caching import CacheKeys, acquire_lock, release_lock


def _slot(service, start, day=date(2025, 2, 28), duration=None):
    return TimeSlot(
        store_id=service.store_id,
        service_id=service.pk,
        day=day,
        start_time=start,
        duration_minutes=duration or service.duration_minutes,
    )


class TestTimeSlot:
    def test_end_time_and_resource_key(self):
        slot = TimeSlot(store_id=1, service_id=2, day=date(2025, 2, 28), start_time=time(10, 0), duration_minutes=45)
        assert slot.end_time == time(10, 45)
        assert slot.end_at - slot.start_at == timedelta(minutes=45)
        assert slot.resource_key == "appt:slot:1:2:2025-02-28"

    def test_half_open_overlap(self):
        slot = TimeSlot(1, 2, date(2025, 2, 28), time(10, 0), 30)
        assert slot.overlaps(time(10, 15), time(10, 45))
        assert slot.overlaps(time(9, 45), time(10, 1))
        assert not slot.overlaps(time(10, 30), time(11, 0))
        assert not slot.overlaps(time(9, 30), time(10, 0))

    @pytest.mark.parametrize("start", [time(23, 30), time(23, 45)])
    def test_slot_cannot_cross_midnight(self, start):
        with pytest.raises(BookingValidationError):
            TimeSlot(1, 2, date(2025, 2, 28), start, 30)

    def test_duration_must_be_positive(self):
        with pytest.raises(BookingValidationError):
            TimeSlot(1, 2, date(2025, 2, 28), time(10, 0), 0)


@pytest.mark.django_db
class TestIsAvailable:
    def test_free_slot(self, availability, service, now):
        assert availability.is_available(_slot(service, time(10, 0)), now) is True

    def test_slot_at_or_before_now_is_unavailable(self, availability, service, now):
        assert availability.is_available(_slot(service, time(9, 0)), now) is False
        assert availability.is_available(_slot(service, time(8, 0)), now) is False

    def test_overlapping_booking_blocks(self, availability, service, now, book):
        book(appointment_time=time(10, 0))
        assert availability.is_available(_slot(service, time(10, 15)), now) is False
        assert availability.is_available(_slot(service, time(9, 45)), now) is False
        assert availability.is_available(_slot(service, time(10, 30)), now) is True
        assert availability.is_available(_slot(service, time(9, 30)), now) is True

    def test_excluded_appointment_does_not_block(self, availability, service, now, book):
        appointment = book(appointment_time=time(10, 0))
        assert availability.is_available(_slot(service, time(10, 15)), now, exclude_ids=[appointment.pk]) is True

    def test_other_service_does_not_block(self, availability, service, ranged_service, now, book):
        book(appointment_time=time(10, 0))
        assert availability.is_available(_slot(ranged_service, time(10, 0)), now) is True

    def test_cancelled_booking_frees_slot(self, availability, lifecycle, service, now, book):
        appointment = book(appointment_time=time(10, 0))
        lifecycle.cancel(appointment.pk, "Cambio de planes", now=now)
        assert availability.is_available(_slot(service, time(10, 0)), now) is True


@pytest.mark.django_db
class TestAvailableSlots:
    def test_grid_skips_past_and_busy_starts(self, availability, service, booking_day, now, book):
        book(appointment_time=time(10, 0))
        slots = availability.available_slots(service.store_id, service.pk, booking_day, now)
        assert slots == [time(hour, 0) for hour in range(11, 18)]

    def test_grid_respects_closing_time(self, availability, store, ranged_service, now):
        store.opens_at = time(8, 0)
        store.closes_at = time(12, 0)
        store.slot_interval_minutes = 30
        store.save()
        slots = availability.available_slots(store.pk, ranged_service.pk, date(2025, 3, 1), now)
        assert slots[0] == time(8, 0)
        assert slots[-1] == time(11, 0)
        assert len(slots) == 7

    def test_store_rejects_zero_slot_interval(self, store):
        store.slot_interval_minutes = 0
        with pytest.raises(IntegrityError), transaction.atomic():
            store.save()

    def test_busy_intervals_are_cached_until_invalidated(self, availability, service, booking_day, book):
        assert availability.busy_intervals(service.store_id, service.pk, booking_day) == []
        key = CacheKeys.busy_intervals(CacheKeys.slot_bucket(service.store_id, service.pk, booking_day))
        assert cache.get(key) == []

        book(appointment_time=time(10, 0))
        assert availability.busy_intervals(service.store_id, service.pk, booking_day) == [(time(10, 0), time(10, 30))]


@pytest.mark.django_db
class TestReserve:
    def test_reserve_holds_lock_until_release(self, availability, service, now):
        slot = _slot(service, time(10, 0))
        token = availability.reserve(slot, now)
        assert acquire_lock(slot.resource_key) is False

        availability.release(token)
        availability.release(token)
        assert token.released is True
        assert acquire_lock(slot.resource_key) is True
        release_lock(slot.resource_key)

    def test_reserve_in_past(self, availability, service, now):
        with pytest.raises(SlotInPast) as exc:
            availability.reserve(_slot(service, time(9, 0)), now)
        assert exc.value.code == "SLOT_IN_PAST"

    def test_reserve_when_lock_is_taken(self, availability, service, now):
        slot = _slot(service, time(10, 0))
        acquire_lock(slot.resource_key)
        with pytest.raises(SlotBusy):
            availability.reserve(slot, now)

    def test_conflict_releases_lock(self, availability, service, now, book):
        book(appointment_time=time(10, 0))
        slot = _slot(service, time(10, 15))
        with pytest.raises(SlotConflict):
            availability.reserve(slot, now)
        assert acquire_lock(slot.resource_key) is True
        release_lock(slot.resource_key)

    def test_invalidate_drops_cached_intervals(self, availability, service, booking_day):
        availability.busy_intervals(service.store_id, service.pk, booking_day)
        key = CacheKeys.busy_intervals(CacheKeys.slot_bucket(service.store_id, service.pk, booking_day))
        assert cache.get(key) is not None

        availability.invalidate(service.store_id, service.pk, booking_day)
        assert cache.get(key) is None
