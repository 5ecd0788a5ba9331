import pytest

from appointments.services import AppointmentLifecycle, BookingEngine, RescheduleCoordinator, SlotAvailabilityIndex


@pytest.fixture
def availability():
    return SlotAvailabilityIndex(lock_wait=0)


@pytest.fixture
def engine(availability):
    return BookingEngine(availability=availability)


@pytest.fixture
def lifecycle(availability):
    return AppointmentLifecycle(availability=availability)


@pytest.fixture
def coordinator(availability, engine):
    return RescheduleCoordinator(availability=availability, engine=engine)


@pytest.fixture
def book(engine, make_booking_request, now):
    """Reserva una cita con los datos por defecto y los cambios indicados."""
    def _book(**overrides):
        return engine.book(make_booking_request(**overrides), now=now)

    return _book
