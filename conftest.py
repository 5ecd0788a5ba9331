from datetime import date, datetime, time
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone
from model_bakery import baker
from rest_framework.test import APIClient

from appointments.requests import BookingRequest


@pytest.fixture(autouse=True)
def clear_cache():
    """Los locks y la agenda cacheada no deben filtrarse entre tests."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def now():
    """Reloj fijo: 28 de febrero de 2025, 09:00 hora local."""
    return timezone.make_aware(datetime(2025, 2, 28, 9, 0))


@pytest.fixture
def booking_day():
    return date(2025, 2, 28)


@pytest.fixture
def store(db):
    return baker.make(
        "appointments.VendorStore",
        name="Glow Studio",
        contact_email="vendor@example.com",
        is_active=True,
        instant_booking=False,
        opens_at=time(8, 0),
        closes_at=time(18, 0),
        slot_interval_minutes=60,
    )


@pytest.fixture
def service(store):
    return baker.make(
        "appointments.VendorService",
        store=store,
        name="Manicure",
        price_min=Decimal("500.00"),
        price_max=None,
        duration_minutes=30,
        currency="PHP",
        is_active=True,
        instant_booking=None,
    )


@pytest.fixture
def ranged_service(store):
    return baker.make(
        "appointments.VendorService",
        store=store,
        name="Hair color",
        price_min=Decimal("500.00"),
        price_max=Decimal("800.00"),
        duration_minutes=60,
        currency="PHP",
        is_active=True,
        instant_booking=None,
    )


@pytest.fixture
def rider(db):
    return baker.make("appointments.Rider", name="Miguel", phone="+639171234567", is_active=True)


@pytest.fixture
def customer(django_user_model):
    return django_user_model.objects.create_user(
        username="cliente",
        email="cliente@example.com",
        password="pass1234",
    )


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(
        username="staff",
        email="staff@example.com",
        password="pass1234",
        is_staff=True,
    )


@pytest.fixture
def make_booking_request(service, booking_day):
    def _make(**overrides):
        data = {
            "store_id": service.store_id,
            "service_id": service.pk,
            "appointment_date": booking_day,
            "appointment_time": time(10, 0),
            "customer_name": "Ana Cruz",
            "customer_phone": "09171234567",
            "customer_email": "ana@example.com",
        }
        data.update(overrides)
        return BookingRequest(**data)

    return _make
