from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from appointments.models import Appointment, AppointmentStatus


@pytest.fixture
def future_day():
    return timezone.localdate() + timedelta(days=7)


@pytest.fixture
def payload(service, future_day):
    return {
        "store_id": service.store_id,
        "service_id": service.pk,
        "appointment_date": future_day.isoformat(),
        "appointment_time": "10:00",
        "customer_name": "Ana Cruz",
        "customer_phone": "09171234567",
        "customer_email": "ana@example.com",
        "requirements": ["toalla"],
    }


@pytest.fixture
def customer_client(api_client, customer):
    api_client.force_authenticate(user=customer)
    return api_client


@pytest.fixture
def staff_client(api_client, staff_user):
    api_client.force_authenticate(user=staff_user)
    return api_client


def _book(client, payload, **overrides):
    return client.post(reverse("appointment-list"), {**payload, **overrides}, format="json")


@pytest.mark.django_db
class TestBookingEndpoint:
    def test_requires_authentication(self, api_client, payload):
        response = _book(api_client, payload)
        assert response.status_code in (401, 403)

    def test_books_appointment(self, customer_client, customer, payload):
        response = _book(customer_client, payload)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == AppointmentStatus.PENDING
        assert body["total_amount"] == "500.00"
        assert body["estimated_end_time"] == "10:30:00"
        assert body["reference"].startswith("APT-")
        assert body["discount_clamped"] is False
        assert Appointment.objects.get(pk=body["id"]).customer == customer

    def test_conflict_is_409(self, customer_client, payload):
        _book(customer_client, payload)
        response = _book(customer_client, payload, appointment_time="10:15")

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "SLOT_CONFLICT"
        assert body["error"] == "CONFLICT"

    def test_serializer_errors_are_400(self, customer_client, payload):
        response = _book(customer_client, payload, appointment_time="diez")
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_business_validation_errors_are_400(self, customer_client, payload):
        response = _book(customer_client, payload, customer_email="", customer_address="")
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert "customer_email" in body["errors"]["meta"]["fields"]

    def test_inactive_service_is_422(self, customer_client, payload, service):
        service.is_active = False
        service.save()
        response = _book(customer_client, payload)
        assert response.status_code == 422
        assert response.json()["code"] == "SERVICE_INACTIVE"


@pytest.mark.django_db
class TestAppointmentActions:
    def test_customer_only_sees_own(self, customer_client, payload, django_user_model, api_client):
        appointment_id = _book(customer_client, payload).json()["id"]

        stranger = django_user_model.objects.create_user(username="otro", password="pass1234")
        api_client.force_authenticate(user=stranger)
        response = api_client.get(reverse("appointment-detail", args=[appointment_id]))
        assert response.status_code == 404

    def test_customer_cannot_confirm(self, customer_client, payload):
        appointment_id = _book(customer_client, payload).json()["id"]
        response = customer_client.post(reverse("appointment-confirm", args=[appointment_id]))
        assert response.status_code == 403

    def test_staff_confirms_and_repeats(self, customer_client, payload, staff_user):
        appointment_id = _book(customer_client, payload).json()["id"]
        customer_client.force_authenticate(user=staff_user)

        url = reverse("appointment-confirm", args=[appointment_id])
        assert customer_client.post(url).json()["status"] == AppointmentStatus.CONFIRMED
        assert customer_client.post(url).status_code == 200

    def test_illegal_transition_is_409(self, customer_client, payload, staff_user):
        appointment_id = _book(customer_client, payload).json()["id"]
        customer_client.force_authenticate(user=staff_user)

        response = customer_client.post(reverse("appointment-complete", args=[appointment_id]))
        assert response.status_code == 409
        assert response.json()["code"] == "ILLEGAL_TRANSITION"

    def test_customer_cancels(self, customer_client, payload):
        appointment_id = _book(customer_client, payload).json()["id"]
        url = reverse("appointment-cancel", args=[appointment_id])

        assert customer_client.post(url, {}, format="json").status_code == 400
        response = customer_client.post(url, {"reason": "Viaje"}, format="json")
        assert response.status_code == 200
        assert response.json()["status"] == AppointmentStatus.CANCELLED
        assert response.json()["cancellation_reason"] == "Viaje"

    def test_customer_reschedules(self, customer_client, payload, future_day):
        appointment_id = _book(customer_client, payload).json()["id"]
        response = customer_client.post(
            reverse("appointment-reschedule", args=[appointment_id]),
            {"new_date": future_day.isoformat(), "new_time": "12:00"},
            format="json",
        )

        assert response.status_code == 201
        body = response.json()
        assert body["id"] != appointment_id
        assert body["rescheduled_from"] == appointment_id
        assert body["reschedule_count"] == 1

    def test_history(self, customer_client, payload):
        appointment_id = _book(customer_client, payload).json()["id"]
        customer_client.post(reverse("appointment-cancel", args=[appointment_id]), {"reason": "Viaje"}, format="json")

        response = customer_client.get(reverse("appointment-history", args=[appointment_id]))
        assert [entry["event"] for entry in response.json()] == ["booked", "cancelled"]

    def test_assign_rider_and_adjust_pricing(self, customer_client, payload, staff_user, rider):
        appointment_id = _book(customer_client, payload).json()["id"]
        customer_client.force_authenticate(user=staff_user)
        customer_client.post(reverse("appointment-confirm", args=[appointment_id]))

        response = customer_client.post(
            reverse("appointment-assign-rider", args=[appointment_id]),
            {"rider_id": rider.pk},
            format="json",
        )
        assert response.status_code == 200
        assert response.json()["rider"] == rider.pk

        response = customer_client.post(
            reverse("appointment-adjust-pricing", args=[appointment_id]),
            {"discount_amount": "600.00"},
            format="json",
        )
        assert response.status_code == 200
        assert response.json()["total_amount"] == "0.00"
        assert response.json()["discount_clamped"] is True

    def test_adjust_pricing_requires_a_component(self, customer_client, payload, staff_user):
        appointment_id = _book(customer_client, payload).json()["id"]
        customer_client.force_authenticate(user=staff_user)
        response = customer_client.post(reverse("appointment-adjust-pricing", args=[appointment_id]), {}, format="json")
        assert response.status_code == 400


@pytest.mark.django_db
def test_availability_endpoint(customer_client, payload, service, future_day):
    _book(customer_client, payload)
    response = customer_client.get(
        reverse("appointment-availability"),
        {"store_id": service.store_id, "service_id": service.pk, "date": future_day.isoformat()},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == future_day.isoformat()
    assert "10:00" not in body["slots"]
    assert body["slots"][0] == "08:00"
    assert "11:00" in body["slots"]
