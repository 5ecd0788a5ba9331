from django.conf import settings
from django.urls import resolve, reverse

from bookingsite import celery_app


def test_celery_app_reads_django_settings():
    assert celery_app.main == "bookingsite"
    assert celery_app.conf.task_always_eager is True
    assert "cleanup-notification-logs" in celery_app.conf.beat_schedule
    assert celery_app.conf.task_routes["notifications.tasks.*"] == {"queue": "notifications"}


def test_api_routes_are_versioned():
    assert reverse("appointment-list") == "/api/v1/appointments/"
    assert reverse("appointment-no-show", args=[1]) == "/api/v1/appointments/1/no-show/"
    assert resolve("/api/v1/appointments/availability/").url_name == "appointment-availability"


def test_drf_uses_normalized_exception_handler():
    assert settings.REST_FRAMEWORK["EXCEPTION_HANDLER"] == "core.exceptions.drf_exception_handler"


def test_logging_sanitizes_pii():
    assert settings.LOGGING["filters"]["sanitize_pii"]["()"] == "core.infra.logging_filters.SanitizePIIFilter"
