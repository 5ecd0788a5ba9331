"""
Settings para la suite de tests (pytest-django).
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DEBUG", "1")
os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")
os.environ.pop("REDIS_URL", None)

from .base import *  # noqa: E402,F401,F403
from .celery import *  # noqa: E402,F401,F403

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "bookingsite-tests",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

APPOINTMENT_LOCK_WAIT_SECONDS = 0
TIME_ZONE = "Asia/Manila"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "sanitize_pii": {"()": "core.infra.logging_filters.SanitizePIIFilter"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "filters": ["sanitize_pii"]},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
}
