"""
Claves de caché centralizadas y utilidades básicas de locking.
"""
import logging
import time
from dataclasses import dataclass

from django.core.cache import cache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKeys:
    """
    Contenedor inmutable de todas las claves de caché del sistema.

    Uso:
        from core.caching import CacheKeys
        cache.get(CacheKeys.slot_bucket(store_id, service_id, day))
    """
    # Agenda: intervalos ocupados por (tienda, servicio, fecha)
    SLOT_BUCKET = "appt:slot:{store_id}:{service_id}:{day}"
    BUSY_INTERVALS = "appt:busy:v1:{bucket}"

    @classmethod
    def slot_bucket(cls, store_id, service_id, day) -> str:
        return cls.SLOT_BUCKET.format(store_id=store_id, service_id=service_id, day=day.isoformat())

    @classmethod
    def busy_intervals(cls, bucket: str) -> str:
        return cls.BUSY_INTERVALS.format(bucket=bucket)


def acquire_lock(key: str, timeout: int = 5, wait: float = 0, poll_interval: float = 0.05) -> bool:
    """
    Intenta adquirir un lock distribuido usando cache.add (SETNX).

    Si `wait` es mayor a cero se reintenta hasta agotar ese tiempo (segundos).
    Devuelve True si se adquiere, False en caso contrario.
    """
    deadline = time.monotonic() + wait
    while True:
        if cache.add(f"lock:{key}", True, timeout=timeout):
            return True
        if time.monotonic() >= deadline:
            logger.debug("Lock ocupado: %s", key)
            return False
        time.sleep(poll_interval)


def release_lock(key: str) -> None:
    """Libera un lock adquirido con `acquire_lock`."""
    cache.delete(f"lock:{key}")
