import logging
from dataclasses import dataclass
from datetime import time
from decimal import Decimal

from ..exceptions import BookingValidationError, ServiceInactive
from ..models import VendorService
from .pricing import PriceRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceSnapshot:
    """Vista inmutable del servicio en el momento de reservar."""
    store_id: int
    service_id: int
    store_name: str
    service_name: str
    price_min: Decimal
    price_max: Decimal | None
    duration_minutes: int
    currency: str
    instant_booking: bool
    opens_at: time
    closes_at: time
    slot_interval_minutes: int

    @property
    def price_range(self) -> PriceRange:
        return PriceRange(self.price_min, self.price_max)


class ServiceCatalog:
    """Punto de lectura del catálogo de tiendas y servicios."""

    @staticmethod
    def lookup(store_id, service_id) -> ServiceSnapshot:
        service = (
            VendorService.all_objects.select_related("store")
            .filter(pk=service_id, store_id=store_id)
            .first()
        )
        if service is None:
            raise BookingValidationError({"service_id": "El servicio no existe en esta tienda."})

        store = service.store
        if store.is_deleted or not store.is_active:
            logger.info("Reserva rechazada: tienda inactiva store=%s", store_id)
            raise ServiceInactive("La tienda no está recibiendo reservas.")
        if service.is_deleted or not service.is_active:
            logger.info("Reserva rechazada: servicio inactivo service=%s", service_id)
            raise ServiceInactive()

        return ServiceSnapshot(
            store_id=store.pk,
            service_id=service.pk,
            store_name=store.name,
            service_name=service.name,
            price_min=service.price_min,
            price_max=service.price_max,
            duration_minutes=service.duration_minutes,
            currency=service.currency,
            instant_booking=service.uses_instant_booking(),
            opens_at=store.opens_at,
            closes_at=store.closes_at,
            slot_interval_minutes=store.slot_interval_minutes,
        )
