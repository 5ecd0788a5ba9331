from datetime import time
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from simple_history.models import HistoricalRecords

from core.models import BaseModel, SoftDeleteModel


def _default_currency():
    return getattr(settings, "APPOINTMENT_DEFAULT_CURRENCY", "PHP")


class VendorStore(SoftDeleteModel):
    name = models.CharField(max_length=255)
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=32, blank=True)
    address = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    instant_booking = models.BooleanField(
        default=False,
        help_text="New bookings start as confirmed instead of pending.",
    )
    opens_at = models.TimeField(default=time(8, 0))
    closes_at = models.TimeField(default=time(18, 0))
    slot_interval_minutes = models.PositiveIntegerField(
        default=60,
        validators=[MinValueValidator(5)],
        help_text="Spacing between offered start times.",
    )

    class Meta(SoftDeleteModel.Meta):
        verbose_name = "Tienda"
        verbose_name_plural = "Tiendas"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(slot_interval_minutes__gte=5),
                name="vendor_store_slot_interval_min",
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()
        if self.opens_at and self.closes_at and self.opens_at >= self.closes_at:
            raise ValidationError({"closes_at": "La hora de cierre debe ser posterior a la de apertura."})


class VendorService(SoftDeleteModel):
    store = models.ForeignKey(
        VendorStore,
        on_delete=models.PROTECT,
        related_name="services",
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    price_min = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    price_max = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Upper bound for ranged pricing. Leave empty for a fixed price.",
    )
    currency = models.CharField(max_length=3, default=_default_currency)
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    is_active = models.BooleanField(default=True)
    instant_booking = models.BooleanField(
        null=True,
        blank=True,
        help_text="Overrides the store policy when set.",
    )
    history = HistoricalRecords(inherit=True)

    class Meta(SoftDeleteModel.Meta):
        verbose_name = "Servicio"
        verbose_name_plural = "Servicios"
        ordering = ["store_id", "name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price_max__isnull=True) | models.Q(price_max__gte=models.F("price_min")),
                name="vendor_service_price_range_valid",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.store})"

    @property
    def has_price_range(self) -> bool:
        return self.price_max is not None and self.price_max != self.price_min

    def uses_instant_booking(self) -> bool:
        if self.instant_booking is not None:
            return self.instant_booking
        return self.store.instant_booking


class Rider(BaseModel):
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32)
    email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta(BaseModel.Meta):
        verbose_name = "Rider"
        verbose_name_plural = "Riders"
        ordering = ["name"]

    def __str__(self):
        return self.name
