import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..exceptions import BookingValidationError, PriceOutOfRange

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value, field="amount") -> Decimal:
    if value is None or value == "":
        return ZERO
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise BookingValidationError({field: "Monto inválido."}) from exc
    if not amount.is_finite():
        raise BookingValidationError({field: "Monto inválido."})
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceRange:
    minimum: Decimal
    maximum: Decimal | None = None

    @property
    def is_fixed(self) -> bool:
        return self.maximum is None or self.maximum == self.minimum

    @property
    def upper(self) -> Decimal:
        return self.minimum if self.maximum is None else self.maximum

    def contains(self, amount: Decimal) -> bool:
        return self.minimum <= amount <= self.upper


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    additional_charges: Decimal
    discount_amount: Decimal
    requested_discount: Decimal
    total: Decimal
    discount_clamped: bool = False


class PricingCalculator:
    """
    Calcula el total a pagar de una cita.

    total = precio base + cargos adicionales - descuento, nunca negativo. Si el
    descuento supera al subtotal se recorta y `discount_clamped` lo reporta;
    `discount_amount` del resultado es el descuento efectivamente aplicado y es
    el que se persiste en la cita.
    """

    @staticmethod
    def resolve_base_price(price_range: PriceRange, explicit_price=None) -> Decimal:
        minimum = to_money(price_range.minimum, "price_min")
        maximum = None
        if price_range.maximum is not None:
            maximum = to_money(price_range.maximum, "price_max")
        normalized = PriceRange(minimum, maximum)

        if explicit_price is None or explicit_price == "":
            if not normalized.is_fixed:
                raise BookingValidationError(
                    {"explicit_price": "Este servicio tiene precio variable; indica el precio acordado."}
                )
            return minimum

        price = to_money(explicit_price, "explicit_price")
        if not normalized.contains(price):
            raise PriceOutOfRange(
                extra={
                    "price": str(price),
                    "price_min": str(normalized.minimum),
                    "price_max": str(normalized.upper),
                }
            )
        return price

    @classmethod
    def compute_total(
        cls,
        price_range: PriceRange,
        additional_charges=ZERO,
        discount_amount=ZERO,
        explicit_price=None,
    ) -> PriceBreakdown:
        base = cls.resolve_base_price(price_range, explicit_price)
        return cls.apply_adjustments(base, additional_charges, discount_amount)

    @staticmethod
    def apply_adjustments(base_price, additional_charges=ZERO, discount_amount=ZERO) -> PriceBreakdown:
        base = to_money(base_price, "service_price")
        charges = to_money(additional_charges, "additional_charges")
        requested = to_money(discount_amount, "discount_amount")

        errors = {}
        if charges < 0:
            errors["additional_charges"] = "Los cargos adicionales no pueden ser negativos."
        if requested < 0:
            errors["discount_amount"] = "El descuento no puede ser negativo."
        if errors:
            raise BookingValidationError(errors)

        gross = base + charges
        applied = requested
        clamped = False
        if requested > gross:
            applied = gross
            clamped = True
            logger.warning(
                "Descuento recortado: solicitado=%s subtotal=%s",
                requested,
                gross,
            )

        return PriceBreakdown(
            base_price=base,
            additional_charges=charges,
            discount_amount=applied,
            requested_discount=requested,
            total=gross - applied,
            discount_clamped=clamped,
        )

    @staticmethod
    def total_from_components(service_price, additional_charges, discount_amount) -> Decimal:
        """Recalcula el total a partir de los montos ya persistidos."""
        total = to_money(service_price) + to_money(additional_charges) - to_money(discount_amount)
        return max(total, ZERO)
