"""
Solicitudes tipadas que recibe el motor de citas.

Los serializers del API construyen estas estructuras; el motor solo las
consume después de `validate()`.
"""
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email

from .exceptions import BookingValidationError


def _clean(value) -> str:
    return (value or "").strip()


@dataclass
class BookingRequest:
    store_id: int
    service_id: int
    appointment_date: date
    appointment_time: time
    customer_name: str
    customer_phone: str
    customer_email: str = ""
    customer_address: str = ""
    customer_city: str = ""
    emergency_contact_name: str = ""
    emergency_contact_phone: str = ""
    explicit_price: Decimal | None = None
    additional_charges: Decimal = Decimal("0.00")
    discount_amount: Decimal = Decimal("0.00")
    customer_notes: str = ""
    requirements: list = field(default_factory=list)
    is_home_service: bool = False
    service_address: str = ""
    sms_notifications: bool = True
    email_notifications: bool = True
    customer: Any = None

    def validate(self) -> "BookingRequest":
        for name in (
            "customer_name",
            "customer_phone",
            "customer_email",
            "customer_address",
            "customer_city",
            "emergency_contact_name",
            "emergency_contact_phone",
            "customer_notes",
            "service_address",
        ):
            setattr(self, name, _clean(getattr(self, name)))

        errors = {}
        if not self.store_id:
            errors["store_id"] = "La tienda es obligatoria."
        if not self.service_id:
            errors["service_id"] = "El servicio es obligatorio."
        if not isinstance(self.appointment_date, date):
            errors["appointment_date"] = "Fecha inválida."
        if not isinstance(self.appointment_time, time):
            errors["appointment_time"] = "Hora inválida."
        if not self.customer_name:
            errors["customer_name"] = "El nombre es obligatorio."
        if not self.customer_phone:
            errors["customer_phone"] = "El teléfono es obligatorio."
        if not self.customer_email and not self.customer_address:
            errors["customer_email"] = "Indica un email o una dirección de contacto."
        if self.customer_email:
            try:
                validate_email(self.customer_email)
            except DjangoValidationError:
                errors["customer_email"] = "Email inválido."
        if self.is_home_service and not self.service_address:
            errors["service_address"] = "La dirección es obligatoria para servicios a domicilio."
        if not isinstance(self.requirements, list):
            errors["requirements"] = "Debe ser una lista."

        if errors:
            raise BookingValidationError(errors)
        return self


class TransitionAction:
    CONFIRM = "confirm"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
    NO_SHOW = "no_show"
    RESCHEDULE = "reschedule"

    ALL = (CONFIRM, START, COMPLETE, CANCEL, NO_SHOW, RESCHEDULE)


@dataclass
class TransitionRequest:
    appointment_id: int
    action: str
    reason: str = ""
    details: str = ""
    new_date: date | None = None
    new_time: time | None = None
    actor: Any = None

    def validate(self) -> "TransitionRequest":
        self.reason = _clean(self.reason)
        self.details = _clean(self.details)

        errors = {}
        if self.action not in TransitionAction.ALL:
            errors["action"] = "Acción desconocida."
        if self.action == TransitionAction.CANCEL and not self.reason:
            errors["reason"] = "El motivo de cancelación es obligatorio."
        if self.action == TransitionAction.RESCHEDULE:
            if not isinstance(self.new_date, date):
                errors["new_date"] = "La nueva fecha es obligatoria."
            if not isinstance(self.new_time, time):
                errors["new_time"] = "La nueva hora es obligatoria."

        if errors:
            raise BookingValidationError(errors)
        return self
