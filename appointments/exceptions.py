"""
Errores de negocio del motor de citas.

Todos heredan de BusinessLogicError para que DRF los traduzca a respuestas
normalizadas con `code` interno estable.
"""
from rest_framework import status

from core.exceptions import BusinessLogicError, InvalidStateTransitionError


class BookingError(BusinessLogicError):
    default_detail = "No fue posible procesar la cita."
    default_code = "BOOKING_ERROR"

    def __init__(self, detail=None, *, extra=None, status_code=None):
        super().__init__(
            detail=detail,
            internal_code=self.default_code,
            status_code=status_code,
            extra=extra,
        )


class BookingValidationError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Los datos de la cita no son válidos."
    default_code = "VALIDATION_ERROR"

    def __init__(self, errors=None, detail=None):
        self.errors = dict(errors or {})
        super().__init__(detail=detail, extra={"fields": self.errors} if self.errors else None)


class SlotConflict(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Este horario ya no está disponible."
    default_code = "SLOT_CONFLICT"


class SlotInPast(BookingError):
    default_detail = "No se puede reservar un horario que ya pasó."
    default_code = "SLOT_IN_PAST"


class SlotBusy(BookingError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Sistema ocupado, intenta de nuevo en unos segundos."
    default_code = "SLOT_BUSY"


class ServiceInactive(BookingError):
    default_detail = "El servicio no está disponible para reservas."
    default_code = "SERVICE_INACTIVE"


class PriceOutOfRange(BookingError):
    default_detail = "El precio indicado está fuera del rango del servicio."
    default_code = "PRICE_OUT_OF_RANGE"


class ReferenceGenerationExhausted(BookingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "No fue posible generar una referencia única. Intenta de nuevo."
    default_code = "REFERENCE_EXHAUSTED"


class StartWindowNotOpen(BookingError):
    default_detail = "La cita aún no puede iniciarse."
    default_code = "START_WINDOW_NOT_OPEN"


class TotalLocked(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "El total de esta cita ya no puede modificarse."
    default_code = "TOTAL_LOCKED"


class RiderUnavailable(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "El rider no puede tomar esta cita."
    default_code = "RIDER_UNAVAILABLE"


class AppointmentNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "La cita no existe."
    default_code = "APPOINTMENT_NOT_FOUND"


class IllegalTransition(InvalidStateTransitionError):
    """
    Transición fuera de la tabla de estados.

    El mensaje al usuario no expone nombres de estado; estos quedan en
    `from_status` y `to_status`.
    """
    default_detail = "Esta acción no está disponible para esta cita."
    default_code = "ILLEGAL_TRANSITION"

    def __init__(self, from_status, to_status):
        self.from_status = str(from_status)
        self.to_status = str(to_status)
        super().__init__(current_state=self.from_status, target_state=self.to_status)
