from .availability import ReservationToken, SlotAvailabilityIndex, TimeSlot
from .booking import BookingEngine
from .catalog import ServiceCatalog, ServiceSnapshot
from .lifecycle import TRANSITIONS, AppointmentLifecycle, can_transition
from .pricing import PriceBreakdown, PriceRange, PricingCalculator
from .reference import ReferenceGenerator
from .rescheduling import RescheduleCoordinator, RescheduleResult

__all__ = [
    "AppointmentLifecycle",
    "BookingEngine",
    "PriceBreakdown",
    "PriceRange",
    "PricingCalculator",
    "ReferenceGenerator",
    "RescheduleCoordinator",
    "RescheduleResult",
    "ReservationToken",
    "ServiceCatalog",
    "ServiceSnapshot",
    "SlotAvailabilityIndex",
    "TRANSITIONS",
    "TimeSlot",
    "can_transition",
]
