"""
Services package for booking business logic.

This package contains service classes shared across the API endpoints.
"""

from .conflict_detector import ConflictDetector
from .availability_ledger import AvailabilityLedger
from .customer_service import CustomerService
from .payment_service import PaymentGateway, PaymentService
from .booking_service import BookingService
from .appointment_state_service import AppointmentStateService
from .appointment_query_service import AppointmentQueryService
from .notification_service import NotificationService

__all__ = [
    "ConflictDetector",
    "AvailabilityLedger",
    "CustomerService",
    "PaymentGateway",
    "PaymentService",
    "BookingService",
    "AppointmentStateService",
    "AppointmentQueryService",
    "NotificationService",
]
