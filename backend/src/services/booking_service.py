"""
Booking transaction coordinator.

Creating an appointment is one unit of work:

    customer resolution -> service lookup -> time validation -> room search
    -> price normalization -> appointment insert -> ledger write -> payment

Everything runs inside the caller's TransactionScope. The scope commits once at
the end of `create_booking`; any exception on the way rolls back every write,
including a customer provisioned for a walk-in.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.constants import (
    APPOINTMENT_CODE_DIGITS, APPOINTMENT_CODE_PREFIX, PAYMENT_METHODS, PAYMENT_METHOD_ONLINE,
    PAYMENT_STATUS_CASH, PAYMENT_STATUS_PENDING, RESOURCE_TYPE_ROOM, ROLE_EMPLOYEE,
    ROOM_STATUS_AVAILABLE, ROOM_TYPES, STATUS_PENDING
)
from core.exceptions import (
    AuthorizationError, BookingValidationError, ConflictError, NotFoundError
)
from core.transaction import TransactionScope
from models import Appointment, Category, Room, Service, User
from services.availability_ledger import AvailabilityLedger
from services.conflict_detector import ConflictDetector
from services.customer_service import CustomerService
from services.payment_service import PaymentGateway, payment_gateway
from utils.datetime_utils import ensure_ist, ist_now

logger = logging.getLogger(__name__)


@dataclass
class CustomerDetails:
    """Customer supplied by staff booking on someone else's behalf."""
    name: str
    phone: str
    email: Optional[str] = None


@dataclass
class BookingRequest:
    service_id: int
    start_time: datetime
    payment_method: str
    room_type: Optional[str] = None
    duration_minutes: Optional[int] = None
    price: Optional[Decimal] = None
    room_price: Optional[Decimal] = None
    total_price: Optional[Decimal] = None
    customer_details: Optional[CustomerDetails] = None


@dataclass
class BookingResult:
    appointment: Appointment
    eligible_employees: List[User] = field(default_factory=list)
    gateway_reference: Optional[str] = None


def format_appointment_code(appointment_id: int) -> str:
    """Human-readable code derived from the internal id (e.g., 42 -> "APP000042")."""
    return f"{APPOINTMENT_CODE_PREFIX}{appointment_id:0{APPOINTMENT_CODE_DIGITS}d}"


class BookingService:
    """Creates appointments and reserves the rooms they need."""

    @staticmethod
    def create_booking(
        scope: TransactionScope,
        current_user: User,
        request: BookingRequest,
        gateway: Optional[PaymentGateway] = None
    ) -> BookingResult:
        """
        Book an appointment atomically.

        Args:
            scope: Transaction scope owning the request's session
            current_user: Authenticated caller
            request: Booking parameters
            gateway: Payment gateway override (defaults to the configured one)

        Returns:
            BookingResult with the committed appointment, the eligible-staff
            preview and, for online payments, the gateway order id

        Raises:
            AuthorizationError: Non-staff caller supplied customer details
            BookingValidationError: Bad input (past start, missing room type, ...)
            NotFoundError: Unknown or inactive service
            ConflictError: No free room for the interval, or a commit-time race
            ExternalServiceError: Payment gateway failure
        """
        db = scope.session
        gateway = gateway or payment_gateway

        # Authorization gate
        if request.customer_details is not None and not current_user.is_staff:
            logger.warning(f"User {current_user.id} tried to book on behalf of another customer")
            raise AuthorizationError("Only staff can book on behalf of a customer")

        if request.payment_method not in PAYMENT_METHODS:
            raise BookingValidationError(
                f"Invalid payment method '{request.payment_method}'. Expected one of: {', '.join(PAYMENT_METHODS)}"
            )

        # Customer resolution
        if request.customer_details is not None:
            details = request.customer_details
            customer = CustomerService.resolve_or_create_customer(
                scope, details.name, details.phone, details.email
            )
        else:
            customer = current_user

        # Service lookup
        service = db.query(Service).filter(
            Service.id == request.service_id,
            Service.is_active == True  # noqa: E712
        ).first()
        if service is None:
            raise NotFoundError("Service not found")
        category: Category = service.category
        requires_room = bool(category and category.requires_physical_resource)

        # Time validation
        start_time = ensure_ist(request.start_time)
        if start_time < ist_now():
            raise BookingValidationError("Cannot book an appointment in the past")

        duration = request.duration_minutes if request.duration_minutes is not None else service.duration_minutes
        if duration is None or duration <= 0:
            raise BookingValidationError("Duration must be a positive number of minutes")
        end_time = start_time + timedelta(minutes=duration)

        # Room search
        room: Optional[Room] = None
        if requires_room:
            if not request.room_type:
                raise BookingValidationError("Room type is required for this service")
            if request.room_type not in ROOM_TYPES:
                raise BookingValidationError(
                    f"Invalid room type '{request.room_type}'. Expected one of: {', '.join(ROOM_TYPES)}"
                )
            room = BookingService._select_room(scope, request.room_type, start_time, end_time)
            if room is None:
                logger.info(
                    f"No {request.room_type} room free for {start_time.isoformat()} - {end_time.isoformat()}"
                )
                raise ConflictError("No available rooms for selected time")

        # Price normalization
        service_price = Decimal(str(request.price)) if request.price is not None else Decimal(service.price)
        if room is None:
            room_price = Decimal("0")
        elif request.room_price is not None:
            room_price = Decimal(str(request.room_price))
        else:
            room_price = Decimal(room.price)
        total_price = (
            Decimal(str(request.total_price)) if request.total_price is not None
            else service_price + room_price
        )

        is_online = request.payment_method == PAYMENT_METHOD_ONLINE
        gateway_reference: Optional[str] = None

        try:
            appointment = Appointment(
                customer_id=customer.id,
                service_id=service.id,
                room_id=room.id if room else None,
                room_type=request.room_type if room else None,
                start_time=start_time,
                end_time=end_time,
                status=STATUS_PENDING,
                payment_status=PAYMENT_STATUS_PENDING if is_online else PAYMENT_STATUS_CASH,
                payment_method=request.payment_method,
                service_price=service_price,
                room_price=room_price,
                total_price=total_price,
                created_by_id=current_user.id,
            )
            db.add(appointment)
            scope.flush()
            appointment.appointment_code = format_appointment_code(appointment.id)
            scope.flush()

            if room is not None:
                AvailabilityLedger.reserve(
                    scope, RESOURCE_TYPE_ROOM, room.id, start_time, end_time, appointment.id
                )

            if is_online:
                gateway_reference = gateway.create_intent(
                    total_price,
                    reference=f"appt_{appointment.appointment_code}",
                    notes={"appointment_code": appointment.appointment_code},
                )
                appointment.gateway_order_id = gateway_reference
                scope.flush()

            scope.commit()
        except IntegrityError as e:
            scope.rollback()
            logger.warning(f"Booking rejected by database constraint: {e.orig}")
            raise ConflictError("Booking conflicted with a concurrent request, please retry") from e

        logger.info(
            f"Booked {appointment.appointment_code} for customer {customer.id}: "
            f"service {service.id}, room {room.room_number if room else '-'}, "
            f"{start_time.isoformat()} - {end_time.isoformat()}, {request.payment_method}"
        )

        eligible = BookingService.get_eligible_employees(db, category, room)
        return BookingResult(
            appointment=appointment,
            eligible_employees=eligible,
            gateway_reference=gateway_reference,
        )

    @staticmethod
    def _select_room(
        scope: TransactionScope,
        room_type: str,
        start_time: datetime,
        end_time: datetime
    ) -> Optional[Room]:
        """
        First 'Available' room of the type, in room-number order, that is free.

        The chosen room stays locked until the scope ends. Busy candidates are
        unlocked as soon as they are rejected.
        """
        candidates = scope.session.query(Room).filter(
            Room.room_type == room_type,
            Room.status == ROOM_STATUS_AVAILABLE,
        ).order_by(Room.room_number, Room.id).all()

        for candidate in candidates:
            scope.lock_resource(RESOURCE_TYPE_ROOM, candidate.id, Room)
            if ConflictDetector.is_free(scope.session, RESOURCE_TYPE_ROOM, candidate.id, start_time, end_time):
                return candidate
            scope.unlock_resource(RESOURCE_TYPE_ROOM, candidate.id)
        return None

    @staticmethod
    def get_eligible_employees(db: Session, category: Optional[Category], room: Optional[Room]) -> List[User]:
        """
        Employees who may perform a service of `category`.

        Role tag must equal the category's assigned role. When a room is
        involved the employee must also work at the room's branch; without a
        room there is no branch constraint.
        """
        if category is None or not category.assigned_employee_role:
            return []

        query = db.query(User).filter(
            User.role == ROLE_EMPLOYEE,
            User.is_active == True,  # noqa: E712
            User.employee_role == category.assigned_employee_role,
        )
        if room is not None:
            query = query.filter(User.branch_id == room.branch_id)

        return query.order_by(User.name, User.id).all()
