# pyright: reportMissingTypeStubs=false
"""
Appointment booking API endpoints.

Booking, payment verification, employee assignment, status transitions and the
read-side views used by customers, employees and front-desk staff. Business
rules live in the services; these handlers only authenticate, translate the
request and own the transaction scope.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from auth.dependencies import UserContext, get_current_user, require_employee, require_staff
from core.database import get_db
from core.exceptions import AuthorizationError, NotFoundError
from core.transaction import TransactionScope
from models import Appointment, User
from services.appointment_query_service import AppointmentQueryService
from services.appointment_state_service import AppointmentStateService
from services.booking_service import BookingRequest, BookingService, CustomerDetails
from services.payment_service import PaymentService
from api.responses import (
    AppointmentListResponse, AppointmentResponse, BookedIntervalResponse, BookingResponse,
    EmployeeListResponse, EmployeeResponse, RoomAvailabilityResponse
)
from utils.datetime_utils import datetime_validator

logger = logging.getLogger(__name__)

router = APIRouter()


class CustomerDetailsRequest(BaseModel):
    """Customer supplied by staff booking on someone else's behalf."""
    name: str = Field(..., max_length=255)
    phone: str = Field(..., max_length=50)
    email: Optional[str] = Field(None, max_length=255)


class BookingCreateRequest(BaseModel):
    """Request model for creating a booking."""
    service_id: int
    start_time: datetime
    payment_method: str
    room_type: Optional[str] = None  # Required for services that need a room
    duration_minutes: Optional[int] = None  # Defaults to the service duration
    price: Optional[Decimal] = None
    room_price: Optional[Decimal] = None  # Defaults to the room's catalog price
    total_price: Optional[Decimal] = None
    customer_details: Optional[CustomerDetailsRequest] = None  # Staff bookings only

    @model_validator(mode='before')
    @classmethod
    def parse_datetime_fields(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        return datetime_validator('start_time')(cls, values)


class VerifyPaymentRequest(BaseModel):
    """Request model for verifying a gateway payment."""
    gateway_order_id: str
    gateway_payment_id: str
    signature: str
    appointment_id: int


class AssignEmployeeRequest(BaseModel):
    employee_id: int


class StatusUpdateRequest(BaseModel):
    status: str


class PaymentStatusUpdateRequest(BaseModel):
    payment_status: str


def _load_user(db: Session, current_user: UserContext) -> User:
    user = db.get(User, current_user.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _ensure_can_view(current_user: UserContext, appointment: Appointment) -> None:
    """Customers see their own appointments, employees their assigned ones, staff everything."""
    if current_user.is_staff:
        return
    if appointment.customer_id == current_user.user_id or appointment.employee_id == current_user.user_id:
        return
    raise AuthorizationError("You do not have access to this appointment")


@router.post("/book", summary="Book an appointment", response_model=BookingResponse,
             status_code=status.HTTP_201_CREATED)
async def book_appointment(
    request: BookingCreateRequest,
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(get_current_user)
) -> BookingResponse:
    """
    Book an appointment for the caller, or for a customer when staff supply
    `customer_details`.

    Reserves a room for room-dependent services. Online payments return a
    `gateway_reference` the client completes payment against.
    """
    user = _load_user(db, current_user)
    details = request.customer_details
    booking_request = BookingRequest(
        service_id=request.service_id,
        start_time=request.start_time,
        payment_method=request.payment_method,
        room_type=request.room_type,
        duration_minutes=request.duration_minutes,
        price=request.price,
        room_price=request.room_price,
        total_price=request.total_price,
        customer_details=CustomerDetails(
            name=details.name, phone=details.phone, email=details.email
        ) if details else None,
    )

    with TransactionScope(db) as scope:
        result = BookingService.create_booking(scope, user, booking_request)

    return BookingResponse(
        appointment=AppointmentResponse.from_appointment(result.appointment),
        eligible_employees=[EmployeeResponse.from_user(e) for e in result.eligible_employees],
        gateway_reference=result.gateway_reference,
    )


@router.post("/verify-payment", summary="Verify an online payment", response_model=AppointmentResponse)
async def verify_payment(
    request: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(get_current_user)
) -> AppointmentResponse:
    appointment = AppointmentQueryService.get_appointment(db, request.appointment_id)
    _ensure_can_view(current_user, appointment)

    with TransactionScope(db) as scope:
        appointment = PaymentService.verify_payment(
            scope,
            request.gateway_order_id,
            request.gateway_payment_id,
            request.signature,
            request.appointment_id,
        )
    return AppointmentResponse.from_appointment(appointment)


@router.get("/availability", summary="Booked room intervals for a day", response_model=RoomAvailabilityResponse)
async def get_room_availability(
    room_type: str = Query(..., description="Silver, Gold or Diamond"),
    day: date = Query(..., alias="date", description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(get_current_user)
) -> RoomAvailabilityResponse:
    entries = AppointmentQueryService.booked_room_intervals(db, room_type, day)
    return RoomAvailabilityResponse(
        date=day.isoformat(),
        room_type=room_type,
        booked=[BookedIntervalResponse.from_entry(e) for e in entries],
    )


@router.get("/mine", summary="List my appointments", response_model=AppointmentListResponse)
async def list_my_appointments(
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(get_current_user)
) -> AppointmentListResponse:
    appointments = AppointmentQueryService.list_for_customer(db, current_user.user_id)
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_appointment(a) for a in appointments]
    )


@router.get("/assigned", summary="List appointments assigned to me", response_model=AppointmentListResponse)
async def list_assigned_appointments(
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(require_employee)
) -> AppointmentListResponse:
    appointments = AppointmentQueryService.list_for_employee(db, current_user.user_id)
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_appointment(a) for a in appointments]
    )


@router.get("/", summary="List appointments", response_model=AppointmentListResponse)
async def list_appointments(
    status_filter: Optional[str] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    search: Optional[str] = Query(None, max_length=255),
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(require_staff)
) -> AppointmentListResponse:
    appointments = AppointmentQueryService.list_appointments(
        db, status=status_filter, date_from=date_from, date_to=date_to, search=search
    )
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_appointment(a) for a in appointments]
    )


@router.get("/details/{appointment_code}", summary="Get appointment details", response_model=AppointmentResponse)
async def get_appointment_details(
    appointment_code: str,
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(get_current_user)
) -> AppointmentResponse:
    appointment = AppointmentQueryService.get_by_code(db, appointment_code)
    _ensure_can_view(current_user, appointment)
    return AppointmentResponse.from_appointment(appointment)


@router.get("/{appointment_id}/available-employees", summary="Eligible employees for an appointment",
            response_model=EmployeeListResponse)
async def get_available_employees(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(require_staff)
) -> EmployeeListResponse:
    employees = AppointmentQueryService.available_employees(db, appointment_id)
    return EmployeeListResponse(employees=[EmployeeResponse.from_user(e) for e in employees])


@router.post("/{appointment_id}/assign-employee", summary="Assign an employee", response_model=AppointmentResponse)
async def assign_employee(
    appointment_id: int,
    request: AssignEmployeeRequest,
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(require_staff)
) -> AppointmentResponse:
    """Attach an employee to a Pending appointment, confirming it."""
    with TransactionScope(db) as scope:
        appointment = AppointmentStateService.assign_employee(scope, appointment_id, request.employee_id)
    return AppointmentResponse.from_appointment(appointment)


@router.put("/{appointment_id}/status", summary="Update appointment status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    request: StatusUpdateRequest,
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(require_staff)
) -> AppointmentResponse:
    with TransactionScope(db) as scope:
        appointment = AppointmentStateService.update_status(scope, appointment_id, request.status)
    return AppointmentResponse.from_appointment(appointment)


@router.put("/{appointment_id}/complete", summary="Complete an appointment", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(get_current_user)
) -> AppointmentResponse:
    """Staff, or the employee assigned to the appointment, may complete it."""
    if not current_user.is_staff:
        appointment = AppointmentQueryService.get_appointment(db, appointment_id)
        if appointment.employee_id != current_user.user_id:
            raise AuthorizationError("Only staff or the assigned employee can complete this appointment")

    with TransactionScope(db) as scope:
        appointment = AppointmentStateService.complete(scope, appointment_id)
    return AppointmentResponse.from_appointment(appointment)


@router.put("/{appointment_id}/cancel", summary="Cancel an appointment", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(get_current_user)
) -> AppointmentResponse:
    """Staff, or the customer who owns the appointment, may cancel it."""
    if not current_user.is_staff:
        appointment = AppointmentQueryService.get_appointment(db, appointment_id)
        if appointment.customer_id != current_user.user_id:
            raise AuthorizationError("Only staff or the customer can cancel this appointment")

    with TransactionScope(db) as scope:
        appointment = AppointmentStateService.cancel(scope, appointment_id)
    return AppointmentResponse.from_appointment(appointment)


@router.put("/{appointment_id}/payment-status", summary="Update payment status",
            response_model=AppointmentResponse)
async def update_payment_status(
    appointment_id: int,
    request: PaymentStatusUpdateRequest,
    db: Session = Depends(get_db),
    current_user: UserContext = Depends(require_staff)
) -> AppointmentResponse:
    with TransactionScope(db) as scope:
        appointment = PaymentService.update_payment_status(scope, appointment_id, request.payment_status)
    return AppointmentResponse.from_appointment(appointment)
