"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
the appointment endpoints to keep their shapes consistent.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from models import Appointment, AvailabilityEntry, User
from utils.datetime_utils import ensure_ist


class EmployeeResponse(BaseModel):
    """Response model for an employee in eligibility lists."""
    id: int
    name: str
    employee_code: Optional[str] = None
    employee_role: Optional[str] = None
    branch_id: Optional[int] = None

    @classmethod
    def from_user(cls, user: User) -> "EmployeeResponse":
        return cls(
            id=user.id,
            name=user.name,
            employee_code=user.employee_code,
            employee_role=user.employee_role,
            branch_id=user.branch_id,
        )


class AppointmentResponse(BaseModel):
    """Response model for appointment information."""
    id: int
    appointment_code: Optional[str] = None
    customer_id: int
    customer_name: Optional[str] = None
    service_id: int
    service_name: Optional[str] = None
    room_id: Optional[int] = None
    room_number: Optional[str] = None
    room_type: Optional[str] = None
    employee_id: Optional[int] = None
    employee_name: Optional[str] = None
    start_time: datetime  # IST
    end_time: datetime
    status: str
    payment_status: str
    payment_method: str
    service_price: Decimal
    room_price: Decimal
    total_price: Decimal
    gateway_order_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_by_id: int
    created_at: Optional[datetime] = None

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            appointment_code=appointment.appointment_code,
            customer_id=appointment.customer_id,
            customer_name=appointment.customer.name if appointment.customer else None,
            service_id=appointment.service_id,
            service_name=appointment.service.name if appointment.service else None,
            room_id=appointment.room_id,
            room_number=appointment.room.room_number if appointment.room else None,
            room_type=appointment.room_type,
            employee_id=appointment.employee_id,
            employee_name=appointment.employee.name if appointment.employee else None,
            start_time=ensure_ist(appointment.start_time),
            end_time=ensure_ist(appointment.end_time),
            status=appointment.status,
            payment_status=appointment.payment_status,
            payment_method=appointment.payment_method,
            service_price=appointment.service_price,
            room_price=appointment.room_price,
            total_price=appointment.total_price,
            gateway_order_id=appointment.gateway_order_id,
            paid_at=ensure_ist(appointment.paid_at),
            created_by_id=appointment.created_by_id,
            created_at=ensure_ist(appointment.created_at),
        )


class AppointmentListResponse(BaseModel):
    """Response model for listing appointments."""
    appointments: List[AppointmentResponse]


class BookingResponse(BaseModel):
    """Response model for a newly created booking."""
    appointment: AppointmentResponse
    eligible_employees: List[EmployeeResponse]
    gateway_reference: Optional[str] = None  # Gateway order id for online payments


class EmployeeListResponse(BaseModel):
    """Response model for the eligible-staff preview."""
    employees: List[EmployeeResponse]


class BookedIntervalResponse(BaseModel):
    """A booked room interval."""
    room_id: int
    start_time: datetime
    end_time: datetime

    @classmethod
    def from_entry(cls, entry: AvailabilityEntry) -> "BookedIntervalResponse":
        return cls(
            room_id=entry.resource_id,
            start_time=ensure_ist(entry.start_time),
            end_time=ensure_ist(entry.end_time),
        )


class RoomAvailabilityResponse(BaseModel):
    """Response model for booked room intervals on a day."""
    date: str
    room_type: str
    booked: List[BookedIntervalResponse]
