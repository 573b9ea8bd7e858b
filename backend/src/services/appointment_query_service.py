"""
Read-side queries over appointments. Nothing here writes.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from core.constants import APPOINTMENT_STATUSES, ROOM_TYPES
from core.exceptions import BookingValidationError, NotFoundError
from models import Appointment, AvailabilityEntry, Service, User
from services.availability_ledger import AvailabilityLedger
from services.booking_service import BookingService
from utils.datetime_utils import day_bounds


def _with_relations(query):
    return query.options(
        joinedload(Appointment.customer),
        joinedload(Appointment.employee),
        joinedload(Appointment.service).joinedload(Service.category),
        joinedload(Appointment.room),
    )


class AppointmentQueryService:

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Appointment:
        appointment = _with_relations(db.query(Appointment)).filter(
            Appointment.id == appointment_id
        ).first()
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    @staticmethod
    def get_by_code(db: Session, appointment_code: str) -> Appointment:
        appointment = _with_relations(db.query(Appointment)).filter(
            Appointment.appointment_code == appointment_code.strip().upper()
        ).first()
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    @staticmethod
    def list_for_customer(db: Session, customer_id: int) -> List[Appointment]:
        """A customer's appointments, most recent first."""
        return _with_relations(db.query(Appointment)).filter(
            Appointment.customer_id == customer_id
        ).order_by(Appointment.start_time.desc(), Appointment.id.desc()).all()

    @staticmethod
    def list_for_employee(db: Session, employee_id: int) -> List[Appointment]:
        """Appointments assigned to an employee, soonest first."""
        return _with_relations(db.query(Appointment)).filter(
            Appointment.employee_id == employee_id
        ).order_by(Appointment.start_time, Appointment.id).all()

    @staticmethod
    def list_appointments(
        db: Session,
        status: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None
    ) -> List[Appointment]:
        """
        Staff listing with optional filters.

        Args:
            status: Exact appointment status
            date_from: First day (inclusive) of the start-time window
            date_to: Last day (inclusive) of the start-time window
            search: Case-insensitive match on code, customer name, phone or email
        """
        if status is not None and status not in APPOINTMENT_STATUSES:
            raise BookingValidationError(f"Invalid status '{status}'")

        query = _with_relations(db.query(Appointment)).join(
            User, Appointment.customer_id == User.id
        )

        if status is not None:
            query = query.filter(Appointment.status == status)
        if date_from is not None:
            query = query.filter(Appointment.start_time >= day_bounds(date_from)[0])
        if date_to is not None:
            query = query.filter(Appointment.start_time < day_bounds(date_to)[1])
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Appointment.appointment_code.ilike(pattern),
                User.name.ilike(pattern),
                User.phone.ilike(pattern),
                User.email.ilike(pattern),
            ))

        return query.order_by(Appointment.start_time.desc(), Appointment.id.desc()).all()

    @staticmethod
    def available_employees(db: Session, appointment_id: int) -> List[User]:
        """Eligible-staff preview for an existing appointment."""
        appointment = AppointmentQueryService.get_appointment(db, appointment_id)
        return BookingService.get_eligible_employees(db, appointment.service.category, appointment.room)

    @staticmethod
    def booked_room_intervals(db: Session, room_type: str, day: date) -> List[AvailabilityEntry]:
        """Booked room intervals of a room type on a calendar day."""
        if room_type not in ROOM_TYPES:
            raise BookingValidationError(
                f"Invalid room type '{room_type}'. Expected one of: {', '.join(ROOM_TYPES)}"
            )
        day_start, day_end = day_bounds(day)
        return AvailabilityLedger.booked_room_intervals(db, room_type, day_start, day_end)
