"""
Appointment lifecycle.

    Pending -> Confirmed -> In Progress -> Completed
    Pending / Confirmed / In Progress -> Cancelled

Pending -> Confirmed only happens by assigning an employee, which is also the
one place the customer confirmation is queued. Every transition re-reads the
stored status under a lock before applying it, and writes go through the
caller's TransactionScope.
"""

import logging
from typing import Dict, FrozenSet, Optional

from core.constants import (
    APPOINTMENT_STATUSES, RESOURCE_TYPE_EMPLOYEE, ROLE_EMPLOYEE, STATUS_CANCELLED,
    STATUS_COMPLETED, STATUS_CONFIRMED, STATUS_IN_PROGRESS, STATUS_PENDING
)
from core.exceptions import BookingValidationError, ConflictError, NotFoundError, StateError
from core.transaction import TransactionScope
from models import Appointment, User
from services.availability_ledger import AvailabilityLedger
from services.conflict_detector import ConflictDetector
from services.notification_service import ConfirmationDetails, NotificationService
from utils.datetime_utils import ensure_ist, ist_now

logger = logging.getLogger(__name__)

# Mutex key for appointment rows on databases without row locks
APPOINTMENT_LOCK_KEY = "appointment"

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    STATUS_PENDING: frozenset({STATUS_CONFIRMED, STATUS_CANCELLED}),
    STATUS_CONFIRMED: frozenset({STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_CANCELLED}),
    STATUS_IN_PROGRESS: frozenset({STATUS_COMPLETED, STATUS_CANCELLED}),
    STATUS_COMPLETED: frozenset(),
    STATUS_CANCELLED: frozenset(),
}


def is_transition_allowed(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


class AppointmentStateService:
    """Status transitions and employee assignment."""

    @staticmethod
    def assign_employee(scope: TransactionScope, appointment_id: int, employee_id: int) -> Appointment:
        """
        Attach an employee to a Pending appointment and confirm it.

        The employee must work at the room's branch (when a room is booked),
        carry the service category's role tag, and be free for the interval.
        On any violation nothing is changed.

        Raises:
            NotFoundError: Appointment or employee doesn't exist
            StateError: Appointment isn't Pending
            BookingValidationError: Branch or role mismatch
            ConflictError: Employee already booked for an overlapping interval
        """
        appointment = AppointmentStateService._load_for_update(scope, appointment_id)

        if appointment.status != STATUS_PENDING:
            raise StateError(f"Cannot assign an employee to a {appointment.status} appointment")

        employee = scope.session.get(User, employee_id)
        if employee is None or employee.role != ROLE_EMPLOYEE or not employee.is_active:
            raise NotFoundError("Employee not found")

        room = appointment.room
        if room is not None and employee.branch_id != room.branch_id:
            logger.warning(
                f"Rejected employee {employee.id} for {appointment.appointment_code}: "
                f"branch {employee.branch_id} != room branch {room.branch_id}"
            )
            raise BookingValidationError("Employee does not work at the branch of the booked room")

        category = appointment.service.category
        required_role = category.assigned_employee_role if category else None
        if employee.employee_role != required_role:
            logger.warning(
                f"Rejected employee {employee.id} for {appointment.appointment_code}: "
                f"role '{employee.employee_role}' != '{required_role}'"
            )
            raise BookingValidationError("Employee role does not match the service category")

        start_time = ensure_ist(appointment.start_time)
        end_time = ensure_ist(appointment.end_time)

        scope.lock_resource(RESOURCE_TYPE_EMPLOYEE, employee.id, User)
        if not ConflictDetector.is_free(
            scope.session, RESOURCE_TYPE_EMPLOYEE, employee.id, start_time, end_time,
            exclude_appointment_id=appointment.id
        ):
            raise ConflictError("Employee is already booked for this time")

        appointment.employee = employee
        AvailabilityLedger.reserve(
            scope, RESOURCE_TYPE_EMPLOYEE, employee.id, start_time, end_time, appointment.id
        )
        AppointmentStateService._apply(scope, appointment, STATUS_CONFIRMED)

        logger.info(f"Assigned employee {employee.id} to {appointment.appointment_code}")
        return appointment

    @staticmethod
    def update_status(scope: TransactionScope, appointment_id: int, new_status: str) -> Appointment:
        """
        Operator-driven transition to any legal next status.

        Pending -> Confirmed is rejected here even though it is a legal edge:
        confirming requires an employee, so it only happens through
        `assign_employee`, which also queues the customer confirmation. An
        operator who wants the confirmation email assigns an employee instead
        of setting the status directly.

        Raises:
            BookingValidationError: Unknown status value
            NotFoundError: Appointment doesn't exist
            StateError: Transition not allowed from the stored status
        """
        if new_status not in APPOINTMENT_STATUSES:
            raise BookingValidationError(
                f"Invalid status '{new_status}'. Expected one of: {', '.join(APPOINTMENT_STATUSES)}"
            )

        appointment = AppointmentStateService._load_for_update(scope, appointment_id)
        AppointmentStateService._check_transition(appointment, new_status)

        if appointment.status == STATUS_PENDING and new_status == STATUS_CONFIRMED:
            raise StateError("Assign an employee to confirm this appointment")

        AppointmentStateService._apply(scope, appointment, new_status)
        return appointment

    @staticmethod
    def complete(scope: TransactionScope, appointment_id: int) -> Appointment:
        """Mark a Confirmed or In Progress appointment Completed. Ledger entries stay Booked."""
        appointment = AppointmentStateService._load_for_update(scope, appointment_id)
        AppointmentStateService._check_transition(appointment, STATUS_COMPLETED)
        AppointmentStateService._apply(scope, appointment, STATUS_COMPLETED)
        return appointment

    @staticmethod
    def cancel(scope: TransactionScope, appointment_id: int) -> Appointment:
        """Cancel a non-terminal appointment and release its ledger entries."""
        appointment = AppointmentStateService._load_for_update(scope, appointment_id)
        AppointmentStateService._check_transition(appointment, STATUS_CANCELLED)
        AppointmentStateService._apply(scope, appointment, STATUS_CANCELLED)
        return appointment

    @staticmethod
    def _load_for_update(scope: TransactionScope, appointment_id: int) -> Appointment:
        scope.lock_resource(APPOINTMENT_LOCK_KEY, appointment_id, Appointment)
        appointment: Optional[Appointment] = scope.session.query(Appointment).filter(
            Appointment.id == appointment_id
        ).populate_existing().with_for_update().first()
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    @staticmethod
    def _check_transition(appointment: Appointment, new_status: str) -> None:
        if not is_transition_allowed(appointment.status, new_status):
            logger.warning(
                f"Rejected transition {appointment.status} -> {new_status} "
                f"for {appointment.appointment_code}"
            )
            raise StateError(f"Cannot change status from {appointment.status} to {new_status}")

    @staticmethod
    def _apply(scope: TransactionScope, appointment: Appointment, new_status: str) -> None:
        """Write the new status plus its side effects. Assumes the transition was checked."""
        old_status = appointment.status
        appointment.status = new_status

        if new_status == STATUS_CANCELLED:
            AvailabilityLedger.release_for_appointment(scope, appointment.id)

        if (old_status == STATUS_PENDING and new_status == STATUS_CONFIRMED
                and appointment.confirmation_sent_at is None):
            appointment.confirmation_sent_at = ist_now()
            scope.flush()
            details = ConfirmationDetails.from_appointment(appointment)
            scope.after_commit(lambda: NotificationService.send_appointment_confirmation(details))

        scope.flush()
        logger.info(f"Appointment {appointment.appointment_code}: {old_status} -> {new_status}")
