"""
Conflict detection over the availability ledger.

Intervals are half-open: [a, b) and [c, d) conflict iff a < d and c < b.
Back-to-back intervals (b == c) never conflict, and empty or inverted
intervals never conflict with anything. Only 'Booked' ledger entries count.

The detector only reads. Serializing check-then-insert is the caller's job
(see TransactionScope.lock_resource).
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from core.constants import LEDGER_STATUS_BOOKED
from models import AvailabilityEntry


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap test. Empty intervals never overlap."""
    if a_start >= a_end or b_start >= b_end:
        return False
    return a_start < b_end and b_start < a_end


class ConflictDetector:
    """Read-only queries answering "is this resource free for this interval?"."""

    @staticmethod
    def find_conflicts(
        db: Session,
        resource_type: str,
        resource_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_appointment_id: Optional[int] = None
    ) -> List[AvailabilityEntry]:
        """
        Return the 'Booked' ledger entries that overlap [start_time, end_time).

        Args:
            db: Database session
            resource_type: 'room' or 'employee'
            resource_id: Room id or employee id
            start_time: Candidate interval start
            end_time: Candidate interval end
            exclude_appointment_id: Ignore entries created by this appointment

        Returns:
            Overlapping entries ordered by start time (empty if free)
        """
        if start_time >= end_time:
            return []

        query = db.query(AvailabilityEntry).filter(
            AvailabilityEntry.resource_type == resource_type,
            AvailabilityEntry.resource_id == resource_id,
            AvailabilityEntry.status == LEDGER_STATUS_BOOKED,
            AvailabilityEntry.start_time < end_time,
            AvailabilityEntry.end_time > start_time,
        )
        if exclude_appointment_id is not None:
            query = query.filter(AvailabilityEntry.appointment_id != exclude_appointment_id)

        return query.order_by(AvailabilityEntry.start_time).all()

    @staticmethod
    def is_free(
        db: Session,
        resource_type: str,
        resource_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_appointment_id: Optional[int] = None
    ) -> bool:
        """True when no 'Booked' entry for the resource overlaps the interval."""
        return not ConflictDetector.find_conflicts(
            db, resource_type, resource_id, start_time, end_time, exclude_appointment_id
        )
