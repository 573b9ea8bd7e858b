"""
Availability ledger: the record of which resource is reserved when.

Writes go through a TransactionScope so they commit or roll back together with
the appointment change that caused them. Entries are never deleted; cancelling
an appointment flips its entries to 'Released'.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from core.constants import (
    LEDGER_STATUS_BOOKED, LEDGER_STATUS_RELEASED, RESOURCE_TYPES, RESOURCE_TYPE_ROOM
)
from core.transaction import TransactionScope
from models import AvailabilityEntry, Room
from utils.datetime_utils import ist_now

logger = logging.getLogger(__name__)


class AvailabilityLedger:
    """Append-only reservation ledger for rooms and employees."""

    @staticmethod
    def reserve(
        scope: TransactionScope,
        resource_type: str,
        resource_id: int,
        start_time: datetime,
        end_time: datetime,
        appointment_id: int
    ) -> AvailabilityEntry:
        """
        Insert a 'Booked' entry for the exact interval.

        The caller must already hold the resource lock and have checked the
        interval with ConflictDetector inside the same scope.
        """
        if resource_type not in RESOURCE_TYPES:
            raise ValueError(f"Unknown resource type: {resource_type}")

        entry = AvailabilityEntry(
            resource_type=resource_type,
            resource_id=resource_id,
            start_time=start_time,
            end_time=end_time,
            status=LEDGER_STATUS_BOOKED,
            appointment_id=appointment_id,
        )
        scope.session.add(entry)
        scope.flush()
        logger.debug(f"Reserved {resource_type} {resource_id} for appointment {appointment_id}")
        return entry

    @staticmethod
    def release_for_appointment(scope: TransactionScope, appointment_id: int) -> int:
        """
        Release every 'Booked' entry created by an appointment.

        Returns:
            Number of entries released
        """
        entries = scope.session.query(AvailabilityEntry).filter(
            AvailabilityEntry.appointment_id == appointment_id,
            AvailabilityEntry.status == LEDGER_STATUS_BOOKED,
        ).all()

        released_at = ist_now()
        for entry in entries:
            entry.status = LEDGER_STATUS_RELEASED
            entry.released_at = released_at

        if entries:
            scope.flush()
            logger.info(f"Released {len(entries)} ledger entries for appointment {appointment_id}")
        return len(entries)

    @staticmethod
    def entries_for_appointment(db: Session, appointment_id: int) -> List[AvailabilityEntry]:
        return db.query(AvailabilityEntry).filter(
            AvailabilityEntry.appointment_id == appointment_id
        ).order_by(AvailabilityEntry.id).all()

    @staticmethod
    def booked_room_intervals(
        db: Session,
        room_type: str,
        day_start: datetime,
        day_end: datetime,
        branch_id: Optional[int] = None
    ) -> List[AvailabilityEntry]:
        """
        List 'Booked' room entries of a room type that touch [day_start, day_end).

        Used to show customers which slots are taken for a given day.
        """
        room_ids = db.query(Room.id).filter(Room.room_type == room_type)
        if branch_id is not None:
            room_ids = room_ids.filter(Room.branch_id == branch_id)

        return db.query(AvailabilityEntry).filter(
            AvailabilityEntry.resource_type == RESOURCE_TYPE_ROOM,
            AvailabilityEntry.resource_id.in_(room_ids),
            AvailabilityEntry.status == LEDGER_STATUS_BOOKED,
            AvailabilityEntry.start_time < day_end,
            AvailabilityEntry.end_time > day_start,
        ).order_by(AvailabilityEntry.start_time, AvailabilityEntry.resource_id).all()
