"""
Availability ledger entry model.

One row per committed reservation of a resource (room or employee) for a time
interval. Entries are created alongside the appointment that backs them and are
released (never deleted) when the appointment is cancelled, so the table doubles
as an audit history of resource usage.

Invariant: for a given (resource_type, resource_id), no two entries with status
'Booked' have overlapping [start_time, end_time) intervals.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, ForeignKey, Index, TIMESTAMP, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class AvailabilityEntry(Base):
    """Reservation of one resource for one half-open interval."""

    __tablename__ = "availability_entries"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    resource_type: Mapped[str] = mapped_column(String(20))
    """'room' or 'employee'."""

    resource_id: Mapped[int] = mapped_column()
    """Room id or employee (user) id, depending on resource_type."""

    start_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    end_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))

    status: Mapped[str] = mapped_column(String(20), default="Booked")
    """'Booked' or 'Released'. Released entries never block new bookings."""

    appointment_id: Mapped[int] = mapped_column(ForeignKey("appointments.id", ondelete="CASCADE"), index=True)
    """Appointment that created this reservation."""

    released_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    appointment = relationship("Appointment", back_populates="ledger_entries")

    __table_args__ = (
        CheckConstraint("resource_type IN ('room', 'employee')", name="check_valid_resource_type"),
        CheckConstraint("status IN ('Booked', 'Released')", name="check_valid_ledger_status"),
        # Conflict lookups filter by resource and status, then range on time
        Index('idx_availability_resource_status_start', 'resource_type', 'resource_id', 'status', 'start_time'),
    )

    def __repr__(self) -> str:
        return (
            f"<AvailabilityEntry(id={self.id}, {self.resource_type}={self.resource_id}, "
            f"{self.start_time}-{self.end_time}, status={self.status})>"
        )
