"""
Room model representing a physical treatment room.

Rooms are the physical resource reserved by room-dependent bookings. Each room
belongs to one branch and has a type tier (Silver, Gold, Diamond) with its own
catalog price.
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, TIMESTAMP, Integer, ForeignKey, Numeric, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Room(Base):
    """
    Treatment room entity.

    `status` is the room's general availability (e.g., under maintenance), not
    its booking state for a given interval; that lives in the availability ledger.
    """

    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the room."""

    room_number: Mapped[str] = mapped_column(String(50), unique=True)
    """Human-facing room number. Rooms are searched in room-number order."""

    room_type: Mapped[str] = mapped_column(String(20))
    """Room tier: 'Silver', 'Gold' or 'Diamond'."""

    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True)
    """Branch this room belongs to."""

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    """Catalog price, used when a booking doesn't supply a room price."""

    capacity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="Available")
    """'Available', 'Booked' or 'Maintenance'. Only 'Available' rooms are searched."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    branch = relationship("Branch", back_populates="rooms")

    __table_args__ = (
        CheckConstraint("capacity >= 1 AND capacity <= 2", name="check_room_capacity"),
        Index('idx_rooms_type_status', 'room_type', 'status'),
    )

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, number='{self.room_number}', type='{self.room_type}')>"
