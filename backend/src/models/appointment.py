"""
Appointment model, the central transactional entity of the booking system.

An appointment links a customer, a service, an optional treatment room and an
optional employee to a time interval. Rooms are reserved when the appointment
is created; employees are attached later by staff. The lifecycle is:

    Pending -> Confirmed -> In Progress -> Completed
    Pending / Confirmed / In Progress -> Cancelled
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, ForeignKey, Index, TIMESTAMP, Numeric, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Appointment(Base):
    """
    Appointment entity.

    `end_time` is always `start_time + duration`, computed by the booking
    service. It is never edited independently.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Internal identifier."""

    appointment_code: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True)
    """
    Human-readable sequential code (e.g., "APP000042").

    Derived from the internal sequence inside the booking transaction, so it is
    only NULL between the insert and the follow-up flush.
    """

    customer_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    """Customer the appointment is for."""

    service_id: Mapped[int] = mapped_column(ForeignKey("services.id"))

    room_id: Mapped[Optional[int]] = mapped_column(ForeignKey("rooms.id"), nullable=True)
    """Reserved room. Only set for room-dependent service categories."""

    room_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    """Requested room tier for room-dependent services."""

    employee_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    """Assigned employee. NULL until staff assign one."""

    start_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    end_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))

    status: Mapped[str] = mapped_column(String(20), default="Pending")
    """'Pending', 'Confirmed', 'In Progress', 'Completed' or 'Cancelled'."""

    payment_status: Mapped[str] = mapped_column(String(20), default="Pending")
    """'Pending', 'Paid', 'Refunded' or 'Cash'."""

    payment_method: Mapped[str] = mapped_column(String(20))
    """'online' or 'cash'."""

    service_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    room_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    gateway_order_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    """Payment gateway order reference for online payments."""

    gateway_payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    gateway_signature: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    confirmation_sent_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    """When the customer confirmation went out. Set once, on Pending -> Confirmed."""

    created_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    """Who initiated the booking: the customer, or staff on the customer's behalf."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    customer = relationship("User", foreign_keys=[customer_id])
    employee = relationship("User", foreign_keys=[employee_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    service = relationship("Service")
    room = relationship("Room")
    ledger_entries = relationship("AvailabilityEntry", back_populates="appointment")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_appointment_time_range"),
        Index('idx_appointments_status', 'status'),
        Index('idx_appointments_customer', 'customer_id'),
        Index('idx_appointments_employee_start', 'employee_id', 'start_time'),
        Index('idx_appointments_start', 'start_time'),
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, code='{self.appointment_code}', status='{self.status}')>"
