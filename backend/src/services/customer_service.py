"""
Customer resolution for bookings made by staff on a customer's behalf.

Customers are looked up by phone first, then email. A walk-in customer with no
record is provisioned on the spot with a random placeholder credential; they
can reset it later through the normal password flow.
"""

import logging
import secrets
from typing import Optional

import bcrypt
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.constants import PLACEHOLDER_EMAIL_DOMAIN, ROLE_USER
from core.exceptions import BookingValidationError, ConflictError
from core.transaction import TransactionScope
from models import User
from utils.phone_utils import normalize_phone, normalized_phone_column

logger = logging.getLogger(__name__)


def generate_placeholder_password_hash() -> str:
    """bcrypt hash of a strong random secret nobody knows."""
    secret = secrets.token_urlsafe(24)
    return bcrypt.hashpw(secret.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


class CustomerService:
    """Find-or-create logic for booking customers."""

    @staticmethod
    def find_customer(db: Session, phone: str, email: Optional[str] = None) -> Optional[User]:
        """
        Find an existing user by phone, falling back to email.

        Args:
            db: Database session
            phone: Phone number (primary key for resolution)
            email: Optional email (secondary key)

        Returns:
            Matching user or None
        """
        # Stored phones are compared in normalized form as well
        user = db.query(User).filter(
            normalized_phone_column(User.phone) == normalize_phone(phone)
        ).order_by(User.id).first()
        if user is not None:
            return user

        if email:
            return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
        return None

    @staticmethod
    def resolve_or_create_customer(
        scope: TransactionScope,
        name: str,
        phone: str,
        email: Optional[str] = None
    ) -> User:
        """
        Resolve the booking customer, provisioning a new record if needed.

        The new record is only flushed; it is committed or rolled back together
        with the rest of the booking.

        Raises:
            BookingValidationError: If name or phone is missing
            ConflictError: If the placeholder email already belongs to someone else,
                or a concurrent booking provisioned the same phone or email first
        """
        if not name or not name.strip() or not phone or not normalize_phone(phone):
            raise BookingValidationError("Customer name and phone are required for staff bookings")

        existing = CustomerService.find_customer(scope.session, phone, email)
        if existing is not None:
            logger.info(f"Resolved existing customer {existing.id} for staff booking")
            return existing

        normalized_phone = normalize_phone(phone)
        customer_email = email.strip().lower() if email else f"{normalized_phone}@{PLACEHOLDER_EMAIL_DOMAIN}"

        taken = scope.session.query(User.id).filter(func.lower(User.email) == customer_email).first()
        if taken is not None:
            raise ConflictError("A different account already uses this email")

        customer = User(
            name=name.strip(),
            email=customer_email,
            phone=normalized_phone,
            password_hash=generate_placeholder_password_hash(),
            role=ROLE_USER,
            is_email_verified=bool(email),
        )
        scope.session.add(customer)
        try:
            scope.flush()
        except IntegrityError as e:
            logger.warning(f"Customer provisioning lost a race: {e.orig}")
            raise ConflictError("Customer was created by a concurrent booking, please retry") from e
        logger.info(f"Provisioned new customer {customer.id} for staff booking")
        return customer
