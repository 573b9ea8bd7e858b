"""
Test utilities for spa booking tests.
"""

from typing import Dict

from models import User
from services.booking_service import BookingRequest, BookingService, CustomerDetails
from services.jwt_service import JWTService, TokenPayload
from core.transaction import TransactionScope


def create_jwt_token(user: User) -> str:
    """Create a bearer token for a user."""
    payload = TokenPayload(
        sub=str(user.id),
        email=user.email,
        role=user.role,
        employee_role=user.employee_role,
        name=user.name,
    )
    return JWTService.create_access_token(payload)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_jwt_token(user)}"}


def book(db, user: User, **kwargs):
    """Run a booking in its own transaction scope."""
    details = kwargs.pop("customer_details", None)
    if isinstance(details, dict):
        details = CustomerDetails(**details)
    kwargs.setdefault("payment_method", "cash")
    with TransactionScope(db) as scope:
        return BookingService.create_booking(scope, user, BookingRequest(customer_details=details, **kwargs))
