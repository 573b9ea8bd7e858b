"""
Customer notifications.

The only message the booking core sends is the appointment confirmation, on the
Pending -> Confirmed edge. Delivery goes through the Resend email API and is
fire-and-forget: failures are logged and never surface to the caller whose
action triggered them.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import resend

from core.config import BUSINESS_NAME, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from core.constants import PLACEHOLDER_EMAIL_DOMAIN
from models import Appointment
from utils.datetime_utils import format_datetime

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


@dataclass(frozen=True)
class ConfirmationDetails:
    """
    Snapshot of what the confirmation message needs.

    Taken inside the transaction so the message can be built after commit
    without touching the session.
    """
    appointment_code: str
    customer_name: str
    customer_email: Optional[str]
    service_name: str
    start_time: datetime
    employee_name: Optional[str] = None
    room_number: Optional[str] = None

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "ConfirmationDetails":
        return cls(
            appointment_code=appointment.appointment_code or "",
            customer_name=appointment.customer.name,
            customer_email=appointment.customer.email,
            service_name=appointment.service.name,
            start_time=appointment.start_time,
            employee_name=appointment.employee.name if appointment.employee else None,
            room_number=appointment.room.room_number if appointment.room else None,
        )


class NotificationService:
    """Service for sending customer emails."""

    @staticmethod
    def send_appointment_confirmation(details: ConfirmationDetails) -> bool:
        """
        Email the customer that their appointment is confirmed.

        Returns:
            True if the email was handed to the provider, False otherwise
        """
        if not RESEND_API_KEY:
            logger.info(f"Email not configured, skipping confirmation for {details.appointment_code}")
            return False

        if not details.customer_email or details.customer_email.endswith(f"@{PLACEHOLDER_EMAIL_DOMAIN}"):
            logger.info(f"Customer has no real email, skipping confirmation for {details.appointment_code}")
            return False

        try:
            response = resend.Emails.send({
                "from": EMAIL_FROM_ADDRESS,
                "to": [details.customer_email],
                "subject": f"Your {BUSINESS_NAME} appointment {details.appointment_code} is confirmed",
                "html": NotificationService._get_confirmation_message(details),
            })
            logger.info(f"Sent confirmation for {details.appointment_code}: {response}")
            return True
        except Exception as e:
            logger.exception(f"Failed to send confirmation for {details.appointment_code}: {e}")
            return False

    @staticmethod
    def _get_confirmation_message(details: ConfirmationDetails) -> str:
        lines = [
            f"<p>Hi {details.customer_name},</p>",
            f"<p>Your appointment <strong>{details.appointment_code}</strong> is confirmed.</p>",
            "<ul>",
            f"<li>Service: {details.service_name}</li>",
            f"<li>Time: {format_datetime(details.start_time)}</li>",
        ]
        if details.employee_name:
            lines.append(f"<li>With: {details.employee_name}</li>")
        if details.room_number:
            lines.append(f"<li>Room: {details.room_number}</li>")
        lines.append("</ul>")
        lines.append(f"<p>See you soon,<br>{BUSINESS_NAME}</p>")
        return "\n".join(lines)
