"""
Payment bridge to the external payment gateway.

The gateway is a Razorpay-compatible REST API. Two operations matter to the
booking core:

- create_intent: create an order for the booking total. The client completes
  payment against the returned order id.
- verify: check the HMAC-SHA256 signature the gateway hands the client after
  payment. The signature is computed over "{order_id}|{payment_id}" with the
  shared key secret. A mismatch rejects the payment claim outright.

Callers outside the booking flow never talk to the gateway directly; they go
through BookingService or PaymentService.
"""

import hashlib
import hmac
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

import httpx

from core.config import (
    PAYMENT_CURRENCY, PAYMENT_GATEWAY_BASE_URL, PAYMENT_GATEWAY_KEY_ID,
    PAYMENT_GATEWAY_KEY_SECRET, PAYMENT_GATEWAY_TIMEOUT_SECONDS
)
from core.constants import PAYMENT_STATUSES, PAYMENT_STATUS_PAID, PAYMENT_METHOD_ONLINE
from core.exceptions import BookingValidationError, ExternalServiceError, NotFoundError, StateError
from core.transaction import TransactionScope
from models import Appointment
from utils.datetime_utils import ist_now

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal | float | int) -> int:
    """Convert a currency amount to the gateway's minor units (paise, cents)."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentGateway:
    """Thin HTTP adapter for the payment gateway's orders API."""

    def __init__(
        self,
        base_url: str = PAYMENT_GATEWAY_BASE_URL,
        key_id: str = PAYMENT_GATEWAY_KEY_ID,
        key_secret: str = PAYMENT_GATEWAY_KEY_SECRET,
        currency: str = PAYMENT_CURRENCY,
        timeout: float = PAYMENT_GATEWAY_TIMEOUT_SECONDS
    ):
        self.base_url = base_url.rstrip("/")
        self.key_id = key_id
        self.key_secret = key_secret
        self.currency = currency
        self.timeout = timeout

    def create_intent(
        self,
        amount: Decimal,
        reference: str,
        notes: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Create a payment order for `amount`.

        Args:
            amount: Total amount in major currency units
            reference: Our receipt reference (e.g., "appt_APP000042")
            notes: Free-form metadata stored on the gateway order

        Returns:
            Gateway order id

        Raises:
            ExternalServiceError: On transport errors, non-2xx responses or a
                response without an order id
        """
        payload = {
            "amount": to_minor_units(amount),
            "currency": self.currency,
            "receipt": reference,
            "notes": notes or {},
        }
        try:
            response = httpx.post(
                f"{self.base_url}/orders",
                auth=(self.key_id, self.key_secret),
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            order_id = response.json().get("id")
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Payment gateway rejected order {reference}: "
                f"{e.response.status_code} - {e.response.text}"
            )
            raise ExternalServiceError("Payment gateway rejected the order") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Payment gateway request failed for {reference}: {e}")
            raise ExternalServiceError("Payment gateway unavailable") from e

        if not order_id:
            raise ExternalServiceError("Payment gateway returned no order id")

        logger.info(f"Created gateway order {order_id} for {reference}")
        return order_id

    def expected_signature(self, order_id: str, payment_id: str) -> str:
        message = f"{order_id}|{payment_id}".encode('utf-8')
        return hmac.new(self.key_secret.encode('utf-8'), message, hashlib.sha256).hexdigest()

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Constant-time check of the gateway's payment signature."""
        if not self.key_secret:
            logger.warning("Payment gateway secret not configured; rejecting signature")
            return False
        if not order_id or not payment_id or not signature:
            return False
        return hmac.compare_digest(self.expected_signature(order_id, payment_id), signature)


payment_gateway = PaymentGateway()


class PaymentService:
    """Payment state changes on appointments."""

    @staticmethod
    def verify_payment(
        scope: TransactionScope,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
        appointment_id: int,
        gateway: Optional[PaymentGateway] = None
    ) -> Appointment:
        """
        Mark an online appointment as paid once the gateway signature checks out.

        Raises:
            BookingValidationError: Signature mismatch, or the order id doesn't
                belong to this appointment. Payment status is left untouched.
            NotFoundError: Appointment doesn't exist
            StateError: Appointment is already paid; stored gateway ids are kept
        """
        gateway = gateway or payment_gateway

        if not gateway.verify(gateway_order_id, gateway_payment_id, signature):
            logger.warning(f"Invalid payment signature for appointment {appointment_id}")
            raise BookingValidationError("Invalid payment signature")

        appointment = scope.session.query(Appointment).filter(
            Appointment.id == appointment_id
        ).with_for_update().first()
        if appointment is None:
            raise NotFoundError("Appointment not found")

        if appointment.payment_method != PAYMENT_METHOD_ONLINE or appointment.gateway_order_id != gateway_order_id:
            logger.warning(
                f"Gateway order {gateway_order_id} does not match appointment {appointment_id}"
            )
            raise BookingValidationError("Payment order does not match this appointment")

        if appointment.payment_status == PAYMENT_STATUS_PAID:
            logger.warning(f"Payment for appointment {appointment_id} already verified, ignoring {gateway_payment_id}")
            raise StateError("Payment already verified for this appointment")

        appointment.payment_status = PAYMENT_STATUS_PAID
        appointment.gateway_payment_id = gateway_payment_id
        appointment.gateway_signature = signature
        appointment.paid_at = ist_now()
        scope.flush()

        logger.info(f"Payment verified for appointment {appointment.appointment_code}")
        return appointment

    @staticmethod
    def update_payment_status(scope: TransactionScope, appointment_id: int, payment_status: str) -> Appointment:
        """
        Operator override of an appointment's payment status.

        Raises:
            BookingValidationError: Unknown payment status
            NotFoundError: Appointment doesn't exist
        """
        if payment_status not in PAYMENT_STATUSES:
            raise BookingValidationError(
                f"Invalid payment status '{payment_status}'. Expected one of: {', '.join(PAYMENT_STATUSES)}"
            )

        appointment = scope.session.query(Appointment).filter(
            Appointment.id == appointment_id
        ).with_for_update().first()
        if appointment is None:
            raise NotFoundError("Appointment not found")

        old_status = appointment.payment_status
        appointment.payment_status = payment_status
        if payment_status == PAYMENT_STATUS_PAID and appointment.paid_at is None:
            appointment.paid_at = ist_now()
        scope.flush()

        logger.info(
            f"Payment status of appointment {appointment.appointment_code} "
            f"changed {old_status} -> {payment_status}"
        )
        return appointment
