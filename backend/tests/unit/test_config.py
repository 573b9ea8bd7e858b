"""
Unit tests for configuration constants.
"""

import os
from importlib import reload

from core.config import (
    BOOKING_STAFF_ROLES, DATABASE_URL, FRONTEND_URL, PAYMENT_CURRENCY,
    PAYMENT_GATEWAY_BASE_URL, PAYMENT_GATEWAY_TIMEOUT_SECONDS, _split_csv
)


class TestConfigConstants:
    """Test cases for configuration constants."""

    def test_default_values(self):
        """Test default configuration values."""
        assert FRONTEND_URL == "http://localhost:5173"
        assert PAYMENT_GATEWAY_BASE_URL == "https://api.razorpay.com/v1"
        assert PAYMENT_CURRENCY == "INR"
        assert PAYMENT_GATEWAY_TIMEOUT_SECONDS == 10.0
        assert BOOKING_STAFF_ROLES == ["receptionist", "manager"]
        # DATABASE_URL may be overridden in test environment
        assert DATABASE_URL is not None and DATABASE_URL.startswith(("postgresql://", "sqlite://"))

    def test_split_csv(self):
        assert _split_csv(" Receptionist, MANAGER ,,owner ") == ["receptionist", "manager", "owner"]
        assert _split_csv("") == []

    def test_environment_override(self):
        """Test that environment variables override defaults."""
        os.environ["BOOKING_STAFF_ROLES"] = "front_desk"
        os.environ["PAYMENT_CURRENCY"] = "USD"

        try:
            import core.config
            reload(core.config)

            assert core.config.BOOKING_STAFF_ROLES == ["front_desk"]
            assert core.config.PAYMENT_CURRENCY == "USD"
        finally:
            del os.environ["BOOKING_STAFF_ROLES"]
            del os.environ["PAYMENT_CURRENCY"]
            reload(core.config)
