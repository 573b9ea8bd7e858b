"""
Utility modules for the spa booking application.

Holds the IST datetime helpers and phone normalization shared by models,
services and the API layer.
"""

from utils.datetime_utils import IST_TZ, ensure_ist, ist_now

__all__ = ['IST_TZ', 'ensure_ist', 'ist_now']
