"""Booking cost calculation engine and API."""

__version__ = "1.0.0"
