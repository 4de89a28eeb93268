"""Appointment availability and booking engine for salon and spa businesses."""

__version__ = "0.1.0"
