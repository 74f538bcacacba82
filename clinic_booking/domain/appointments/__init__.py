"""
Appointments Domain

Booking lifecycle (create, reschedule, cancel by token or by the practice,
delete) and reconciliation with the external calendar.
"""

from .router import router

__all__ = ["router"]
