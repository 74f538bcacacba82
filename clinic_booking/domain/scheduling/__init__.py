"""
Scheduling Domain

Decides when the practice is open and which start times can be booked:
- weekdays: canonical weekday enum, parsed once at the boundary
- services_catalog: service types, durations and their booking rules
- day_type: classifies a date (blocked, vacation, regular, occasional, closed)
- slots: candidate start times for an open day
- availability: rule pipeline accepting or rejecting a proposed start

Admin endpoints for blocked days and the weekly schedule live in router.py.
"""

from .router import router

__all__ = ["router"]
