"""Scheduling router - availability, blocked days and weekly schedule endpoints"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from .schemas import (
    AvailabilityResponse,
    BlockedDayCheckResponse,
    BlockedDayCreate,
    BlockedDayResponse,
    ScheduleConfigResponse,
    ScheduleConfigUpdate,
)
from .service import ScheduleService
from .services_catalog import SERVICE_CATALOG, parse_service_type

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scheduling"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
    date: date,
    serviceType: str = Query("consultation"),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Bookable slots for a day and service type"""
    return service.get_availability(date, parse_service_type(serviceType))


@router.get("/services")
def list_services():
    """Service catalog with durations"""
    return [
        {"serviceType": d.service_type.value, "label": d.label, "durationMinutes": d.duration_minutes}
        for d in SERVICE_CATALOG.values()
    ]


@router.get("/schedule-config", response_model=ScheduleConfigResponse)
def get_schedule_config(service: ScheduleService = Depends(get_schedule_service)):
    return service.get_config()


# ============================================================================
# ADMIN
# ============================================================================


@router.patch("/schedule-config", response_model=ScheduleConfigResponse)
def update_schedule_config(
    data: ScheduleConfigUpdate,
    _admin: dict = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.update_config(data)


@router.get("/blocked-days", response_model=list[BlockedDayResponse])
def list_blocked_days(
    _admin: dict = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.list_blocked_days()


@router.get("/blocked-days/check", response_model=BlockedDayCheckResponse)
def check_blocked_day(
    date: date,
    _admin: dict = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.check_blocked(date)


@router.post("/blocked-days", response_model=BlockedDayResponse, status_code=201)
def create_blocked_day(
    data: BlockedDayCreate,
    _admin: dict = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.block_day(data.date, data.reason)


@router.delete("/blocked-days/{blocked_day_id}", status_code=204)
def delete_blocked_day(
    blocked_day_id: int,
    _admin: dict = Depends(get_current_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    service.unblock_day(blocked_day_id)
