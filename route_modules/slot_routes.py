"""
Slot Routes - open slots for clients, slot management for admins
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from auth import get_current_user
from models import TimeSlotCreate, BulkTimeSlotCreate
from service_modules.slot_service import get_slot_service, SlotService

router = APIRouter()


# --- CLIENT ENDPOINTS ---

@router.get("/api/slots/available")
async def available_slots(
    group: bool = False,
    activity_id: Optional[str] = None,
    coach_id: Optional[str] = None,
    date: Optional[str] = None,
    user = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service)
):
    """Open individual (or group) slots, optionally filtered."""
    return service.get_available_slots(group, activity_id, coach_id, date)


@router.get("/api/slots/mine")
async def my_reservations(
    user = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service)
):
    return service.get_user_reservations(user.id)


# --- ADMIN ENDPOINTS ---

@router.post("/api/admin/slots")
async def create_slot(
    request: TimeSlotCreate,
    user = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can add time slots")
    return service.create_slots(request.activity_id, request.coach_id, [request.date],
                                request.start_time, request.end_time)


@router.post("/api/admin/slots/bulk")
async def create_slots_bulk(
    request: BulkTimeSlotCreate,
    user = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can add time slots")
    if not request.dates:
        raise HTTPException(status_code=400, detail="At least one date is required")
    return service.create_slots(request.activity_id, request.coach_id, request.dates,
                                request.start_time, request.end_time)


@router.delete("/api/admin/slots/{slot_id}")
async def delete_slot(
    slot_id: str,
    group: bool = False,
    user = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can delete time slots")
    return service.delete_slot(slot_id, group)


@router.get("/api/admin/slots")
async def list_slots(
    group: bool = False,
    user = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service)
):
    """All slots from today onward."""
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can view the schedule")
    return service.get_slots_from_today(group)


@router.get("/api/admin/slots/upcoming")
async def upcoming_sessions(
    group: bool = False,
    limit: int = Query(default=10, ge=1, le=100),
    user = Depends(get_current_user),
    service: SlotService = Depends(get_slot_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can view upcoming sessions")
    return service.get_upcoming_sessions(group, limit)
