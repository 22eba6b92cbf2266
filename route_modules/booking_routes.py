"""
Booking Routes - booking, cancelling and rescheduling sessions, session add-ons
and the completed session history
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from auth import get_current_user
from models import BookSessionRequest, RescheduleRequest, PayForItemsRequest
from service_modules.booking_service import get_booking_service, BookingService
from service_modules.cancellation_service import get_cancellation_service, CancellationService
from service_modules.session_history_service import get_session_history_service, SessionHistoryService

router = APIRouter()


# --- BOOKING ---

@router.post("/api/bookings")
async def book_session(
    request: BookSessionRequest,
    user = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service)
):
    """Book a slot. Admins may book on behalf of a client by passing user_id."""
    client_id = user.id
    if request.user_id and request.user_id != user.id:
        if user.role != "admin":
            raise HTTPException(status_code=403, detail="Only admins can book for other clients")
        client_id = request.user_id
    return service.book_session(client_id, request.model_dump(exclude={"user_id"}))


@router.post("/api/bookings/reschedule")
async def reschedule(
    request: RescheduleRequest,
    user = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service)
):
    return service.reschedule(user.id, request.old_slot_id, request.new_slot.model_dump(exclude={"user_id"}))


@router.post("/api/bookings/individual/{slot_id}/items")
async def pay_for_individual_items(
    slot_id: str,
    request: PayForItemsRequest,
    user = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service)
):
    return service.pay_for_items(user.id, slot_id, request.item_ids, group=False)


@router.post("/api/bookings/group/{slot_id}/items")
async def pay_for_group_items(
    slot_id: str,
    request: PayForItemsRequest,
    user = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service)
):
    return service.pay_for_items(user.id, slot_id, request.item_ids, group=True)


# --- CANCELLATION ---

@router.delete("/api/bookings/individual/{slot_id}")
async def cancel_individual(
    slot_id: str,
    user = Depends(get_current_user),
    service: CancellationService = Depends(get_cancellation_service)
):
    return service.cancel_individual(slot_id, user.id)


@router.delete("/api/bookings/group/{slot_id}")
async def cancel_group(
    slot_id: str,
    user = Depends(get_current_user),
    service: CancellationService = Depends(get_cancellation_service)
):
    return service.cancel_group(slot_id, user.id)


@router.delete("/api/admin/bookings/individual/{slot_id}")
async def admin_cancel_individual(
    slot_id: str,
    user = Depends(get_current_user),
    service: CancellationService = Depends(get_cancellation_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can cancel client bookings")
    return service.cancel_individual(slot_id, None, by_admin=True)


@router.delete("/api/admin/bookings/group/{slot_id}")
async def admin_cancel_group_session(
    slot_id: str,
    user = Depends(get_current_user),
    service: CancellationService = Depends(get_cancellation_service)
):
    """Cancel a whole group class and refund everyone."""
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can cancel group sessions")
    return service.cancel_group_session(slot_id)


@router.delete("/api/admin/bookings/group/{slot_id}/participants/{user_id}")
async def admin_remove_participant(
    slot_id: str,
    user_id: str,
    user = Depends(get_current_user),
    service: CancellationService = Depends(get_cancellation_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can cancel client bookings")
    return service.cancel_group(slot_id, user_id, by_admin=True)


# --- HISTORY ---

@router.get("/api/sessions/completed")
async def completed_sessions(
    user_id: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort_by: str = "date",
    sort_order: str = "desc",
    filter: str = "all",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    activity_id: Optional[str] = None,
    user = Depends(get_current_user),
    service: SessionHistoryService = Depends(get_session_history_service)
):
    """Past sessions. Clients only see their own; admins may filter by user or see all."""
    if user.role != "admin":
        user_id = user.id
    return service.get_completed_sessions(
        user_id=user_id, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order,
        session_filter=filter, start_date=start_date, end_date=end_date, activity_id=activity_id
    )
