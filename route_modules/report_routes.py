"""
Report Routes - admin dashboard, accounting and coach statistics
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from auth import get_current_user
from service_modules.dashboard_service import get_dashboard_service, DashboardService
from service_modules.report_service import get_report_service, ReportService

router = APIRouter()


def _transaction_filters(type, currency, search, start_date, end_date, user_id, min_amount, max_amount) -> dict:
    return {
        "type": type, "currency": currency, "search": search,
        "start_date": start_date, "end_date": end_date, "user_id": user_id,
        "min_amount": min_amount, "max_amount": max_amount,
    }


# --- DASHBOARD ---

@router.get("/api/admin/dashboard")
async def dashboard_totals(
    user = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can view the dashboard")
    return service.get_totals()


@router.get("/api/admin/dashboard/today")
async def booked_today(
    user = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Booked sessions today that have not ended yet."""
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can view the dashboard")
    return service.get_booked_slots_today()


# --- ACCOUNTING ---

@router.get("/api/admin/transactions")
async def transactions_report(
    type: Optional[str] = None,
    currency: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    user_id: Optional[str] = None,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=200),
    user = Depends(get_current_user),
    service: ReportService = Depends(get_report_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can view transactions")
    filters = _transaction_filters(type, currency, search, start_date, end_date, user_id, min_amount, max_amount)
    return service.get_transactions_report(filters, sort_by, sort_order, page, limit)


@router.get("/api/admin/transactions/export")
async def export_transactions(
    type: Optional[str] = None,
    currency: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    user_id: Optional[str] = None,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
    user = Depends(get_current_user),
    service: ReportService = Depends(get_report_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can export transactions")
    filters = _transaction_filters(type, currency, search, start_date, end_date, user_id, min_amount, max_amount)
    content = service.export_transactions_csv(filters)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=transactions.csv"}
    )


# --- COACHES ---

@router.get("/api/admin/coach-history")
async def coach_history(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    user = Depends(get_current_user),
    service: ReportService = Depends(get_report_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can view coach history")
    return service.get_coach_history(start_date, end_date)
