"""
User Routes - client profile and health tracking, admin user management
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user
from models import ProfileUpdate, MetricEntry, HealthGoalCreate, RoleUpdate
from service_modules.user_service import get_user_service, UserService

router = APIRouter()


# --- PROFILE ---

@router.get("/api/profile")
async def get_profile(
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.get_profile(user.id)


@router.put("/api/profile")
async def update_profile(
    request: ProfileUpdate,
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.update_profile(user.id, request.model_dump(exclude_unset=True))


@router.post("/api/profile/metrics")
async def add_metric(
    request: MetricEntry,
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Record a weight or waist measurement."""
    return service.add_metric(user.id, request.kind, request.value)


@router.post("/api/profile/goals")
async def add_goal(
    request: HealthGoalCreate,
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.add_goal(user.id, request.description)


@router.post("/api/profile/goals/{index}/toggle")
async def toggle_goal(
    index: int,
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.toggle_goal(user.id, index)


# --- ADMIN ENDPOINTS ---

@router.get("/api/admin/users")
async def search_users(
    search: Optional[str] = None,
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can list users")
    return service.search_users(search)


@router.get("/api/admin/users/totals")
async def user_totals(
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can view user stats")
    return service.get_user_totals()


@router.get("/api/admin/users/low-balances")
async def low_balances(
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can view user stats")
    return service.get_low_balance_users()


@router.get("/api/admin/users/{user_id}")
async def get_user(
    user_id: str,
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can view users")
    return service.get_profile(user_id)


@router.put("/api/admin/users/{user_id}/role")
async def set_role(
    user_id: str,
    request: RoleUpdate,
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can change roles")
    if user_id == user.id and request.role != "admin":
        raise HTTPException(status_code=400, detail="You cannot remove your own admin role")
    return service.set_role(user_id, request.role)


@router.delete("/api/admin/users/{user_id}")
async def delete_user(
    user_id: str,
    user = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can delete users")
    if user_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    return service.delete_user(user_id)
