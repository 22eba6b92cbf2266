"""
Activity Routes - coaches and activities (admin management, public listings)
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form

from auth import get_current_user
from models import ActivityCreate, ActivityUpdate
from service_modules.activity_service import get_activity_service, ActivityService

router = APIRouter()


# --- LISTINGS ---

@router.get("/api/activities")
async def list_activities(
    kind: str = "all",
    user = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service)
):
    """List activities. kind: all, private or group."""
    if kind not in ("all", "private", "group"):
        raise HTTPException(status_code=400, detail="kind must be all, private or group")
    return service.list_activities(kind)


@router.get("/api/coaches")
async def list_coaches(
    user = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service)
):
    return service.list_coaches()


@router.get("/api/activities/{activity_id}/coaches")
async def coaches_for_activity(
    activity_id: str,
    user = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service)
):
    """Coaches with open slots for this activity."""
    return service.get_coaches_for_activity(activity_id)


# --- ADMIN: ACTIVITIES ---

@router.post("/api/admin/activities")
async def create_activity(
    request: ActivityCreate,
    user = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can manage activities")
    return service.create_activity(request.model_dump())


@router.put("/api/admin/activities/{activity_id}")
async def update_activity(
    activity_id: str,
    request: ActivityUpdate,
    user = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can manage activities")
    return service.update_activity(activity_id, request.model_dump(exclude_unset=True))


@router.delete("/api/admin/activities/{activity_id}")
async def delete_activity(
    activity_id: str,
    user = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can manage activities")
    return service.delete_activity(activity_id)


# --- ADMIN: COACHES ---

@router.post("/api/admin/coaches")
async def create_coach(
    name: str = Form(...),
    email: str = Form(...),
    profile_picture: Optional[UploadFile] = File(None),
    user = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service)
):
    """Create a coach, optionally with a profile picture (multipart form)."""
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can manage coaches")
    picture = None
    if profile_picture and profile_picture.filename:
        picture = (profile_picture.filename, await profile_picture.read())
    return service.create_coach(name, email, picture)


@router.put("/api/admin/coaches/{coach_id}")
async def update_coach(
    coach_id: str,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None),
    user = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can manage coaches")
    picture = None
    if profile_picture and profile_picture.filename:
        picture = (profile_picture.filename, await profile_picture.read())
    return service.update_coach(coach_id, {"name": name, "email": email}, picture)


@router.delete("/api/admin/coaches/{coach_id}")
async def delete_coach(
    coach_id: str,
    user = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service)
):
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can manage coaches")
    return service.delete_coach(coach_id)
