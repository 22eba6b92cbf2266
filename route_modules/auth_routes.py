"""
Auth Routes - registration, login and the current user
"""
from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.security import OAuth2PasswordRequestForm

from auth import get_current_user, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from models import RegisterRequest
from service_modules.auth_service import get_auth_service, AuthService
from service_modules.user_service import user_to_dict

router = APIRouter()


@router.post("/api/auth/register")
async def register(
    request: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Create a client account."""
    if len(request.password) < 6:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
    return service.register_user(request.model_dump())


@router.post("/api/auth/login")
async def login(
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: AuthService = Depends(get_auth_service)
):
    user = service.authenticate_user(form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Incorrect username or password")

    access_token = create_access_token(data={"sub": user.username, "role": user.role})
    response.set_cookie("access_token", access_token, httponly=True, samesite="lax",
                        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60)
    return {"access_token": access_token, "token_type": "bearer", "role": user.role, "user_id": user.id}


@router.post("/api/auth/logout")
async def logout(response: Response):
    response.delete_cookie("access_token")
    return {"status": "success"}


@router.get("/api/auth/me")
async def me(user = Depends(get_current_user)):
    return user_to_dict(user)
