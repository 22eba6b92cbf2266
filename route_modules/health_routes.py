"""
Health Routes - the health advisor chat
"""
from fastapi import APIRouter, Depends

from auth import get_current_user
from models import HealthQuestion
from service_modules.health_chat_service import get_health_chat_service, HealthChatService

router = APIRouter()


@router.post("/api/ask-health")
async def ask_health(
    request: HealthQuestion,
    user = Depends(get_current_user),
    service: HealthChatService = Depends(get_health_chat_service)
):
    return service.ask(request.question, user)
