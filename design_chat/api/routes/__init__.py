from fastapi import APIRouter

from design_chat.api.routes import health, design_sessions

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(design_sessions.router, prefix="/tasks/{task_id}", tags=["design-sessions"])
