from fastapi import APIRouter

from streaming_agent_service.platform.server.routes.base import base_router

root = APIRouter()
root.include_router(base_router)
