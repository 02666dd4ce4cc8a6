"""
Central v1 API router – registers all endpoint sub-routers.
"""
from fastapi import APIRouter
import logging

from toolkit_backend.api.v1.endpoints import notifications, toolkits

logger = logging.getLogger(__name__)

api_router = APIRouter(prefix="/api/v1")

logger.info("Registering v1 API routers")
api_router.include_router(toolkits.router)
api_router.include_router(notifications.router)
