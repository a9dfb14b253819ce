from fastapi import APIRouter

from app.presentation.routers.mail import router as mail_router
from app.presentation.routes.health import router as health_router

api = APIRouter()

# Add all routers here
routers = (mail_router, health_router)
for router in routers:
    api.include_router(router)
