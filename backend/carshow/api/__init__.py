"""API router aggregator."""
from fastapi import APIRouter

from carshow.api.policies import API_PREFIX
from carshow.api.routes import admin, auth, chat, profile, site, staff, vehicles

api_router = APIRouter(prefix=API_PREFIX)
api_router.include_router(auth.router)
api_router.include_router(auth.session_router)
api_router.include_router(site.router)
api_router.include_router(profile.router)
api_router.include_router(vehicles.router)
api_router.include_router(chat.router)
api_router.include_router(admin.router)
api_router.include_router(staff.staff_router)
api_router.include_router(staff.judge_router)
api_router.include_router(staff.registrar_router)
api_router.include_router(staff.vendor_router)

__all__ = ["api_router"]
