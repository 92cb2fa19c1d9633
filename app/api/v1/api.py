from fastapi import APIRouter

from .ips import router as ips_router

api_router = APIRouter()

api_router.include_router(ips_router, prefix="/ips", tags=["ips"])
