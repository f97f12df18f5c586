from fastapi import APIRouter

from app.api.routes import dbdirect_ips, login

api_router = APIRouter()
api_router.include_router(login.router)
api_router.include_router(dbdirect_ips.router)
