# contentcore/api/v1/router.py
from fastapi import APIRouter

from .endpoints import cron, health, pages, posts
from contentcore.api.v1.endpoints import settings as settings_endpoints

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(pages.router, prefix="/pages", tags=["pages"])
api_router.include_router(posts.router, prefix="/posts", tags=["blog"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
api_router.include_router(settings_endpoints.router, prefix="/settings", tags=["settings"])
