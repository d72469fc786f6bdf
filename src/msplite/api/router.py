"""Main API router."""

from fastapi import APIRouter
from msplite.api.schedule import router as schedule_router
from msplite.api.dependencies import router as dependencies_router
from msplite.api.tasks import router as tasks_router
from msplite.api.projects import router as projects_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(schedule_router)
api_router.include_router(dependencies_router)
api_router.include_router(tasks_router)
api_router.include_router(projects_router)
