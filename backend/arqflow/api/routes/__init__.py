from fastapi import APIRouter

from arqflow.api.routes import health, projects, timeline

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(timeline.router, prefix="/timeline", tags=["timeline"])
