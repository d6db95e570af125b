from fastapi import APIRouter

from src.analytics_agent.api.v1 import query, workflows

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(workflows.router)
api_router.include_router(query.router)
