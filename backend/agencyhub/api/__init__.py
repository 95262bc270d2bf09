"""API router package."""

from fastapi import APIRouter

from agencyhub.api.v1 import health, production, social_posts, tasks, workflows

router = APIRouter()

# Include all API routers
router.include_router(health.router, tags=["Health"])
router.include_router(workflows.router, prefix="/workflows", tags=["Workflows"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(social_posts.router, prefix="/social-posts", tags=["Social Posts"])
router.include_router(production.router, prefix="/production", tags=["Production"])
