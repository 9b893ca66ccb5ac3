"""Main API router that combines all endpoint modules."""

from fastapi import APIRouter

from postbot.api.v1 import scheduler, services, webhook

api_router = APIRouter()

api_router.include_router(
    webhook.router,
    prefix="/telegram",
    tags=["telegram"]
)

api_router.include_router(
    scheduler.router,
    prefix="/scheduler",
    tags=["scheduler"]
)

api_router.include_router(
    services.ai_router,
    prefix="/ai-services",
    tags=["ai-services"]
)

api_router.include_router(
    services.forwarding_router,
    prefix="/forwarding-services",
    tags=["forwarding-services"]
)


@api_router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "postbot",
        "version": "0.1.0"
    }
