"""Admin actions on AI and forwarding services."""

import logging
import uuid
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from postbot.api.deps import get_current_user, get_database, get_queue_maintainer
from postbot.db import crud
from postbot.generation.errors import GenerationConfigError, GenerationError
from postbot.pipeline.queue import QueueMaintainer

logger = logging.getLogger(__name__)

ai_router = APIRouter()
forwarding_router = APIRouter()


def _service_summary(service) -> dict:
    return {
        "id": str(service.id),
        "target_channel": service.target_channel,
        "is_running": service.is_running,
        "started_at": service.started_at.isoformat() if service.started_at else None,
        "last_error": service.last_error,
        "error_count": service.error_count,
    }


@ai_router.post("/{service_id}/generate")
async def generate_posts(
    service_id: uuid.UUID,
    count: Optional[int] = Query(None, ge=1, description="Posts to generate, capped by the backlog target"),
    db: Session = Depends(get_database),
    queue: QueueMaintainer = Depends(get_queue_maintainer),
    user: str = Depends(get_current_user),
):
    """Manually top up a service's backlog."""
    service = crud.get_generation_service(db, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="AI service not found")

    try:
        generated = await queue.top_up(db, service, limit=count)
    except GenerationConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationError as e:
        status_code = e.status_code if e.status_code in (402, 429) else 502
        raise HTTPException(status_code=status_code, detail=str(e))

    logger.info(f"{user} generated {generated} posts for service {service_id}")
    return {
        "service_id": str(service_id),
        "generated": generated,
        "scheduled": crud.count_scheduled_posts(db, service_id),
    }


@ai_router.post("/{service_id}/resume")
async def resume_ai_service(
    service_id: uuid.UUID,
    db: Session = Depends(get_database),
    user: str = Depends(get_current_user),
):
    """Re-enable a suspended AI service."""
    service = crud.get_generation_service(db, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="AI service not found")
    crud.resume_service(db, service)
    logger.info(f"{user} resumed AI service {service_id}")
    return _service_summary(service)


@forwarding_router.post("/{service_id}/resume")
async def resume_forwarding_service(
    service_id: uuid.UUID,
    db: Session = Depends(get_database),
    user: str = Depends(get_current_user),
):
    """Re-enable a suspended forwarding service."""
    service = crud.get_forwarding_service(db, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Forwarding service not found")
    crud.resume_service(db, service)
    logger.info(f"{user} resumed forwarding service {service_id}")
    return _service_summary(service)
