"""Keeps each AI service's backlog of scheduled posts at the target depth."""

import logging
from datetime import datetime
from typing import Callable, Optional
from sqlalchemy.orm import Session
from postbot.core.config import Settings, get_settings
from postbot.db import crud
from postbot.db.models import GenerationService, utcnow
from postbot.generation.client import ContentGenerator
from postbot.generation.errors import GenerationConfigError

logger = logging.getLogger(__name__)


class QueueMaintainer:
    """
    Generates posts until a service has `target_depth` scheduled posts.

    There is no lock: two overlapping top-ups for one service can each see the
    same count and overshoot the target slightly.
    """

    def __init__(
        self,
        generator: Optional[ContentGenerator] = None,
        settings: Optional[Settings] = None,
        target_depth: Optional[int] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings or get_settings()
        self.generator = generator or ContentGenerator(self.settings)
        self.target_depth = target_depth if target_depth is not None else self.settings.QUEUE_TARGET_DEPTH
        self.now = now

    def missing(self, db: Session, service: GenerationService) -> int:
        return max(0, self.target_depth - crud.count_scheduled_posts(db, service.id))

    async def top_up(self, db: Session, service: GenerationService, limit: Optional[int] = None) -> int:
        """
        Fill the backlog of one service.

        Args:
            db: Database session
            service: AI service to fill
            limit: Optional cap on the number of posts to generate

        Returns:
            Number of posts inserted

        Raises:
            GenerationError: Generation failures stop the loop; rows already inserted remain
        """
        publishing_settings = service.settings
        if publishing_settings is None:
            raise GenerationConfigError(f"Service {service.id} has no publishing settings")

        needed = self.missing(db, service)
        if limit is not None:
            needed = min(needed, max(0, limit))
        if needed == 0:
            return 0

        category_prompts = crud.get_category_prompts(db)
        logger.info(f"Topping up service {service.id} with {needed} posts")

        inserted = 0
        for _ in range(needed):
            content = await self.generator.generate(service, publishing_settings, category_prompts)
            crud.add_generated_post(
                db, service.id, content.category, content.text, content.image_data, created_at=self.now()
            )
            inserted += 1

        logger.info(f"Generated {inserted} posts for service {service.id}")
        return inserted
