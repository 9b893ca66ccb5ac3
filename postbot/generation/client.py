"""Content generator: builds the prompt and calls the configured providers."""

import logging
import random
from dataclasses import dataclass
from typing import Dict, Optional
from postbot.core.config import Settings, get_settings
from postbot.db.models import CategoryPrompt, GenerationService, PublishingSettings
from postbot.generation.errors import GenerationConfigError, GenerationError
from postbot.generation.prompts import (
    CUSTOM_CATEGORY, category_label, get_category_prompt, get_custom_prompt, get_image_prompt
)
from postbot.generation.providers import build_image_provider, build_text_provider

logger = logging.getLogger(__name__)


@dataclass
class GeneratedContent:
    text: str
    image_data: Optional[str]
    category: str


@dataclass
class PromptPlan:
    prompt: str
    category: str
    label: str


class ContentGenerator:
    """Produces one post body (plus optional image) for an AI service. Does not persist."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        text_provider=None,
        image_provider=None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings()
        self._text_provider = text_provider
        self._image_provider = image_provider
        self._image_provider_resolved = image_provider is not None
        self.rng = rng or random.Random()

    @property
    def text_provider(self):
        if self._text_provider is None:
            self._text_provider = build_text_provider(self.settings)
        return self._text_provider

    @property
    def image_provider(self):
        if not self._image_provider_resolved:
            self._image_provider = build_image_provider(self.settings)
            self._image_provider_resolved = True
        return self._image_provider

    def build_prompt(
        self,
        service: GenerationService,
        settings: PublishingSettings,
        category_prompts: Dict[str, CategoryPrompt],
    ) -> PromptPlan:
        """
        Choose a topic and build the generation prompt.

        Args:
            service: AI service with its content sources
            settings: Publishing settings of the service
            category_prompts: Active overrides keyed by lower-cased category name

        Returns:
            PromptPlan with the prompt, category key and label

        Raises:
            GenerationConfigError: If no custom prompt and no active categories
        """
        language = self.settings.POST_LANGUAGE
        generate_tags = bool(settings.generate_tags)

        if settings.use_custom_prompt and (settings.custom_prompt or "").strip():
            return PromptPlan(
                prompt=get_custom_prompt(settings.custom_prompt, language, generate_tags),
                category=CUSTOM_CATEGORY,
                label="custom prompt",
            )

        sources = [s for s in service.content_sources if s.is_active]
        if not sources:
            raise GenerationConfigError("Select at least one category")

        source = self.rng.choice(sources)
        label = category_label(source.category)
        override = category_prompts.get((source.category or "").lower()) or category_prompts.get(label.lower())
        if override is not None and override.custom_prompt:
            logger.debug(f"Using category prompt override for {label}")
            prompt = get_custom_prompt(override.custom_prompt, language, generate_tags)
        else:
            prompt = get_category_prompt(label, source.keywords or [], language, generate_tags)
        return PromptPlan(prompt=prompt, category=source.category, label=label)

    async def generate(
        self,
        service: GenerationService,
        settings: PublishingSettings,
        category_prompts: Optional[Dict[str, CategoryPrompt]] = None,
    ) -> GeneratedContent:
        """
        Generate one post.

        Args:
            service: AI service to generate for
            settings: Its publishing settings
            category_prompts: Active category prompt overrides

        Returns:
            GeneratedContent; image_data is None when media is off or the image call failed

        Raises:
            GenerationError: Or a subclass, on text generation failure
        """
        plan = self.build_prompt(service, settings, category_prompts or {})
        logger.info(f"Generating post for service {service.id} (category={plan.category})")

        text = await self.text_provider.complete(plan.prompt)
        if not text:
            raise GenerationError("Text provider returned empty content")

        image_data = None
        if settings.include_media:
            image_data = await self._generate_image(plan.label)

        return GeneratedContent(text=text.strip(), image_data=image_data, category=plan.category)

    async def _generate_image(self, label: str) -> Optional[str]:
        provider = self.image_provider
        if provider is None:
            logger.info("Image generation not configured; publishing text only")
            return None
        try:
            image = await provider.generate(get_image_prompt(label))
        except GenerationError as e:
            logger.warning(f"Image generation failed, continuing without image: {e}")
            return None
        if not image:
            logger.info("Image provider returned no image")
        return image or None
