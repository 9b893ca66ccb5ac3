"""Text and image provider strategies for post generation."""

import logging
from typing import Any, Dict, Optional
import httpx
import openai
from openai import AsyncOpenAI
from postbot.core.config import Settings
from postbot.generation.errors import GenerationConfigError, GenerationError, error_for_status
from postbot.generation.prompts import SYSTEM_INSTRUCTION

logger = logging.getLogger(__name__)


class ChatTextProvider:
    """OpenAI-compatible chat completions through the openai SDK. No retries."""

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self._client = client

    def get_client(self) -> AsyncOpenAI:
        """Get or create OpenAI client instance."""
        if self._client is None:
            if not self.settings.TEXT_API_KEY:
                raise GenerationConfigError("Text generation API key is not configured")
            self._client = AsyncOpenAI(
                api_key=self.settings.TEXT_API_KEY,
                base_url=self.settings.TEXT_API_BASE_URL or None,
                timeout=self.settings.GENERATION_TIMEOUT,
                max_retries=0,
            )
        return self._client

    async def complete(self, prompt: str) -> str:
        """
        Generate post text for a prompt.

        Args:
            prompt: User prompt including the requirements block

        Returns:
            Generated text

        Raises:
            GenerationError: On provider failure or empty content
        """
        client = self.get_client()
        try:
            logger.debug(f"Chat completion request with model={self.settings.TEXT_MODEL}")
            response = await client.chat.completions.create(
                model=self.settings.TEXT_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_INSTRUCTION},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.settings.TEXT_MAX_TOKENS,
                temperature=self.settings.TEXT_TEMPERATURE,
            )
        except openai.APIStatusError as e:
            logger.error(f"Text provider returned HTTP {e.status_code}: {e}")
            raise error_for_status(e.status_code, str(e))
        except openai.APIError as e:
            logger.error(f"Text provider error: {e}")
            raise GenerationError(f"Text provider error: {e}")

        if not response.choices or not response.choices[0].message.content:
            raise GenerationError("Text provider returned empty content")
        return response.choices[0].message.content.strip()


class MultipartTextProvider:
    """Gemini-style generateContent endpoint (contents/parts) over httpx."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._http_client = http_client

    def build_request(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{
                "role": "user",
                "parts": [{"text": f"{SYSTEM_INSTRUCTION}\n\n{prompt}"}],
            }],
            "generationConfig": {
                "temperature": self.settings.TEXT_TEMPERATURE,
                "maxOutputTokens": self.settings.TEXT_MAX_TOKENS,
            },
        }

    async def complete(self, prompt: str) -> str:
        if not (self.settings.TEXT_API_KEY and self.settings.TEXT_API_ENDPOINT):
            raise GenerationConfigError("Text generation endpoint is not configured")
        data = await _post_json(
            self._http_client,
            self.settings.TEXT_API_ENDPOINT,
            self.settings.TEXT_API_KEY,
            self.build_request(prompt),
            self.settings.GENERATION_TIMEOUT,
        )
        try:
            content = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise GenerationError("Text provider returned empty content")
        return content.strip()


class ChatImageProvider:
    """Chat-completions image models returning message.images[0].image_url.url."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._http_client = http_client

    async def generate(self, prompt: str) -> Optional[str]:
        body = {
            "model": self.settings.IMAGE_MODEL,
            "messages": [{"role": "user", "content": prompt}],
            "modalities": ["image", "text"],
        }
        data = await _post_json(
            self._http_client, self.settings.IMAGE_API_ENDPOINT, self.settings.IMAGE_API_KEY,
            body, self.settings.GENERATION_TIMEOUT,
        )
        try:
            return data["choices"][0]["message"]["images"][0]["image_url"]["url"]
        except (KeyError, IndexError, TypeError):
            return None


class PredictImageProvider:
    """Imagen-style predict endpoint returning base64 bytes, wrapped as a data: URI."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._http_client = http_client

    async def generate(self, prompt: str) -> Optional[str]:
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "sampleCount": 1,
                "aspectRatio": "1:1",
                "safetyFilterLevel": "block_some",
                "personGeneration": "allow_adult",
            },
        }
        data = await _post_json(
            self._http_client, self.settings.IMAGE_API_ENDPOINT, self.settings.IMAGE_API_KEY,
            body, self.settings.GENERATION_TIMEOUT,
        )
        try:
            prediction = data["predictions"][0]
        except (KeyError, IndexError, TypeError):
            return None
        encoded = prediction.get("bytesBase64Encoded") if isinstance(prediction, dict) else None
        if not encoded:
            return None
        mime_type = prediction.get("mimeType") or "image/png"
        return f"data:{mime_type};base64,{encoded}"


async def _post_json(
    http_client: Optional[httpx.AsyncClient],
    url: str,
    api_key: str,
    body: Dict[str, Any],
    timeout: float,
) -> Dict[str, Any]:
    """POST a JSON body with bearer auth and return the decoded response, mapping errors."""
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json; charset=utf-8"}
    try:
        if http_client is not None:
            response = await http_client.post(url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(url, json=body, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"Provider transport error: {e}")
        raise GenerationError(f"Provider transport error: {e}")

    if response.status_code >= 400:
        logger.error(f"Provider returned HTTP {response.status_code}: {response.text[:255]}")
        raise error_for_status(response.status_code, response.text)

    try:
        return response.json()
    except ValueError:
        raise GenerationError("Provider returned non-JSON response")


def build_text_provider(settings: Settings):
    """Pick the text provider strategy from TEXT_PROVIDER_SHAPE."""
    shape = (settings.TEXT_PROVIDER_SHAPE or "chat").lower()
    if shape not in ("chat", "multipart"):
        raise GenerationConfigError(f"Unknown TEXT_PROVIDER_SHAPE: {settings.TEXT_PROVIDER_SHAPE}")
    if not settings.require_text_provider():
        raise GenerationConfigError("Text generation provider is not configured")
    if shape == "multipart":
        return MultipartTextProvider(settings)
    return ChatTextProvider(settings)


def build_image_provider(settings: Settings):
    """Pick the image provider strategy, or None when image generation is not configured."""
    if not settings.require_image_provider():
        return None
    shape = (settings.IMAGE_PROVIDER_SHAPE or "chat").lower()
    if shape == "predict":
        return PredictImageProvider(settings)
    if shape == "chat":
        return ChatImageProvider(settings)
    logger.warning(f"Unknown IMAGE_PROVIDER_SHAPE {settings.IMAGE_PROVIDER_SHAPE}; image generation disabled")
    return None
