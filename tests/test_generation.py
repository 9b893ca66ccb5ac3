"""Test prompt building, provider response parsing and error mapping."""

import asyncio
import json
import random
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from postbot.core.config import Settings
from postbot.db.models import CategoryPrompt, ContentSource, GenerationService, PublishingSettings
from postbot.generation.client import ContentGenerator
from postbot.generation.errors import (
    GenerationBillingError, GenerationConfigError, GenerationError, GenerationRateLimited
)
from postbot.generation.prompts import category_label, requirements_block
from postbot.generation.providers import (
    ChatImageProvider, ChatTextProvider, MultipartTextProvider, PredictImageProvider,
    build_image_provider, build_text_provider,
)


def make_service(categories=(("tech", ["AI"]),)):
    service = GenerationService(target_channel="@target")
    service.content_sources = [
        ContentSource(category=category, keywords=keywords, is_active=True) for category, keywords in categories
    ]
    return service


def make_settings(**kwargs):
    values = dict(use_custom_prompt=False, custom_prompt=None, include_media=False, generate_tags=False)
    values.update(kwargs)
    return PublishingSettings(**values)


class StubText:
    def __init__(self, text="Generated text"):
        self.prompts = []
        self.text = text

    async def complete(self, prompt):
        self.prompts.append(prompt)
        return self.text


class StubImage:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    async def generate(self, prompt):
        if self.error:
            raise self.error
        return self.result


def mock_http(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_requirements_block_mentions_language_and_tags():
    block = requirements_block("Ukrainian", generate_tags=True)
    assert "300-500 characters" in block
    assert "Write in Ukrainian" in block
    assert "hashtags" in block
    assert "hashtags" not in requirements_block("Ukrainian", generate_tags=False)


def test_category_label():
    assert category_label("tech") == "Technology"
    assert category_label("unknown-topic") == "unknown-topic"
    assert category_label(None) == "general topic"


def test_default_prompt_uses_label_and_keywords(settings):
    generator = ContentGenerator(settings=settings, text_provider=StubText(), rng=random.Random(1))
    plan = generator.build_prompt(make_service(), make_settings(), {})
    assert plan.category == "tech"
    assert 'on the topic "Technology"' in plan.prompt
    assert "Keywords: AI" in plan.prompt


def test_custom_prompt_overrides_categories(settings):
    generator = ContentGenerator(settings=settings, text_provider=StubText())
    plan = generator.build_prompt(
        make_service(categories=()), make_settings(use_custom_prompt=True, custom_prompt="Write about cats"), {}
    )
    assert plan.category == "custom"
    assert plan.prompt.startswith("Write about cats")
    assert "Requirements:" in plan.prompt


def test_category_prompt_override(settings):
    generator = ContentGenerator(settings=settings, text_provider=StubText())
    override = CategoryPrompt(category_name="Technology", custom_prompt="Explain one gadget", use_custom_prompt=True)
    plan = generator.build_prompt(make_service(), make_settings(), {"technology": override})
    assert plan.prompt.startswith("Explain one gadget")


def test_no_categories_is_config_error(settings):
    generator = ContentGenerator(settings=settings, text_provider=StubText())
    with pytest.raises(GenerationConfigError):
        generator.build_prompt(make_service(categories=()), make_settings(), {})


def test_generate_text_only(settings):
    text = StubText("  Fresh post  ")
    generator = ContentGenerator(settings=settings, text_provider=text, image_provider=StubImage("https://img"))
    content = asyncio.run(generator.generate(make_service(), make_settings(include_media=False)))
    assert content.text == "Fresh post"
    assert content.image_data is None
    assert content.category == "tech"
    assert len(text.prompts) == 1


def test_generate_with_image(settings):
    generator = ContentGenerator(settings=settings, text_provider=StubText(), image_provider=StubImage("https://img/1.png"))
    content = asyncio.run(generator.generate(make_service(), make_settings(include_media=True)))
    assert content.image_data == "https://img/1.png"


def test_image_failure_is_not_fatal(settings):
    generator = ContentGenerator(
        settings=settings, text_provider=StubText(), image_provider=StubImage(error=GenerationError("image down"))
    )
    content = asyncio.run(generator.generate(make_service(), make_settings(include_media=True)))
    assert content.text == "Generated text"
    assert content.image_data is None


def test_multipart_provider_parses_candidates(settings):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "Gemini post"}]}}]})

    provider = MultipartTextProvider(settings, http_client=mock_http(handler))
    assert asyncio.run(provider.complete("Prompt")) == "Gemini post"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["contents"][0]["role"] == "user"
    assert seen["body"]["contents"][0]["parts"][0]["text"].endswith("Prompt")
    assert seen["body"]["generationConfig"]["maxOutputTokens"] == settings.TEXT_MAX_TOKENS


@pytest.mark.parametrize("status, error_class", [
    (429, GenerationRateLimited),
    (402, GenerationBillingError),
    (500, GenerationError),
])
def test_multipart_provider_maps_http_errors(settings, status, error_class):
    provider = MultipartTextProvider(settings, http_client=mock_http(lambda r: httpx.Response(status, text="err")))
    with pytest.raises(error_class) as exc_info:
        asyncio.run(provider.complete("Prompt"))
    assert exc_info.value.status_code == status


def test_multipart_provider_empty_content(settings):
    provider = MultipartTextProvider(settings, http_client=mock_http(lambda r: httpx.Response(200, json={"candidates": []})))
    with pytest.raises(GenerationError):
        asyncio.run(provider.complete("Prompt"))


def test_chat_provider_reads_message_content(settings):
    client = MagicMock()
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = " Chat post "
    client.chat.completions.create = AsyncMock(return_value=response)

    provider = ChatTextProvider(settings, client=client)

    assert asyncio.run(provider.complete("Prompt")) == "Chat post"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["messages"][0]["role"] == "system"
    assert kwargs["messages"][1] == {"role": "user", "content": "Prompt"}


def test_chat_provider_maps_rate_limit(settings):
    request = httpx.Request("POST", "https://api.example.com/v1/chat/completions")
    error = openai.RateLimitError("rate limited", response=httpx.Response(429, request=request), body=None)
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=error)

    with pytest.raises(GenerationRateLimited):
        asyncio.run(ChatTextProvider(settings, client=client).complete("Prompt"))


def test_chat_image_provider(settings):
    def handler(request):
        body = json.loads(request.content)
        assert body["modalities"] == ["image", "text"]
        return httpx.Response(200, json={
            "choices": [{"message": {"images": [{"image_url": {"url": "data:image/png;base64,AAAA"}}]}}]
        })

    provider = ChatImageProvider(settings, http_client=mock_http(handler))
    assert asyncio.run(provider.generate("image prompt")) == "data:image/png;base64,AAAA"


def test_predict_image_provider_returns_data_uri(settings):
    def handler(request):
        body = json.loads(request.content)
        assert body["instances"] == [{"prompt": "image prompt"}]
        return httpx.Response(200, json={"predictions": [{"bytesBase64Encoded": "QUJD"}]})

    provider = PredictImageProvider(settings, http_client=mock_http(handler))
    assert asyncio.run(provider.generate("image prompt")) == "data:image/png;base64,QUJD"


def test_provider_selection():
    multipart = Settings(TEXT_PROVIDER_SHAPE="multipart", TEXT_API_KEY="k", TEXT_API_ENDPOINT="https://x")
    assert isinstance(build_text_provider(multipart), MultipartTextProvider)
    assert isinstance(build_text_provider(Settings(TEXT_PROVIDER_SHAPE="chat", TEXT_API_KEY="k")), ChatTextProvider)
    with pytest.raises(GenerationConfigError):
        build_text_provider(Settings(TEXT_PROVIDER_SHAPE="smoke-signals"))

    assert build_image_provider(Settings(IMAGE_API_KEY=None, IMAGE_API_ENDPOINT=None)) is None
    predict = Settings(IMAGE_PROVIDER_SHAPE="predict", IMAGE_API_KEY="k", IMAGE_API_ENDPOINT="https://x")
    assert isinstance(build_image_provider(predict), PredictImageProvider)


def test_chat_provider_requires_api_key():
    provider = ChatTextProvider(Settings(TEXT_API_KEY=None))
    with pytest.raises(GenerationConfigError):
        asyncio.run(provider.complete("Prompt"))


def test_unconfigured_text_provider_is_config_error():
    with pytest.raises(GenerationConfigError):
        build_text_provider(Settings(TEXT_PROVIDER_SHAPE="chat", TEXT_API_KEY=None))
    with pytest.raises(GenerationConfigError):
        build_text_provider(Settings(TEXT_PROVIDER_SHAPE="multipart", TEXT_API_KEY="k", TEXT_API_ENDPOINT=None))


def test_generator_without_text_credentials_raises_config_error():
    generator = ContentGenerator(settings=Settings(TEXT_API_KEY=None))
    with pytest.raises(GenerationConfigError):
        asyncio.run(generator.generate(make_service(), make_settings()))
