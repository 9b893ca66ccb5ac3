"""Test FastAPI endpoints."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from conftest import BASE_TIME, FakeGenerator, channel_post, make_forwarding_service, seed_posts
from postbot.api.deps import (
    get_database, get_forwarding_dispatcher, get_publish_scheduler, get_queue_maintainer
)
from postbot.db.models import PostHistory
from postbot.generation.errors import GenerationRateLimited
from postbot.main import app
from postbot.pipeline.forwarding import ForwardingDispatcher
from postbot.pipeline.queue import QueueMaintainer


@pytest.fixture
def api_settings(settings):
    with patch("postbot.api.deps.get_settings", return_value=settings):
        yield settings


@pytest.fixture
def client(test_db, api_settings):
    """Create test client bound to the test database."""
    app.dependency_overrides[get_database] = lambda: test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def update_with(post):
    return {"update_id": 1, "channel_post": post}


def test_health_endpoint(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["service"] == "postbot"


def test_liveness_endpoint(client):
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json()["status"] == "alive"


@patch("postbot.main.db_session.get_db_session")
def test_readiness_reports_database_failure(mock_get_db_session, client):
    mock_get_db_session.side_effect = RuntimeError("database unavailable")

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "not ready"


def test_webhook_requires_bot_token(client):
    response = client.post("/api/v1/telegram/webhook", json={"update_id": 1})

    assert response.status_code == 400
    assert response.json()["ok"] is False


def test_webhook_unknown_bot(client):
    response = client.post("/api/v1/telegram/webhook?bot_token=nope", json={"update_id": 1})

    assert response.status_code == 404
    assert response.json() == {"ok": False}


def test_webhook_without_channel_post_touches_bot(client, test_db, bot):
    response = client.post(f"/api/v1/telegram/webhook?bot_token={bot.bot_token}", json={"update_id": 5, "message": {}})

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    test_db.refresh(bot)
    assert bot.last_activity_at is not None


def test_webhook_mirrors_channel_post(client, test_db, bot, settings, clock, fake_delivery, failure_handler):
    make_forwarding_service(test_db, bot)
    app.dependency_overrides[get_forwarding_dispatcher] = lambda: ForwardingDispatcher(
        failure_handler=failure_handler, delivery_factory=fake_delivery.factory, settings=settings, now=clock
    )

    response = client.post(
        f"/api/v1/telegram/webhook?bot_token={bot.bot_token}",
        json=update_with(channel_post(text="Fresh news")),
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True, "forwarded": 1}
    assert fake_delivery.calls[0][1].text == "Fresh news"
    assert test_db.scalar(select(PostHistory)).status == "success"


def test_webhook_secret_is_enforced(client, test_db, bot, api_settings):
    api_settings.TELEGRAM_WEBHOOK_SECRET = "hook-secret"
    url = f"/api/v1/telegram/webhook?bot_token={bot.bot_token}"

    assert client.post(url, json={"update_id": 1}).status_code == 403
    response = client.post(url, json={"update_id": 1}, headers={"X-Telegram-Bot-Api-Secret-Token": "hook-secret"})
    assert response.status_code == 200


def test_scheduler_run(client):
    scheduler = MagicMock()
    scheduler.run_tick = AsyncMock(return_value={"processed": 0, "results": []})
    app.dependency_overrides[get_publish_scheduler] = lambda: scheduler

    response = client.post("/api/v1/scheduler/run")

    assert response.status_code == 200
    assert response.json() == {"processed": 0, "results": []}
    scheduler.run_tick.assert_awaited_once()


def test_scheduler_run_checks_cron_secret(client, api_settings):
    api_settings.CRON_SECRET = "tick-secret"
    scheduler = MagicMock()
    scheduler.run_tick = AsyncMock(return_value={"processed": 0, "results": []})
    app.dependency_overrides[get_publish_scheduler] = lambda: scheduler

    assert client.post("/api/v1/scheduler/run").status_code == 401
    assert client.post("/api/v1/scheduler/run", headers={"X-Cron-Secret": "wrong"}).status_code == 401
    assert client.post("/api/v1/scheduler/run", headers={"X-Cron-Secret": "tick-secret"}).status_code == 200
    scheduler.run_tick.assert_awaited_once()


def test_generate_endpoint(client, test_db, ai_service, settings):
    seed_posts(test_db, ai_service, 7, BASE_TIME)
    app.dependency_overrides[get_queue_maintainer] = lambda: QueueMaintainer(generator=FakeGenerator(), settings=settings)

    response = client.post(f"/api/v1/ai-services/{ai_service.id}/generate")

    assert response.status_code == 200
    data = response.json()
    assert data["generated"] == 3
    assert data["scheduled"] == 10


def test_generate_endpoint_with_count(client, test_db, ai_service, settings):
    app.dependency_overrides[get_queue_maintainer] = lambda: QueueMaintainer(generator=FakeGenerator(), settings=settings)

    response = client.post(f"/api/v1/ai-services/{ai_service.id}/generate?count=2")

    assert response.json()["generated"] == 2


def test_generate_endpoint_rate_limited(client, ai_service, settings):
    generator = FakeGenerator(error=GenerationRateLimited("slow down", 429))
    app.dependency_overrides[get_queue_maintainer] = lambda: QueueMaintainer(generator=generator, settings=settings)

    response = client.post(f"/api/v1/ai-services/{ai_service.id}/generate")

    assert response.status_code == 429


def test_generate_endpoint_unknown_service(client):
    response = client.post(f"/api/v1/ai-services/{uuid.uuid4()}/generate")

    assert response.status_code == 404


def test_resume_ai_service(client, test_db, ai_service):
    ai_service.is_running = False
    ai_service.started_at = None
    ai_service.last_error = "403: Forbidden"
    test_db.commit()

    response = client.post(f"/api/v1/ai-services/{ai_service.id}/resume")

    assert response.status_code == 200
    data = response.json()
    assert data["is_running"] is True
    assert data["last_error"] is None
    assert data["started_at"] is not None


def test_resume_forwarding_service(client, test_db, bot):
    service = make_forwarding_service(test_db, bot, is_running=False, last_error="boom")

    response = client.post(f"/api/v1/forwarding-services/{service.id}/resume")

    assert response.status_code == 200
    assert response.json()["is_running"] is True
    assert client.post(f"/api/v1/forwarding-services/{uuid.uuid4()}/resume").status_code == 404


def test_admin_endpoints_require_basic_auth(client, ai_service, api_settings):
    api_settings.API_USERNAME = "admin"
    api_settings.API_PASSWORD = "pw"

    assert client.post(f"/api/v1/ai-services/{ai_service.id}/resume").status_code == 401
    assert client.post(f"/api/v1/ai-services/{ai_service.id}/resume", auth=("admin", "bad")).status_code == 401
    assert client.post(f"/api/v1/ai-services/{ai_service.id}/resume", auth=("admin", "pw")).status_code == 200
