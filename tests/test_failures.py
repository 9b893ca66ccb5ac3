"""Test service suspension, owner notifications and ops alert emails."""

from unittest.mock import MagicMock, patch

from sqlalchemy import select

from conftest import BASE_TIME, seed_posts
from postbot.core.config import Settings
from postbot.db.models import Notification
from postbot.notifications.notifier import Notifier
from postbot.pipeline.failures import FailureHandler
from postbot.utils.emailer import EmailSender, send_service_error_email


def smtp_settings(**kwargs):
    values = dict(
        SMTP_HOST="smtp.example.com",
        SMTP_PORT=587,
        SMTP_USERNAME="user",
        SMTP_PASSWORD="secret",
        SMTP_TLS=True,
        SMTP_FROM_EMAIL="Postbot <bot@example.com>",
        ALERT_RECIPIENTS="ops@example.com, oncall@example.com",
    )
    values.update(kwargs)
    return Settings(**values)


def test_failure_suspends_service_and_marks_post(test_db, ai_service, failure_handler, clock):
    post = seed_posts(test_db, ai_service, 1, BASE_TIME)[0]

    notified = failure_handler.on_failure(test_db, ai_service, "400: chat not found", post=post)

    assert notified is True
    test_db.refresh(ai_service)
    test_db.refresh(post)
    assert ai_service.is_running is False
    assert ai_service.started_at is None
    assert ai_service.last_error == "400: chat not found"
    assert ai_service.error_count == 1
    assert post.status == "failed"
    assert post.error_message == "400: chat not found"

    note = test_db.scalar(select(Notification))
    assert note.user_id == ai_service.owner_id
    assert note.type == "bot_error"
    assert note.title == "AI Bot stopped"
    assert "400: chat not found" in note.message
    assert note.link == "/services/ai"
    assert note.is_read is False


def test_already_stopped_service_is_not_notified_again(test_db, ai_service, failure_handler):
    ai_service.is_running = False
    test_db.commit()

    assert failure_handler.on_failure(test_db, ai_service, "boom") is False

    test_db.refresh(ai_service)
    assert ai_service.error_count == 1
    assert test_db.scalar(select(Notification)) is None


def test_notifier_error_does_not_undo_suspension(test_db, ai_service, clock):
    notifier = MagicMock()
    notifier.notify_service_error.side_effect = RuntimeError("mail server on fire")
    handler = FailureHandler(notifier=notifier, now=clock)

    assert handler.on_failure(test_db, ai_service, "boom") is True

    test_db.refresh(ai_service)
    assert ai_service.is_running is False
    assert ai_service.last_error == "boom"


def test_notifier_sends_ops_email(test_db, ai_service):
    emailer = MagicMock()
    notifier = Notifier(settings=smtp_settings(), emailer=emailer)

    notifier.notify_service_error(
        test_db, user_id=ai_service.owner_id, bot_name="AI Bot", channel_name="@target",
        error_message="403: Forbidden", service_type="ai", service_id=ai_service.id,
    )

    emailer.send_email.assert_called_once()
    recipients, subject = emailer.send_email.call_args.args[:2]
    assert recipients == ["ops@example.com", "oncall@example.com"]
    assert subject == "Service suspended: AI Bot -> @target"


def test_notifier_email_failure_keeps_notification(test_db, ai_service):
    emailer = MagicMock()
    emailer.send_email.side_effect = OSError("connection refused")
    notifier = Notifier(settings=smtp_settings(), emailer=emailer)

    note = notifier.notify_service_error(
        test_db, user_id=ai_service.owner_id, bot_name="Plagiarist", channel_name="@mirror",
        error_message="boom", service_type="plagiarist",
    )

    assert note.link == "/services/plagiarist"
    assert test_db.scalar(select(Notification)) is not None


def test_no_recipients_skips_email(test_db, ai_service, settings):
    emailer = MagicMock()
    Notifier(settings=settings, emailer=emailer).notify_service_error(
        test_db, user_id=ai_service.owner_id, bot_name="AI Bot", channel_name="@target",
        error_message="boom", service_type="ai",
    )
    emailer.send_email.assert_not_called()


@patch("postbot.utils.emailer.smtplib.SMTP")
def test_email_sender_uses_smtp(mock_smtp):
    server = mock_smtp.return_value.__enter__.return_value

    assert EmailSender(smtp_settings()).send_email(["ops@example.com"], "Subject", "Body", "<p>Body</p>") is True

    mock_smtp.assert_called_once_with("smtp.example.com", 587)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("user", "secret")
    message = server.send_message.call_args.args[0]
    assert message["Subject"] == "Subject"
    assert message["To"] == "ops@example.com"


@patch("postbot.utils.emailer.smtplib.SMTP")
def test_email_sender_without_smtp_config(mock_smtp):
    assert EmailSender(Settings(SMTP_HOST=None)).send_email(["ops@example.com"], "Subject", "Body") is False
    mock_smtp.assert_not_called()


def test_service_error_email_without_recipients():
    emailer = MagicMock()
    assert send_service_error_email("AI Bot", "id", "@target", "boom", [], emailer=emailer) is False
    emailer.send_email.assert_not_called()
