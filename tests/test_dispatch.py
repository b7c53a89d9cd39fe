import uuid

from gacp.config import settings
from gacp.worker import dispatch


def test_emit_is_noop_when_disabled(monkeypatch):
    monkeypatch.setattr(settings, "celery_enabled", False)

    def _boom(*args, **kwargs):
        raise AssertionError("send_task must not be called")

    monkeypatch.setattr(dispatch.celery_app, "send_task", _boom)

    assert dispatch.emit_deliver_notification(notification_id=uuid.uuid4()) is False


def test_emit_sends_task_when_enabled(monkeypatch):
    called: dict[str, object] = {}

    def _fake_send_task(task_name: str, args: list[str]):
        called["task_name"] = task_name
        called["args"] = args

    monkeypatch.setattr(settings, "celery_enabled", True)
    monkeypatch.setattr(dispatch.celery_app, "send_task", _fake_send_task)

    app_id = uuid.uuid4()
    assert dispatch.emit_issue_certificate(application_id=app_id) is True

    assert called["task_name"] == "gacp.issue_certificate"
    assert called["args"] == [str(app_id)]


def test_emit_failure_is_logged_not_raised(monkeypatch, caplog):
    def _broker_down(task_name: str, args: list[str]):
        raise ConnectionError("redis unavailable")

    monkeypatch.setattr(settings, "celery_enabled", True)
    monkeypatch.setattr(dispatch.celery_app, "send_task", _broker_down)

    notification_id = uuid.uuid4()
    with caplog.at_level("ERROR", logger="gacp.worker"):
        assert dispatch.emit_deliver_notification(notification_id=notification_id) is False

    assert "emit_failed" in caplog.text
    assert str(notification_id) in caplog.text
