import pydantic
import pytest

from gumboard.app.compose import build_container
from gumboard.core.infrastructure.notifications.webhook import WebhookDispatcher
from gumboard.core.infrastructure.settings import Settings

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_build_container_from_env(monkeypatch, tmp_path):
    # isolate the db in a temp dir
    db_path = tmp_path / "data" / "gumboard.sqlite3"
    monkeypatch.setenv("DB_PATH", str(db_path))
    monkeypatch.setenv("DEBOUNCE_WINDOW_MS", "200")
    monkeypatch.setenv("DISPATCH_WORKERS", "1")

    c = build_container(Settings.load())
    assert db_path.exists()
    assert isinstance(c.sender, WebhookDispatcher)
    assert c.debounce.window_ms == 200
    # gates are shared process-wide
    assert c.notifier.debounce is c.debounce
    assert c.service.notifier is c.notifier
    assert c.commands.deduper is c.event_deduper

    await c.start()
    assert c.dispatch.health()["running"] is True
    await c.stop()
    assert c.dispatch.health()["running"] is False


def test_invalid_settings_abort_wiring():
    with pytest.raises(pydantic.ValidationError):
        build_container(Settings(DB_PATH=":memory:", DEDUP_WINDOW_MS=0))
