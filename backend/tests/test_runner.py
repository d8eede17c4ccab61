import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from telegram import Chat, Message, MessageEntity, Update, User

from intake_bot import runner
from intake_bot.config import BotSettings, ConfigError
from intake_bot.handlers import handle_message
from intake_bot.monitoring import ShutdownSignal


class FakeGuard:
    instances = []

    def __init__(self, lock_path, acquired=True):
        self.lock_path = lock_path
        self.acquired = acquired
        self.released = 0
        FakeGuard.instances.append(self)

    def acquire(self):
        return self.acquired

    def release(self):
        self.released += 1


@pytest.fixture
def settings(tmp_path):
    return BotSettings(
        bot_token="123:abc",
        admin_id=900,
        store_path=str(tmp_path / "contacts.json"),
        legacy_store_path=str(tmp_path / "db.json"),
        lock_path=str(tmp_path / ".bot.lock"),
        export_dir=str(tmp_path / "exports"),
    )


@pytest.fixture
def patched(monkeypatch, settings):
    FakeGuard.instances = []
    calls = {"load": 0, "run": 0}

    def fake_load(self):
        calls["load"] += 1
        return self

    async def fake_run_bot(s, ctx):
        calls["run"] += 1
        return None

    monkeypatch.setattr(runner, "setup_logging", lambda: None)
    monkeypatch.setattr(runner, "load_settings", lambda: settings)
    monkeypatch.setattr(runner, "InstanceGuard", FakeGuard)
    monkeypatch.setattr(runner.ContactStore, "load", fake_load)
    monkeypatch.setattr(runner, "run_bot", fake_run_bot)
    monkeypatch.setattr(runner.atexit, "register", lambda fn: fn)
    return monkeypatch, calls


def test_config_error_exits_1_before_guard_and_store(patched):
    monkeypatch, calls = patched

    def missing():
        raise ConfigError("Set BOT_TOKEN and ADMIN_CHAT_ID")

    monkeypatch.setattr(runner, "load_settings", missing)

    assert runner.main() == 1
    assert FakeGuard.instances == []
    assert calls == {"load": 0, "run": 0}


def test_held_lock_exits_0_without_loading_store(patched):
    monkeypatch, calls = patched
    monkeypatch.setattr(runner, "InstanceGuard", lambda path: FakeGuard(path, acquired=False))

    assert runner.main() == 0
    assert calls == {"load": 0, "run": 0}


def test_normal_run_releases_guard(patched, settings):
    _, calls = patched

    assert runner.main() == 0
    assert calls == {"load": 1, "run": 1}
    (guard,) = FakeGuard.instances
    assert guard.lock_path == settings.lock_path
    assert guard.released == 1


def _command_update(text):
    chat = Chat(id=42, type="private")
    message = Message(
        message_id=1,
        date=datetime.now(timezone.utc),
        chat=chat,
        from_user=User(id=42, first_name="Alice", is_bot=False),
        text=text,
        entities=[MessageEntity(type=MessageEntity.BOT_COMMAND, offset=0, length=len(text))],
    )
    return Update(update_id=1, message=message)


def test_unknown_commands_reach_the_message_handler(monkeypatch, settings, ctx):
    monkeypatch.setattr(runner, "telegram_httpx_kwargs", lambda: {})
    app = runner.build_application(settings, ctx, ShutdownSignal())

    (message_handler,) = [h for h in app.handlers[0] if getattr(h, "callback", None) is handle_message]

    assert message_handler.check_update(_command_update("/help"))


def test_start_drops_pending_updates_when_deleting_webhook():
    app = AsyncMock()

    asyncio.run(runner.start_application(app, ShutdownSignal()))

    app.bot.delete_webhook.assert_awaited_once_with(drop_pending_updates=True)
    app.updater.start_polling.assert_awaited_once()
