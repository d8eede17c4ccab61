import pytest

from intake_bot.context import BotContext
from intake_bot.records import Sender
from intake_bot.store import ContactStore

ADMIN_ID = 900


@pytest.fixture
def store(tmp_path):
    return ContactStore(tmp_path / "contacts.json", legacy_path=tmp_path / "db.json").load()


@pytest.fixture
def ctx(store, tmp_path):
    return BotContext(store=store, admin_id=ADMIN_ID, export_dir=str(tmp_path / "exports"))


@pytest.fixture
def alice():
    return Sender(id=42, first_name="Alice", last_name="Karimova", username="alice")
