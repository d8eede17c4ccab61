import os

import pytest

from intake_bot.config import ConfigError, load_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "BOT_TOKEN",
        "ADMIN_CHAT_ID",
        "INTAKE_DATA_DIR",
        "INTAKE_STORE_PATH",
        "INTAKE_LEGACY_STORE_PATH",
        "INTAKE_LOCK_PATH",
        "INTAKE_EXPORT_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_missing_secrets_raise(clean_env):
    with pytest.raises(ConfigError):
        load_settings()

    clean_env.setenv("BOT_TOKEN", "123:abc")
    with pytest.raises(ConfigError):
        load_settings()


@pytest.mark.parametrize("value", ["abc", "0"])
def test_admin_chat_id_must_be_a_nonzero_number(clean_env, value):
    clean_env.setenv("BOT_TOKEN", "123:abc")
    clean_env.setenv("ADMIN_CHAT_ID", value)

    with pytest.raises(ConfigError):
        load_settings()


def test_paths_follow_data_dir(clean_env, tmp_path):
    clean_env.setenv("BOT_TOKEN", " 123:abc ")
    clean_env.setenv("ADMIN_CHAT_ID", "-100500")
    clean_env.setenv("INTAKE_DATA_DIR", str(tmp_path))
    clean_env.setenv("INTAKE_EXPORT_DIR", str(tmp_path / "out"))

    settings = load_settings()

    assert settings.bot_token == "123:abc"
    assert settings.admin_id == -100500
    assert settings.store_path == os.path.join(str(tmp_path), "contacts.json")
    assert settings.legacy_store_path == os.path.join(str(tmp_path), "db.json")
    assert settings.lock_path == os.path.join(str(tmp_path), ".bot.lock")
    assert settings.export_dir == str(tmp_path / "out")
