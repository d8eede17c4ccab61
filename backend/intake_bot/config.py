import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .lock import LOCK_FILENAME

# Load env vars from .env (cwd and/or repo root)
load_dotenv()
load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent.parent / ".env")

BACKEND_DIR = str(Path(__file__).resolve().parent.parent)

STORE_FILENAME = "contacts.json"
LEGACY_STORE_FILENAME = "db.json"
EXPORT_DIRNAME = "exports"

# Telegram HTTP connection pool size for bot API calls.
TELEGRAM_CONNECTION_POOL_SIZE = int((os.getenv("TELEGRAM_CONNECTION_POOL_SIZE") or "8").strip() or "8")
if TELEGRAM_CONNECTION_POOL_SIZE < 4:
    TELEGRAM_CONNECTION_POOL_SIZE = 4


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class BotSettings:
    bot_token: str
    admin_id: int
    store_path: str
    legacy_store_path: str
    lock_path: str
    export_dir: str


def _env_path(name: str, default: str) -> str:
    v = (os.getenv(name) or "").strip()
    return v or default


def load_settings() -> BotSettings:
    """Read required secrets and data paths; raises ``ConfigError`` on missing secrets."""
    token = (os.getenv("BOT_TOKEN") or "").strip()
    admin_raw = (os.getenv("ADMIN_CHAT_ID") or "").strip()
    if not token or not admin_raw:
        raise ConfigError("Set BOT_TOKEN and ADMIN_CHAT_ID in the environment or .env")
    try:
        admin_id = int(admin_raw)
    except ValueError:
        raise ConfigError(f"ADMIN_CHAT_ID must be a numeric chat id, got {admin_raw!r}") from None
    if admin_id == 0:
        raise ConfigError("ADMIN_CHAT_ID must not be 0")

    data_dir = _env_path("INTAKE_DATA_DIR", BACKEND_DIR)
    return BotSettings(
        bot_token=token,
        admin_id=admin_id,
        store_path=_env_path("INTAKE_STORE_PATH", os.path.join(data_dir, STORE_FILENAME)),
        legacy_store_path=_env_path("INTAKE_LEGACY_STORE_PATH", os.path.join(data_dir, LEGACY_STORE_FILENAME)),
        lock_path=_env_path("INTAKE_LOCK_PATH", os.path.join(data_dir, LOCK_FILENAME)),
        export_dir=_env_path("INTAKE_EXPORT_DIR", os.path.join(data_dir, EXPORT_DIRNAME)),
    )
