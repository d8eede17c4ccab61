from __future__ import annotations

from dataclasses import dataclass, field

from .sessions import SessionRegistry
from .store import ContactStore

BOT_DATA_KEY = "intake"


@dataclass
class BotContext:
    """Everything a handler may touch, injected through ``application.bot_data``."""

    store: ContactStore
    admin_id: int
    export_dir: str
    sessions: SessionRegistry = field(default_factory=SessionRegistry)

    def is_admin(self, user_id) -> bool:
        try:
            return int(user_id) == int(self.admin_id)
        except (TypeError, ValueError):
            return False


def get_context(context) -> BotContext:
    return context.bot_data[BOT_DATA_KEY]
