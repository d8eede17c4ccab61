from __future__ import annotations

from dataclasses import dataclass, field

from .records import MediaRef


@dataclass
class Session:
    """Per-chat composition state. Lives only in memory."""

    composing: bool = False
    draft: str = ""
    media: MediaRef | None = None

    def start(self) -> None:
        self.composing = True
        self.draft = ""
        self.media = None

    def reset(self) -> None:
        self.composing = False
        self.draft = ""
        self.media = None

    def add_text(self, content: str) -> None:
        if not content:
            return
        self.draft = f"{self.draft}\n{content}" if self.draft else content


@dataclass
class AdminCursor:
    awaiting_search: bool = False


@dataclass
class SessionRegistry:
    sessions: dict[int, Session] = field(default_factory=dict)
    admin_cursors: dict[int, AdminCursor] = field(default_factory=dict)

    def get_or_create(self, chat_id: int) -> Session:
        s = self.sessions.get(int(chat_id))
        if s is None:
            s = Session()
            self.sessions[int(chat_id)] = s
        return s

    def get(self, chat_id: int) -> Session | None:
        return self.sessions.get(int(chat_id))

    def reset(self, chat_id: int) -> Session:
        s = self.get_or_create(chat_id)
        s.reset()
        return s

    def admin_cursor(self, chat_id: int) -> AdminCursor:
        c = self.admin_cursors.get(int(chat_id))
        if c is None:
            c = AdminCursor()
            self.admin_cursors[int(chat_id)] = c
        return c
