from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from telegram.error import Conflict

logger = logging.getLogger(__name__)

CONFLICT_LOG_MARKERS = ("terminated by other getUpdates request", "telegram.error.Conflict")


@dataclass(frozen=True)
class ConflictDetected:
    """Telegram answered 409: another process polls the same bot token."""

    detail: str = ""


@dataclass(frozen=True)
class Fatal:
    reason: ConflictDetected


def classify_error(error: BaseException | None) -> Fatal | None:
    if isinstance(error, Conflict):
        return Fatal(ConflictDetected(detail=str(error)))
    return None


class ShutdownSignal:
    """Carries the first reason to stop from handlers/callbacks to the runner."""

    def __init__(self) -> None:
        self.event = asyncio.Event()
        self.fatal: Fatal | None = None

    def stop(self, fatal: Fatal | None = None) -> None:
        if fatal is not None and self.fatal is None:
            self.fatal = fatal
        self.event.set()

    def report(self, error: BaseException | None) -> bool:
        fatal = classify_error(error)
        if fatal is None:
            return False
        logger.error(
            "Telegram 409 Conflict: another poller is running for this bot token. Stopping this instance. (%s)",
            fatal.reason.detail,
        )
        self.stop(fatal)
        return True

    async def wait(self) -> Fatal | None:
        await self.event.wait()
        return self.fatal


class Telegram409ConflictHandler(logging.Handler):
    """Watches ``telegram.ext.Updater`` log records for 409 conflicts."""

    def __init__(self, signal: ShutdownSignal, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(level=logging.WARNING)
        self.signal = signal
        self.loop = loop

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = record.getMessage() or ""
        except (TypeError, ValueError):
            return
        if not any(marker in msg for marker in CONFLICT_LOG_MARKERS):
            return
        fatal = Fatal(ConflictDetected(detail=msg[:300]))
        self.loop.call_soon_threadsafe(self.signal.stop, fatal)


def install_409_conflict_logger(signal: ShutdownSignal, loop: asyncio.AbstractEventLoop) -> logging.Handler:
    handler = Telegram409ConflictHandler(signal, loop)
    logging.getLogger("telegram.ext.Updater").addHandler(handler)
    return handler
