import logging
import re

from telegram.error import Conflict, TelegramError

from .records import parse_iso, utc_now_iso

logger = logging.getLogger(__name__)

_MD_SPECIAL = re.compile(r"([_*\[\]()])")


def normalize_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_button_text(value: str | None) -> str:
    v = normalize_text(value)
    v = v.replace("\u200c", "").replace("\u200f", "").replace("\ufeff", "")
    v = re.sub(r"\s+", " ", v).strip()
    return v


def btn_eq(user_text: str | None, target: str) -> bool:
    return normalize_button_text(user_text) == normalize_button_text(target)


def btn_has(user_text: str | None, *needles: str) -> bool:
    t = normalize_button_text(user_text).casefold()
    for n in needles:
        nn = normalize_button_text(n).casefold()
        if nn and nn in t:
            return True
    return False


def md_escape(value) -> str:
    """Escape the characters legacy Telegram Markdown treats as markup."""
    if value is None:
        return ""
    return _MD_SPECIAL.sub(r"\\\1", str(value))


def format_time(value=None) -> str:
    if value is None:
        value = utc_now_iso()
    return parse_iso(value).astimezone().strftime("%d.%m.%Y, %H:%M:%S")


async def safe_send(send, *args, **kwargs):
    """Run one Bot API call; transport errors are logged and reported as None.

    ``telegram.error.Conflict`` is re-raised so the runner can shut down.
    """
    try:
        return await send(*args, **kwargs)
    except Conflict:
        raise
    except TelegramError as e:
        logger.warning("Telegram call %s failed: %s", getattr(send, "__name__", send), e)
        return None


async def safe_reply_text(message, text: str, **kwargs):
    if message is None:
        return None
    return await safe_send(message.reply_text, text, **kwargs)
