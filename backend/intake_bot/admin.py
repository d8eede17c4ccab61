from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from .context import BotContext
from .records import normalize_username
from .text_utils import btn_eq, btn_has, format_time, md_escape
from .ui_constants import (
    BTN_ADMIN_EXPORT,
    BTN_ADMIN_PHONES,
    BTN_ADMIN_REQUESTS,
    BTN_ADMIN_SEARCH,
    DASH,
    PAGE_SIZE,
    SECTION_PHONES,
    SECTION_REQUESTS,
    TEXT_PHONES_EMPTY,
    TEXT_REQUESTS_EMPTY,
    TEXT_SEARCH_FORMAT,
    TEXT_SEARCH_NOT_FOUND,
    UNKNOWN_NAME,
)

logger = logging.getLogger(__name__)


@dataclass
class Page:
    items: list[Any]
    index: int
    pages: int
    total: int
    page_size: int = PAGE_SIZE

    @property
    def offset(self) -> int:
        return self.index * self.page_size


def paginate(items: list, page: int, page_size: int = PAGE_SIZE) -> Page:
    total = len(items)
    pages = max(1, math.ceil(total / page_size))
    p = min(max(0, int(page)), pages - 1)
    start = p * page_size
    return Page(items=items[start : start + page_size], index=p, pages=pages, total=total, page_size=page_size)


@dataclass
class AdminView:
    section: str
    text: str
    page: Page
    # (button label suffix, callback id) for the per-entry delete buttons
    entries: list[tuple[int, str]] = field(default_factory=list)


def _request_block(ctx: BotContext, number: int, r: dict) -> str:
    sender = r.get("from") if isinstance(r.get("from"), dict) else {}
    first = " ".join(str(sender[k]) for k in ("first_name", "last_name") if sender.get(k))
    username = normalize_username(sender.get("username") or "")
    phone = r.get("phone") or ""
    if not phone:
        u = ctx.store.get_user(r.get("userId"))
        phone = u.phone_number if u else ""

    out = f"*#{number}* | 🕒 {format_time(r.get('at'))}\n"
    out += f"👤 *Foydalanuvchi:* {md_escape(first or UNKNOWN_NAME)}\n"
    out += f"🔗 *Username:* {md_escape(username or DASH)}\n"
    out += f"☎️ *Telefon:* {md_escape(phone or DASH)}\n"
    out += f"🆔 *UserID:* `{r.get('userId')}`\n"
    out += f"✉️ *Matn:* {md_escape(r.get('text') or '')}\n"
    media = r.get("media")
    if isinstance(media, dict):
        out += f"📎 Media: {media.get('type')} ({media.get('file_id')})\n"
    out += "— — —\n"
    return out


def requests_view(ctx: BotContext, page: int = 0) -> AdminView:
    pg = paginate(ctx.store.requests_newest_first(), page)
    if not pg.total:
        return AdminView(section=SECTION_REQUESTS, text=TEXT_REQUESTS_EMPTY, page=pg)

    text = f"📨 *Murojaatlar* (jami: {pg.total}) — *{pg.index + 1}/{pg.pages}*\n\n"
    entries: list[tuple[int, str]] = []
    for idx, r in enumerate(pg.items):
        number = pg.offset + idx + 1
        text += _request_block(ctx, number, r)
        entries.append((number, str(r.get("id"))))
    return AdminView(section=SECTION_REQUESTS, text=text.strip(), page=pg, entries=entries)


def phones_view(ctx: BotContext, page: int = 0) -> AdminView:
    pg = paginate(ctx.store.verified_users_newest_first(), page)
    if not pg.total:
        return AdminView(section=SECTION_PHONES, text=TEXT_PHONES_EMPTY, page=pg)

    text = f"📞 *Telefonlar* (jami: {pg.total}) — *{pg.index + 1}/{pg.pages}*\n\n"
    entries: list[tuple[int, str]] = []
    for idx, u in enumerate(pg.items):
        number = pg.offset + idx + 1
        text += f"*#{number}* | 🕒 {format_time(u.updated_at)}\n"
        text += f"🆔 `{u.user_id}`\n"
        text += f"👤 {md_escape(u.first_name or DASH)}\n"
        text += f"🔗 {md_escape(u.username or DASH)}\n"
        text += f"☎️ {md_escape(u.phone_number)}\n"
        text += "— — —\n"
        entries.append((number, str(u.user_id)))
    return AdminView(section=SECTION_PHONES, text=text.strip(), page=pg, entries=entries)


def section_view(ctx: BotContext, section: str, page: int = 0) -> AdminView:
    if section == SECTION_PHONES:
        return phones_view(ctx, page)
    return requests_view(ctx, page)


def delete_request(ctx: BotContext, request_id: str, page: int) -> AdminView:
    if ctx.store.delete_request(request_id):
        logger.info("Admin deleted request id=%s", request_id)
    return requests_view(ctx, page)


def clear_phone(ctx: BotContext, user_id, page: int) -> AdminView:
    if ctx.store.clear_phone(user_id):
        logger.info("Admin cleared phone of user_id=%s", user_id)
    return phones_view(ctx, page)


def home_counts(ctx: BotContext) -> tuple[int, int]:
    return len(ctx.store.requests), len(ctx.store.verified_users())


def user_card(ctx: BotContext, user_id: int) -> str | None:
    u = ctx.store.get_user(user_id)
    if u is None:
        return None
    return (
        f"👤 *Foydalanuvchi:* {md_escape(u.first_name or UNKNOWN_NAME)}\n"
        f"🔗 *Username:* {md_escape(u.username or DASH)}\n"
        f"☎️ *Telefon:* {md_escape(u.phone_number or DASH)}\n"
        f"🆔 *UserID:* `{u.user_id}`"
    )


def begin_search(ctx: BotContext, chat_id: int) -> None:
    ctx.sessions.admin_cursor(chat_id).awaiting_search = True


def consume_search(ctx: BotContext, chat_id: int, text: str) -> tuple[str, bool] | None:
    """Answer the one pending search for this admin chat.

    Returns ``(reply, markdown)`` or ``None`` when no search was pending. The
    flag is cleared whatever the reply is.
    """
    cursor = ctx.sessions.admin_cursor(chat_id)
    if not cursor.awaiting_search:
        return None
    cursor.awaiting_search = False
    try:
        user_id = int((text or "").strip())
    except ValueError:
        return TEXT_SEARCH_FORMAT, False
    card = user_card(ctx, user_id)
    if card is None:
        return TEXT_SEARCH_NOT_FOUND, False
    return card, True


ADMIN_COMMAND_REQUESTS = "requests"
ADMIN_COMMAND_PHONES = "phones"
ADMIN_COMMAND_EXPORT = "export"
ADMIN_COMMAND_SEARCH = "search"


def parse_admin_command(text: str) -> str | None:
    """Map an admin reply-keyboard label (or a close variant) to a command."""
    if btn_eq(text, BTN_ADMIN_REQUESTS) or btn_has(text, "murojaa"):
        return ADMIN_COMMAND_REQUESTS
    if btn_eq(text, BTN_ADMIN_PHONES) or btn_has(text, "telefon"):
        return ADMIN_COMMAND_PHONES
    if btn_eq(text, BTN_ADMIN_EXPORT) or btn_has(text, "csv"):
        return ADMIN_COMMAND_EXPORT
    if btn_eq(text, BTN_ADMIN_SEARCH) or btn_has(text, "qidir"):
        return ADMIN_COMMAND_SEARCH
    return None
