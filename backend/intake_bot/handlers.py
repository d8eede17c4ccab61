import logging
import re
from datetime import datetime, timezone

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from . import admin, composer
from .composer import ContactShare, Inbound, Outcome
from .context import get_context
from .export import write_exports
from .keyboards import build_admin_home_keyboard, build_admin_page_keyboard, keyboard_for
from .records import MediaRef, Sender
from .text_utils import safe_send
from .ui_constants import (
    CB_EXPORT,
    CB_HOME,
    CB_SEARCH,
    KB_ADMIN,
    SECTION_PHONES,
    SECTION_REQUESTS,
    TEXT_ADMIN_HOME,
    TEXT_ADMIN_MENU,
    TEXT_ADMIN_ONLY,
    TEXT_ADMIN_WELCOME,
    TEXT_EXPORT_FAILED,
    TEXT_EXPORT_PHONES_CAPTION,
    TEXT_EXPORT_REQUESTS_CAPTION,
    TEXT_EXPORT_SENT,
    TEXT_PHONE_DELETED,
    TEXT_REQUEST_DELETED,
    TEXT_SEARCH_PROMPT,
)

logger = logging.getLogger(__name__)

SHUTDOWN_KEY = "shutdown"

_RE_DELREQ = re.compile(r"^admin:delreq:([^:]+):(\d+)$")
_RE_DELPHONE = re.compile(r"^admin:delphone:(\d+):(\d+)$")
_RE_SECTION = re.compile(r"^admin:(reqs|phones):(\d+)$")


def sender_from_user(user) -> Sender:
    return Sender(
        id=int(user.id),
        first_name=getattr(user, "first_name", None),
        last_name=getattr(user, "last_name", None),
        username=getattr(user, "username", None),
    )


def inbound_from_update(update: Update) -> Inbound:
    msg = update.effective_message
    media = None
    if msg.photo:
        media = MediaRef(type="photo", file_id=msg.photo[-1].file_id)
    elif msg.document:
        media = MediaRef(type="document", file_id=msg.document.file_id, name=msg.document.file_name)

    contact = None
    if msg.contact:
        contact = ContactShare(phone_number=str(msg.contact.phone_number or ""), user_id=msg.contact.user_id)

    return Inbound(
        chat_id=int(msg.chat_id),
        sender=sender_from_user(update.effective_user),
        text=msg.text or "",
        caption=msg.caption or "",
        media=media,
        contact=contact,
    )


async def deliver(bot, outcome: Outcome) -> None:
    for out in outcome.messages:
        if out.media is not None:
            if out.media.type == "photo":
                await safe_send(bot.send_photo, chat_id=out.chat_id, photo=out.media.file_id, caption=out.caption)
            else:
                await safe_send(
                    bot.send_document,
                    chat_id=out.chat_id,
                    document=out.media.file_id,
                    filename=out.media.name or "file",
                    caption=out.caption,
                )
            continue

        await safe_send(
            bot.send_message,
            chat_id=out.chat_id,
            text=out.text,
            parse_mode=ParseMode.MARKDOWN if out.markdown else None,
            reply_markup=keyboard_for(out.keyboard),
        )


# --- admin rendering ---


async def render_admin_home(bot, ctx, chat_id: int, message_id: int | None = None):
    total_requests, total_phones = admin.home_counts(ctx)
    kwargs = dict(parse_mode=ParseMode.MARKDOWN, reply_markup=build_admin_home_keyboard(total_requests, total_phones))
    if message_id:
        return await safe_send(bot.edit_message_text, TEXT_ADMIN_HOME, chat_id=chat_id, message_id=message_id, **kwargs)
    return await safe_send(bot.send_message, chat_id=chat_id, text=TEXT_ADMIN_HOME, **kwargs)


async def show_admin_view(bot, chat_id: int, view: admin.AdminView, message_id: int | None = None):
    kwargs = dict(parse_mode=ParseMode.MARKDOWN, reply_markup=build_admin_page_keyboard(view))
    if message_id:
        return await safe_send(bot.edit_message_text, view.text, chat_id=chat_id, message_id=message_id, **kwargs)
    return await safe_send(bot.send_message, chat_id=chat_id, text=view.text, **kwargs)


async def export_and_send(bot, ctx, chat_id: int) -> bool:
    try:
        phones_path, requests_path = write_exports(ctx.store, ctx.export_dir)
    except OSError:
        logger.exception("CSV export failed")
        return False

    ok = True
    for path, caption in ((phones_path, TEXT_EXPORT_PHONES_CAPTION), (requests_path, TEXT_EXPORT_REQUESTS_CAPTION)):
        with open(path, "rb") as f:
            sent = await safe_send(bot.send_document, chat_id=chat_id, document=f, caption=caption)
        ok = ok and sent is not None
    return ok


async def start_search(bot, ctx, chat_id: int):
    admin.begin_search(ctx, chat_id)
    return await safe_send(bot.send_message, chat_id=chat_id, text=TEXT_SEARCH_PROMPT, parse_mode=ParseMode.MARKDOWN)


# --- commands ---


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    ctx = get_context(context)
    msg = update.effective_message
    user = update.effective_user
    if msg is None or user is None:
        return

    chat_id = int(msg.chat_id)
    logger.info("Received /start in chat_id=%s from user_id=%s", chat_id, user.id)

    if ctx.is_admin(user.id):
        ctx.store.ensure_user(chat_id, sender_from_user(user))
        ctx.sessions.reset(chat_id)
        await safe_send(context.bot.send_message, chat_id=chat_id, text=TEXT_ADMIN_WELCOME, reply_markup=keyboard_for(KB_ADMIN))
        await render_admin_home(context.bot, ctx, chat_id)
        return

    await deliver(context.bot, composer.start(ctx, chat_id, sender_from_user(user)))


async def menu_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    ctx = get_context(context)
    user = update.effective_user
    msg = update.effective_message
    if msg is None or user is None or not ctx.is_admin(user.id):
        return
    chat_id = int(msg.chat_id)
    await safe_send(context.bot.send_message, chat_id=chat_id, text=TEXT_ADMIN_MENU, reply_markup=keyboard_for(KB_ADMIN))
    await render_admin_home(context.bot, ctx, chat_id)


# --- messages ---


async def contact_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    ctx = get_context(context)
    if update.effective_message is None or update.effective_user is None:
        return
    await deliver(context.bot, composer.share_contact(ctx, inbound_from_update(update)))


async def handle_admin_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    ctx = get_context(context)
    msg = update.effective_message
    chat_id = int(msg.chat_id)
    text = msg.text or ""

    answer = admin.consume_search(ctx, chat_id, text)
    if answer is not None:
        reply, markdown = answer
        await safe_send(
            context.bot.send_message,
            chat_id=chat_id,
            text=reply,
            parse_mode=ParseMode.MARKDOWN if markdown else None,
        )
        return

    command = admin.parse_admin_command(text)
    if command == admin.ADMIN_COMMAND_REQUESTS:
        await show_admin_view(context.bot, chat_id, admin.requests_view(ctx, 0))
    elif command == admin.ADMIN_COMMAND_PHONES:
        await show_admin_view(context.bot, chat_id, admin.phones_view(ctx, 0))
    elif command == admin.ADMIN_COMMAND_EXPORT:
        if not await export_and_send(context.bot, ctx, chat_id):
            await safe_send(context.bot.send_message, chat_id=chat_id, text=TEXT_EXPORT_FAILED)
    elif command == admin.ADMIN_COMMAND_SEARCH:
        await start_search(context.bot, ctx, chat_id)
    else:
        logger.debug("Ignoring admin text without a pending action: %r", text)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    ctx = get_context(context)
    msg = update.effective_message
    user = update.effective_user
    if msg is None or user is None or msg.contact:
        return

    if ctx.is_admin(user.id):
        await handle_admin_text(update, context)
        return

    await deliver(context.bot, composer.handle_message(ctx, inbound_from_update(update)))


# --- callback queries (admin inline keyboards) ---


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    ctx = get_context(context)
    query = update.callback_query
    if query is None:
        return
    data = query.data or ""
    message = query.message
    chat_id = getattr(getattr(message, "chat", None), "id", None)
    if not chat_id:
        return

    if not ctx.is_admin(query.from_user.id):
        await safe_send(query.answer, text=TEXT_ADMIN_ONLY, show_alert=True)
        return

    bot = context.bot
    message_id = message.message_id

    if data == CB_HOME:
        await render_admin_home(bot, ctx, chat_id, message_id)
        await safe_send(query.answer)
        return

    m = _RE_DELREQ.match(data)
    if m:
        view = admin.delete_request(ctx, m.group(1), int(m.group(2)))
        await show_admin_view(bot, chat_id, view, message_id)
        await safe_send(query.answer, text=TEXT_REQUEST_DELETED)
        return

    m = _RE_DELPHONE.match(data)
    if m:
        view = admin.clear_phone(ctx, m.group(1), int(m.group(2)))
        await show_admin_view(bot, chat_id, view, message_id)
        await safe_send(query.answer, text=TEXT_PHONE_DELETED)
        return

    m = _RE_SECTION.match(data)
    if m:
        section = SECTION_REQUESTS if m.group(1) == SECTION_REQUESTS else SECTION_PHONES
        await show_admin_view(bot, chat_id, admin.section_view(ctx, section, int(m.group(2))), message_id)
        await safe_send(query.answer)
        return

    if data == CB_EXPORT:
        if await export_and_send(bot, ctx, ctx.admin_id):
            await safe_send(query.answer, text=TEXT_EXPORT_SENT)
        else:
            await safe_send(query.answer, text=TEXT_EXPORT_FAILED, show_alert=True)
        return

    if data == CB_SEARCH:
        await safe_send(query.answer)
        await start_search(bot, ctx, chat_id)
        return

    await safe_send(query.answer)


# --- diagnostics ---


async def debug_update_logger(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    context.bot_data["last_update_received_at"] = datetime.now(timezone.utc)

    chat = getattr(update, "effective_chat", None)
    user = getattr(update, "effective_user", None)
    message = getattr(update, "effective_message", None)
    logger.debug(
        "Incoming update: chat_id=%s user_id=%s username=%s text=%r",
        getattr(chat, "id", None),
        getattr(user, "id", None),
        getattr(user, "username", None),
        getattr(message, "text", None) if message is not None else None,
    )


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    signal = context.bot_data.get(SHUTDOWN_KEY)
    if signal is not None and signal.report(context.error):
        return
    logger.error("Exception while handling an update:", exc_info=context.error)
