"""Request composition state machine.

Per chat: ``Unverified`` (no phone on record) gates everything; once a phone is
shared the chat is ``Idle`` until the compose button starts ``Composing``.
While composing, text/captions accumulate in the draft and the last media item
wins; the submit button turns the draft into one stored request.

Nothing here talks to Telegram: every entry point returns an ``Outcome`` with
the messages the adapter layer has to send, in order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .context import BotContext
from .records import MediaRef, Sender, normalize_username
from .text_utils import btn_eq, btn_has, format_time, md_escape, normalize_text
from .ui_constants import (
    BTN_COMPOSE,
    BTN_SUBMIT,
    COMPOSE_KEYWORD,
    DASH,
    KB_COMPOSE,
    KB_REMOVE,
    KB_SHARE_PHONE,
    KB_SUBMIT,
    TEXT_COMPOSE_PROMPT,
    TEXT_CONTACT_ADMIN,
    TEXT_CONTACT_MISMATCH,
    TEXT_GUIDANCE,
    TEXT_PHONE_FIRST,
    TEXT_PHONE_SAVED,
    TEXT_PHOTO_CAPTION,
    TEXT_SUBMITTED,
    TEXT_WELCOME,
    UNKNOWN_NAME,
)

logger = logging.getLogger(__name__)


@dataclass
class ContactShare:
    phone_number: str
    user_id: int | None = None


@dataclass
class Inbound:
    chat_id: int
    sender: Sender
    text: str = ""
    caption: str = ""
    media: MediaRef | None = None
    contact: ContactShare | None = None

    @property
    def typed_text(self) -> str:
        return normalize_text(self.text)

    @property
    def content(self) -> str:
        return normalize_text(self.text or self.caption)


@dataclass
class Outbound:
    chat_id: int
    text: str = ""
    keyboard: str | None = None
    markdown: bool = False
    media: MediaRef | None = None
    caption: str | None = None


@dataclass
class Outcome:
    messages: list[Outbound] = field(default_factory=list)
    request: dict | None = None

    def reply(self, chat_id: int, text: str, *, keyboard: str | None = None, markdown: bool = False) -> None:
        self.messages.append(Outbound(chat_id=chat_id, text=text, keyboard=keyboard, markdown=markdown))


def is_compose(text: str) -> bool:
    return btn_eq(text, BTN_COMPOSE) or btn_has(text, COMPOSE_KEYWORD)


def is_submit(text: str) -> bool:
    return btn_eq(text, BTN_SUBMIT)


def _identity_lines(name: str, username: str, phone: str, user_id) -> str:
    return (
        f"👤 *Foydalanuvchi:* {md_escape(name or UNKNOWN_NAME)}\n"
        f"🔗 *Username:* {md_escape(username or DASH)}\n"
        f"☎️ *Telefon:* {md_escape(phone or DASH)}\n"
        f"🆔 *UserID:* `{user_id}`"
    )


def start(ctx: BotContext, chat_id: int, sender: Sender) -> Outcome:
    """``/start`` for a non-admin chat: register the user and ask for a phone."""
    ctx.store.ensure_user(chat_id, sender)
    ctx.sessions.reset(chat_id)
    out = Outcome()
    out.reply(chat_id, TEXT_WELCOME, keyboard=KB_SHARE_PHONE)
    return out


def share_contact(ctx: BotContext, event: Inbound) -> Outcome:
    out = Outcome()
    chat_id = event.chat_id
    sender = event.sender

    if ctx.is_admin(sender.id):
        out.reply(chat_id, TEXT_CONTACT_ADMIN, keyboard=KB_REMOVE)
        return out

    contact = event.contact
    if contact is None or contact.user_id is None or int(contact.user_id) != int(sender.id):
        logger.info("Rejected contact share in chat_id=%s: contact does not belong to sender %s", chat_id, sender.id)
        out.reply(chat_id, TEXT_CONTACT_MISMATCH, markdown=True)
        return out

    user = ctx.store.record_phone(chat_id, contact.phone_number, sender)
    ctx.sessions.reset(chat_id)
    logger.info("Phone verified for user_id=%s", user.user_id)

    notice = (
        "🆕 *Yangi kontakt ulashildi*\n"
        + _identity_lines(sender.full_name, normalize_username(sender.username), user.phone_number, sender.id)
        + f"\n🕒 {format_time()}"
    )
    out.messages.append(Outbound(chat_id=ctx.admin_id, text=notice, markdown=True))
    out.reply(chat_id, TEXT_PHONE_SAVED, keyboard=KB_COMPOSE)
    return out


def handle_message(ctx: BotContext, event: Inbound) -> Outcome:
    """Content-bearing or affordance event from a non-admin chat."""
    out = Outcome()
    chat_id = event.chat_id

    if not ctx.store.is_verified(chat_id):
        out.reply(chat_id, TEXT_PHONE_FIRST, keyboard=KB_SHARE_PHONE)
        return out

    typed = event.typed_text

    if is_compose(typed):
        ctx.sessions.get_or_create(chat_id).start()
        out.reply(chat_id, TEXT_COMPOSE_PROMPT, keyboard=KB_SUBMIT, markdown=True)
        return out

    session = ctx.sessions.get(chat_id)
    composing = bool(session and session.composing)

    if composing and not is_submit(typed):
        if event.media is not None:
            session.media = event.media
        session.add_text(event.content)
        return out

    if composing and is_submit(typed):
        return _submit(ctx, event, out)

    out.reply(chat_id, TEXT_GUIDANCE, keyboard=KB_COMPOSE, markdown=True)
    return out


def _submit(ctx: BotContext, event: Inbound, out: Outcome) -> Outcome:
    chat_id = event.chat_id
    sender = event.sender
    session = ctx.sessions.get_or_create(chat_id)

    # An empty draft falls back to the submitting event's own content.
    text = session.draft.strip() or event.content
    media = session.media
    session.reset()

    request = ctx.store.append_request(chat_id, sender, text, media)
    out.request = request
    logger.info("Stored request id=%s user_id=%s media=%s", request["id"], sender.id, media.type if media else None)

    notice = (
        "📨 *Yangi murojaat!*\n"
        + _identity_lines(sender.full_name, normalize_username(sender.username), request["phone"], sender.id)
        + f"\n\n✉️ *Matn:*\n{md_escape(text)}\n\n"
        + f"🕒 {format_time(request['at'])}"
    )
    out.messages.append(Outbound(chat_id=ctx.admin_id, text=notice, markdown=True))
    if media is not None:
        caption = TEXT_PHOTO_CAPTION if media.type == "photo" else None
        out.messages.append(Outbound(chat_id=ctx.admin_id, media=media, caption=caption))

    out.reply(chat_id, TEXT_SUBMITTED, keyboard=KB_COMPOSE)
    return out
