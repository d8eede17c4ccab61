from telegram import InlineKeyboardButton, InlineKeyboardMarkup, KeyboardButton, ReplyKeyboardMarkup, ReplyKeyboardRemove

from .admin import AdminView
from .ui_constants import (
    BTN_ADMIN_EXPORT,
    BTN_ADMIN_PHONES,
    BTN_ADMIN_REQUESTS,
    BTN_ADMIN_SEARCH,
    BTN_COMPOSE,
    BTN_DELETE_PREFIX,
    BTN_HOME,
    BTN_NEXT,
    BTN_PREV,
    BTN_SHARE_PHONE,
    BTN_SUBMIT,
    CB_EXPORT,
    CB_HOME,
    CB_PREFIX,
    CB_SEARCH,
    KB_ADMIN,
    KB_COMPOSE,
    KB_REMOVE,
    KB_SHARE_PHONE,
    KB_SUBMIT,
    SECTION_PHONES,
    SECTION_REQUESTS,
)


def build_share_phone_keyboard() -> ReplyKeyboardMarkup:
    # Telegram only lets the user share their own contact through this button.
    return ReplyKeyboardMarkup(
        [[KeyboardButton(BTN_SHARE_PHONE, request_contact=True)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def build_compose_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup([[KeyboardButton(BTN_COMPOSE)]], resize_keyboard=True)


def build_submit_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup([[KeyboardButton(BTN_SUBMIT)]], resize_keyboard=True)


def build_admin_reply_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        [
            [KeyboardButton(BTN_ADMIN_REQUESTS), KeyboardButton(BTN_ADMIN_PHONES)],
            [KeyboardButton(BTN_ADMIN_EXPORT), KeyboardButton(BTN_ADMIN_SEARCH)],
        ],
        resize_keyboard=True,
    )


def keyboard_for(kind: str | None):
    if kind == KB_SHARE_PHONE:
        return build_share_phone_keyboard()
    if kind == KB_COMPOSE:
        return build_compose_keyboard()
    if kind == KB_SUBMIT:
        return build_submit_keyboard()
    if kind == KB_ADMIN:
        return build_admin_reply_keyboard()
    if kind == KB_REMOVE:
        return ReplyKeyboardRemove()
    return None


def build_admin_home_keyboard(total_requests: int, total_phones: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [
            [InlineKeyboardButton(f"📨 Murojaatlar ({total_requests})", callback_data=f"{CB_PREFIX}:{SECTION_REQUESTS}:0")],
            [InlineKeyboardButton(f"📞 Telefonlar ({total_phones})", callback_data=f"{CB_PREFIX}:{SECTION_PHONES}:0")],
            [InlineKeyboardButton(BTN_ADMIN_EXPORT, callback_data=CB_EXPORT)],
            [InlineKeyboardButton("🔍 ID bo‘yicha qidirish", callback_data=CB_SEARCH)],
        ]
    )


def build_admin_page_keyboard(view: AdminView) -> InlineKeyboardMarkup:
    p = view.page.index
    pages = view.page.pages
    base = f"{CB_PREFIX}:{view.section}"
    delete_action = "delreq" if view.section == SECTION_REQUESTS else "delphone"

    rows: list[list[InlineKeyboardButton]] = [
        [
            InlineKeyboardButton(BTN_PREV, callback_data=f"{base}:{max(0, p - 1)}"),
            InlineKeyboardButton(BTN_NEXT, callback_data=f"{base}:{min(pages - 1, p + 1)}"),
        ]
    ]
    for number, entry_id in view.entries:
        rows.append(
            [InlineKeyboardButton(f"{BTN_DELETE_PREFIX} #{number}", callback_data=f"{CB_PREFIX}:{delete_action}:{entry_id}:{p}")]
        )
    rows.append([InlineKeyboardButton(BTN_HOME, callback_data=CB_HOME)])
    return InlineKeyboardMarkup(rows)
