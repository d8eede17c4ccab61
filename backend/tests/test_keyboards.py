from telegram import ReplyKeyboardMarkup, ReplyKeyboardRemove

from intake_bot import admin
from intake_bot.keyboards import build_admin_page_keyboard, keyboard_for
from intake_bot.ui_constants import KB_COMPOSE, KB_REMOVE, KB_SHARE_PHONE


def _callbacks(markup):
    return [[b.callback_data for b in row] for row in markup.inline_keyboard]


def test_keyboard_kinds():
    share = keyboard_for(KB_SHARE_PHONE)
    assert isinstance(share, ReplyKeyboardMarkup)
    assert share.keyboard[0][0].request_contact is True

    assert isinstance(keyboard_for(KB_COMPOSE), ReplyKeyboardMarkup)
    assert isinstance(keyboard_for(KB_REMOVE), ReplyKeyboardRemove)
    assert keyboard_for(None) is None


def test_request_page_keyboard_callbacks(ctx):
    ctx.store.requests = [{"id": f"r{i}", "userId": 1, "at": f"2024-01-01T00:00:{i:02d}.000Z"} for i in range(12)]

    rows = _callbacks(build_admin_page_keyboard(admin.requests_view(ctx, 1)))

    assert rows[0] == ["admin:reqs:0", "admin:reqs:1"]
    assert rows[1] == ["admin:delreq:r1:1"]
    assert rows[-1] == ["admin:home"]
    assert len(rows) == 4


def test_phone_page_keyboard_callbacks(ctx, alice):
    ctx.store.record_phone(alice.id, "1", alice)

    rows = _callbacks(build_admin_page_keyboard(admin.phones_view(ctx, 0)))

    assert rows[0] == ["admin:phones:0", "admin:phones:0"]
    assert rows[1] == [f"admin:delphone:{alice.id}:0"]
