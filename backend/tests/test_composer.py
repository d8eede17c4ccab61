from intake_bot import composer
from intake_bot.composer import ContactShare, Inbound
from intake_bot.records import MediaRef, Sender
from intake_bot.ui_constants import (
    BTN_COMPOSE,
    BTN_SUBMIT,
    KB_COMPOSE,
    KB_REMOVE,
    KB_SHARE_PHONE,
    KB_SUBMIT,
    TEXT_CONTACT_MISMATCH,
    TEXT_GUIDANCE,
    TEXT_PHONE_FIRST,
    TEXT_PHONE_SAVED,
    TEXT_PHOTO_CAPTION,
    TEXT_SUBMITTED,
    TEXT_WELCOME,
)

from conftest import ADMIN_ID


def _verify(ctx, sender, phone="998901234567"):
    return composer.share_contact(
        ctx, Inbound(chat_id=sender.id, sender=sender, contact=ContactShare(phone_number=phone, user_id=sender.id))
    )


def _say(ctx, sender, text="", **kwargs):
    return composer.handle_message(ctx, Inbound(chat_id=sender.id, sender=sender, text=text, **kwargs))


def test_start_registers_user_and_asks_for_phone(ctx, alice):
    out = composer.start(ctx, alice.id, alice)

    assert ctx.store.get_user(alice.id) is not None
    assert [(m.chat_id, m.text, m.keyboard) for m in out.messages] == [(alice.id, TEXT_WELCOME, KB_SHARE_PHONE)]


def test_unverified_chat_is_gated(ctx, alice):
    out = _say(ctx, alice, BTN_COMPOSE)

    assert out.messages[0].text == TEXT_PHONE_FIRST
    assert out.messages[0].keyboard == KB_SHARE_PHONE
    assert ctx.sessions.get(alice.id) is None


def test_contact_of_someone_else_is_rejected(ctx, alice):
    event = Inbound(chat_id=alice.id, sender=alice, contact=ContactShare(phone_number="+1", user_id=999))
    out = composer.share_contact(ctx, event)

    assert out.messages[0].text == TEXT_CONTACT_MISMATCH
    assert out.messages[0].markdown
    assert not ctx.store.is_verified(alice.id)


def test_contact_without_user_id_is_rejected(ctx, alice):
    event = Inbound(chat_id=alice.id, sender=alice, contact=ContactShare(phone_number="+1"))
    composer.share_contact(ctx, event)

    assert not ctx.store.is_verified(alice.id)


def test_admin_contact_share_removes_keyboard(ctx):
    admin = Sender(id=ADMIN_ID, first_name="Boss")
    event = Inbound(chat_id=ADMIN_ID, sender=admin, contact=ContactShare(phone_number="1", user_id=ADMIN_ID))
    out = composer.share_contact(ctx, event)

    assert out.messages[0].keyboard == KB_REMOVE
    assert ctx.store.get_user(ADMIN_ID) is None


def test_own_contact_verifies_and_notifies_admin(ctx, alice):
    out = _verify(ctx, alice, "+998901234567")

    assert ctx.store.get_user(alice.id).phone_number == "998901234567"
    admin_msg, user_msg = out.messages
    assert admin_msg.chat_id == ADMIN_ID
    assert "998901234567" in admin_msg.text
    assert (user_msg.chat_id, user_msg.text, user_msg.keyboard) == (alice.id, TEXT_PHONE_SAVED, KB_COMPOSE)


def test_verified_idle_chat_gets_guidance(ctx, alice):
    _verify(ctx, alice)
    out = _say(ctx, alice, "salom")

    assert out.messages[0].text == TEXT_GUIDANCE
    assert out.messages[0].keyboard == KB_COMPOSE


def test_submit_while_idle_creates_nothing(ctx, alice):
    _verify(ctx, alice)
    out = _say(ctx, alice, BTN_SUBMIT)

    assert out.request is None
    assert ctx.store.requests == []
    assert out.messages[0].text == TEXT_GUIDANCE


def test_compose_keyword_starts_composing(ctx, alice):
    _verify(ctx, alice)
    out = _say(ctx, alice, "  Murojaatni YOZMOQCHIMAN ")

    assert out.messages[0].keyboard == KB_SUBMIT
    assert ctx.sessions.get(alice.id).composing


def test_full_scenario_text_photo_text_submit(ctx, alice):
    _verify(ctx, alice, "998901234567")
    _say(ctx, alice, BTN_COMPOSE)

    assert _say(ctx, alice, "Hello").messages == []
    assert _say(ctx, alice, media=MediaRef(type="photo", file_id="P1")).messages == []
    assert _say(ctx, alice, "World").messages == []
    out = _say(ctx, alice, BTN_SUBMIT)

    req = out.request
    assert req["text"] == "Hello\nWorld"
    assert req["media"] == {"type": "photo", "file_id": "P1"}
    assert req["phone"] == "998901234567"
    assert ctx.store.requests == [req]

    notice, photo, confirm = out.messages
    assert notice.chat_id == ADMIN_ID and "Hello" in notice.text
    assert photo.media.file_id == "P1" and photo.caption == TEXT_PHOTO_CAPTION
    assert (confirm.chat_id, confirm.text, confirm.keyboard) == (alice.id, TEXT_SUBMITTED, KB_COMPOSE)
    assert not ctx.sessions.get(alice.id).composing


def test_later_media_supersedes_earlier(ctx, alice):
    _verify(ctx, alice)
    _say(ctx, alice, BTN_COMPOSE)
    _say(ctx, alice, caption="first", media=MediaRef(type="photo", file_id="A"))
    _say(ctx, alice, media=MediaRef(type="document", file_id="B", name="b.pdf"))
    out = _say(ctx, alice, BTN_SUBMIT)

    assert out.request["media"] == {"type": "document", "file_id": "B", "name": "b.pdf"}
    assert out.request["text"] == "first"
    # documents are forwarded without a caption
    assert out.messages[1].caption is None


def test_submit_with_empty_draft_falls_back_to_event_content(ctx, alice):
    _verify(ctx, alice)
    _say(ctx, alice, BTN_COMPOSE)
    out = _say(ctx, alice, BTN_SUBMIT)

    assert out.request["text"] == BTN_SUBMIT
    assert len(ctx.store.requests) == 1


def test_compose_again_discards_draft(ctx, alice):
    _verify(ctx, alice)
    _say(ctx, alice, BTN_COMPOSE)
    _say(ctx, alice, "old")
    _say(ctx, alice, BTN_COMPOSE)
    _say(ctx, alice, "new")
    out = _say(ctx, alice, BTN_SUBMIT)

    assert out.request["text"] == "new"


def test_start_resets_composition(ctx, alice):
    _verify(ctx, alice)
    _say(ctx, alice, BTN_COMPOSE)
    _say(ctx, alice, "draft")
    composer.start(ctx, alice.id, alice)

    assert not ctx.sessions.get(alice.id).composing
    assert ctx.sessions.get(alice.id).draft == ""
