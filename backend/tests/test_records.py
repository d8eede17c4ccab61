from intake_bot.records import (
    RequestRecord,
    Sender,
    as_user_record,
    normalize_username,
    parse_iso,
    strip_plus,
)


def test_legacy_entry_is_migrated_with_plus_stripped():
    sender = Sender(id=7, first_name="Ali", last_name="Valiyev", username="ali")
    rec = as_user_record("7", {"phone": "+998901234567"}, sender)

    assert rec.user_id == 7
    assert rec.phone_number == "998901234567"
    assert rec.first_name == "Ali Valiyev"
    assert rec.username == "@ali"
    assert rec.is_verified


def test_legacy_entry_without_sender_uses_its_own_names():
    rec = as_user_record("8", {"phone": "998", "first_name": "Olim", "last_name": "Tosh", "username": "olim"})

    assert rec.first_name == "Olim Tosh"
    assert rec.username == "@olim"


def test_canonical_entry_fills_missing_fields_from_sender():
    sender = Sender(id=3, first_name="Zarina")
    rec = as_user_record("3", {"userId": 3, "phoneNumber": "12345", "firstName": None}, sender)

    assert rec.first_name == "Zarina"
    assert rec.phone_number == "12345"
    assert rec.updated_at


def test_unknown_shape_becomes_blank_record():
    rec = as_user_record("5", {"something": "else"})

    assert rec.user_id == 5
    assert rec.phone_number == ""
    assert not rec.is_verified


def test_migration_is_idempotent():
    raws = [
        {"phone": "+998901234567", "first_name": "A"},
        {"userId": 1, "phoneNumber": "555", "firstName": "B", "username": "b", "updatedAt": "2024-01-01T00:00:00.000Z"},
        {},
        "not a mapping",
    ]
    for raw in raws:
        once = as_user_record("1", raw)
        twice = as_user_record("1", once.to_json())
        assert twice == once


def test_user_record_serializes_with_camel_case_keys():
    rec = as_user_record("1", {"userId": 1, "phoneNumber": "5", "updatedAt": "2024-01-01T00:00:00.000Z"})

    assert rec.to_json() == {
        "userId": 1,
        "firstName": "",
        "phoneNumber": "5",
        "username": "",
        "updatedAt": "2024-01-01T00:00:00.000Z",
    }


def test_request_record_json_uses_from_key():
    rec = RequestRecord(id="1-1", user_id=1, text="hi", at="2024-01-01T00:00:00.000Z", sender=Sender(id=1, first_name="A"))
    data = rec.to_json()

    assert data["from"] == {"id": 1, "first_name": "A"}
    assert data["media"] is None
    assert list(data)[:3] == ["id", "userId", "text"]


def test_helpers():
    assert normalize_username("bob") == "@bob"
    assert normalize_username("@bob") == "@bob"
    assert normalize_username(None) == ""
    assert strip_plus("+1") == "1"
    assert strip_plus("1") == "1"
    assert parse_iso("garbage").year == 1970
    assert parse_iso("2024-05-01T10:00:00.000Z").tzinfo is not None
