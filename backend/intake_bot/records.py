from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    # Millisecond precision with a "Z" suffix, e.g. 2024-05-01T10:20:30.123Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value) -> datetime:
    """Parse a stored ISO timestamp; unparseable values sort as the epoch."""
    if isinstance(value, datetime):
        dt = value
    else:
        raw = str(value or "").strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return datetime.fromtimestamp(0, tz=timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def normalize_username(value) -> str:
    if not value:
        return ""
    s = str(value).strip()
    if not s:
        return ""
    return s if s.startswith("@") else "@" + s


def strip_plus(phone) -> str:
    s = str(phone or "")
    return s[1:] if s.startswith("+") else s


class Sender(BaseModel):
    """Identity metadata Telegram attaches to an update (``message.from``)."""

    id: int
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class MediaRef(BaseModel):
    type: Literal["photo", "document"]
    file_id: str
    name: str | None = None


class UserRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
    first_name: str = Field(default="", alias="firstName")
    phone_number: str = Field(default="", alias="phoneNumber")
    username: str = ""
    updated_at: str = Field(default_factory=utc_now_iso, alias="updatedAt")

    @property
    def is_verified(self) -> bool:
        return bool(self.phone_number)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


class RequestRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: int = Field(alias="userId")
    text: str = ""
    at: str
    media: MediaRef | None = None
    phone: str = ""
    sender: Sender | None = Field(default=None, alias="from")

    def to_json(self) -> dict:
        out = {
            "id": self.id,
            "userId": self.user_id,
            "text": self.text,
            "at": self.at,
            "media": self.media.model_dump(exclude_none=True) if self.media else None,
            "phone": self.phone,
        }
        if self.sender is not None:
            out["from"] = self.sender.model_dump(exclude_none=True)
        return out


# --- Migration -------------------------------------------------------------
#
# A raw user entry is decoded by the first decoder that accepts its shape:
# canonical (userId + phoneNumber), legacy (phone), then a blank record.

UserDecoder = Callable[[int, dict, "Sender | None"], "UserRecord | None"]


def _identity_name(sender: Sender | None) -> str:
    return sender.full_name if sender is not None else ""


def _identity_username(sender: Sender | None):
    return sender.username if sender is not None else None


def _decode_canonical(key_id: int, raw: dict, sender: Sender | None) -> UserRecord | None:
    if "userId" not in raw or "phoneNumber" not in raw:
        return None

    def pick(name: str, fallback):
        value = raw.get(name)
        return fallback if value is None else value

    return UserRecord(
        user_id=int(pick("userId", key_id)),
        first_name=str(pick("firstName", _identity_name(sender))),
        phone_number=str(pick("phoneNumber", "")),
        username=normalize_username(pick("username", _identity_username(sender))),
        updated_at=str(pick("updatedAt", utc_now_iso())),
    )


def _decode_legacy(key_id: int, raw: dict, sender: Sender | None) -> UserRecord | None:
    if "phone" not in raw:
        return None
    first = _identity_name(sender)
    if not first:
        first = " ".join(str(raw[k]) for k in ("first_name", "last_name") if raw.get(k))
    return UserRecord(
        user_id=key_id,
        first_name=first,
        phone_number=strip_plus(raw.get("phone")),
        username=normalize_username(_identity_username(sender) or raw.get("username")),
        updated_at=utc_now_iso(),
    )


def _decode_blank(key_id: int, raw: dict, sender: Sender | None) -> UserRecord:
    return UserRecord(
        user_id=key_id,
        first_name=_identity_name(sender),
        phone_number="",
        username=normalize_username(_identity_username(sender)),
        updated_at=utc_now_iso(),
    )


USER_DECODERS: tuple[UserDecoder, ...] = (_decode_canonical, _decode_legacy, _decode_blank)


def as_user_record(key, raw: Any = None, sender: Sender | None = None) -> UserRecord:
    """Normalize any stored user entry into the canonical ``UserRecord``."""
    key_id = int(key)
    src = raw if isinstance(raw, dict) else {}
    for decode in USER_DECODERS[:-1]:
        try:
            record = decode(key_id, src, sender)
        except ValueError:
            # pydantic.ValidationError is a ValueError: try the next shape.
            continue
        if record is not None:
            return record
    return _decode_blank(key_id, src, sender)
