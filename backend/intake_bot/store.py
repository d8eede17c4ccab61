from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path

from .records import MediaRef, RequestRecord, Sender, UserRecord, as_user_record, parse_iso, strip_plus, utc_now_iso

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> dict | None:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Could not read store file %s: %s", path, e)
        return None
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        logger.warning("Store file %s is not valid JSON (%s); ignoring it.", path, e)
        return None
    if not isinstance(parsed, dict):
        logger.warning("Store file %s does not hold a JSON object; ignoring it.", path)
        return None
    return parsed


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(content, encoding="utf-8")
    os.replace(tmp, path)


class ContactStore:
    """Users + requests persisted as one JSON document.

    Every mutation rewrites the whole file before returning, so a mutation that
    returned is durable. ``requests`` are kept as the raw mappings read from
    disk and written back unchanged.
    """

    def __init__(self, path: str | os.PathLike, legacy_path: str | os.PathLike | None = None) -> None:
        self.path = Path(path)
        self.legacy_path = Path(legacy_path) if legacy_path else None
        self.users: dict[str, UserRecord] = {}
        self.requests: list[dict] = []

    # --- load / save ---

    def _normalize(self, parsed: dict) -> None:
        users: dict[str, UserRecord] = {}
        raw_users = parsed.get("users")
        if isinstance(raw_users, dict):
            for key, raw in raw_users.items():
                try:
                    users[str(key)] = as_user_record(key, raw)
                except ValueError:
                    logger.warning("Skipping user entry with non-numeric key %r", key)
        raw_requests = parsed.get("requests")
        requests = [r for r in raw_requests if isinstance(r, dict)] if isinstance(raw_requests, list) else []
        self.users = users
        self.requests = requests

    def load(self) -> "ContactStore":
        parsed = _read_json(self.path)
        if parsed is not None:
            self._normalize(parsed)
            logger.info("Loaded %s users and %s requests from %s", len(self.users), len(self.requests), self.path)
            return self

        if self.legacy_path is not None:
            parsed = _read_json(self.legacy_path)
            if parsed is not None:
                self._normalize(parsed)
                self.save()
                logger.info("Migrated legacy store %s -> %s (%s users)", self.legacy_path, self.path, len(self.users))
                return self

        self.users = {}
        self.requests = []
        logger.info("No store found at %s; starting empty.", self.path)
        return self

    def to_json(self) -> dict:
        return {
            "users": {key: as_user_record(key, u.to_json()).to_json() for key, u in self.users.items()},
            "requests": list(self.requests),
        }

    def save(self) -> None:
        # Serialize fully before touching the destination file.
        content = json.dumps(self.to_json(), ensure_ascii=False, indent=2)
        _atomic_write(self.path, content)

    # --- reads ---

    def get_user(self, user_id) -> UserRecord | None:
        return self.users.get(str(user_id))

    def is_verified(self, user_id) -> bool:
        u = self.get_user(user_id)
        return bool(u and u.is_verified)

    def verified_users(self) -> list[UserRecord]:
        return [u for u in self.users.values() if u.is_verified]

    def verified_users_newest_first(self) -> list[UserRecord]:
        return sorted(self.verified_users(), key=lambda u: parse_iso(u.updated_at), reverse=True)

    def requests_newest_first(self) -> list[dict]:
        return sorted(self.requests, key=lambda r: parse_iso(r.get("at")), reverse=True)

    # --- mutations ---

    def ensure_user(self, user_id, sender: Sender | None = None) -> UserRecord:
        key = str(user_id)
        user = self.users.get(key)
        if user is None:
            user = as_user_record(key, {}, sender)
            self.users[key] = user
        self.save()
        return user

    def record_phone(self, user_id, phone: str, sender: Sender) -> UserRecord:
        key = str(user_id)
        user = as_user_record(
            key,
            {
                "userId": int(user_id),
                "firstName": sender.full_name,
                "phoneNumber": strip_plus(phone),
                "username": sender.username or "",
                "updatedAt": utc_now_iso(),
            },
            sender,
        )
        self.users[key] = user
        self.save()
        return user

    def _next_request_id(self, user_id: int) -> str:
        taken = {str(r.get("id")) for r in self.requests}
        stamp = int(time.time() * 1000)
        rid = f"{user_id}-{stamp}"
        while rid in taken:
            stamp += 1
            rid = f"{user_id}-{stamp}"
        return rid

    def append_request(self, chat_id, sender: Sender, text: str, media: MediaRef | None) -> dict:
        """Append a submission and refresh the submitter's display fields."""
        key = str(chat_id)
        existing = self.users.get(key)
        phone = existing.phone_number if existing else ""

        record = RequestRecord(
            id=self._next_request_id(sender.id),
            user_id=sender.id,
            text=text,
            at=utc_now_iso(),
            media=media,
            phone=phone,
            sender=Sender(
                id=sender.id,
                first_name=sender.first_name,
                last_name=sender.last_name,
                username=sender.username,
            ),
        ).to_json()
        self.requests.append(record)

        self.users[key] = as_user_record(
            key,
            {
                "userId": int(chat_id),
                "firstName": sender.full_name,
                "phoneNumber": phone,
                "username": sender.username or (existing.username if existing else ""),
                "updatedAt": utc_now_iso(),
            },
            sender,
        )
        self.save()
        return record

    def delete_request(self, request_id: str) -> bool:
        for idx, r in enumerate(self.requests):
            if str(r.get("id")) == str(request_id):
                del self.requests[idx]
                self.save()
                return True
        return False

    def clear_phone(self, user_id) -> bool:
        key = str(user_id)
        user = self.users.get(key)
        if user is None:
            return False
        self.users[key] = user.model_copy(update={"phone_number": "", "updated_at": utc_now_iso()})
        self.save()
        return True
