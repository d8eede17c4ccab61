from __future__ import annotations

import csv
import io
import logging
import os
import re
from datetime import datetime, timezone

from .store import ContactStore

logger = logging.getLogger(__name__)

PHONES_HEADER = ["user_id", "first_name", "username", "phone_number", "updated_at"]
REQUESTS_HEADER = ["request_id", "user_id", "time", "phone", "text"]


def phone_rows(store: ContactStore) -> list[list]:
    rows: list[list] = [PHONES_HEADER]
    for u in store.users.values():
        if u.phone_number:
            rows.append([u.user_id, u.first_name or "", u.username or "", u.phone_number, u.updated_at or ""])
    return rows


def request_rows(store: ContactStore) -> list[list]:
    rows: list[list] = [REQUESTS_HEADER]
    for r in store.requests:
        text = re.sub(r"\r?\n", " ", str(r.get("text") or ""))
        rows.append([r.get("id"), r.get("userId"), r.get("at"), r.get("phone") or "", text])
    return rows


def to_csv(rows: list[list]) -> str:
    buf = io.StringIO()
    # QUOTE_MINIMAL quotes a field holding a comma, a quote or a newline, doubling inner quotes.
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerows([["" if v is None else v for v in row] for row in rows])
    return buf.getvalue()


def export_stamp(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    iso = now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return iso.replace(":", "-").replace(".", "-")


def write_exports(store: ContactStore, export_dir: str, stamp: str | None = None) -> tuple[str, str]:
    """Write ``phones_<stamp>.csv`` and ``requests_<stamp>.csv``; returns their paths."""
    os.makedirs(export_dir, exist_ok=True)
    stamp = stamp or export_stamp()

    phones_path = os.path.join(export_dir, f"phones_{stamp}.csv")
    requests_path = os.path.join(export_dir, f"requests_{stamp}.csv")
    with open(phones_path, "w", encoding="utf-8", newline="") as f:
        f.write(to_csv(phone_rows(store)))
    with open(requests_path, "w", encoding="utf-8", newline="") as f:
        f.write(to_csv(request_rows(store)))

    logger.info("Exported CSV files: %s, %s", phones_path, requests_path)
    return phones_path, requests_path
