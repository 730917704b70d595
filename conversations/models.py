"""
Row types for the Supabase-backed `conversations` and `messages` tables.

These are plain dataclasses, not ORM models: the tables live in Supabase and
are reached through conversations.store.
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, Optional

from django.utils import timezone
from django.utils.dateparse import parse_datetime

SENDER_USER = "user"
SENDER_BOT = "bot"
SENDERS = (SENDER_USER, SENDER_BOT)

DEFAULT_TITLE = "New conversation"
TITLE_MAX_LEN = 120

LOCAL_ID_PREFIX = "local-"


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        parsed = parse_datetime(str(value))
        if parsed is not None:
            if timezone.is_naive(parsed):
                parsed = timezone.make_aware(parsed, dt_timezone.utc)
            return parsed
    return timezone.now()


def clean_title(title: Optional[str]) -> str:
    return (title or "").strip()[:TITLE_MAX_LEN]


def title_from_message(text: str, n: int = 6) -> str:
    """First n words of a message, markdown stripped, for auto-titling."""
    s = (text or "").strip()
    s = re.sub(r"[*_`#>]+", "", s)
    s = re.sub(r"\s+", " ", s).strip()
    t = " ".join(s.split(" ")[:n]).strip()
    if len(t) > TITLE_MAX_LEN:
        t = t[: TITLE_MAX_LEN - 1] + "…"
    return t or DEFAULT_TITLE


@dataclass
class Conversation:
    id: Any
    title: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Conversation":
        created = _parse_ts(row.get("created_at"))
        return cls(
            id=row["id"],
            title=row.get("title") or DEFAULT_TITLE,
            created_at=created,
            updated_at=_parse_ts(row.get("updated_at") or created),
        )


@dataclass
class Message:
    id: Any
    conversation_id: Any
    content: str
    sender: str
    created_at: datetime = field(default_factory=timezone.now)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Message":
        return cls(
            id=row["id"],
            conversation_id=row["conversation_id"],
            content=row.get("content") or "",
            sender=row.get("sender") or SENDER_USER,
            created_at=_parse_ts(row.get("created_at")),
        )

    @classmethod
    def local(cls, conversation_id: Any, content: str, sender: str) -> "Message":
        """An optimistic message that has not been persisted yet."""
        return cls(
            id=f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}",
            conversation_id=conversation_id,
            content=content,
            sender=sender,
        )

    @property
    def is_local(self) -> bool:
        return isinstance(self.id, str) and self.id.startswith(LOCAL_ID_PREFIX)

    @property
    def is_user(self) -> bool:
        return self.sender == SENDER_USER

    def as_turn(self) -> Dict[str, str]:
        return {"role": self.sender, "content": self.content}
