# conversations/store.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from django.conf import settings
from django.utils import timezone
from supabase import Client, create_client

from .models import Conversation, Message, SENDERS, clean_title, DEFAULT_TITLE

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    ...


class StoreNotConfigured(StoreError):
    ...


def _get_supabase() -> Client | None:
    url = getattr(settings, "SUPABASE_URL", "")
    key = getattr(settings, "SUPABASE_SERVICE_ROLE_KEY", "")  # server-only key
    if not url or not key:
        return None
    return create_client(url, key)


def _now_iso() -> str:
    return timezone.now().isoformat()


class ConversationStore:
    """
    Thin wrapper over the Supabase table client.

    - select/insert/update/delete take a table name plus equality filters.
    - Domain helpers below keep `conversations.updated_at` current and
      return parsed Conversation / Message rows.
    - Every client failure is logged and re-raised as StoreError.
    """

    def __init__(self, client: Optional[Client] = None):
        self.client = client
        self.conversations_table = getattr(settings, "CHAT_CONVERSATIONS_TABLE", "conversations")
        self.messages_table = getattr(settings, "CHAT_MESSAGES_TABLE", "messages")

    # ----- generic CRUD -----

    def _table(self, table: str):
        if self.client is None:
            raise StoreNotConfigured("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set")
        return self.client.table(table)

    @staticmethod
    def _filtered(query, filters: Optional[Dict[str, Any]]):
        for col, val in (filters or {}).items():
            query = query.eq(col, val)
        return query

    def _execute(self, op: str, table: str, query) -> List[Dict[str, Any]]:
        try:
            res = query.execute()
        except Exception as e:
            logger.error("Supabase %s on %s failed: %s", op, table, e)
            raise StoreError(f"{op} {table}: {e}") from e
        return list(getattr(res, "data", None) or [])

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Union[str, Sequence[str], None] = None,
        desc: bool = False,
    ) -> List[Dict[str, Any]]:
        query = self._filtered(self._table(table).select("*"), filters)
        if isinstance(order_by, str):
            order_by = [order_by]
        # first column is the primary sort key
        for column in order_by or ():
            query = query.order(column, desc=desc)
        return self._execute("select", table, query)

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._execute("insert", table, self._table(table).insert(row))
        if not rows:
            raise StoreError(f"insert {table}: no row returned")
        return rows[0]

    def update(self, table: str, values: Dict[str, Any], filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError("update requires at least one filter")
        query = self._filtered(self._table(table).update(values), filters)
        return self._execute("update", table, query)

    def delete(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError("delete requires at least one filter")
        query = self._filtered(self._table(table).delete(), filters)
        return self._execute("delete", table, query)

    # ----- conversations -----

    def list_conversations(self) -> List[Conversation]:
        rows = self.select(self.conversations_table, order_by="updated_at", desc=True)
        return [Conversation.from_row(r) for r in rows]

    def create_conversation(self, title: Optional[str] = None) -> Conversation:
        now = _now_iso()
        row = self.insert(
            self.conversations_table,
            {"title": clean_title(title) or DEFAULT_TITLE, "created_at": now, "updated_at": now},
        )
        return Conversation.from_row(row)

    def rename_conversation(self, conversation_id: Any, title: str) -> Optional[Conversation]:
        title = clean_title(title)
        if not title:
            raise ValueError("title must not be blank")
        rows = self.update(
            self.conversations_table,
            {"title": title, "updated_at": _now_iso()},
            {"id": conversation_id},
        )
        return Conversation.from_row(rows[0]) if rows else None

    def touch_conversation(self, conversation_id: Any) -> Optional[Conversation]:
        rows = self.update(self.conversations_table, {"updated_at": _now_iso()}, {"id": conversation_id})
        return Conversation.from_row(rows[0]) if rows else None

    def delete_conversation(self, conversation_id: Any) -> None:
        # messages first so the FK never dangles, cascade or not
        self.delete(self.messages_table, {"conversation_id": conversation_id})
        self.delete(self.conversations_table, {"id": conversation_id})

    # ----- messages -----

    def list_messages(self, conversation_id: Any) -> List[Message]:
        rows = self.select(
            self.messages_table,
            filters={"conversation_id": conversation_id},
            order_by=("created_at", "id"),
        )
        return [Message.from_row(r) for r in rows]

    def add_message(self, conversation_id: Any, content: str, sender: str) -> Message:
        if sender not in SENDERS:
            raise ValueError(f"unknown sender {sender!r}")
        row = self.insert(
            self.messages_table,
            {
                "conversation_id": conversation_id,
                "content": content,
                "sender": sender,
                "created_at": _now_iso(),
            },
        )
        try:
            self.touch_conversation(conversation_id)
        except StoreError:
            # the message is stored; a stale updated_at only affects list order
            logger.warning("Could not bump updated_at for conversation %s", conversation_id)
        return Message.from_row(row)


def get_store() -> ConversationStore:
    try:
        client = _get_supabase()
    except Exception:
        # bad URL / key format; fail safe, operations will raise StoreNotConfigured
        logger.exception("Error creating Supabase client")
        client = None
    if client is None:
        logger.warning("Supabase client unavailable; conversation store disabled")
    return ConversationStore(client)
