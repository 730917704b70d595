# conversations/page.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .client import ChatApiClient, ChatApiError
from .models import (
    Conversation,
    Message,
    SENDER_BOT,
    SENDER_USER,
    clean_title,
    title_from_message,
)
from .store import ConversationStore, StoreError

log = logging.getLogger(__name__)


def _same_id(a: Any, b: Any) -> bool:
    # ids come back from Supabase as ints/uuids but from URLs/sessions as str
    return a is not None and b is not None and str(a) == str(b)


class ChatPage:
    """
    View state of the chat page.

    Mirrors the remote tables (conversation list, messages of the active
    conversation) and owns the purely local bits: which conversation is
    active and the inline title edit buffer. Store and API failures are
    logged and swallowed; the view keeps the last known state.
    """

    def __init__(
        self,
        store: ConversationStore,
        api: ChatApiClient,
        *,
        active_id: Any = None,
        editing_id: Any = None,
        title_draft: str = "",
    ):
        self.store = store
        self.api = api
        self.conversations: List[Conversation] = []
        self.messages: List[Message] = []
        self.active_id = active_id
        self.editing_id = editing_id
        self.title_draft = title_draft
        self.is_loading = False
        self.conversations_loaded = False

    # ----- session round-trip -----

    def state(self) -> Dict[str, Any]:
        return {
            "active_id": None if self.active_id is None else str(self.active_id),
            "editing_id": None if self.editing_id is None else str(self.editing_id),
            "title_draft": self.title_draft,
        }

    @classmethod
    def from_state(cls, store: ConversationStore, api: ChatApiClient, state: Optional[Dict[str, Any]]) -> "ChatPage":
        state = state or {}
        return cls(
            store,
            api,
            active_id=state.get("active_id"),
            editing_id=state.get("editing_id"),
            title_draft=state.get("title_draft") or "",
        )

    # ----- lookups -----

    def find(self, conversation_id: Any) -> Optional[Conversation]:
        for c in self.conversations:
            if _same_id(c.id, conversation_id):
                return c
        return None

    @property
    def active(self) -> Optional[Conversation]:
        return self.find(self.active_id)

    def _sort_conversations(self) -> None:
        self.conversations.sort(key=lambda c: c.updated_at, reverse=True)

    def _sort_messages(self) -> None:
        # stable: equal timestamps keep insertion order
        self.messages.sort(key=lambda m: m.created_at)

    # ----- loading -----

    def mount(self) -> None:
        """Load conversations and pick the active one (kept, else most recent)."""
        if not self.load_conversations():
            # list unknown: keep the restored selection and edit as they were
            self.load_messages()
            return
        current = self.active
        if current is None:
            self.active_id = self.conversations[0].id if self.conversations else None
        else:
            self.active_id = current.id
        if self.editing_id is not None and self.find(self.editing_id) is None:
            self.cancel_rename()
        self.load_messages()

    def load_conversations(self) -> bool:
        try:
            self.conversations = self.store.list_conversations()
        except StoreError:
            log.exception("Error loading conversations")
            self.conversations_loaded = False
            return False
        self.conversations_loaded = True
        self._sort_conversations()
        return True

    def load_messages(self) -> bool:
        if self.active_id is None:
            self.messages = []
            return True
        try:
            self.messages = self.store.list_messages(self.active_id)
        except StoreError:
            log.exception("Error loading messages for conversation %s", self.active_id)
            self.messages = []
            return False
        self._sort_messages()
        return True

    def select(self, conversation_id: Any) -> bool:
        conv = self.find(conversation_id)
        if conv is None:
            log.info("Ignoring switch to unknown conversation %s", conversation_id)
            return False
        self.active_id = conv.id
        return self.load_messages()

    # ----- create -----

    def new_conversation(self, title: Optional[str] = None) -> Optional[Conversation]:
        try:
            conv = self.store.create_conversation(title)
        except StoreError:
            log.exception("Error creating conversation")
            return None
        self.conversations.insert(0, conv)
        self._sort_conversations()
        self.active_id = conv.id
        self.messages = []
        return conv

    # ----- send -----

    def _bump(self, conversation_id: Any, when) -> None:
        conv = self.find(conversation_id)
        if conv is not None and when > conv.updated_at:
            conv.updated_at = when
            self._sort_conversations()

    def _persist(self, optimistic: Message) -> Message:
        """Store an optimistic message; swap it for the stored row on success."""
        try:
            saved = self.store.add_message(optimistic.conversation_id, optimistic.content, optimistic.sender)
        except StoreError:
            log.exception("Error saving %s message", optimistic.sender)
            return optimistic
        for i, m in enumerate(self.messages):
            if m is optimistic:
                self.messages[i] = saved
                break
        self._sort_messages()
        self._bump(saved.conversation_id, saved.created_at)
        return saved

    def send(self, text: str) -> Optional[Message]:
        """
        Send one user message and return the bot reply (None on failure).

        Creates a conversation first when none is active. The user message
        shows up locally before it is stored and is forwarded as typed.
        """
        text = text or ""
        if not text.strip():
            return None

        # list failed to load: trust a restored selection instead of creating
        restored = self.active_id is not None and not self.conversations_loaded
        if self.active is None and not restored:
            if self.new_conversation(title_from_message(text)) is None:
                return None

        conversation_id = self.active_id
        history = [m.as_turn() for m in self.messages]

        user_msg = Message.local(conversation_id, text, SENDER_USER)
        self.messages.append(user_msg)
        self.is_loading = True
        try:
            self._persist(user_msg)

            try:
                reply = self.api.send(text, history)
            except ChatApiError:
                log.exception("Error sending message")
                return None

            bot_msg = Message.local(conversation_id, reply, SENDER_BOT)
            self.messages.append(bot_msg)
            return self._persist(bot_msg)
        finally:
            self.is_loading = False

    # ----- rename -----

    def begin_rename(self, conversation_id: Any) -> bool:
        conv = self.find(conversation_id)
        if conv is None:
            return False
        self.editing_id = conv.id
        self.title_draft = conv.title
        return True

    def update_draft(self, text: str) -> None:
        self.title_draft = text or ""

    def cancel_rename(self) -> None:
        self.editing_id = None
        self.title_draft = ""

    def commit_rename(self) -> bool:
        """Persist the edit buffer as the title; blank or unchanged commits nothing."""
        conv = self.find(self.editing_id)
        title = clean_title(self.title_draft)
        self.cancel_rename()
        if conv is None or not title or title == conv.title:
            return False
        try:
            updated = self.store.rename_conversation(conv.id, title)
        except StoreError:
            log.exception("Error renaming conversation %s", conv.id)
            return False
        conv.title = title
        if updated is not None:
            conv.updated_at = updated.updated_at
        self._sort_conversations()
        return True

    # ----- delete -----

    def delete(self, conversation_id: Any) -> bool:
        conv = self.find(conversation_id)
        if conv is None:
            return False
        try:
            self.store.delete_conversation(conv.id)
        except StoreError:
            log.exception("Error deleting conversation %s", conv.id)
            return False

        self.conversations = [c for c in self.conversations if c is not conv]
        if _same_id(self.editing_id, conv.id):
            self.cancel_rename()
        if _same_id(self.active_id, conv.id):
            self.active_id = self.conversations[0].id if self.conversations else None
            self.load_messages()
        return True
