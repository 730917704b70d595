from django.test import SimpleTestCase

from conversations.models import SENDER_BOT, SENDER_USER
from conversations.page import ChatPage

from .fakes import FakeApi, InMemoryStore, conv_row, failing_api, msg_row


def _seeded_store():
    return InMemoryStore(
        conversations=[
            conv_row(1, "Old chat", "2024-01-01T10:00:00+00:00"),
            conv_row(2, "Newest chat", "2024-03-01T10:00:00+00:00"),
            conv_row(3, "Middle chat", "2024-02-01T10:00:00+00:00"),
        ],
        messages=[
            msg_row(11, 2, "second", SENDER_BOT, "2024-03-01T09:00:02+00:00"),
            msg_row(10, 2, "first", SENDER_USER, "2024-03-01T09:00:01+00:00"),
            msg_row(12, 1, "other convo", SENDER_USER, "2024-01-01T09:00:00+00:00"),
        ],
    )


class MountTests(SimpleTestCase):
    def test_orders_conversations_by_updated_at_desc(self):
        page = ChatPage(_seeded_store(), FakeApi())
        page.mount()
        self.assertEqual([c.title for c in page.conversations], ["Newest chat", "Middle chat", "Old chat"])

    def test_selects_most_recent_and_loads_its_messages_in_order(self):
        page = ChatPage(_seeded_store(), FakeApi())
        page.mount()
        self.assertEqual(page.active_id, 2)
        self.assertEqual([m.content for m in page.messages], ["first", "second"])

    def test_keeps_existing_active_conversation(self):
        page = ChatPage(_seeded_store(), FakeApi(), active_id="1")
        page.mount()
        self.assertEqual(page.active_id, 1)
        self.assertEqual([m.content for m in page.messages], ["other convo"])

    def test_stale_active_falls_back_to_most_recent(self):
        page = ChatPage(_seeded_store(), FakeApi(), active_id="999")
        page.mount()
        self.assertEqual(page.active_id, 2)

    def test_empty_store(self):
        page = ChatPage(InMemoryStore(), FakeApi())
        page.mount()
        self.assertIsNone(page.active_id)
        self.assertEqual(page.messages, [])

    def test_store_failure_is_swallowed(self):
        store = _seeded_store()
        store.fail_on.add("select")
        page = ChatPage(store, FakeApi())
        with self.assertLogs("conversations.page", level="ERROR"):
            page.mount()
        self.assertEqual(page.conversations, [])
        self.assertIsNone(page.active_id)

    def test_failed_list_keeps_restored_selection_and_edit(self):
        store = _seeded_store()
        store.fail_on.add(("select", "conversations"))
        page = ChatPage(store, FakeApi(), active_id="2", editing_id="2", title_draft="draft")
        with self.assertLogs("conversations.page", level="ERROR"):
            page.mount()
        self.assertEqual(page.active_id, "2")
        self.assertEqual(page.editing_id, "2")
        self.assertEqual(page.title_draft, "draft")
        self.assertEqual([m.content for m in page.messages], ["first", "second"])

    def test_stale_edit_is_cancelled(self):
        page = ChatPage(_seeded_store(), FakeApi(), editing_id="999", title_draft="x")
        page.mount()
        self.assertIsNone(page.editing_id)
        self.assertEqual(page.title_draft, "")


class SelectTests(SimpleTestCase):
    def test_switch_loads_messages(self):
        page = ChatPage(_seeded_store(), FakeApi())
        page.mount()
        self.assertTrue(page.select("1"))
        self.assertEqual(page.active_id, 1)
        self.assertEqual([m.content for m in page.messages], ["other convo"])

    def test_unknown_id_ignored(self):
        page = ChatPage(_seeded_store(), FakeApi())
        page.mount()
        self.assertFalse(page.select("42"))
        self.assertEqual(page.active_id, 2)


class NewConversationTests(SimpleTestCase):
    def test_creates_and_activates(self):
        store = _seeded_store()
        page = ChatPage(store, FakeApi())
        page.mount()
        conv = page.new_conversation()
        self.assertEqual(conv.title, "New conversation")
        self.assertEqual(page.active_id, conv.id)
        self.assertEqual(page.conversations[0].id, conv.id)
        self.assertEqual(page.messages, [])
        self.assertEqual(len(store.tables["conversations"]), 4)

    def test_failure_returns_none(self):
        store = _seeded_store()
        store.fail_on.add("insert")
        page = ChatPage(store, FakeApi())
        page.mount()
        with self.assertLogs("conversations.page", level="ERROR"):
            self.assertIsNone(page.new_conversation())
        self.assertEqual(page.active_id, 2)


class SendTests(SimpleTestCase):
    def test_blank_is_noop(self):
        store = _seeded_store()
        api = FakeApi()
        page = ChatPage(store, api)
        page.mount()
        self.assertIsNone(page.send("   "))
        self.assertEqual(api.calls, [])
        self.assertNotIn(("insert", "messages"), store.calls)

    def test_appends_user_and_bot_messages_and_persists_both(self):
        store = _seeded_store()
        api = FakeApi(reply="Hi there")
        page = ChatPage(store, api)
        page.mount()

        bot = page.send("Hello")

        self.assertEqual(bot.content, "Hi there")
        self.assertFalse(bot.is_local)
        self.assertEqual([(m.sender, m.content) for m in page.messages], [
            (SENDER_USER, "first"),
            (SENDER_BOT, "second"),
            (SENDER_USER, "Hello"),
            (SENDER_BOT, "Hi there"),
        ])
        self.assertFalse(any(m.is_local for m in page.messages))
        stored = [r["content"] for r in store.tables["messages"] if r["conversation_id"] == 2]
        self.assertIn("Hello", stored)
        self.assertIn("Hi there", stored)

    def test_history_is_prior_turns(self):
        api = FakeApi()
        page = ChatPage(_seeded_store(), api)
        page.mount()
        page.send("third")
        message, history = api.calls[0]
        self.assertEqual(message, "third")
        self.assertEqual(history, [
            {"role": "user", "content": "first"},
            {"role": "bot", "content": "second"},
        ])

    def test_moves_conversation_to_top(self):
        page = ChatPage(_seeded_store(), FakeApi())
        page.mount()
        page.select(1)
        page.send("bump me")
        self.assertEqual(page.conversations[0].id, 1)

    def test_creates_conversation_when_none_active(self):
        store = InMemoryStore()
        page = ChatPage(store, FakeApi(reply="hey"))
        page.mount()

        page.send("**Plan** a trip to   the mountains next week please")

        self.assertIsNotNone(page.active_id)
        self.assertEqual(page.active.title, "Plan a trip to the mountains")
        self.assertEqual([m.content for m in page.messages][-1], "hey")
        self.assertEqual(len(store.tables["conversations"]), 1)

    def test_failed_list_sends_into_restored_conversation(self):
        store = _seeded_store()
        store.fail_on.add(("select", "conversations"))
        api = FakeApi(reply="welcome back")
        page = ChatPage.from_state(store, api, {"active_id": "2"})
        with self.assertLogs("conversations.page", level="ERROR"):
            page.mount()

        bot = page.send("continue our chat")

        self.assertEqual(str(page.active_id), "2")
        self.assertEqual(bot.content, "welcome back")
        self.assertNotIn(("insert", "conversations"), store.calls)
        self.assertEqual(len(store.tables["conversations"]), 3)
        stored = [r for r in store.tables["messages"] if r["content"] == "continue our chat"]
        self.assertEqual([str(r["conversation_id"]) for r in stored], ["2"])
        self.assertEqual(api.calls[0][1], [
            {"role": "user", "content": "first"},
            {"role": "bot", "content": "second"},
        ])

    def test_text_is_forwarded_and_stored_as_typed(self):
        store = _seeded_store()
        api = FakeApi()
        page = ChatPage(store, api)
        page.mount()

        page.send("  def f():\n      return 1\n")

        self.assertEqual(api.calls[0][0], "  def f():\n      return 1\n")
        self.assertIn("  def f():\n      return 1\n", [r["content"] for r in store.tables["messages"]])

    def test_api_failure_keeps_user_message(self):
        store = _seeded_store()
        page = ChatPage(store, failing_api())
        page.mount()
        with self.assertLogs("conversations.page", level="ERROR"):
            self.assertIsNone(page.send("anyone?"))
        self.assertEqual(page.messages[-1].content, "anyone?")
        self.assertEqual(page.messages[-1].sender, SENDER_USER)
        self.assertFalse(page.is_loading)

    def test_persist_failure_keeps_optimistic_message(self):
        store = _seeded_store()
        store.fail_on.add(("insert", "messages"))
        api = FakeApi(reply="still answered")
        page = ChatPage(store, api)
        page.mount()
        with self.assertLogs("conversations.page", level="ERROR"):
            bot = page.send("offline-ish")
        self.assertTrue(page.messages[-2].is_local)
        self.assertEqual(page.messages[-2].content, "offline-ish")
        self.assertTrue(bot.is_local)
        self.assertEqual(len(api.calls), 1)


class RenameTests(SimpleTestCase):
    def test_commit_persists_title(self):
        store = _seeded_store()
        page = ChatPage(store, FakeApi())
        page.mount()
        self.assertTrue(page.begin_rename(3))
        self.assertEqual(page.title_draft, "Middle chat")
        page.update_draft("  Renamed  ")
        self.assertTrue(page.commit_rename())
        self.assertEqual(page.find(3).title, "Renamed")
        self.assertEqual(page.conversations[0].id, 3)
        row = next(r for r in store.tables["conversations"] if r["id"] == 3)
        self.assertEqual(row["title"], "Renamed")
        self.assertIsNone(page.editing_id)

    def test_blank_draft_commits_nothing(self):
        store = _seeded_store()
        page = ChatPage(store, FakeApi())
        page.mount()
        page.begin_rename(3)
        page.update_draft("   ")
        self.assertFalse(page.commit_rename())
        self.assertEqual(page.find(3).title, "Middle chat")
        self.assertNotIn(("update", "conversations"), store.calls)

    def test_unchanged_draft_commits_nothing(self):
        store = _seeded_store()
        page = ChatPage(store, FakeApi())
        page.mount()
        page.begin_rename(3)
        self.assertFalse(page.commit_rename())
        self.assertNotIn(("update", "conversations"), store.calls)

    def test_cancel(self):
        page = ChatPage(_seeded_store(), FakeApi())
        page.mount()
        page.begin_rename(1)
        page.update_draft("nope")
        page.cancel_rename()
        self.assertIsNone(page.editing_id)
        self.assertEqual(page.find(1).title, "Old chat")

    def test_begin_unknown(self):
        page = ChatPage(_seeded_store(), FakeApi())
        page.mount()
        self.assertFalse(page.begin_rename("nope"))

    def test_store_failure_keeps_old_title(self):
        store = _seeded_store()
        store.fail_on.add("update")
        page = ChatPage(store, FakeApi())
        page.mount()
        page.begin_rename(1)
        page.update_draft("New name")
        with self.assertLogs("conversations.page", level="ERROR"):
            self.assertFalse(page.commit_rename())
        self.assertEqual(page.find(1).title, "Old chat")


class DeleteTests(SimpleTestCase):
    def test_deleting_active_selects_most_recent_remaining(self):
        store = _seeded_store()
        page = ChatPage(store, FakeApi())
        page.mount()
        self.assertTrue(page.delete(2))
        self.assertEqual(page.active_id, 3)
        self.assertEqual([c.id for c in page.conversations], [3, 1])
        self.assertEqual(page.messages, [])
        self.assertFalse(any(r["conversation_id"] == 2 for r in store.tables["messages"]))

    def test_deleting_last_clears_selection(self):
        store = InMemoryStore(conversations=[conv_row(1, "Only", "2024-01-01T00:00:00+00:00")])
        page = ChatPage(store, FakeApi())
        page.mount()
        page.delete(1)
        self.assertIsNone(page.active_id)
        self.assertEqual(page.conversations, [])
        self.assertEqual(page.messages, [])

    def test_deleting_inactive_keeps_selection(self):
        page = ChatPage(_seeded_store(), FakeApi())
        page.mount()
        page.delete(1)
        self.assertEqual(page.active_id, 2)
        self.assertEqual([m.content for m in page.messages], ["first", "second"])

    def test_deleting_conversation_being_renamed_cancels_edit(self):
        page = ChatPage(_seeded_store(), FakeApi())
        page.mount()
        page.begin_rename(1)
        page.delete(1)
        self.assertIsNone(page.editing_id)

    def test_store_failure_keeps_local_list(self):
        store = _seeded_store()
        store.fail_on.add("delete")
        page = ChatPage(store, FakeApi())
        page.mount()
        with self.assertLogs("conversations.page", level="ERROR"):
            self.assertFalse(page.delete(2))
        self.assertEqual(len(page.conversations), 3)
        self.assertEqual(page.active_id, 2)


class StateTests(SimpleTestCase):
    def test_round_trip(self):
        store = _seeded_store()
        page = ChatPage(store, FakeApi())
        page.mount()
        page.select(3)
        page.begin_rename(1)
        page.update_draft("draft")

        again = ChatPage.from_state(store, FakeApi(), page.state())
        again.mount()
        self.assertEqual(again.active_id, 3)
        self.assertEqual(str(again.editing_id), "1")
        self.assertEqual(again.title_draft, "draft")

    def test_from_empty_state(self):
        page = ChatPage.from_state(InMemoryStore(), FakeApi(), None)
        self.assertIsNone(page.active_id)
        self.assertEqual(page.title_draft, "")
