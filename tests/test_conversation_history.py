from __future__ import annotations

from pathlib import Path
import sys
import unittest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from routine_builder.client.history import DEFAULT_SYSTEM_PROMPT, ConversationHistory
from routine_builder.client.models import Message


class TestConversationHistory(unittest.TestCase):
    def test_seeded_with_single_system_message(self) -> None:
        history = ConversationHistory()
        self.assertEqual(len(history), 1)
        self.assertEqual(history.system_message, Message(role="system", content=DEFAULT_SYSTEM_PROMPT))

    def test_custom_system_prompt(self) -> None:
        history = ConversationHistory("Only talk about sunscreen.")
        self.assertEqual(history.messages[0].content, "Only talk about sunscreen.")

    def test_appends_keep_order_and_system_first(self) -> None:
        history = ConversationHistory()
        history.append_user("What goes first?")
        history.append_assistant("Cleanser.")
        history.append_user("And then?")
        roles = [m.role for m in history]
        self.assertEqual(roles, ["system", "user", "assistant", "user"])
        self.assertEqual(history.last.content, "And then?")

    def test_rejects_blank_user_turn(self) -> None:
        history = ConversationHistory()
        with self.assertRaises(ValueError):
            history.append_user("   ")
        self.assertEqual(len(history), 1)

    def test_snapshot_with_extra_message_leaves_history_untouched(self) -> None:
        history = ConversationHistory()
        history.append_user("hi")
        snapshot = history.snapshot_for_request("Build me a routine")
        self.assertEqual(len(snapshot), 3)
        self.assertEqual(snapshot[-1], Message(role="user", content="Build me a routine"))
        self.assertEqual(len(history), 2)
        self.assertEqual(history.last.content, "hi")

    def test_snapshot_is_a_copy(self) -> None:
        history = ConversationHistory()
        snapshot = history.snapshot_for_request()
        snapshot.append(Message(role="user", content="sneaky"))
        self.assertEqual(len(history), 1)


if __name__ == "__main__":
    unittest.main()
