import asyncio
import json
import shutil
import unittest
from pathlib import Path
from uuid import uuid4

from responses_chat.commands import ChatCommands, parse_policy_args
from responses_chat.conversation import Conversation
from responses_chat.models import ConnectionConfig

from tests.fakes import FakeProvider, make_turns

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class ParsePolicyArgsTests(unittest.TestCase):
    def test_values_are_json_decoded(self) -> None:
        self.assertEqual(
            {"chunk_size": 4, "summary_temperature": 0.1, "summary_model": "gpt-4.1-mini"},
            parse_policy_args("chunk_size=4 summary_temperature=0.1 summary_model=gpt-4.1-mini"),
        )

    def test_missing_equals_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            parse_policy_args("chunk_size")


class ChatCommandsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.output: list[str] = []
        self.conversation = Conversation(FakeProvider(), connection=ConnectionConfig(api_key="k"))
        self.commands = ChatCommands(self.conversation, line_prefix="", out=self.output.append)
        self._tmp_dir = PROJECT_ROOT / ".test-artifacts" / f"commands-{uuid4().hex}"
        self._tmp_dir.mkdir(parents=True, exist_ok=True)

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp_dir, ignore_errors=True)

    def _run(self, text: str) -> bool:
        return asyncio.run(self.commands.router.try_handle(text))

    def test_plain_text_is_not_a_command(self) -> None:
        self.assertFalse(self._run("hello there"))
        self.assertEqual([], self.output)

    def test_help(self) -> None:
        self.assertTrue(self._run("/help"))
        self.assertIn("/summaries", self.output[0])

    def test_history_lists_turns_with_stats(self) -> None:
        self._run("/history")
        self.assertEqual(["No messages yet."], self.output)

        self.output.clear()
        self.conversation.import_state({"history": [
            {"role": "user", "text": "Hi", "model": "gpt-4.1", "input_tokens": 10, "output_tokens": 5, "total_tokens": 15},
            {"role": "assistant", "text": "Hello", "model": "gpt-4.1", "input_tokens": 10, "output_tokens": 5, "total_tokens": 15},
        ]})
        self.assertTrue(self._run("/history"))
        self.assertEqual("you> Hi", self.output[0])
        self.assertIn("assistant> Hello", self.output)
        self.assertTrue(any(line.endswith("(input only)") for line in self.output))
        self.assertTrue(any(line.endswith("(output only)") for line in self.output))

    def test_reset(self) -> None:
        self.conversation.import_state({"history": [t.to_dict() for t in make_turns(4)]})
        self._run("/reset")
        self.assertEqual([], self.conversation.turns)

    def test_totals_without_usage(self) -> None:
        self._run("/totals")
        self.assertEqual(["No usage recorded yet."], self.output)

    def test_policy_update_and_listing(self) -> None:
        self._run("/policy chunk_size=4 keep_last_messages=6")
        self.assertEqual(4, self.conversation.context_policy.chunk_size)
        self.assertEqual(6, self.conversation.context_policy.keep_last_messages)
        self.assertIn("chunk_size = 4", self.output)

    def test_policy_rejects_unknown_keys(self) -> None:
        self._run("/policy tail=3")
        self.assertEqual(["Unknown policy key(s): tail"], self.output)

    def test_export_then_import(self) -> None:
        self.conversation.import_state({"history": [t.to_dict() for t in make_turns(4)]})
        path = self._tmp_dir / "chat.json"
        self._run(f"/export {path}")
        exported = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(4, len(exported["history"]))

        self._run("/reset")
        self._run(f"/import {path}")
        self.assertEqual(4, len(self.conversation.turns))

    def test_import_missing_file(self) -> None:
        self._run(f"/import {self._tmp_dir / 'nope.json'}")
        self.assertTrue(self.output[-1].startswith("File not found"))

    def test_unknown_command(self) -> None:
        self.assertTrue(self._run("/frobnicate"))
        self.assertIn("Unknown command: /frobnicate", self.output[0])


if __name__ == "__main__":
    unittest.main()
