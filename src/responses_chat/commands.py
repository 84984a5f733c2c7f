from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from pathlib import Path

from loguru import logger

from responses_chat.conversation import Conversation
from responses_chat.display import history_lines, summaries_listing, totals_line

HELP_TEXT = """\
Commands:
  /help                      show this help
  /history                   show all messages with their stats
  /reset                     clear messages, summaries and summary totals
  /totals                    show token and cost totals
  /summaries                 list stored summaries
  /policy [key=value ...]    show or change the context policy
  /export <path>             write the conversation state to a JSON file
  /import <path>             merge a conversation state from a JSON file
  exit | quit                leave"""


class CommandRouter:
    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_history: Callable[[], Awaitable[None]],
        on_reset: Callable[[], Awaitable[None]],
        on_totals: Callable[[], Awaitable[None]],
        on_summaries: Callable[[], Awaitable[None]],
        on_policy: Callable[[str], Awaitable[None]],
        on_export: Callable[[str], Awaitable[None]],
        on_import: Callable[[str], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._on_help = on_help
        self._on_history = on_history
        self._on_reset = on_reset
        self._on_totals = on_totals
        self._on_summaries = on_summaries
        self._on_policy = on_policy
        self._on_export = on_export
        self._on_import = on_import
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        command, _, rest = trimmed.partition(" ")
        rest = rest.strip()
        if command == "/help":
            await self._on_help()
        elif command == "/history":
            await self._on_history()
        elif command == "/reset":
            await self._on_reset()
        elif command == "/totals":
            await self._on_totals()
        elif command == "/summaries":
            await self._on_summaries()
        elif command == "/policy":
            await self._on_policy(rest)
        elif command == "/export":
            await self._on_export(rest)
        elif command == "/import":
            await self._on_import(rest)
        else:
            self._on_unknown(trimmed)
        return True


def parse_policy_args(args: str) -> dict:
    """Parse ``key=value`` pairs; values are decoded as JSON when possible."""
    patch: dict = {}
    for token in args.split():
        key, sep, value = token.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got {token!r}")
        try:
            patch[key] = json.loads(value)
        except json.JSONDecodeError:
            patch[key] = value
    return patch


class ChatCommands:
    def __init__(self, conversation: Conversation, *, line_prefix: str = "assistant> ", out: Callable[[str], None] = print):
        self._conversation = conversation
        self._line_prefix = line_prefix
        self._out = out
        self.router = CommandRouter(
            on_help=self._on_help,
            on_history=self._on_history,
            on_reset=self._on_reset,
            on_totals=self._on_totals,
            on_summaries=self._on_summaries,
            on_policy=self._on_policy,
            on_export=self._on_export,
            on_import=self._on_import,
            on_unknown=self._on_unknown,
        )

    def _print(self, text: str) -> None:
        self._out(f"{self._line_prefix}{text}")

    async def _on_help(self) -> None:
        self._out(HELP_TEXT)

    async def _on_history(self) -> None:
        turns = self._conversation.turns
        if not turns:
            self._print("No messages yet.")
            return
        for line in history_lines(turns):
            self._out(line)

    async def _on_reset(self) -> None:
        self._conversation.reset()
        self._print("Conversation cleared.")

    async def _on_totals(self) -> None:
        line = totals_line(self._conversation.totals())
        self._print(line or "No usage recorded yet.")

    async def _on_summaries(self) -> None:
        for entry in summaries_listing(self._conversation.summaries):
            self._print(entry)

    async def _on_policy(self, args: str) -> None:
        if args:
            try:
                patch = parse_policy_args(args)
            except ValueError as ex:
                self._print(str(ex))
                return
            unknown = sorted(set(patch) - set(self._conversation.context_policy.to_dict()))
            if unknown:
                self._print(f"Unknown policy key(s): {', '.join(unknown)}")
                return
            self._conversation.set_context_policy(patch)
        for key, value in self._conversation.context_policy.to_dict().items():
            self._print(f"{key} = {value}")

    async def _on_export(self, args: str) -> None:
        if not args:
            self._print("Usage: /export <path>")
            return
        path = Path(args)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self._conversation.export_state(), f, ensure_ascii=False, indent=2)
        logger.info(f"Exported conversation to {path}")
        self._print(f"Exported to {path}")

    async def _on_import(self, args: str) -> None:
        if not args:
            self._print("Usage: /import <path>")
            return
        path = Path(args)
        if not path.exists():
            self._print(f"File not found: {path}")
            return
        with open(path, encoding="utf-8") as f:
            state = json.load(f)
        self._conversation.import_state(state)
        self._print(f"Imported {len(self._conversation.turns)} message(s) from {path}")

    def _on_unknown(self, command: str) -> None:
        self._print(f"Unknown command: {command}. Type /help for commands.")
