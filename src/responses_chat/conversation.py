from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from responses_chat.context_builder import build_context_input
from responses_chat.errors import EmptyAnswerError, ValidationError
from responses_chat.models import (
    ConnectionConfig,
    ContextPolicy,
    Summary,
    SummaryTotals,
    Turn,
    Usage,
    finite_number,
    utc_now,
)
from responses_chat.pricing import cost_of
from responses_chat.responses import parse_response
from responses_chat.responses_client import ResponsesProvider
from responses_chat.summarization import SummarizationPipeline
from responses_chat.totals import CombinedTotals, compute_history_totals, merge_totals

STATE_VERSION = 4

DEFAULT_SYSTEM_PREAMBLE = "You are a helpful assistant. Answer briefly and to the point unless asked otherwise."

StateListener = Callable[[dict], None]


@dataclass(frozen=True)
class SendResult:
    answer: str
    model: str
    usage: Usage | None
    duration_seconds: float | None
    cost: float | None


class Conversation:
    """A single conversation: turns, rolling summaries, config and accounting.

    Every mutation notifies subscribers once with the exported state.
    """

    def __init__(
        self,
        provider: ResponsesProvider,
        *,
        connection: ConnectionConfig | None = None,
        context_policy: ContextPolicy | None = None,
        system_preamble: str = DEFAULT_SYSTEM_PREAMBLE,
    ):
        self._provider = provider
        self._connection = connection or ConnectionConfig()
        self._policy = context_policy or ContextPolicy()
        self._system_preamble = system_preamble
        self._turns: list[Turn] = []
        self._summaries: list[Summary] = []
        self._summary_totals = SummaryTotals()
        self._listeners: list[StateListener] = []
        self._generation = 0
        self._run_lock = asyncio.Lock()

        self._pipeline = SummarizationPipeline(
            provider,
            get_turns=lambda: self._turns,
            get_summaries=lambda: self._summaries,
            get_policy=lambda: self._policy,
            get_connection=lambda: self._connection,
            get_generation=lambda: self._generation,
            on_summary_added=self._add_summary,
            on_usage_only=self._record_summary_usage,
        )

    # -- read-only views --

    @property
    def turns(self) -> list[Turn]:
        return list(self._turns)

    @property
    def summaries(self) -> list[Summary]:
        return list(self._summaries)

    @property
    def summary_totals(self) -> SummaryTotals:
        return self._summary_totals

    @property
    def context_policy(self) -> ContextPolicy:
        return self._policy

    @property
    def connection(self) -> ConnectionConfig:
        return self._connection

    @property
    def system_preamble(self) -> str:
        return self._system_preamble

    def totals(self) -> CombinedTotals:
        return merge_totals(compute_history_totals(self._turns), self._summary_totals)

    # -- observers --

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit_state_changed(self) -> None:
        if not self._listeners:
            return
        snapshot = self.export_state()
        for listener in list(self._listeners):
            listener(snapshot)

    # -- configuration --

    def set_config(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
    ) -> None:
        if base_url is not None:
            self._connection.base_url = base_url
        if api_key is not None:
            self._connection.api_key = api_key
        if model is not None:
            self._connection.model = model
        if temperature is not None:
            self._connection.temperature = float(temperature)
        self._emit_state_changed()

    def set_context_policy(self, patch: dict | None) -> None:
        self._policy = self._policy.merged(patch)
        self._emit_state_changed()

    def set_system_preamble(self, text: str) -> None:
        self._system_preamble = text
        self._emit_state_changed()

    def reset(self) -> None:
        self._turns = []
        self._summaries = []
        self._summary_totals = SummaryTotals()
        self._generation += 1
        logger.info("Conversation reset")
        self._emit_state_changed()

    # -- persistence --

    def export_state(self) -> dict:
        return {
            "version": STATE_VERSION,
            "saved_at": utc_now(),
            "config": self._connection.to_dict(),
            "system_preamble": self._system_preamble,
            "context_policy": self._policy.to_dict(),
            "summaries": [s.to_dict() for s in self._summaries],
            "summary_totals": self._summary_totals.to_dict(),
            "history": [t.to_dict() for t in self._turns],
        }

    def import_state(self, state: object) -> None:
        """Merge a previously exported state into this conversation.

        Missing or malformed fields keep their current values. Anything that
        is not a dict is ignored. The API key is never read from ``state``.
        """
        if not isinstance(state, dict):
            logger.debug(f"Ignoring state import of type {type(state).__name__}")
            return

        if isinstance(state.get("history"), list) or isinstance(state.get("summaries"), list):
            self._generation += 1

        version = state.get("version")
        if version != STATE_VERSION:
            logger.info(f"Upgrading persisted state from version {version!r} to {STATE_VERSION}")

        if isinstance(state.get("system_preamble"), str):
            self._system_preamble = state["system_preamble"]

        config = state.get("config")
        if isinstance(config, dict):
            if isinstance(config.get("base_url"), str):
                self._connection.base_url = config["base_url"]
            if isinstance(config.get("model"), str):
                self._connection.model = config["model"]
            temperature = finite_number(config.get("temperature"))
            if temperature is not None:
                self._connection.temperature = float(temperature)

        if isinstance(state.get("context_policy"), dict):
            self._policy = self._policy.merged(state["context_policy"])

        if isinstance(state.get("summaries"), list):
            self._summaries = _contiguous_summaries(state["summaries"])

        if isinstance(state.get("summary_totals"), dict):
            self._summary_totals = SummaryTotals.from_dict(state["summary_totals"])

        if isinstance(state.get("history"), list):
            raw_turns = state["history"]
            turns = [t for t in (Turn.from_dict(raw) for raw in raw_turns) if t is not None]
            dropped = len(raw_turns) - len(turns)
            if dropped:
                logger.warning(f"Dropped {dropped} malformed message(s) from imported history")
            self._turns = turns

        logger.info(f"Imported {len(self._turns)} message(s) and {len(self._summaries)} summary(ies)")
        self._emit_state_changed()

    # -- summaries --

    def _add_summary(self, summary: Summary, usage: Usage | None, cost: float | None) -> None:
        if usage is not None:
            self._summary_totals.record(usage, cost)
        self._summaries.append(summary)
        logger.info(f"Stored summary for messages #{summary.from_index}..#{summary.to_index}")
        self._emit_state_changed()

    def _record_summary_usage(self, usage: Usage, cost: float | None) -> None:
        self._summary_totals.record(usage, cost)
        self._emit_state_changed()

    async def ensure_summaries(self) -> int:
        return await self._pipeline.ensure_up_to_date()

    async def build_input(self, user_text: str) -> str:
        await self.ensure_summaries()
        return build_context_input(
            self._system_preamble,
            self._turns,
            self._summaries,
            self._policy.tail_size,
            user_text,
        )

    # -- chat --

    async def send(self, user_text: str) -> SendResult:
        if not self._connection.api_key:
            raise ValidationError("API key is empty.")
        if not user_text or not user_text.strip():
            raise ValidationError("Message is empty.")

        async with self._run_lock:
            return await self._send_inner(user_text)

    async def _send_inner(self, user_text: str) -> SendResult:
        input_text = await self.build_input(user_text)

        user_turn = Turn(role="user", text=user_text)
        self._turns.append(user_turn)
        self._emit_state_changed()

        connection = self._connection
        payload = await self._provider.create_response(
            base_url=connection.base_url,
            api_key=connection.api_key,
            model=connection.model,
            input_text=input_text,
            temperature=connection.temperature,
        )

        parsed = parse_response(payload, connection.model)
        if not parsed.answer:
            raise EmptyAnswerError("Empty reply: no output_text found.")

        usage = parsed.usage
        cost = cost_of(parsed.model, usage.input_tokens, usage.output_tokens) if usage else None

        assistant_turn = Turn(role="assistant", text=parsed.answer, model=parsed.model)
        if usage is not None:
            user_turn.attach_request_stats(
                model=parsed.model, usage=usage, cost=cost, duration_seconds=parsed.duration_seconds
            )
            assistant_turn.attach_request_stats(
                model=parsed.model, usage=usage, cost=cost, duration_seconds=parsed.duration_seconds
            )
        else:
            assistant_turn.duration_seconds = parsed.duration_seconds

        self._turns.append(assistant_turn)
        self._emit_state_changed()
        logger.debug(
            f"Turn complete: model={parsed.model}, usage={usage}, cost={cost}, "
            f"duration={parsed.duration_seconds}"
        )

        # The new exchange may have pushed older turns out of the tail.
        await self.ensure_summaries()

        return SendResult(
            answer=parsed.answer,
            model=parsed.model,
            usage=usage,
            duration_seconds=parsed.duration_seconds,
            cost=cost,
        )


def _contiguous_summaries(raw_summaries: list) -> list[Summary]:
    """Keep only well-formed summaries that tile a prefix of the history without gaps."""
    parsed = [s for s in (Summary.from_dict(raw) for raw in raw_summaries) if s is not None]
    parsed.sort(key=lambda s: s.from_index)

    kept: list[Summary] = []
    expected = 0
    for summary in parsed:
        if summary.from_index != expected or summary.to_index < summary.from_index:
            continue
        kept.append(summary)
        expected = summary.to_index + 1

    if len(kept) != len(raw_summaries):
        logger.warning(f"Dropped {len(raw_summaries) - len(kept)} summary(ies) that break contiguous coverage")
    return kept
