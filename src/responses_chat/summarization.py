from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from responses_chat.errors import ChatError, SummarizationError
from responses_chat.models import ConnectionConfig, ContextPolicy, Summary, Turn, Usage, covered_until
from responses_chat.pricing import cost_of
from responses_chat.responses import extract_answer_text, normalize_usage
from responses_chat.responses_client import ResponsesProvider

MIN_SUMMARY_CHARS = 200

_SUMMARIZE_INSTRUCTION = """\
You are a summarizer. Compress the dialogue into a structured summary.
Rules:
- 6-12 bullet points, keep them short.
- Preserve: the user's goals, important facts, decisions and conclusions, constraints, agreements.
- Do not add invented details.
Return only the summary, with no preamble.
"""


@dataclass(frozen=True)
class SummaryRange:
    from_index: int
    to_index: int


def next_summary_range(total_turns: int, summaries: list[Summary], policy: ContextPolicy) -> SummaryRange | None:
    """Return the next chunk of turns due for summarization, if any.

    Turns inside the protected tail are never eligible.
    """
    tail = policy.tail_size
    chunk = policy.effective_chunk_size
    if total_turns <= tail:
        return None

    boundary = max(0, total_turns - tail)
    start = covered_until(summaries)
    if start + chunk <= boundary:
        return SummaryRange(from_index=start, to_index=start + chunk - 1)
    return None


def compact_text(text: str, max_chars: int) -> str:
    limit = max(MIN_SUMMARY_CHARS, int(max_chars or 0) or 1400)
    stripped = (text or "").strip()
    if len(stripped) <= limit:
        return stripped
    head = stripped[: int(limit * 0.75)]
    tail = stripped[-int(limit * 0.2):]
    return f"{head}\n…\n{tail}"[:limit]


def chunk_to_transcript(turns: list[Turn]) -> str:
    lines = []
    for turn in turns:
        role = "User" if turn.role == "user" else "Assistant"
        text = (turn.text or "").strip()
        if not text:
            continue
        lines.append(f"{role}: {text}")
    return "\n".join(lines)


def build_summary_input(turns: list[Turn], summary_range: SummaryRange) -> str:
    transcript = chunk_to_transcript(turns)
    return (
        f"SYSTEM: {_SUMMARIZE_INSTRUCTION}\n"
        f"CONTEXT: Messages #{summary_range.from_index}..#{summary_range.to_index}\n"
        f"TRANSCRIPT:\n{transcript}\n"
        "SUMMARY:\n"
    )


class SummarizationPipeline:
    """Rolls older turns into summaries, one chunk at a time.

    All passes share one lock, so at most one summarization request is in
    flight per conversation and chunks are produced in index order.

    ``get_generation`` must change whenever history is replaced wholesale
    (reset or import). A reply that arrives for an older generation is
    dropped together with its usage.
    A reply for the current generation whose range is no longer due still
    has its usage recorded through ``on_usage_only``.
    """

    def __init__(
        self,
        provider: ResponsesProvider,
        *,
        get_turns: Callable[[], list[Turn]],
        get_summaries: Callable[[], list[Summary]],
        get_policy: Callable[[], ContextPolicy],
        get_connection: Callable[[], ConnectionConfig],
        get_generation: Callable[[], int],
        on_summary_added: Callable[[Summary, Usage | None, float | None], None],
        on_usage_only: Callable[[Usage, float | None], None],
    ):
        self._provider = provider
        self._get_turns = get_turns
        self._get_summaries = get_summaries
        self._get_policy = get_policy
        self._get_connection = get_connection
        self._get_generation = get_generation
        self._on_summary_added = on_summary_added
        self._on_usage_only = on_usage_only
        self._lock = asyncio.Lock()

    async def ensure_up_to_date(self) -> int:
        """Produce every summary that is currently due. Returns how many were added."""
        async with self._lock:
            produced = 0
            while True:
                turns = self._get_turns()
                summary_range = next_summary_range(len(turns), self._get_summaries(), self._get_policy())
                if summary_range is None:
                    break

                generation = self._get_generation()
                chunk = turns[summary_range.from_index:summary_range.to_index + 1]
                summary, usage, cost = await self._summarize_chunk(chunk, summary_range)

                if self._get_generation() != generation:
                    logger.info(
                        f"Discarding summary for #{summary_range.from_index}..#{summary_range.to_index}: "
                        f"history was replaced during summarization (usage={usage}, cost={cost})"
                    )
                    continue

                current = next_summary_range(len(self._get_turns()), self._get_summaries(), self._get_policy())
                if current != summary_range:
                    logger.info(
                        f"Discarding summary for #{summary_range.from_index}..#{summary_range.to_index}: "
                        "range is no longer due"
                    )
                    if usage is not None:
                        self._on_usage_only(usage, cost)
                    continue

                self._on_summary_added(summary, usage, cost)
                produced += 1
            return produced

    async def _summarize_chunk(
        self,
        chunk: list[Turn],
        summary_range: SummaryRange,
    ) -> tuple[Summary, Usage | None, float | None]:
        connection = self._get_connection()
        policy = self._get_policy()
        if not connection.api_key:
            raise SummarizationError(summary_range.from_index, summary_range.to_index, "API key is empty")

        model = policy.summary_model or "gpt-3.5-turbo"
        logger.info(
            f"Summarizing messages #{summary_range.from_index}..#{summary_range.to_index} with {model}"
        )
        try:
            payload = await self._provider.create_response(
                base_url=connection.base_url,
                api_key=connection.api_key,
                model=model,
                input_text=build_summary_input(chunk, summary_range),
                temperature=float(policy.summary_temperature),
            )
        except ChatError as ex:
            raise SummarizationError(summary_range.from_index, summary_range.to_index, str(ex)) from ex

        text = extract_answer_text(payload)
        if not text:
            raise SummarizationError(summary_range.from_index, summary_range.to_index, "empty output_text")

        usage = normalize_usage(payload)
        model_name = payload.get("model") if isinstance(payload.get("model"), str) else model
        cost = cost_of(model_name, usage.input_tokens, usage.output_tokens) if usage else None
        if usage:
            logger.debug(
                f"Summary usage: input_tokens={usage.input_tokens}, output_tokens={usage.output_tokens}, "
                f"cost={cost}"
            )

        summary = Summary(
            from_index=summary_range.from_index,
            to_index=summary_range.to_index,
            text=compact_text(text, policy.max_summary_chars),
        )
        return summary, usage, cost
