from __future__ import annotations

from responses_chat.models import Summary, Turn
from responses_chat.pricing import cost_parts
from responses_chat.totals import CombinedTotals


def format_cost(value: float | None) -> str | None:
    if value is None:
        return None
    return f"{round(value, 4):.4f}"


def turn_stats_lines(turn: Turn) -> list[str]:
    """Per-message stats. A user turn shows the input share of the request cost,
    an assistant turn the output share, so the two never add up twice."""
    lines: list[str] = []
    usage = turn.usage
    if usage is None:
        if turn.model:
            lines.append(f"model: {turn.model}")
        return lines

    lines.append(
        f"request tokens: in {usage.input_tokens}, out {usage.output_tokens}, total {usage.total_tokens}"
    )
    if turn.model:
        lines.append(f"model: {turn.model}")

    if turn.role == "user":
        parts = cost_parts(turn.model, usage.input_tokens, 0)
        if parts is not None:
            lines.append(f"this message cost: {format_cost(parts.input_cost)} (input only)")
    else:
        parts = cost_parts(turn.model, 0, usage.output_tokens)
        if parts is not None:
            lines.append(f"this message cost: {format_cost(parts.output_cost)} (output only)")

    if turn.duration_seconds is not None:
        lines.append(f"duration: {turn.duration_seconds}s")
    return lines


def totals_line(totals: CombinedTotals) -> str | None:
    history = totals.history
    summary = totals.summary
    if history.total_tokens <= 0 and summary.total_tokens <= 0 and totals.total_cost <= 0:
        return None

    line = (
        f"History - tokens: {history.total_tokens} "
        f"(in {history.input_tokens}, out {history.output_tokens}) | "
        f"cost: {format_cost(history.cost)}"
    )
    if summary.requests > 0 or summary.total_tokens > 0 or summary.cost > 0:
        line += (
            f" | Summary - tokens: {summary.total_tokens} ({summary.requests} req) | "
            f"cost: {format_cost(summary.cost)} | Total: {format_cost(totals.total_cost)}"
        )
    return line


def summaries_listing(summaries: list[Summary]) -> list[str]:
    if not summaries:
        return ["No summaries yet."]
    return [f"#{s.from_index}..#{s.to_index} ({s.at}):\n{s.text}" for s in summaries]


def history_lines(turns: list[Turn]) -> list[str]:
    """Render turns the way the chat loop prints them, each followed by its stats."""
    lines: list[str] = []
    for turn in turns:
        prompt = "you> " if turn.role == "user" else "assistant> "
        lines.append(f"{prompt}{turn.text}")
        lines.extend(f"  {line}" for line in turn_stats_lines(turn))
    return lines
