from __future__ import annotations

from dataclasses import dataclass

from responses_chat.models import SummaryTotals, Turn


@dataclass(frozen=True)
class HistoryTotals:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0


@dataclass(frozen=True)
class CombinedTotals:
    history: HistoryTotals
    summary: SummaryTotals
    total_tokens: int
    total_cost: float


def compute_history_totals(turns: list[Turn]) -> HistoryTotals:
    # Both turns of an exchange carry the same usage; only the user turn is counted.
    input_tokens = 0
    output_tokens = 0
    total_tokens = 0
    cost = 0.0
    for turn in turns:
        if turn.role != "user":
            continue
        if turn.input_tokens is not None:
            input_tokens += turn.input_tokens
        if turn.output_tokens is not None:
            output_tokens += turn.output_tokens
        if turn.total_tokens is not None:
            total_tokens += turn.total_tokens
        if turn.cost is not None:
            cost += turn.cost
    return HistoryTotals(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
        cost=cost,
    )


def merge_totals(
    history: HistoryTotals | None,
    summary: SummaryTotals | None,
) -> CombinedTotals:
    history = history or HistoryTotals()
    summary = summary or SummaryTotals()
    return CombinedTotals(
        history=history,
        summary=summary,
        total_tokens=history.total_tokens + summary.total_tokens,
        total_cost=history.cost + summary.cost,
    )
