from __future__ import annotations

from responses_chat.models import Summary, Turn

SUMMARY_HEADER = "CONTEXT SUMMARY (older messages):"
RECENT_HEADER = "RECENT MESSAGES:"


def tail_turns(turns: list[Turn], keep_last: int) -> list[Turn]:
    if keep_last <= 0:
        return []
    return turns[max(0, len(turns) - keep_last):]


def build_context_input(
    system_preamble: str,
    turns: list[Turn],
    summaries: list[Summary],
    keep_last: int,
    user_text: str,
) -> str:
    """Linearize the conversation into the literal ``input`` string of a request.

    Turns older than the tail are represented only through ``summaries``.
    """
    parts = [f"SYSTEM: {system_preamble}"]

    if summaries:
        parts.append(SUMMARY_HEADER)
        for summary in summaries:
            parts.append(f"- {summary.text}")

    tail = tail_turns(turns, keep_last)
    if tail:
        parts.append(RECENT_HEADER)
        for turn in tail:
            parts.append(f"{turn.role.upper()}: {turn.text}")

    parts.append(f"USER: {user_text}")
    parts.append("ASSISTANT:")
    return "\n".join(parts)
