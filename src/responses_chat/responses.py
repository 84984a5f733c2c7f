"""Parsing of raw payloads returned by the responses endpoint."""

from __future__ import annotations

from dataclasses import dataclass

from responses_chat.models import Usage, finite_number


@dataclass(frozen=True)
class ParsedResponse:
    answer: str | None
    model: str
    usage: Usage | None
    duration_seconds: float | None


def normalize_usage(payload: object) -> Usage | None:
    """Return the reported usage triple, or ``None`` if any field is missing.

    Zero counts are valid; ``None`` means the endpoint reported nothing usable.
    """
    if not isinstance(payload, dict):
        return None
    usage = payload.get("usage")
    if not isinstance(usage, dict):
        return None

    input_tokens = finite_number(usage.get("input_tokens"))
    output_tokens = finite_number(usage.get("output_tokens"))
    total_tokens = finite_number(usage.get("total_tokens"))
    if input_tokens is None or output_tokens is None or total_tokens is None:
        return None
    return Usage(
        input_tokens=int(input_tokens),
        output_tokens=int(output_tokens),
        total_tokens=int(total_tokens),
    )


def _list_or_empty(value: object) -> list:
    return value if isinstance(value, list) else []


def _first_assistant_message(output: list) -> dict | None:
    for item in output:
        if not isinstance(item, dict):
            continue
        match item.get("type"), item.get("role"):
            case "message", "assistant":
                return item
            case _:
                continue
    return None


def _first_output_text(content: list) -> str | None:
    for entry in content:
        if not isinstance(entry, dict):
            continue
        match entry.get("type"), entry.get("text"):
            case "output_text", str(text):
                return text
            case _:
                continue
    return None


def extract_answer_text(payload: object) -> str | None:
    """Find the first assistant ``output_text`` in the payload, stripped.

    An empty string after stripping counts as absent.
    """
    if not isinstance(payload, dict):
        return None
    message = _first_assistant_message(_list_or_empty(payload.get("output")))
    if message is None:
        return None
    text = _first_output_text(_list_or_empty(message.get("content")))
    if text is None:
        return None
    return text.strip() or None


def response_duration(payload: object) -> float | None:
    if not isinstance(payload, dict):
        return None
    created_at = finite_number(payload.get("created_at"))
    completed_at = finite_number(payload.get("completed_at"))
    if created_at is None or completed_at is None:
        return None
    return completed_at - created_at


def parse_response(payload: object, fallback_model: str) -> ParsedResponse:
    model = payload.get("model") if isinstance(payload, dict) else None
    return ParsedResponse(
        answer=extract_answer_text(payload),
        model=model if isinstance(model, str) and model else fallback_model,
        usage=normalize_usage(payload),
        duration_seconds=response_duration(payload),
    )
