from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

ROLES = ("user", "assistant")


def utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds")


def new_summary_id() -> str:
    return str(uuid4())


def finite_number(value: object) -> int | float | None:
    """Return ``value`` if it is a real, finite number, otherwise ``None``.

    ``bool`` is rejected even though it subclasses ``int``.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class Usage:
    input_tokens: int
    output_tokens: int
    total_tokens: int


@dataclass
class Turn:
    role: str
    text: str
    at: str = field(default_factory=utc_now)
    model: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None
    cost: float | None = None
    duration_seconds: float | None = None

    @property
    def usage(self) -> Usage | None:
        if self.input_tokens is None or self.output_tokens is None or self.total_tokens is None:
            return None
        return Usage(self.input_tokens, self.output_tokens, self.total_tokens)

    def attach_request_stats(
        self,
        *,
        model: str,
        usage: Usage,
        cost: float | None,
        duration_seconds: float | None,
    ) -> None:
        self.model = model
        self.input_tokens = usage.input_tokens
        self.output_tokens = usage.output_tokens
        self.total_tokens = usage.total_tokens
        self.cost = cost
        self.duration_seconds = duration_seconds

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, raw: object) -> Turn | None:
        """Build a turn from persisted data, or ``None`` if the entry is malformed."""
        if not isinstance(raw, dict):
            return None
        role = raw.get("role")
        text = raw.get("text")
        if role not in ROLES or not isinstance(text, str):
            return None
        if role == "user" and not text.strip():
            return None

        input_tokens = finite_number(raw.get("input_tokens"))
        output_tokens = finite_number(raw.get("output_tokens"))
        total_tokens = finite_number(raw.get("total_tokens"))
        # Usage is all-or-nothing.
        if input_tokens is None or output_tokens is None or total_tokens is None:
            input_tokens = output_tokens = total_tokens = None
        else:
            input_tokens, output_tokens, total_tokens = int(input_tokens), int(output_tokens), int(total_tokens)

        at = raw.get("at")
        model = raw.get("model")
        return cls(
            role=role,
            text=text,
            at=at if isinstance(at, str) else utc_now(),
            model=model if isinstance(model, str) else None,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
            cost=finite_number(raw.get("cost")),
            duration_seconds=finite_number(raw.get("duration_seconds")),
        )


@dataclass(frozen=True)
class Summary:
    from_index: int
    to_index: int
    text: str
    id: str = field(default_factory=new_summary_id)
    at: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: object) -> Summary | None:
        if not isinstance(raw, dict) or not isinstance(raw.get("text"), str):
            return None
        from_index = finite_number(raw.get("from_index"))
        to_index = finite_number(raw.get("to_index"))
        summary_id = raw.get("id")
        at = raw.get("at")
        return cls(
            from_index=int(from_index) if from_index is not None else 0,
            to_index=int(to_index) if to_index is not None else 0,
            text=raw["text"],
            id=summary_id if isinstance(summary_id, str) else new_summary_id(),
            at=at if isinstance(at, str) else utc_now(),
        )


def covered_until(summaries: list[Summary]) -> int:
    """One past the highest summarized turn index, or 0 when nothing is summarized."""
    max_to = -1
    for summary in summaries:
        max_to = max(max_to, summary.to_index)
    return max_to + 1


@dataclass
class SummaryTotals:
    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0

    def record(self, usage: Usage, cost: float | None) -> None:
        self.requests += 1
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.total_tokens += usage.total_tokens
        if cost is not None:
            self.cost += cost

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict) -> SummaryTotals:
        values: dict[str, Any] = {}
        for f in fields(cls):
            number = finite_number(raw.get(f.name))
            values[f.name] = number if number is not None else f.default
        return cls(**values)


@dataclass
class ContextPolicy:
    keep_last_messages: int = 12
    chunk_size: int = 10
    max_summary_chars: int = 1400
    summary_model: str = "gpt-3.5-turbo"
    summary_temperature: float = 0.2

    @property
    def tail_size(self) -> int:
        return max(0, int(self.keep_last_messages or 0))

    @property
    def effective_chunk_size(self) -> int:
        return max(2, int(self.chunk_size or 10))

    def merged(self, patch: dict | None) -> ContextPolicy:
        """Return a copy with recognized keys from ``patch`` applied; unknown keys are ignored."""
        values = asdict(self)
        for f in fields(self):
            if not patch or f.name not in patch:
                continue
            value = patch[f.name]
            if f.name == "summary_model":
                if isinstance(value, str) and value.strip():
                    values[f.name] = value.strip()
                continue
            number = finite_number(value)
            if number is None:
                continue
            values[f.name] = float(number) if f.name == "summary_temperature" else int(number)
        return ContextPolicy(**values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ConnectionConfig:
    base_url: str = "https://api.proxyapi.ru"
    api_key: str = ""
    model: str = "gpt-4.1"
    temperature: float = 0.7

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_url": self.base_url,
            "api_key": None,
            "model": self.model,
            "temperature": self.temperature,
        }
