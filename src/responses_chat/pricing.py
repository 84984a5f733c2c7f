from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ModelRate:
    input: float
    output: float


@dataclass(frozen=True)
class CostParts:
    input_cost: float
    output_cost: float
    total: float
    key: str


# Cost per 1M tokens.
RATES: dict[str, ModelRate] = {
    "gpt-5.2": ModelRate(input=531.0, output=4245.0),
    "gpt-4.1": ModelRate(input=516.0, output=2062.0),
    "gpt-3.5-turbo": ModelRate(input=129.0, output=387.0),
}

# Most specific prefix first.
_PREFIX_ORDER = ("gpt-5.2", "gpt-4.1", "gpt-3.5-turbo")


def rate_key(model: str | None) -> str | None:
    if not model:
        return None
    for prefix in _PREFIX_ORDER:
        if model.startswith(prefix):
            return prefix
    return None


def cost_parts(model: str | None, input_tokens: int, output_tokens: int) -> CostParts | None:
    key = rate_key(model)
    if key is None or key not in RATES:
        return None
    rate = RATES[key]
    input_cost = (input_tokens or 0) / 1_000_000 * rate.input
    output_cost = (output_tokens or 0) / 1_000_000 * rate.output
    return CostParts(
        input_cost=input_cost,
        output_cost=output_cost,
        total=input_cost + output_cost,
        key=key,
    )


def cost_of(model: str | None, input_tokens: int, output_tokens: int) -> float | None:
    """Total cost of one request, or ``None`` when the model has no known rate."""
    parts = cost_parts(model, input_tokens, output_tokens)
    return parts.total if parts is not None else None
