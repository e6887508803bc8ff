"""
Token usage models.

WHAT: Immutable usage values, ledger entries and the per-node usage ledger
WHY: Track resource consumption per call and aggregate it across pipelines
HOW: Frozen dataclasses plus an append-only ledger object owned by one node
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported for one call. None means "not applicable", not zero."""
    input_tokens: int
    output_tokens: int
    thinking_tokens: int | None = None
    search_count: int | None = None
    fetch_count: int | None = None

    def __post_init__(self):
        for name in ("input_tokens", "output_tokens", "thinking_tokens", "search_count", "fetch_count"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

    @classmethod
    def zero(cls) -> "TokenUsage":
        return cls(input_tokens=0, output_tokens=0)


@dataclass(frozen=True)
class TotalTokenUsage:
    """Aggregated input/output usage with the derived total."""
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: "TotalTokenUsage") -> "TotalTokenUsage":
        if not isinstance(other, TotalTokenUsage):
            return NotImplemented
        return TotalTokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )

    def to_dict(self) -> dict:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(frozen=True)
class UsageRecord:
    """One ledger entry: one logical call."""
    timestamp: datetime
    provider: str
    model: str
    token_usage: TokenUsage


class UsageLedger:
    """
    Append-only log of usage records.

    Owned by exactly one node. Readers get copies; the only mutations are
    record() by the owner and clear().
    """

    def __init__(self):
        self._records: list[UsageRecord] = []

    def record(self, provider: str, model: str, token_usage: TokenUsage) -> UsageRecord:
        entry = UsageRecord(
            timestamp=datetime.now(timezone.utc),
            provider=provider,
            model=model,
            token_usage=token_usage,
        )
        self._records.append(entry)
        return entry

    def records(self) -> list[UsageRecord]:
        return list(self._records)

    def total(self) -> TotalTokenUsage:
        return sum_usage(self._records)

    def clear(self) -> None:
        self._records = []

    def __len__(self) -> int:
        return len(self._records)


def sum_usage(records: list[UsageRecord]) -> TotalTokenUsage:
    """Elementwise sum of input/output tokens over records."""
    input_tokens = 0
    output_tokens = 0
    for entry in records:
        input_tokens += entry.token_usage.input_tokens
        output_tokens += entry.token_usage.output_tokens
    return TotalTokenUsage(input_tokens=input_tokens, output_tokens=output_tokens)


def estimate_thinking_tokens(output_tokens: int, content: str) -> int:
    """
    Best-effort thinking-token estimate for vendors that fold reasoning into output tokens.

    Output tokens minus roughly one token per four characters of visible content,
    clamped at zero. Not an exact accounting.
    """
    content_estimate = math.ceil(len(content) / 4)
    return max(0, output_tokens - content_estimate)
