"""
LLM provider result types.

WHAT: Standard result and streaming types shared by every adapter
WHY: Ensure consistent contracts across all providers
HOW: Dataclasses for single-shot responses and stream chunks
"""

from dataclasses import dataclass
from typing import Any

from ..models.usage import TokenUsage


@dataclass(frozen=True)
class StreamChunk:
    """Incremental unit of a streaming response. Only the terminal chunk carries usage."""
    text: str = ""
    usage: TokenUsage | None = None

    @property
    def is_terminal(self) -> bool:
        return self.usage is not None


@dataclass(frozen=True)
class LLMResponse:
    """Complete single-shot generation result. raw is the vendor payload, opaque to the core."""
    content: str
    usage: TokenUsage
    thinking: str | None = None
    raw: Any = None
