"""
LLM provider protocol definition.

WHAT: Abstract interface for vendor adapters
WHY: Decouple nodes from specific vendor implementations
HOW: Protocols for the required surface plus optional streaming and batch capabilities
"""

from typing import AsyncIterator, Protocol, runtime_checkable

from .types import LLMResponse, StreamChunk
from ..models.batch import BatchMetadata, ProviderBatchRequest, ProviderBatchResponse
from ..models.config import LLMConfig


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol every adapter implements."""

    name: str

    async def invoke(self, prompt: str, config: LLMConfig) -> LLMResponse:
        """Generate a complete response (non-streaming)."""
        ...

    def supports_batch(self) -> bool:
        """Whether create_batch/retrieve_batch are available."""
        ...

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""
        ...


@runtime_checkable
class StreamingProvider(LLMProvider, Protocol):
    """Adapter that can stream. Adapters without streaming omit invoke_stream entirely."""

    def invoke_stream(self, prompt: str, config: LLMConfig) -> AsyncIterator[StreamChunk]:
        """Yield text chunks followed by exactly one terminal usage chunk."""
        ...


@runtime_checkable
class BatchProvider(LLMProvider, Protocol):
    """Adapter backed by an asynchronous batch-job API."""

    async def create_batch(
        self,
        requests: list[ProviderBatchRequest],
        config: LLMConfig
    ) -> BatchMetadata:
        """Submit all requests as one job."""
        ...

    async def retrieve_batch(
        self,
        metadata: BatchMetadata,
        config: LLMConfig
    ) -> ProviderBatchResponse:
        """Fetch current job state and, once completed, per-item results."""
        ...


def supports_streaming(provider: object) -> bool:
    return callable(getattr(provider, "invoke_stream", None))


def supports_batch(provider: object) -> bool:
    check = getattr(provider, "supports_batch", None)
    return bool(check()) if callable(check) else False
