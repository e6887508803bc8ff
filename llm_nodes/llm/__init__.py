"""LLM provider layer."""

from .types import LLMResponse, StreamChunk
from .provider import (
    BatchProvider,
    LLMProvider,
    StreamingProvider,
    supports_batch,
    supports_streaming,
)
from .provider_factory import create_provider

__all__ = [
    "LLMResponse",
    "StreamChunk",
    "LLMProvider",
    "StreamingProvider",
    "BatchProvider",
    "supports_batch",
    "supports_streaming",
    "create_provider",
]
