"""
Streaming utilities for LLM responses.

WHAT: SSE decoding, usage accumulation and the terminal-chunk guarantee
WHY: Every vendor streams differently; consumers see text chunks then one usage chunk
HOW: Async generators over httpx line streams plus a small usage accumulator
"""

import json
from typing import Any, AsyncIterator

import httpx

from .types import StreamChunk
from ..models.usage import TokenUsage
from ..utils.exceptions import ProviderResponseError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SSE_DONE = "[DONE]"


async def iter_sse_json(
    response: httpx.Response,
    *,
    provider: str
) -> AsyncIterator[dict[str, Any]]:
    """
    Decode a server-sent-event body into JSON payloads.

    Each "data:" line is one payload; "event:", "id:" and comment lines are
    skipped since every supported vendor repeats the event type inside the
    payload. A "[DONE]" payload ends the stream.

    Args:
        response: Open streaming response
        provider: Provider name for error reporting

    Yields:
        Decoded JSON objects

    Raises:
        ProviderResponseError: On a data line that is not valid JSON
    """
    async for line in response.aiter_lines():
        line = line.strip()
        if not line or not line.startswith("data:"):
            continue

        data_str = line[5:].strip()
        if data_str == SSE_DONE:
            break

        try:
            yield json.loads(data_str)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid SSE chunk from {provider}: {line[:100]}")
            raise ProviderResponseError(f"Invalid streaming chunk: {e}", provider=provider) from e


class StreamUsageAccumulator:
    """
    Collects token counts while a stream is consumed.

    Every supported vendor reports cumulative counts, so setters replace the
    previous snapshot. Counts never reported stay zero.
    """

    def __init__(self):
        self.input_tokens = 0
        self.output_tokens = 0
        self.thinking_tokens: int | None = None
        self.search_count: int | None = None
        self.fetch_count: int | None = None

    def set_input(self, value: int | None) -> None:
        if value is not None:
            self.input_tokens = value

    def set_output(self, value: int | None) -> None:
        if value is not None:
            self.output_tokens = value

    def usage(self) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            thinking_tokens=self.thinking_tokens,
            search_count=self.search_count,
            fetch_count=self.fetch_count,
        )

    def terminal_chunk(self) -> StreamChunk:
        return StreamChunk(text="", usage=self.usage())


async def ensure_terminal_chunk(
    chunks: AsyncIterator[StreamChunk],
    *,
    provider: str
) -> AsyncIterator[StreamChunk]:
    """
    Enforce the stream contract on an adapter's output.

    Text chunks pass through without usage, empty non-terminal chunks are
    dropped, anything after the first terminal chunk is discarded, and a
    zero-usage terminal chunk is appended if the adapter never produced one.
    """
    try:
        async for chunk in chunks:
            if chunk.usage is not None:
                if chunk.text:
                    yield StreamChunk(text=chunk.text)
                yield StreamChunk(text="", usage=chunk.usage)
                return
            if chunk.text:
                yield chunk
    finally:
        close = getattr(chunks, "aclose", None)
        if close is not None:
            await close()

    logger.warning(f"{provider} stream ended without usage; emitting zero-usage terminal chunk")
    yield StreamChunk(text="", usage=TokenUsage.zero())
