"""
Anthropic provider implementation.

WHAT: Anthropic Messages API and Message Batches API adapter
WHY: Claude models with extended thinking and server-side web tools
HOW: httpx REST calls; SSE events decoded through the shared MessageAccumulator
"""

from typing import Any, AsyncIterator

import httpx

from .anthropic_messages import (
    WEB_FETCH_BETA,
    MessageAccumulator,
    build_message_params,
    require_max_tokens,
    thinking_enabled,
    uses_web_fetch,
)
from .batch import (
    ANTHROPIC_BATCH_STATUSES,
    ANTHROPIC_ITEM_STATUSES,
    map_batch_status,
    merge_item_results,
    parse_jsonl,
)
from .http_provider import HTTPProvider
from .streaming_handler import iter_sse_json
from .types import LLMResponse, StreamChunk
from ..core.config import settings
from ..models.batch import (
    BatchMetadata,
    BatchStatus,
    ItemStatus,
    ProviderBatchItemResult,
    ProviderBatchRequest,
    ProviderBatchResponse,
    RequestCounts,
)
from ..models.config import LLMConfig
from ..models.usage import TokenUsage
from ..utils.exceptions import ConfigError, ProviderResponseError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _resolve_status(batch: dict[str, Any], provider: str) -> BatchStatus:
    native = batch.get("processing_status")
    if native == "ended":
        # Results are only readable once results_url is published
        return BatchStatus.COMPLETED if batch.get("results_url") else BatchStatus.FINALIZING
    return map_batch_status(native, ANTHROPIC_BATCH_STATUSES, provider=provider)


def _request_counts(batch: dict[str, Any]) -> RequestCounts:
    counts = batch.get("request_counts") or {}
    processing = counts.get("processing") or 0
    succeeded = counts.get("succeeded") or 0
    errored = counts.get("errored") or 0
    canceled = counts.get("canceled") or 0
    expired = counts.get("expired") or 0
    return RequestCounts(
        total=processing + succeeded + errored + canceled + expired,
        completed=succeeded,
        failed=errored,
        expired=expired,
        cancelled=canceled,
    )


def _error_message(result: dict[str, Any]) -> str:
    error = result.get("error") or {}
    # Errored results wrap the API error object: {"type": "error", "error": {...}}
    inner = error.get("error") if isinstance(error.get("error"), dict) else error
    return inner.get("message") or inner.get("type") or result.get("type") or "Request failed"


class AnthropicProvider(HTTPProvider):
    """Anthropic adapter with streaming and batch support."""

    name = "anthropic"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        api_version: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        max_retries: int | None = None
    ):
        super().__init__(
            base_url=base_url or settings.ANTHROPIC_BASE_URL,
            client=client,
            timeout=timeout,
            max_retries=max_retries
        )
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.api_version = api_version or settings.ANTHROPIC_VERSION

    def _headers(self, config: LLMConfig | None = None) -> dict[str, str]:
        if not self.api_key:
            raise ConfigError(
                "api_key", self.name,
                "api_key (or ANTHROPIC_API_KEY) is required for anthropic models"
            )
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
        }
        if config is not None and uses_web_fetch(config):
            headers["anthropic-beta"] = WEB_FETCH_BETA
        return headers

    # ========== Single-shot ==========

    async def invoke(self, prompt: str, config: LLMConfig) -> LLMResponse:
        """
        Generate a complete response.

        With config.stream set, the HTTP response is streamed and assembled
        internally; the caller still gets one LLMResponse.

        Raises:
            ConfigError: max_tokens or API key missing
            ProviderError: The vendor call failed
        """
        params = build_message_params(prompt, config, provider=self.name)
        headers = self._headers(config)
        accumulator = MessageAccumulator(thinking=thinking_enabled(config))

        if getattr(config, "stream", False):
            async for _ in self._stream_events(params, headers, accumulator):
                pass
            raw = None
        else:
            raw = await self._request_json(
                "POST", "/v1/messages",
                action="generate",
                headers=headers,
                json=params
            )
            accumulator.apply_message(raw)

        response = accumulator.response(raw)
        logger.info(
            f"Anthropic success (model: {config.model}, "
            f"tokens: {response.usage.input_tokens}+{response.usage.output_tokens})"
        )
        return response

    # ========== Streaming ==========

    async def _stream_events(
        self,
        params: dict[str, Any],
        headers: dict[str, str],
        accumulator: MessageAccumulator
    ) -> AsyncIterator[str]:
        body = dict(params, stream=True)
        async with self._stream("POST", "/v1/messages", action="stream", headers=headers, json=body) as response:
            async for event in iter_sse_json(response, provider=self.name):
                if event.get("type") == "error":
                    error = event.get("error") or {}
                    raise ProviderResponseError(
                        f"Stream failed: {error.get('message', 'unknown error')}",
                        provider=self.name
                    )
                text = accumulator.feed(event)
                if text:
                    yield text

    async def invoke_stream(self, prompt: str, config: LLMConfig) -> AsyncIterator[StreamChunk]:
        """Stream text deltas followed by one terminal usage chunk."""
        params = build_message_params(prompt, config, provider=self.name)
        headers = self._headers(config)
        accumulator = MessageAccumulator(thinking=thinking_enabled(config))

        async for text in self._stream_events(params, headers, accumulator):
            yield StreamChunk(text=text)

        usage = accumulator.usage()
        logger.info(f"Anthropic stream completed (model: {config.model}, tokens: {usage.input_tokens}+{usage.output_tokens})")
        yield StreamChunk(text="", usage=usage)

    # ========== Batch ==========

    def supports_batch(self) -> bool:
        return True

    async def create_batch(
        self,
        requests: list[ProviderBatchRequest],
        config: LLMConfig
    ) -> BatchMetadata:
        """Submit all requests as one Message Batch."""
        require_max_tokens(config, self.name)
        headers = self._headers(config)

        batch = await self._request_json(
            "POST", "/v1/messages/batches",
            action="batch create",
            headers=headers,
            json={
                "requests": [
                    {
                        "custom_id": request.custom_id,
                        "params": build_message_params(request.prompt, config, provider=self.name),
                    }
                    for request in requests
                ]
            }
        )
        batch_id = self._require(batch, "id", "batch create")

        logger.info(f"Anthropic batch created (id: {batch_id}, requests: {len(requests)})")
        return BatchMetadata(
            batch_id=batch_id,
            provider=self.name,
            model=config.model,
            request_count=len(requests)
        )

    async def retrieve_batch(
        self,
        metadata: BatchMetadata,
        config: LLMConfig
    ) -> ProviderBatchResponse:
        """
        Fetch batch state; once ended with a results URL, decode the results.

        Every call queries the API afresh.
        """
        headers = self._headers(config)
        batch = await self._request_json(
            "GET", f"/v1/messages/batches/{metadata.batch_id}",
            action="batch retrieve",
            headers=headers
        )

        status = _resolve_status(batch, self.name)
        request_counts = _request_counts(batch)

        if status != BatchStatus.COMPLETED:
            return ProviderBatchResponse(status=status, request_counts=request_counts, raw=batch)

        text = await self._request_text(
            "GET", batch["results_url"],
            action="batch results download",
            headers=headers
        )
        items = [self._decode_result_entry(entry) for entry in parse_jsonl(text, provider=self.name)]
        results = merge_item_results(items)

        logger.info(f"Anthropic batch {metadata.batch_id} completed ({len(results)} results)")
        return ProviderBatchResponse(status=status, results=results, request_counts=request_counts, raw=batch)

    def _decode_result_entry(self, entry: dict[str, Any]) -> ProviderBatchItemResult:
        custom_id = self._require(entry, "custom_id", "batch result decode")
        result = entry.get("result") or {}
        result_type = result.get("type")
        status = ANTHROPIC_ITEM_STATUSES.get(result_type, ItemStatus.FAILED)

        if status == ItemStatus.SUCCESS:
            accumulator = MessageAccumulator()
            accumulator.apply_message(result.get("message") or {})
            return ProviderBatchItemResult(
                custom_id=custom_id,
                status=status,
                content=accumulator.content,
                token_usage=TokenUsage(
                    input_tokens=accumulator.tokens.input_tokens,
                    output_tokens=accumulator.tokens.output_tokens
                )
            )

        if result_type not in ANTHROPIC_ITEM_STATUSES:
            logger.warning(f"Unknown Anthropic batch result type {result_type!r} for {custom_id}")
        return ProviderBatchItemResult(custom_id=custom_id, status=status, error=_error_message(result))
