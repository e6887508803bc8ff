"""
OpenAI provider implementation.

WHAT: OpenAI Responses API, Chat Completions API and Batch API adapter
WHY: Newer models are served by the Responses API, older ones by Chat Completions
HOW: httpx REST calls; Responses first for matching models, Chat Completions on 404
"""

import json
from typing import Any, AsyncIterator

import httpx

from .batch import OPENAI_BATCH_STATUSES, map_batch_status, merge_item_results, parse_jsonl
from .http_provider import HTTPProvider, add_optional
from .streaming_handler import StreamUsageAccumulator, iter_sse_json
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

# Model families served by the Responses API
RESPONSES_API_MODELS = ("gpt-5", "gpt-4o", "o1", "o3", "o4")

RESPONSES_ENDPOINT = "/v1/responses"
CHAT_COMPLETIONS_ENDPOINT = "/v1/chat/completions"
BATCH_COMPLETION_WINDOW = "24h"


def uses_responses_api(model: str) -> bool:
    lowered = model.lower()
    return any(family in lowered for family in RESPONSES_API_MODELS)


def _responses_output_text(data: dict[str, Any]) -> str:
    # output_text is an SDK convenience; raw payloads carry message items
    text = data.get("output_text")
    if isinstance(text, str):
        return text

    parts = []
    for item in data.get("output") or []:
        if item.get("type") != "message":
            continue
        for content in item.get("content") or []:
            if content.get("type") in ("output_text", "text") and isinstance(content.get("text"), str):
                parts.append(content["text"])
    return "".join(parts)


def _responses_reasoning_text(data: dict[str, Any]) -> str | None:
    summaries = []
    for item in data.get("output") or []:
        if item.get("type") != "reasoning":
            continue
        for summary in item.get("summary") or []:
            if isinstance(summary.get("text"), str):
                summaries.append(summary["text"])
    return "\n".join(summaries) or None


def _responses_usage(data: dict[str, Any]) -> TokenUsage:
    usage = data.get("usage") or {}
    details = usage.get("output_tokens_details") or {}
    searches = sum(1 for item in data.get("output") or [] if item.get("type") == "web_search_call")
    return TokenUsage(
        input_tokens=usage.get("input_tokens") or 0,
        output_tokens=usage.get("output_tokens") or 0,
        thinking_tokens=details.get("reasoning_tokens") or 0,
        search_count=searches or None,
    )


def _chat_content(data: dict[str, Any]) -> str:
    choices = data.get("choices")
    if not isinstance(choices, list):
        raise ProviderResponseError("Invalid response format: missing 'choices'", provider="openai")
    if not choices:
        return ""
    message = choices[0].get("message") or {}
    return message.get("content") or ""


def _chat_usage(data: dict[str, Any]) -> TokenUsage:
    usage = data.get("usage") or {}
    details = usage.get("completion_tokens_details") or {}
    return TokenUsage(
        input_tokens=usage.get("prompt_tokens") or 0,
        output_tokens=usage.get("completion_tokens") or 0,
        thinking_tokens=details.get("reasoning_tokens") or 0,
    )


class OpenAIProvider(HTTPProvider):
    """OpenAI adapter with streaming and batch support."""

    name = "openai"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        organization: str | None = None,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        max_retries: int | None = None
    ):
        super().__init__(
            base_url=base_url or settings.OPENAI_BASE_URL,
            client=client,
            timeout=timeout,
            max_retries=max_retries
        )
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.organization = organization or settings.OPENAI_ORGANIZATION

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise ConfigError(
                "api_key", self.name,
                "api_key (or OPENAI_API_KEY) is required for openai models"
            )
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self.organization:
            headers["OpenAI-Organization"] = self.organization
        return headers

    # ========== Request bodies ==========

    def _responses_body(self, prompt: str, config: LLMConfig, *, include_tools: bool = True) -> dict[str, Any]:
        body: dict[str, Any] = {"model": config.model, "input": prompt}
        add_optional(body, "max_output_tokens", config.max_tokens)
        add_optional(body, "instructions", config.system_prompt)
        add_optional(body, "temperature", config.temperature)
        add_optional(body, "top_p", getattr(config, "top_p", None))
        add_optional(body, "frequency_penalty", getattr(config, "frequency_penalty", None))
        add_optional(body, "presence_penalty", getattr(config, "presence_penalty", None))

        reasoning = getattr(config, "reasoning", None)
        if reasoning is not None:
            body["reasoning"] = reasoning.model_dump(exclude_none=True)

        web_search = getattr(config, "web_search", None)
        if include_tools and web_search is not None and web_search.enabled:
            body["tools"] = [{"type": "web_search"}]
        return body

    def _chat_body(self, prompt: str, config: LLMConfig) -> dict[str, Any]:
        messages = []
        if config.system_prompt:
            messages.append({"role": "system", "content": config.system_prompt})
        messages.append({"role": "user", "content": prompt})

        body: dict[str, Any] = {"model": config.model, "messages": messages}
        add_optional(body, "max_tokens", config.max_tokens)
        add_optional(body, "temperature", config.temperature)
        add_optional(body, "top_p", getattr(config, "top_p", None))
        add_optional(body, "frequency_penalty", getattr(config, "frequency_penalty", None))
        add_optional(body, "presence_penalty", getattr(config, "presence_penalty", None))
        return body

    # ========== Single-shot ==========

    async def invoke(self, prompt: str, config: LLMConfig) -> LLMResponse:
        """
        Generate a complete response.

        Models matching RESPONSES_API_MODELS go through the Responses API; a 404
        there falls back to Chat Completions.

        Raises:
            ConfigError: No API key configured
            ProviderError: The vendor call failed
        """
        headers = self._headers()

        if uses_responses_api(config.model):
            try:
                return await self._invoke_responses(prompt, config, headers)
            except ProviderResponseError as e:
                if e.status_code != 404:
                    raise
                logger.warning(f"Responses API unavailable for {config.model}; falling back to chat completions")

        return await self._invoke_chat(prompt, config, headers)

    async def _invoke_responses(self, prompt: str, config: LLMConfig, headers: dict[str, str]) -> LLMResponse:
        data = await self._request_json(
            "POST", "/responses",
            action="generate",
            headers=headers,
            json=self._responses_body(prompt, config)
        )
        usage = _responses_usage(data)
        logger.info(f"OpenAI responses success (model: {config.model}, tokens: {usage.input_tokens}+{usage.output_tokens})")
        return LLMResponse(
            content=_responses_output_text(data),
            usage=usage,
            thinking=_responses_reasoning_text(data),
            raw=data
        )

    async def _invoke_chat(self, prompt: str, config: LLMConfig, headers: dict[str, str]) -> LLMResponse:
        data = await self._request_json(
            "POST", "/chat/completions",
            action="generate",
            headers=headers,
            json=self._chat_body(prompt, config)
        )
        usage = _chat_usage(data)
        logger.info(f"OpenAI chat success (model: {config.model}, tokens: {usage.input_tokens}+{usage.output_tokens})")
        return LLMResponse(content=_chat_content(data), usage=usage, raw=data)

    # ========== Streaming ==========

    async def invoke_stream(self, prompt: str, config: LLMConfig) -> AsyncIterator[StreamChunk]:
        """
        Stream text chunks followed by one terminal usage chunk.

        The 404 fallback only applies before the first chunk has been yielded.
        """
        headers = self._headers()

        if uses_responses_api(config.model):
            started = False
            try:
                async for chunk in self._stream_responses(prompt, config, headers):
                    started = True
                    yield chunk
                return
            except ProviderResponseError as e:
                if started or e.status_code != 404:
                    raise
                logger.warning(f"Responses API streaming unavailable for {config.model}; falling back to chat completions")

        async for chunk in self._stream_chat(prompt, config, headers):
            yield chunk

    async def _stream_responses(
        self,
        prompt: str,
        config: LLMConfig,
        headers: dict[str, str]
    ) -> AsyncIterator[StreamChunk]:
        body = self._responses_body(prompt, config)
        body["stream"] = True
        accumulator = StreamUsageAccumulator()

        async with self._stream("POST", "/responses", action="stream", headers=headers, json=body) as response:
            async for event in iter_sse_json(response, provider=self.name):
                event_type = event.get("type")
                if event_type == "response.output_text.delta":
                    delta = event.get("delta") or ""
                    if delta:
                        yield StreamChunk(text=delta)
                elif event_type in ("response.completed", "response.incomplete"):
                    final = event.get("response") or {}
                    if event_type == "response.incomplete":
                        reason = (final.get("incomplete_details") or {}).get("reason")
                        logger.warning(f"OpenAI responses stream incomplete (model: {config.model}, reason: {reason})")
                    usage = final.get("usage") or {}
                    accumulator.set_input(usage.get("input_tokens"))
                    accumulator.set_output(usage.get("output_tokens"))
                    reasoning = (usage.get("output_tokens_details") or {}).get("reasoning_tokens")
                    if reasoning is not None:
                        accumulator.thinking_tokens = reasoning
                elif event_type in ("response.failed", "error"):
                    error = event.get("error") or (event.get("response") or {}).get("error") or event
                    raise ProviderResponseError(
                        f"Stream failed: {error.get('message', 'unknown error')}",
                        provider=self.name
                    )

        logger.info(f"OpenAI responses stream completed (model: {config.model})")
        yield accumulator.terminal_chunk()

    async def _stream_chat(
        self,
        prompt: str,
        config: LLMConfig,
        headers: dict[str, str]
    ) -> AsyncIterator[StreamChunk]:
        body = self._chat_body(prompt, config)
        body["stream"] = True
        body["stream_options"] = {"include_usage": True}
        accumulator = StreamUsageAccumulator()

        async with self._stream("POST", "/chat/completions", action="stream", headers=headers, json=body) as response:
            async for data in iter_sse_json(response, provider=self.name):
                choices = data.get("choices") or []
                if choices:
                    delta = (choices[0].get("delta") or {}).get("content")
                    if delta:
                        yield StreamChunk(text=delta)
                usage = data.get("usage")
                if usage:
                    accumulator.set_input(usage.get("prompt_tokens"))
                    accumulator.set_output(usage.get("completion_tokens"))

        logger.info(f"OpenAI chat stream completed (model: {config.model})")
        yield accumulator.terminal_chunk()

    # ========== Batch ==========

    def supports_batch(self) -> bool:
        return True

    async def create_batch(
        self,
        requests: list[ProviderBatchRequest],
        config: LLMConfig
    ) -> BatchMetadata:
        """
        Upload requests as a JSONL file and start a batch job over it.

        Returns:
            BatchMetadata for the caller to persist
        """
        headers = self._headers()
        use_responses = uses_responses_api(config.model)
        endpoint = RESPONSES_ENDPOINT if use_responses else CHAT_COMPLETIONS_ENDPOINT

        lines = []
        for request in requests:
            if use_responses:
                body = self._responses_body(request.prompt, config, include_tools=False)
            else:
                body = self._chat_body(request.prompt, config)
            lines.append(json.dumps({
                "custom_id": request.custom_id,
                "method": "POST",
                "url": endpoint,
                "body": body,
            }))

        uploaded = await self._request_json(
            "POST", "/files",
            action="batch file upload",
            headers=headers,
            files={"file": ("batch_input.jsonl", "\n".join(lines).encode("utf-8"), "application/jsonl")},
            data={"purpose": "batch"}
        )
        batch = await self._request_json(
            "POST", "/batches",
            action="batch create",
            headers=headers,
            json={
                "input_file_id": self._require(uploaded, "id", "batch file upload"),
                "endpoint": endpoint,
                "completion_window": BATCH_COMPLETION_WINDOW,
            }
        )
        batch_id = self._require(batch, "id", "batch create")

        logger.info(f"OpenAI batch created (id: {batch_id}, requests: {len(requests)}, endpoint: {endpoint})")
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
        Fetch batch state; once completed, decode the output and error files.

        Every call queries the API afresh.
        """
        headers = self._headers()
        batch = await self._request_json(
            "GET", f"/batches/{metadata.batch_id}",
            action="batch retrieve",
            headers=headers
        )

        status = map_batch_status(batch.get("status"), OPENAI_BATCH_STATUSES, provider=self.name)
        counts = batch.get("request_counts") or {}
        request_counts = RequestCounts(
            total=counts.get("total") or 0,
            completed=counts.get("completed") or 0,
            failed=counts.get("failed") or 0,
        )

        if status != BatchStatus.COMPLETED:
            return ProviderBatchResponse(status=status, request_counts=request_counts, raw=batch)

        use_responses = uses_responses_api(metadata.model)
        output_items: list[ProviderBatchItemResult] = []
        error_items: list[ProviderBatchItemResult] = []

        if batch.get("output_file_id"):
            text = await self._request_text(
                "GET", f"/files/{batch['output_file_id']}/content",
                action="batch output download",
                headers=headers
            )
            output_items = [self._decode_result_entry(entry, use_responses) for entry in parse_jsonl(text, provider=self.name)]

        if batch.get("error_file_id"):
            text = await self._request_text(
                "GET", f"/files/{batch['error_file_id']}/content",
                action="batch error download",
                headers=headers
            )
            error_items = [self._decode_result_entry(entry, use_responses) for entry in parse_jsonl(text, provider=self.name)]

        results = merge_item_results(output_items, error_items)
        logger.info(f"OpenAI batch {metadata.batch_id} completed ({len(results)} results)")
        return ProviderBatchResponse(status=status, results=results, request_counts=request_counts, raw=batch)

    def _decode_result_entry(self, entry: dict[str, Any], use_responses: bool) -> ProviderBatchItemResult:
        custom_id = self._require(entry, "custom_id", "batch result decode")
        response = entry.get("response") or {}
        body = response.get("body") or {}

        if response.get("status_code") == 200:
            if use_responses:
                content, usage = _responses_output_text(body), _responses_usage(body)
            else:
                content, usage = _chat_content(body), _chat_usage(body)
            return ProviderBatchItemResult(
                custom_id=custom_id,
                status=ItemStatus.SUCCESS,
                content=content,
                token_usage=TokenUsage(input_tokens=usage.input_tokens, output_tokens=usage.output_tokens)
            )

        error = entry.get("error") or body.get("error")
        if error:
            status = ItemStatus.EXPIRED if error.get("code") == "batch_expired" else ItemStatus.FAILED
            message = error.get("message") or "Request failed"
        else:
            status = ItemStatus.FAILED
            message = f"HTTP {response.get('status_code') or 'unknown'}"
        return ProviderBatchItemResult(custom_id=custom_id, status=status, error=message)
