"""
OpenAI-compatible provider implementation.

WHAT: Chat Completions adapter for Grok, Ollama and any OpenAI-compatible endpoint
WHY: Many vendors and local servers expose the same /chat/completions API
HOW: One httpx adapter with per-vendor presets for base URL, credentials and extra fields
"""

from typing import Any, AsyncIterator

import httpx

from .http_provider import HTTPProvider, add_optional
from .streaming_handler import StreamUsageAccumulator, iter_sse_json
from .types import LLMResponse, StreamChunk
from ..core.config import settings
from ..models.config import LLMConfig
from ..models.usage import TokenUsage
from ..utils.exceptions import ConfigError, ProviderResponseError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class OpenAICompatibleProvider(HTTPProvider):
    """Chat Completions adapter with streaming; no batch."""

    name = "openai-compatible"

    def __init__(
        self,
        *,
        name: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        require_api_key: bool = False,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        max_retries: int | None = None
    ):
        super().__init__(
            base_url=base_url,
            client=client,
            timeout=timeout,
            max_retries=max_retries
        )
        if name:
            self.name = name
        self.api_key = api_key
        self.require_api_key = require_api_key

    # ========== Presets ==========

    @classmethod
    def for_grok(cls, config: LLMConfig, **kwargs: Any) -> "OpenAICompatibleProvider":
        """xAI Grok: bearer key from config or XAI_API_KEY."""
        return cls(
            name="grok",
            base_url=getattr(config, "base_url", None) or settings.GROK_BASE_URL,
            api_key=getattr(config, "api_key", None) or settings.XAI_API_KEY,
            require_api_key=True,
            **kwargs
        )

    @classmethod
    def for_ollama(cls, config: LLMConfig, **kwargs: Any) -> "OpenAICompatibleProvider":
        """Local Ollama server; no credentials."""
        return cls(
            name="ollama",
            base_url=getattr(config, "base_url", None) or settings.OLLAMA_BASE_URL,
            **kwargs
        )

    @classmethod
    def for_config(cls, config: LLMConfig, **kwargs: Any) -> "OpenAICompatibleProvider":
        """Any other provider tag; base_url comes from the config or provider_options."""
        options = config.provider_options
        return cls(
            name=config.provider,
            base_url=getattr(config, "base_url", None) or options.get("base_url"),
            api_key=getattr(config, "api_key", None) or options.get("api_key"),
            **kwargs
        )

    # ========== Request building ==========

    def _headers(self) -> dict[str, str]:
        if not self.base_url:
            raise ConfigError("base_url", self.name)
        if self.require_api_key and not self.api_key:
            raise ConfigError("api_key", self.name)
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    def _body(self, prompt: str, config: LLMConfig) -> dict[str, Any]:
        messages = []
        if config.system_prompt:
            messages.append({"role": "system", "content": config.system_prompt})
        messages.append({"role": "user", "content": prompt})

        body: dict[str, Any] = {"model": config.model, "messages": messages}
        add_optional(body, "temperature", config.temperature)
        add_optional(body, "max_tokens", config.max_tokens)
        add_optional(body, "top_p", getattr(config, "top_p", None))

        # Ollama-specific fields
        if getattr(config, "format", None) == "json":
            body["response_format"] = {"type": "json_object"}
        add_optional(body, "keep_alive", getattr(config, "keep_alive", None))
        num_keep = getattr(config, "num_keep", None)
        if num_keep is not None:
            body["options"] = {"num_keep": num_keep}
        return body

    # ========== Single-shot ==========

    async def invoke(self, prompt: str, config: LLMConfig) -> LLMResponse:
        """
        Generate a complete response via /chat/completions.

        Raises:
            ConfigError: base_url (or a required API key) missing
            ProviderError: The vendor call failed
        """
        headers = self._headers()
        data = await self._request_json(
            "POST", "/chat/completions",
            action="generate",
            headers=headers,
            json=self._body(prompt, config)
        )

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            logger.error(f"{self.name} response missing choices")
            raise ProviderResponseError("Invalid response format: missing 'choices'", provider=self.name)
        content = (choices[0].get("message") or {}).get("content") or ""

        usage_data = data.get("usage") or {}
        usage = TokenUsage(
            input_tokens=usage_data.get("prompt_tokens") or 0,
            output_tokens=usage_data.get("completion_tokens") or 0,
        )

        logger.info(f"{self.name} generate success (model: {data.get('model', config.model)}, tokens: {usage.input_tokens}+{usage.output_tokens})")
        return LLMResponse(content=content, usage=usage, raw=data)

    # ========== Streaming ==========

    async def invoke_stream(self, prompt: str, config: LLMConfig) -> AsyncIterator[StreamChunk]:
        """
        Stream text deltas, then one terminal usage chunk.

        Servers that ignore stream_options report no usage; the terminal
        chunk then carries zeros.
        """
        headers = self._headers()
        body = self._body(prompt, config)
        body["stream"] = True
        body["stream_options"] = {"include_usage": True}
        accumulator = StreamUsageAccumulator()
        chunk_count = 0

        async with self._stream("POST", "/chat/completions", action="stream", headers=headers, json=body) as response:
            async for data in iter_sse_json(response, provider=self.name):
                choices = data.get("choices") or []
                if choices:
                    delta = (choices[0].get("delta") or {}).get("content")
                    if delta:
                        chunk_count += 1
                        yield StreamChunk(text=delta)
                usage = data.get("usage")
                if usage:
                    accumulator.set_input(usage.get("prompt_tokens"))
                    accumulator.set_output(usage.get("completion_tokens"))

        logger.info(f"{self.name} stream completed ({chunk_count} chunks)")
        yield accumulator.terminal_chunk()

    def supports_batch(self) -> bool:
        return False
