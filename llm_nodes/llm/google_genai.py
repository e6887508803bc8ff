"""
Google Generative AI provider implementation.

WHAT: Gemini generateContent adapter
WHY: Gemini models report thinking tokens separately from candidate tokens
HOW: httpx REST call to the Generative Language API; no streaming, no batch
"""

from typing import Any

import httpx

from .http_provider import HTTPProvider, add_optional
from .types import LLMResponse
from ..core.config import settings
from ..models.config import LLMConfig
from ..models.usage import TokenUsage
from ..utils.exceptions import ConfigError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class GoogleGenAIProvider(HTTPProvider):
    """Gemini adapter (single-shot only)."""

    name = "genai"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        max_retries: int | None = None
    ):
        super().__init__(
            base_url=base_url or settings.GOOGLE_GENAI_BASE_URL,
            client=client,
            timeout=timeout,
            max_retries=max_retries
        )
        self.api_key = api_key or settings.GOOGLE_API_KEY

    def _body(self, prompt: str, config: LLMConfig) -> dict[str, Any]:
        thinking = getattr(config, "thinking", None)
        thinking_budget = (thinking.budget_tokens or 0) if thinking is not None and thinking.enabled else 0

        generation_config: dict[str, Any] = {
            "maxOutputTokens": config.max_tokens or settings.GOOGLE_GENAI_DEFAULT_MAX_TOKENS,
            "thinkingConfig": {"thinkingBudget": thinking_budget},
        }
        add_optional(generation_config, "topK", getattr(config, "top_k", None))
        add_optional(generation_config, "topP", getattr(config, "top_p", None))
        add_optional(generation_config, "temperature", config.temperature)

        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if config.system_prompt:
            body["systemInstruction"] = {"parts": [{"text": config.system_prompt}]}
        return body

    async def invoke(self, prompt: str, config: LLMConfig) -> LLMResponse:
        """
        Generate a complete response.

        Parts flagged with "thought" are returned as thinking text, the rest
        as content. Only the first candidate is read.

        Raises:
            ConfigError: No API key configured
            ProviderError: The vendor call failed
        """
        if not self.api_key:
            raise ConfigError(
                "api_key", self.name,
                "api_key (or GOOGLE_API_KEY) is required for genai models"
            )

        data = await self._request_json(
            "POST", f"/models/{config.model}:generateContent",
            action="generate",
            headers={"x-goog-api-key": self.api_key},
            json=self._body(prompt, config)
        )

        content_parts = []
        thinking_parts = []
        candidates = data.get("candidates") or []
        if candidates:
            for part in (candidates[0].get("content") or {}).get("parts") or []:
                text = part.get("text")
                if not text:
                    continue
                if part.get("thought"):
                    thinking_parts.append(text)
                else:
                    content_parts.append(text)

        metadata = data.get("usageMetadata") or {}
        usage = TokenUsage(
            input_tokens=metadata.get("promptTokenCount") or 0,
            output_tokens=metadata.get("candidatesTokenCount") or 0,
            thinking_tokens=metadata.get("thoughtsTokenCount") or 0,
        )

        logger.info(f"GenAI success (model: {config.model}, tokens: {usage.input_tokens}+{usage.output_tokens})")
        return LLMResponse(
            content="".join(content_parts),
            usage=usage,
            thinking="".join(thinking_parts) or None,
            raw=data
        )

    def supports_batch(self) -> bool:
        return False
