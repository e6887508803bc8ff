"""
Anthropic Messages API normalization.

WHAT: Request parameters and response/event decoding for the Messages API
WHY: The Anthropic REST adapter and the Bedrock adapter speak the same message format
HOW: Plain dict building and an accumulator fed with decoded stream events
"""

from typing import Any

from .http_provider import add_optional
from .streaming_handler import StreamUsageAccumulator
from .types import LLMResponse
from ..models.config import LLMConfig
from ..models.usage import TokenUsage, estimate_thinking_tokens
from ..utils.exceptions import ConfigError

WEB_SEARCH_TOOL = "web_search_20250305"
WEB_FETCH_TOOL = "web_fetch_20250910"
WEB_FETCH_BETA = "web-fetch-2025-09-10"


def require_max_tokens(config: LLMConfig, provider: str) -> int:
    """Messages API rejects requests without max_tokens; fail before any network call."""
    if not config.max_tokens:
        raise ConfigError("max_tokens", provider)
    return config.max_tokens


def thinking_enabled(config: LLMConfig) -> bool:
    thinking = getattr(config, "thinking", None)
    return thinking is not None and thinking.enabled


def uses_web_fetch(config: LLMConfig) -> bool:
    web_fetch = getattr(config, "web_fetch", None)
    return web_fetch is not None and web_fetch.enabled


def build_tools(config: LLMConfig) -> list[dict[str, Any]]:
    tools = []

    web_search = getattr(config, "web_search", None)
    if web_search is not None and web_search.enabled:
        tool: dict[str, Any] = {"type": WEB_SEARCH_TOOL, "name": "web_search"}
        add_optional(tool, "max_uses", web_search.max_uses)
        add_optional(tool, "allowed_domains", web_search.allowed_domains)
        add_optional(tool, "user_location", web_search.user_location)
        tools.append(tool)

    web_fetch = getattr(config, "web_fetch", None)
    if web_fetch is not None and web_fetch.enabled:
        tool = {"type": WEB_FETCH_TOOL, "name": "web_fetch"}
        add_optional(tool, "max_uses", web_fetch.max_uses)
        add_optional(tool, "allowed_domains", web_fetch.allowed_domains)
        if web_fetch.citations is not None:
            tool["citations"] = web_fetch.citations.model_dump()
        tools.append(tool)

    return tools


def build_message_params(
    prompt: str,
    config: LLMConfig,
    *,
    provider: str,
    allow_tools: bool = True
) -> dict[str, Any]:
    """
    Build Messages API parameters for a single user turn.

    Args:
        prompt: Rendered prompt text
        config: Anthropic or Bedrock config
        provider: Provider name used in ConfigError
        allow_tools: Whether server tools (web search/fetch) may be attached

    Returns:
        Parameter dict, without the "stream" flag

    Raises:
        ConfigError: If max_tokens is missing
    """
    params: dict[str, Any] = {
        "model": config.model,
        "max_tokens": require_max_tokens(config, provider),
        "messages": [{"role": "user", "content": prompt}],
    }
    add_optional(params, "temperature", config.temperature)
    add_optional(params, "top_k", getattr(config, "top_k", None))
    add_optional(params, "top_p", getattr(config, "top_p", None))
    add_optional(params, "system", config.system_prompt)

    thinking = getattr(config, "thinking", None)
    if thinking is not None:
        params["thinking"] = thinking.model_dump(exclude_none=True)

    if allow_tools:
        tools = build_tools(config)
        if tools:
            params["tools"] = tools
    return params


def _server_tool_counts(usage: dict[str, Any]) -> tuple[int | None, int | None]:
    server_tool_use = usage.get("server_tool_use") or {}
    return server_tool_use.get("web_search_requests"), server_tool_use.get("web_fetch_requests")


class MessageAccumulator:
    """
    Builds one response out of Messages API stream events or a full message.

    message_start carries the input count; message_delta carries the
    cumulative output count, so both are applied as snapshots.
    """

    def __init__(self, *, thinking: bool = False):
        self.thinking = thinking
        self.content_parts: list[str] = []
        self.thinking_parts: list[str] = []
        self.tokens = StreamUsageAccumulator()

    @property
    def content(self) -> str:
        return "".join(self.content_parts)

    def _apply_usage(self, usage: dict[str, Any] | None) -> None:
        if not usage:
            return
        self.tokens.set_input(usage.get("input_tokens"))
        self.tokens.set_output(usage.get("output_tokens"))
        searches, fetches = _server_tool_counts(usage)
        if searches is not None:
            self.tokens.search_count = searches
        if fetches is not None:
            self.tokens.fetch_count = fetches

    def feed(self, event: dict[str, Any]) -> str | None:
        """
        Apply one stream event.

        Returns:
            The text delta carried by the event, if any
        """
        event_type = event.get("type")

        if event_type == "message_start":
            self._apply_usage((event.get("message") or {}).get("usage"))
        elif event_type == "message_delta":
            self._apply_usage(event.get("usage"))
        elif event_type == "content_block_start":
            block = event.get("content_block") or {}
            if block.get("type") == "text" and block.get("text"):
                self.content_parts.append(block["text"])
                return block["text"]
            if block.get("type") == "thinking" and block.get("thinking"):
                self.thinking_parts.append(block["thinking"])
        elif event_type == "content_block_delta":
            delta = event.get("delta") or {}
            if delta.get("type") == "text_delta" and delta.get("text"):
                self.content_parts.append(delta["text"])
                return delta["text"]
            if delta.get("type") == "thinking_delta" and delta.get("thinking"):
                self.thinking_parts.append(delta["thinking"])
        return None

    def apply_message(self, message: dict[str, Any]) -> None:
        """Apply a complete (non-streamed) message."""
        for block in message.get("content") or []:
            if block.get("type") == "text":
                self.content_parts.append(block.get("text") or "")
            elif block.get("type") == "thinking":
                self.thinking_parts.append(block.get("thinking") or "")
        self._apply_usage(message.get("usage"))

    def usage(self) -> TokenUsage:
        if self.thinking:
            # Thinking tokens are folded into output tokens; estimate them
            self.tokens.thinking_tokens = estimate_thinking_tokens(self.tokens.output_tokens, self.content)
        return self.tokens.usage()

    def response(self, raw: Any = None) -> LLMResponse:
        return LLMResponse(
            content=self.content,
            usage=self.usage(),
            thinking="".join(self.thinking_parts) or None,
            raw=raw
        )
