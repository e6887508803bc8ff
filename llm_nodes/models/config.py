"""
LLM configuration variants.

WHAT: Provider-tagged configuration records with vendor-specific options
WHY: One config value selects and parameterizes the adapter
HOW: Pydantic v2 models, one per provider tag, plus an open fallback variant
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ========== Shared option blocks ==========

class WebSearchConfig(BaseModel):
    """Web search tool toggle. Limits are honored by Anthropic only."""
    enabled: bool = False
    max_uses: Optional[int] = Field(None, gt=0)
    allowed_domains: Optional[List[str]] = None
    user_location: Optional[Dict[str, Any]] = None


class CitationsConfig(BaseModel):
    enabled: bool = False


class WebFetchConfig(BaseModel):
    """Web fetch tool toggle (Anthropic only)."""
    enabled: bool = False
    max_uses: Optional[int] = Field(None, gt=0)
    allowed_domains: Optional[List[str]] = None
    citations: Optional[CitationsConfig] = None


class ThinkingConfig(BaseModel):
    """Extended thinking control. Anthropic requires budget_tokens >= 1024."""
    type: Literal["enabled", "disabled"] = "enabled"
    budget_tokens: Optional[int] = Field(None, ge=0)

    @property
    def enabled(self) -> bool:
        return self.type == "enabled"


class ReasoningConfig(BaseModel):
    """OpenAI reasoning effort."""
    effort: Literal["minimal", "low", "medium", "high"] = "medium"


# ========== Provider variants ==========

class BaseLLMConfig(BaseModel):
    """Fields common to every provider."""
    model_config = ConfigDict(frozen=True)

    provider: str
    model: str = Field(..., min_length=1, description="Model identifier")
    temperature: Optional[float] = Field(None, ge=0)
    max_tokens: Optional[int] = Field(None, gt=0, description="Maximum output tokens")
    provider_options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def system_prompt(self) -> Optional[str]:
        return self.provider_options.get("system_prompt")


class OpenAIConfig(BaseLLMConfig):
    provider: Literal["openai"] = "openai"
    api_key: Optional[str] = None
    organization: Optional[str] = None
    base_url: Optional[str] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    reasoning: Optional[ReasoningConfig] = None
    web_search: Optional[WebSearchConfig] = None


class AnthropicConfig(BaseLLMConfig):
    provider: Literal["anthropic"] = "anthropic"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    thinking: Optional[ThinkingConfig] = None
    web_search: Optional[WebSearchConfig] = None
    web_fetch: Optional[WebFetchConfig] = None
    stream: bool = False  # stream the HTTP response internally during invoke()


class BedrockConfig(BaseLLMConfig):
    provider: Literal["bedrock"] = "bedrock"
    aws_region: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_session_token: Optional[str] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    thinking: Optional[ThinkingConfig] = None
    stream: bool = False


class GrokConfig(BaseLLMConfig):
    provider: Literal["grok"] = "grok"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    top_p: Optional[float] = None


class GoogleGenAIConfig(BaseLLMConfig):
    provider: Literal["genai"] = "genai"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    thinking: Optional[ThinkingConfig] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None


class OllamaConfig(BaseLLMConfig):
    provider: Literal["ollama"] = "ollama"
    base_url: Optional[str] = None
    format: Optional[str] = None
    keep_alive: Optional[str] = None
    num_keep: Optional[int] = None


class OtherProviderConfig(BaseLLMConfig):
    """Open variant for any provider tag not listed above."""
    model_config = ConfigDict(frozen=True, extra="allow")

    base_url: Optional[str] = None
    api_key: Optional[str] = None
    top_p: Optional[float] = None


LLMConfig = Union[
    OpenAIConfig,
    AnthropicConfig,
    BedrockConfig,
    GrokConfig,
    GoogleGenAIConfig,
    OllamaConfig,
    OtherProviderConfig,
]

CONFIG_TYPES: dict[str, type[BaseLLMConfig]] = {
    "openai": OpenAIConfig,
    "anthropic": AnthropicConfig,
    "bedrock": BedrockConfig,
    "grok": GrokConfig,
    "genai": GoogleGenAIConfig,
    "ollama": OllamaConfig,
}

DEFAULT_PROVIDER = "openai"


def parse_llm_config(data: Union[Dict[str, Any], BaseLLMConfig]) -> LLMConfig:
    """
    Build the config variant matching the provider tag.

    Known tags select their variant by exact match; anything else becomes an
    OtherProviderConfig. A missing tag defaults to "openai".

    Args:
        data: Raw mapping or an already-built config

    Returns:
        Config model for the tag

    Raises:
        pydantic.ValidationError: If fields fail validation
    """
    if isinstance(data, BaseLLMConfig):
        return data

    payload = dict(data)
    provider = payload.get("provider") or DEFAULT_PROVIDER
    payload["provider"] = provider

    config_type = CONFIG_TYPES.get(provider, OtherProviderConfig)
    return config_type.model_validate(payload)
