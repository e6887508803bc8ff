"""
LLM provider factory.

WHAT: Build the adapter matching a config's provider tag
WHY: Nodes stay vendor-agnostic; adding a vendor means one branch here
HOW: Exact tag dispatch with lazy imports; unknown tags get the generic OpenAI-compatible adapter
"""

from typing import TYPE_CHECKING, Any, Dict, Union

from ..models.config import BaseLLMConfig, parse_llm_config
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from .provider import LLMProvider

logger = get_logger(__name__)


def create_provider(config: Union[Dict[str, Any], BaseLLMConfig]) -> "LLMProvider":
    """
    Create the adapter for a configuration.

    Args:
        config: LLMConfig model or raw mapping

    Returns:
        Provider instance bound to the config's credentials
    """
    config = parse_llm_config(config)
    provider_name = config.provider

    if provider_name == "openai":
        from .openai import OpenAIProvider
        provider = OpenAIProvider(
            api_key=config.api_key,
            organization=config.organization,
            base_url=config.base_url
        )
    elif provider_name == "anthropic":
        from .anthropic import AnthropicProvider
        provider = AnthropicProvider(api_key=config.api_key, base_url=config.base_url)
    elif provider_name == "bedrock":
        # Imported lazily: needs the optional anthropic[bedrock] dependency
        from .bedrock import BedrockProvider
        provider = BedrockProvider.from_config(config)
    elif provider_name == "genai":
        from .google_genai import GoogleGenAIProvider
        provider = GoogleGenAIProvider(api_key=config.api_key, base_url=config.base_url)
    elif provider_name == "grok":
        from .openai_compatible import OpenAICompatibleProvider
        provider = OpenAICompatibleProvider.for_grok(config)
    elif provider_name == "ollama":
        from .openai_compatible import OpenAICompatibleProvider
        provider = OpenAICompatibleProvider.for_ollama(config)
    else:
        from .openai_compatible import OpenAICompatibleProvider
        provider = OpenAICompatibleProvider.for_config(config)

    logger.debug(f"LLM provider created: {provider.name} (model: {config.model})")
    return provider
