"""
llm_nodes: one abstraction over many LLM vendors.

Nodes render a prompt, call a provider adapter, parse the response and keep a
usage ledger; pipelines chain nodes and aggregate their usage.
"""

import logging

from .llm.provider_factory import create_provider
from .llm.types import LLMResponse, StreamChunk
from .models.batch import (
    BatchItemResult,
    BatchMetadata,
    BatchResult,
    BatchStatus,
    ItemStatus,
    RequestCounts,
)
from .models.config import (
    AnthropicConfig,
    BedrockConfig,
    GoogleGenAIConfig,
    GrokConfig,
    LLMConfig,
    OllamaConfig,
    OpenAIConfig,
    OtherProviderConfig,
    parse_llm_config,
)
from .models.usage import TokenUsage, TotalTokenUsage, UsageRecord
from .nodes import LLMNode, Pipeline, StreamNode, StructuredOutputNode, TextNode
from .parsers import json_parser, structured_parser, text_parser
from .utils.exceptions import (
    CapabilityError,
    ConfigError,
    LLMNodesError,
    ParseError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from .utils.logger import setup_logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "create_provider",
    "LLMResponse",
    "StreamChunk",
    "BatchItemResult",
    "BatchMetadata",
    "BatchResult",
    "BatchStatus",
    "ItemStatus",
    "RequestCounts",
    "AnthropicConfig",
    "BedrockConfig",
    "GoogleGenAIConfig",
    "GrokConfig",
    "LLMConfig",
    "OllamaConfig",
    "OpenAIConfig",
    "OtherProviderConfig",
    "parse_llm_config",
    "TokenUsage",
    "TotalTokenUsage",
    "UsageRecord",
    "LLMNode",
    "Pipeline",
    "StreamNode",
    "StructuredOutputNode",
    "TextNode",
    "json_parser",
    "structured_parser",
    "text_parser",
    "CapabilityError",
    "ConfigError",
    "LLMNodesError",
    "ParseError",
    "ProviderError",
    "ProviderResponseError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "setup_logging",
]
