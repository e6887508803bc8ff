"""
Unit tests for the provider factory and capability probes.

WHAT: Test tag dispatch, preset wiring and the capability matrix
WHY: Adding a vendor must only touch one factory branch
HOW: Build providers from config dicts and inspect the result
"""

import pytest

from llm_nodes.llm.anthropic import AnthropicProvider
from llm_nodes.llm.bedrock import BedrockProvider
from llm_nodes.llm.google_genai import GoogleGenAIProvider
from llm_nodes.llm.openai import OpenAIProvider
from llm_nodes.llm.openai_compatible import OpenAICompatibleProvider
from llm_nodes.llm.provider import LLMProvider, supports_batch, supports_streaming
from llm_nodes.llm.provider_factory import create_provider


@pytest.mark.unit
@pytest.mark.providers
class TestProviderFactory:
    """Test provider selection by tag."""

    @pytest.mark.parametrize("config,expected_type,expected_name", [
        ({"provider": "openai", "model": "gpt-4o"}, OpenAIProvider, "openai"),
        ({"provider": "anthropic", "model": "claude"}, AnthropicProvider, "anthropic"),
        ({"provider": "bedrock", "model": "claude", "aws_region": "us-west-2"}, BedrockProvider, "bedrock"),
        ({"provider": "genai", "model": "gemini-2.5-flash"}, GoogleGenAIProvider, "genai"),
        ({"provider": "grok", "model": "grok-4"}, OpenAICompatibleProvider, "grok"),
        ({"provider": "ollama", "model": "llama3"}, OpenAICompatibleProvider, "ollama"),
        ({"provider": "together", "model": "m", "base_url": "https://x.test/v1"}, OpenAICompatibleProvider, "together"),
    ])
    def test_dispatch(self, config, expected_type, expected_name):
        provider = create_provider(config)
        assert isinstance(provider, expected_type)
        assert provider.name == expected_name
        assert isinstance(provider, LLMProvider)

    def test_missing_tag_defaults_to_openai(self):
        assert isinstance(create_provider({"model": "gpt-4o-mini"}), OpenAIProvider)

    def test_credentials_passed_through(self):
        provider = create_provider({
            "provider": "openai",
            "model": "gpt-4o",
            "api_key": "sk-test",
            "organization": "org-1",
            "base_url": "https://proxy.test/v1",
        })
        assert provider.api_key == "sk-test"
        assert provider.organization == "org-1"
        assert provider.base_url == "https://proxy.test/v1"

    def test_settings_fallback(self, isolated_settings, monkeypatch):
        monkeypatch.setattr(isolated_settings, "ANTHROPIC_API_KEY", "env-key")
        assert create_provider({"provider": "anthropic", "model": "claude"}).api_key == "env-key"

    def test_presets(self):
        grok = create_provider({"provider": "grok", "model": "grok-4", "api_key": "xai"})
        assert grok.base_url == "https://api.x.ai/v1"
        assert grok.api_key == "xai"

        ollama = create_provider({"provider": "ollama", "model": "llama3"})
        assert ollama.base_url == "http://localhost:11434/v1"
        assert ollama.api_key is None

    def test_generic_base_url_from_provider_options(self):
        provider = create_provider({
            "provider": "vllm",
            "model": "m",
            "provider_options": {"base_url": "http://gpu.test:8000/v1"},
        })
        assert provider.base_url == "http://gpu.test:8000/v1"


@pytest.mark.unit
@pytest.mark.providers
class TestCapabilityMatrix:
    """Test the streaming/batch capability matrix."""

    @pytest.mark.parametrize("config,streams,batches", [
        ({"provider": "openai", "model": "gpt-4o"}, True, True),
        ({"provider": "anthropic", "model": "claude"}, True, True),
        ({"provider": "bedrock", "model": "claude", "aws_region": "us-west-2"}, True, False),
        ({"provider": "genai", "model": "gemini"}, False, False),
        ({"provider": "grok", "model": "grok-4"}, True, False),
        ({"provider": "ollama", "model": "llama3"}, True, False),
        ({"provider": "other", "model": "m", "base_url": "http://x.test"}, True, False),
    ])
    def test_capabilities(self, config, streams, batches):
        provider = create_provider(config)
        assert supports_streaming(provider) is streams
        assert supports_batch(provider) is batches
