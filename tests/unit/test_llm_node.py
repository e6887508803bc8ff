"""
Unit tests for LLMNode.

WHAT: Test prompt rendering, execute, usage tracking and batch handling
WHY: The node is the entry point every caller uses
HOW: Inject MockLLMProvider and inspect calls, outputs and the usage ledger
"""

import pytest
from pydantic import BaseModel

from llm_nodes.models.batch import (
    BatchMetadata,
    BatchStatus,
    ItemStatus,
    ProviderBatchItemResult,
    ProviderBatchResponse,
    RequestCounts,
)
from llm_nodes.models.config import OpenAIConfig
from llm_nodes.models.usage import TokenUsage
from llm_nodes.nodes import LLMNode, StructuredOutputNode, TextNode
from llm_nodes.parsers import json_parser
from llm_nodes.utils.exceptions import (
    CapabilityError,
    ConfigError,
    ParseError,
    ProviderResponseError,
)
from tests.fixtures.mock_llm import MockLLMProvider

CONFIG = {"provider": "openai", "model": "gpt-4o-mini"}


def make_node(provider, parser=None, template="Summarize {{topic}}", **kwargs):
    return LLMNode(
        prompt_template=template,
        llm_config=CONFIG,
        parser=parser or (lambda raw: raw),
        provider=provider,
        **kwargs
    )


@pytest.mark.unit
@pytest.mark.nodes
class TestPrompt:
    """Test prompt generation."""

    def test_string_template(self):
        node = make_node(MockLLMProvider())
        assert node.get_prompt({"topic": "tides"}) == "Summarize tides"

    def test_callable_template(self):
        node = make_node(MockLLMProvider(), template=lambda value: f"Q: {value['q']}")
        assert node.get_prompt({"q": "why?"}) == "Q: why?"

    def test_preprocessor_runs_first(self):
        node = make_node(
            MockLLMProvider(),
            input_preprocessor=lambda value: {"topic": value.upper()}
        )
        assert node.get_prompt("tides") == "Summarize TIDES"

    def test_config_dict_is_parsed(self):
        node = make_node(MockLLMProvider())
        assert isinstance(node.llm_config, OpenAIConfig)


@pytest.mark.unit
@pytest.mark.nodes
class TestExecute:
    """Test single-shot execution."""

    @pytest.mark.asyncio
    async def test_execute_renders_invokes_and_parses(self):
        provider = MockLLMProvider(responses=['{"answer": 42}'])
        node = make_node(provider, parser=json_parser())

        result = await node.execute({"topic": "life"})

        assert result == {"answer": 42}
        assert provider.calls[0]["prompt"] == "Summarize life"
        assert provider.calls[0]["config"].model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_usage_recorded_per_call(self):
        provider = MockLLMProvider(usage=TokenUsage(input_tokens=7, output_tokens=3))
        node = make_node(provider)

        for _ in range(3):
            await node.execute({"topic": "x"})

        records = node.get_usage_records()
        assert len(records) == 3
        assert records[0].provider == "openai"
        assert records[0].model == "gpt-4o-mini"
        total = node.get_total_token_usage()
        assert (total.input_tokens, total.output_tokens, total.total_tokens) == (21, 9, 30)

    @pytest.mark.asyncio
    async def test_clear_usage_records(self):
        node = make_node(MockLLMProvider())
        await node.execute({"topic": "x"})
        node.clear_usage_records()

        assert node.get_usage_records() == []
        assert node.get_total_token_usage().total_tokens == 0

    @pytest.mark.asyncio
    async def test_parser_failure_raises_parse_error(self):
        node = make_node(MockLLMProvider(responses=["not json"]), parser=json_parser())

        with pytest.raises(ParseError) as exc_info:
            await node.execute({"topic": "x"})

        assert exc_info.value.code == "PARSE_ERROR"
        assert exc_info.value.raw_output == "not json"
        assert isinstance(exc_info.value.__cause__, ValueError)
        # Tokens were spent even though parsing failed
        assert len(node.get_usage_records()) == 1

    @pytest.mark.asyncio
    async def test_provider_error_propagates_unwrapped(self):
        node = make_node(MockLLMProvider(should_fail=True))

        with pytest.raises(ProviderResponseError):
            await node.execute({"topic": "x"})
        assert node.get_usage_records() == []

    @pytest.mark.asyncio
    async def test_config_error_before_network(self):
        node = LLMNode(
            prompt_template="{{input}}",
            llm_config={"provider": "anthropic", "model": "claude-sonnet-4", "api_key": "k"},
            parser=lambda raw: raw
        )

        with pytest.raises(ConfigError) as exc_info:
            await node.execute("hi")

        assert exc_info.value.field == "max_tokens"
        assert "max_tokens" in str(exc_info.value)
        await node.aclose()

    @pytest.mark.asyncio
    async def test_aclose_releases_provider(self):
        provider = MockLLMProvider()
        await make_node(provider).aclose()
        assert provider.closed


@pytest.mark.unit
@pytest.mark.nodes
class TestSpecializedNodes:
    """Test TextNode and StructuredOutputNode."""

    @pytest.mark.asyncio
    async def test_text_node(self):
        node = TextNode(
            prompt_template="{{input}}",
            llm_config=CONFIG,
            provider=MockLLMProvider(responses=["  trimmed  "])
        )
        assert await node.execute("hi") == "trimmed"

    @pytest.mark.asyncio
    async def test_structured_output_node(self):
        class Verdict(BaseModel):
            label: str
            confidence: float

        provider = MockLLMProvider(responses=['```json\n{"label": "spam", "confidence": 0.9}\n```'])
        node = StructuredOutputNode(
            prompt_template="Classify: {{text}}",
            llm_config=CONFIG,
            schema=Verdict,
            provider=provider
        )

        verdict = await node.execute({"text": "WIN A PRIZE"})

        assert verdict == Verdict(label="spam", confidence=0.9)
        assert provider.calls[0]["prompt"].startswith("Classify: WIN A PRIZE")
        assert '"confidence"' in provider.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_structured_output_node_invalid(self):
        class Verdict(BaseModel):
            label: str

        node = StructuredOutputNode(
            prompt_template="{{input}}",
            llm_config=CONFIG,
            schema=Verdict,
            provider=MockLLMProvider(responses=['{"other": 1}'])
        )
        with pytest.raises(ParseError):
            await node.execute("x")


@pytest.mark.unit
@pytest.mark.nodes
@pytest.mark.batch
class TestBatch:
    """Test batch submission and retrieval through the node."""

    def metadata(self, count=3):
        return BatchMetadata(batch_id="batch-mock", provider="openai", model="gpt-4o-mini", request_count=count)

    @pytest.mark.asyncio
    async def test_create_batch_without_capability(self):
        provider = MockLLMProvider(batch_enabled=False)
        node = make_node(provider)

        with pytest.raises(CapabilityError, match="batch processing"):
            await node.create_batch([{"topic": "a"}])
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_create_batch_empty_inputs(self):
        node = make_node(MockLLMProvider(batch_enabled=True))
        with pytest.raises(ValueError):
            await node.create_batch([])

    @pytest.mark.asyncio
    async def test_create_batch_correlation_ids(self):
        provider = MockLLMProvider(batch_enabled=True)
        node = make_node(provider)

        metadata = await node.create_batch([{"topic": "a"}, {"topic": "b"}])

        requests = provider.calls[0]["requests"]
        assert [r.custom_id for r in requests] == ["req-0", "req-1"]
        assert [r.prompt for r in requests] == ["Summarize a", "Summarize b"]
        assert metadata.request_count == 2
        assert node.get_usage_records() == []

    @pytest.mark.asyncio
    async def test_retrieve_not_completed_passes_through(self):
        counts = RequestCounts(total=3, completed=1, failed=0)
        provider = MockLLMProvider(
            batch_enabled=True,
            batch_response=ProviderBatchResponse(status=BatchStatus.IN_PROGRESS, request_counts=counts)
        )
        node = make_node(provider)

        result = await node.retrieve_batch(self.metadata())

        assert result.status == BatchStatus.IN_PROGRESS
        assert result.results is None
        assert result.request_counts == counts
        assert node.get_usage_records() == []

    @pytest.mark.asyncio
    async def test_retrieve_completed_orders_and_parses(self):
        usage = TokenUsage(input_tokens=10, output_tokens=4)
        provider = MockLLMProvider(
            batch_enabled=True,
            batch_response=ProviderBatchResponse(
                status=BatchStatus.COMPLETED,
                results=[
                    ProviderBatchItemResult("req-2", ItemStatus.SUCCESS, content='{"n": 2}', token_usage=usage),
                    ProviderBatchItemResult("req-0", ItemStatus.SUCCESS, content='{"n": 0}', token_usage=usage),
                    ProviderBatchItemResult("req-1", ItemStatus.SUCCESS, content="garbage", token_usage=usage),
                    ProviderBatchItemResult("req-3", ItemStatus.EXPIRED, error="expired"),
                ]
            )
        )
        node = make_node(provider, parser=json_parser())

        result = await node.retrieve_batch(self.metadata(4))

        assert result.status == BatchStatus.COMPLETED
        assert [item.index for item in result.results] == [0, 1, 2, 3]
        assert [item.status for item in result.results] == [
            ItemStatus.SUCCESS, ItemStatus.FAILED, ItemStatus.SUCCESS, ItemStatus.EXPIRED
        ]
        assert result.results[0].output == {"n": 0}
        assert result.results[1].output is None
        assert result.results[1].error.startswith("Parse error: ")
        assert result.results[1].raw_output == "garbage"
        assert result.results[3].error == "expired"

        # One aggregate record per completed retrieval
        records = node.get_usage_records()
        assert len(records) == 1
        assert records[0].token_usage == TokenUsage(input_tokens=30, output_tokens=12)

        await node.retrieve_batch(self.metadata(4))
        assert len(node.get_usage_records()) == 2

    @pytest.mark.asyncio
    async def test_retrieve_completed_empty_content_has_no_output(self):
        provider = MockLLMProvider(
            batch_enabled=True,
            batch_response=ProviderBatchResponse(
                status=BatchStatus.COMPLETED,
                results=[ProviderBatchItemResult("req-0", ItemStatus.SUCCESS, content="")]
            )
        )
        result = await make_node(provider).retrieve_batch(self.metadata(1))

        item = result.results[0]
        assert item.status == ItemStatus.FAILED
        assert item.output is None
        assert item.error

    @pytest.mark.asyncio
    async def test_retrieve_parsed_null_is_success(self):
        provider = MockLLMProvider(
            batch_enabled=True,
            batch_response=ProviderBatchResponse(
                status=BatchStatus.COMPLETED,
                results=[
                    ProviderBatchItemResult("req-0", ItemStatus.SUCCESS, content="null"),
                    ProviderBatchItemResult("req-1", ItemStatus.FAILED, error="bad request"),
                ]
            )
        )
        result = await make_node(provider, parser=json_parser()).retrieve_batch(self.metadata(2))

        parsed, failed = result.results
        assert parsed.status == ItemStatus.SUCCESS
        assert parsed.output is None
        assert parsed.error is None
        assert parsed.raw_output == "null"
        assert failed.status == ItemStatus.FAILED
        assert failed.error == "bad request"

    @pytest.mark.asyncio
    async def test_retrieve_completed_without_results(self):
        provider = MockLLMProvider(
            batch_enabled=True,
            batch_response=ProviderBatchResponse(status=BatchStatus.COMPLETED, results=None)
        )
        node = make_node(provider)

        result = await node.retrieve_batch(self.metadata(0))

        assert result.results == []
        assert node.get_usage_records()[0].token_usage == TokenUsage.zero()
