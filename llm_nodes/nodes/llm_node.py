"""
LLM node implementation.

WHAT: One prompt template + one provider + one parser, with usage tracking
WHY: The unit of work callers compose into pipelines
HOW: Render prompt, call the bound provider, record usage, parse the content
"""

from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Dict, Generic, Optional, TypeVar, Union

from ..llm.provider import LLMProvider, supports_batch, supports_streaming
from ..llm.provider_factory import create_provider
from ..llm.streaming_handler import ensure_terminal_chunk
from ..llm.types import StreamChunk
from ..models.batch import (
    BatchItemResult,
    BatchMetadata,
    BatchResult,
    BatchStatus,
    ItemStatus,
    ProviderBatchItemResult,
    ProviderBatchRequest,
    make_correlation_id,
    parse_correlation_id,
)
from ..models.config import BaseLLMConfig, LLMConfig, parse_llm_config
from ..models.usage import TokenUsage, TotalTokenUsage, UsageLedger, UsageRecord
from ..utils.exceptions import CapabilityError, ParseError
from ..utils.logger import get_logger
from ..utils.template import render_template

if TYPE_CHECKING:
    from .pipeline import Pipeline

logger = get_logger(__name__)

TInput = TypeVar("TInput")
TOutput = TypeVar("TOutput")

PromptTemplate = Union[str, Callable[[Any], str]]


class LLMNode(Generic[TInput, TOutput]):
    """
    Executable LLM call with prompt templating, parsing and a private usage ledger.

    The provider is built from llm_config by the factory unless one is
    injected. The node never reads credentials itself.
    """

    def __init__(
        self,
        *,
        prompt_template: PromptTemplate,
        llm_config: Union[Dict[str, Any], BaseLLMConfig],
        parser: Callable[[str], TOutput],
        input_preprocessor: Optional[Callable[[TInput], Any]] = None,
        provider: Optional[LLMProvider] = None
    ):
        """
        Initialize node.

        Args:
            prompt_template: Template with {{expr}} placeholders, or a callable
            llm_config: Provider configuration (dict or config model)
            parser: Converts response text into the node's output
            input_preprocessor: Optional transform applied before rendering
            provider: Optional adapter; built from llm_config when omitted
        """
        self.prompt_template = prompt_template
        self.llm_config: LLMConfig = parse_llm_config(llm_config)
        self.parser = parser
        self.input_preprocessor = input_preprocessor
        self.provider = provider or create_provider(self.llm_config)
        self._usage = UsageLedger()

    # ========== Prompt ==========

    def get_prompt(self, input: TInput) -> str:
        """Render the prompt for an input (preprocessor applied)."""
        value = self.input_preprocessor(input) if self.input_preprocessor else input
        if callable(self.prompt_template):
            return self.prompt_template(value)
        return render_template(self.prompt_template, value)

    # ========== Usage ==========

    def _record_usage(self, token_usage: TokenUsage) -> None:
        self._usage.record(self.llm_config.provider, self.llm_config.model, token_usage)

    def get_usage_records(self) -> list[UsageRecord]:
        return self._usage.records()

    def get_total_token_usage(self) -> TotalTokenUsage:
        return self._usage.total()

    def clear_usage_records(self) -> None:
        self._usage.clear()

    # ========== Execution ==========

    async def execute(self, input: TInput) -> TOutput:
        """
        Run one call and return the parsed output.

        Usage is recorded before parsing, so a parse failure still counts
        the tokens spent.

        Raises:
            ParseError: The parser rejected the response
            ConfigError: A vendor-mandated field is missing
            ProviderError: The vendor call failed
        """
        prompt = self.get_prompt(input)
        response = await self.provider.invoke(prompt, self.llm_config)
        self._record_usage(response.usage)

        try:
            return self.parser(response.content)
        except Exception as e:
            logger.warning(f"Parse failed for {self.llm_config.provider}/{self.llm_config.model}: {e}")
            raise ParseError(str(e), raw_output=response.content) from e

    async def stream(self, input: TInput) -> AsyncIterator[StreamChunk]:
        """
        Stream the response as text chunks followed by one terminal usage chunk.

        The terminal usage is recorded before the terminal chunk is yielded.

        Raises:
            CapabilityError: The provider cannot stream
        """
        if not supports_streaming(self.provider):
            raise CapabilityError("streaming", self.llm_config.provider)

        prompt = self.get_prompt(input)
        chunks = self.provider.invoke_stream(prompt, self.llm_config)
        async for chunk in ensure_terminal_chunk(chunks, provider=self.llm_config.provider):
            if chunk.is_terminal:
                self._record_usage(chunk.usage)
            yield chunk

    # ========== Batch ==========

    async def create_batch(self, inputs: list[TInput]) -> BatchMetadata:
        """
        Submit all inputs as one vendor batch job.

        Inputs are addressed by their position (req-<index>). The returned
        metadata is all that retrieve_batch needs later.

        Raises:
            CapabilityError: The provider has no batch API
            ValueError: inputs is empty
        """
        if not supports_batch(self.provider):
            raise CapabilityError("batch processing", self.llm_config.provider)
        if not inputs:
            raise ValueError("create_batch requires at least one input")

        requests = [
            ProviderBatchRequest(custom_id=make_correlation_id(index), prompt=self.get_prompt(item))
            for index, item in enumerate(inputs)
        ]
        metadata = await self.provider.create_batch(requests, self.llm_config)
        logger.info(f"Batch submitted (id: {metadata.batch_id}, provider: {metadata.provider}, requests: {len(requests)})")
        return metadata

    async def retrieve_batch(self, metadata: BatchMetadata) -> BatchResult[TOutput]:
        """
        Fetch batch state and, once completed, parsed per-item results.

        Results are ordered by input index. A completed retrieval appends one
        aggregate usage record; other statuses record nothing.

        Raises:
            CapabilityError: The provider has no batch API
        """
        if not supports_batch(self.provider):
            raise CapabilityError("batch processing", self.llm_config.provider)
        if metadata.provider != self.llm_config.provider:
            logger.warning(
                f"Batch {metadata.batch_id} was created by '{metadata.provider}', "
                f"retrieving with '{self.llm_config.provider}'"
            )

        response = await self.provider.retrieve_batch(metadata, self.llm_config)
        if response.status != BatchStatus.COMPLETED:
            logger.info(f"Batch {metadata.batch_id} status: {response.status.value}")
            return BatchResult(status=response.status, request_counts=response.request_counts)

        results = sorted(
            (self._to_item_result(item) for item in response.results or []),
            key=lambda item: item.index
        )

        input_tokens = 0
        output_tokens = 0
        for item in results:
            if item.token_usage is not None:
                input_tokens += item.token_usage.input_tokens
                output_tokens += item.token_usage.output_tokens
        self._record_usage(TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens))

        logger.info(f"Batch {metadata.batch_id} retrieved ({len(results)} results)")
        return BatchResult(status=BatchStatus.COMPLETED, results=results, request_counts=response.request_counts)

    def _to_item_result(self, item: ProviderBatchItemResult) -> BatchItemResult[TOutput]:
        index = parse_correlation_id(item.custom_id)

        if item.status != ItemStatus.SUCCESS:
            return BatchItemResult(
                index=index,
                status=item.status,
                raw_output=item.content,
                error=item.error,
                token_usage=item.token_usage
            )

        if not item.content:
            # No output without parsed content
            return BatchItemResult(
                index=index,
                status=ItemStatus.FAILED,
                raw_output=item.content,
                error="Empty response",
                token_usage=item.token_usage
            )

        try:
            output = self.parser(item.content)
        except Exception as e:
            logger.warning(f"Batch item {item.custom_id} failed to parse: {e}")
            return BatchItemResult(
                index=index,
                status=ItemStatus.FAILED,
                raw_output=item.content,
                error=f"Parse error: {e}",
                token_usage=item.token_usage
            )

        return BatchItemResult(
            index=index,
            status=ItemStatus.SUCCESS,
            output=output,
            raw_output=item.content,
            token_usage=item.token_usage
        )

    # ========== Composition ==========

    def pipe(self, next_node: Any) -> "Pipeline":
        """Chain another stage after this node."""
        from .pipeline import Pipeline
        return Pipeline(self, next_node)

    async def aclose(self) -> None:
        await self.provider.aclose()
