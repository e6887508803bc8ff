"""
AWS Bedrock provider implementation.

WHAT: Anthropic models served through AWS Bedrock
WHY: Same Messages format as Anthropic, but requests must be SigV4-signed
HOW: anthropic SDK's AsyncAnthropicBedrock client; events normalized by MessageAccumulator
"""

from contextlib import contextmanager
from typing import Any, AsyncIterator, Iterator

import anthropic

from .anthropic_messages import MessageAccumulator, build_message_params, thinking_enabled
from .types import LLMResponse, StreamChunk
from ..core.config import settings
from ..models.config import LLMConfig
from ..utils.exceptions import (
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _as_dict(payload: Any) -> dict[str, Any]:
    """SDK objects are pydantic models; tests may feed plain dicts."""
    if isinstance(payload, dict):
        return payload
    return payload.model_dump()


class BedrockProvider:
    """Bedrock adapter. Streaming is supported, batch is not."""

    name = "bedrock"

    def __init__(
        self,
        *,
        aws_region: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_session_token: str | None = None,
        client: Any = None,
        timeout: float | None = None,
        max_retries: int | None = None
    ):
        if client is None:
            client = anthropic.AsyncAnthropicBedrock(
                aws_region=aws_region or settings.AWS_REGION,
                aws_access_key=aws_access_key_id,
                aws_secret_key=aws_secret_access_key,
                aws_session_token=aws_session_token,
                timeout=timeout if timeout is not None else settings.LLM_TIMEOUT,
                max_retries=max_retries if max_retries is not None else settings.LLM_MAX_RETRIES,
            )
        self.client = client

    @classmethod
    def from_config(cls, config: LLMConfig) -> "BedrockProvider":
        return cls(
            aws_region=getattr(config, "aws_region", None),
            aws_access_key_id=getattr(config, "aws_access_key_id", None),
            aws_secret_access_key=getattr(config, "aws_secret_access_key", None),
            aws_session_token=getattr(config, "aws_session_token", None),
        )

    @contextmanager
    def _translate_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except anthropic.APITimeoutError as e:
            logger.error(f"bedrock {action} timed out")
            raise ProviderTimeoutError(f"bedrock {action} timed out", provider=self.name) from e
        except anthropic.APIConnectionError as e:
            logger.error(f"bedrock not reachable during {action}: {e}")
            raise ProviderUnavailableError("bedrock is not reachable", provider=self.name) from e
        except anthropic.APIStatusError as e:
            logger.error(f"bedrock {action} HTTP error: {e.status_code}")
            raise ProviderResponseError(
                f"HTTP {e.status_code}: {e.message}",
                provider=self.name,
                status_code=e.status_code
            ) from e

    async def _events(self, params: dict[str, Any], accumulator: MessageAccumulator) -> AsyncIterator[str]:
        with self._translate_errors("stream"):
            stream = await self.client.messages.create(**params, stream=True)
            try:
                async for event in stream:
                    text = accumulator.feed(_as_dict(event))
                    if text:
                        yield text
            finally:
                await stream.close()

    async def invoke(self, prompt: str, config: LLMConfig) -> LLMResponse:
        """
        Generate a complete response.

        Raises:
            ConfigError: max_tokens missing
            ProviderError: The Bedrock call failed
        """
        params = build_message_params(prompt, config, provider=self.name, allow_tools=False)
        accumulator = MessageAccumulator(thinking=thinking_enabled(config))

        if getattr(config, "stream", False):
            async for _ in self._events(params, accumulator):
                pass
            raw = None
        else:
            with self._translate_errors("generate"):
                message = await self.client.messages.create(**params)
            raw = _as_dict(message)
            accumulator.apply_message(raw)

        response = accumulator.response(raw)
        logger.info(
            f"Bedrock success (model: {config.model}, "
            f"tokens: {response.usage.input_tokens}+{response.usage.output_tokens})"
        )
        return response

    async def invoke_stream(self, prompt: str, config: LLMConfig) -> AsyncIterator[StreamChunk]:
        """Stream text deltas followed by one terminal usage chunk."""
        params = build_message_params(prompt, config, provider=self.name, allow_tools=False)
        accumulator = MessageAccumulator(thinking=thinking_enabled(config))

        async for text in self._events(params, accumulator):
            yield StreamChunk(text=text)

        yield StreamChunk(text="", usage=accumulator.usage())

    def supports_batch(self) -> bool:
        return False

    async def aclose(self) -> None:
        await self.client.close()
