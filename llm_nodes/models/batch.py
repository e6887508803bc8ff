"""
Batch processing models.

WHAT: Unified batch status vocabulary, persisted metadata and per-item results
WHY: Vendors expose different job APIs; callers see one shape
HOW: String enums for statuses, a pydantic model for the persisted handle, dataclasses for results
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .usage import TokenUsage
from ..utils.exceptions import ProviderResponseError

TOutput = TypeVar("TOutput")

CORRELATION_PREFIX = "req-"


class BatchStatus(str, Enum):
    """Unified batch job status."""
    VALIDATING = "validating"
    IN_PROGRESS = "in_progress"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = {
    BatchStatus.COMPLETED,
    BatchStatus.FAILED,
    BatchStatus.EXPIRED,
    BatchStatus.CANCELLED,
}


class ItemStatus(str, Enum):
    """Per-item outcome within a completed batch."""
    SUCCESS = "success"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class BatchMetadata(BaseModel):
    """
    Serializable handle returned by create_batch.

    The caller persists this (DB, Redis, file, ...) and passes it back to
    retrieve_batch. Nothing else is needed to fetch results later.
    """
    model_config = ConfigDict(frozen=True)

    batch_id: str = Field(..., min_length=1)
    provider: str
    model: str
    request_count: int = Field(..., ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_dict(cls, data: dict) -> "BatchMetadata":
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, data: str) -> "BatchMetadata":
        return cls.model_validate_json(data)


@dataclass(frozen=True)
class RequestCounts:
    total: int = 0
    completed: int = 0
    failed: int = 0
    expired: Optional[int] = None
    cancelled: Optional[int] = None


@dataclass(frozen=True)
class BatchItemResult(Generic[TOutput]):
    """
    Result for one original input.

    output is set only for parsed successes. The parser may itself return
    None (e.g. JSON "null"), so read status, not output, to tell outcomes apart.
    """
    index: int
    status: ItemStatus
    output: Optional[TOutput] = None
    raw_output: Optional[str] = None
    error: Optional[str] = None
    token_usage: Optional[TokenUsage] = None


@dataclass(frozen=True)
class BatchResult(Generic[TOutput]):
    status: BatchStatus
    results: Optional[list[BatchItemResult[TOutput]]] = None
    request_counts: Optional[RequestCounts] = None


# Provider-side records, before node-level parsing

@dataclass(frozen=True)
class ProviderBatchRequest:
    custom_id: str
    prompt: str


@dataclass(frozen=True)
class ProviderBatchItemResult:
    custom_id: str
    status: ItemStatus
    content: Optional[str] = None
    error: Optional[str] = None
    token_usage: Optional[TokenUsage] = None


@dataclass(frozen=True)
class ProviderBatchResponse:
    status: BatchStatus
    results: Optional[list[ProviderBatchItemResult]] = None
    request_counts: Optional[RequestCounts] = None
    raw: Any = None


def make_correlation_id(index: int) -> str:
    return f"{CORRELATION_PREFIX}{index}"


def parse_correlation_id(custom_id: str) -> int:
    """
    Recover the original input index from a correlation id.

    Raises:
        ProviderResponseError: If the id is not of the form req-<index>
    """
    if not isinstance(custom_id, str) or not custom_id.startswith(CORRELATION_PREFIX):
        raise ProviderResponseError(f"Unrecognized batch correlation id: {custom_id!r}")
    digits = custom_id[len(CORRELATION_PREFIX):]
    if not (digits.isascii() and digits.isdigit()):
        raise ProviderResponseError(f"Unrecognized batch correlation id: {custom_id!r}")
    return int(digits)
