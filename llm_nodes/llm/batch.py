"""
Batch coordination helpers.

WHAT: Vendor status vocabularies -> BatchStatus, JSONL decoding, multi-source result merging
WHY: Batch adapters share the same normalization rules
HOW: Lookup tables with a conservative default and a first-seen merge with success override
"""

import json
from typing import Any, Iterable

from ..models.batch import BatchStatus, ItemStatus, ProviderBatchItemResult
from ..utils.exceptions import ProviderResponseError
from ..utils.logger import get_logger

logger = get_logger(__name__)

OPENAI_BATCH_STATUSES: dict[str, BatchStatus] = {
    "validating": BatchStatus.VALIDATING,
    "in_progress": BatchStatus.IN_PROGRESS,
    "finalizing": BatchStatus.FINALIZING,
    "completed": BatchStatus.COMPLETED,
    "failed": BatchStatus.FAILED,
    "expired": BatchStatus.EXPIRED,
    "cancelling": BatchStatus.CANCELLING,
    "cancelled": BatchStatus.CANCELLED,
}

# "ended" is resolved separately since it depends on whether results are published yet
ANTHROPIC_BATCH_STATUSES: dict[str, BatchStatus] = {
    "in_progress": BatchStatus.IN_PROGRESS,
    "canceling": BatchStatus.CANCELLING,
}

ANTHROPIC_ITEM_STATUSES: dict[str, ItemStatus] = {
    "succeeded": ItemStatus.SUCCESS,
    "errored": ItemStatus.FAILED,
    "canceled": ItemStatus.CANCELLED,
    "expired": ItemStatus.EXPIRED,
}

UNKNOWN_STATUS_FALLBACK = BatchStatus.IN_PROGRESS


def map_batch_status(
    native: str | None,
    table: dict[str, BatchStatus],
    *,
    provider: str
) -> BatchStatus:
    """
    Map a vendor job status onto the unified enumeration.

    Unknown values map to in_progress, never to completed, so a caller keeps
    polling instead of reading results that may not exist.
    """
    status = table.get(native or "")
    if status is None:
        logger.warning(f"Unknown {provider} batch status {native!r}; treating as {UNKNOWN_STATUS_FALLBACK.value}")
        return UNKNOWN_STATUS_FALLBACK
    return status


def parse_jsonl(text: str, *, provider: str) -> list[dict[str, Any]]:
    """Decode a JSONL body, skipping blank lines."""
    entries = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSONL line {line_number} from {provider}: {line[:100]}")
            raise ProviderResponseError(
                f"Invalid batch result line {line_number}: {e}", provider=provider
            ) from e
    return entries


def merge_item_results(
    *sources: Iterable[ProviderBatchItemResult]
) -> list[ProviderBatchItemResult]:
    """
    Merge per-item results reported by several sources.

    The first record for a correlation id wins, except that a success replaces
    an earlier non-success record. A later failure never replaces a success.
    Order of first appearance is preserved.
    """
    merged: dict[str, ProviderBatchItemResult] = {}
    for source in sources:
        for item in source:
            existing = merged.get(item.custom_id)
            if existing is None:
                merged[item.custom_id] = item
            elif existing.status != ItemStatus.SUCCESS and item.status == ItemStatus.SUCCESS:
                merged[item.custom_id] = item
    return list(merged.values())
