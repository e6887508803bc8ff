"""
Unit tests for token usage models.

WHAT: Test TokenUsage validation, ledger behavior and aggregation
WHY: Usage totals must never double count or lose records
HOW: Construct values directly and compare totals
"""

import pytest

from llm_nodes.models.usage import (
    TokenUsage,
    TotalTokenUsage,
    UsageLedger,
    estimate_thinking_tokens,
    sum_usage,
)


@pytest.mark.unit
class TestTokenUsage:
    """Test the immutable usage value."""

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError, match="input_tokens"):
            TokenUsage(input_tokens=-1, output_tokens=0)

        with pytest.raises(ValueError, match="thinking_tokens"):
            TokenUsage(input_tokens=1, output_tokens=1, thinking_tokens=-3)

    def test_optional_fields_default_to_none(self):
        usage = TokenUsage(input_tokens=3, output_tokens=4)
        assert usage.thinking_tokens is None
        assert usage.search_count is None
        assert usage.fetch_count is None

    def test_zero(self):
        assert TokenUsage.zero() == TokenUsage(input_tokens=0, output_tokens=0)

    def test_total_addition(self):
        total = TotalTokenUsage(1, 2) + TotalTokenUsage(10, 20)
        assert total == TotalTokenUsage(11, 22)
        assert total.total_tokens == 33
        assert total.to_dict() == {"input_tokens": 11, "output_tokens": 22, "total_tokens": 33}


@pytest.mark.unit
class TestUsageLedger:
    """Test the append-only ledger."""

    def test_n_calls_sum_without_double_counting(self):
        ledger = UsageLedger()
        for i in range(5):
            ledger.record("openai", "gpt-4o", TokenUsage(input_tokens=i, output_tokens=2 * i))

        assert len(ledger) == 5
        total = ledger.total()
        assert total.input_tokens == 10
        assert total.output_tokens == 20
        assert total.total_tokens == 30

    def test_records_returns_copy(self):
        ledger = UsageLedger()
        ledger.record("openai", "gpt-4o", TokenUsage(input_tokens=1, output_tokens=1))

        records = ledger.records()
        records.clear()

        assert len(ledger) == 1

    def test_record_fields(self):
        ledger = UsageLedger()
        entry = ledger.record("anthropic", "claude", TokenUsage(input_tokens=2, output_tokens=3))

        assert entry.provider == "anthropic"
        assert entry.model == "claude"
        assert entry.timestamp.tzinfo is not None

    def test_clear(self):
        ledger = UsageLedger()
        ledger.record("openai", "m", TokenUsage(input_tokens=1, output_tokens=1))
        ledger.clear()

        assert len(ledger) == 0
        assert ledger.total() == TotalTokenUsage()

    def test_sum_usage_ignores_optional_counts(self):
        ledger = UsageLedger()
        ledger.record("openai", "m", TokenUsage(input_tokens=1, output_tokens=2, thinking_tokens=100))
        assert sum_usage(ledger.records()) == TotalTokenUsage(1, 2)


@pytest.mark.unit
class TestThinkingEstimate:
    """Test the thinking-token estimate."""

    def test_estimate_subtracts_visible_content(self):
        # 8 characters -> 2 tokens of visible content
        assert estimate_thinking_tokens(50, "abcdefgh") == 48

    def test_estimate_rounds_content_up(self):
        assert estimate_thinking_tokens(10, "abcde") == 8

    def test_estimate_clamped_at_zero(self):
        assert estimate_thinking_tokens(1, "a" * 400) == 0
