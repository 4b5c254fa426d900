"""Tests for AI usage aggregation."""

from __future__ import annotations

import pytest

from scidigest.models import UsageEvent
from scidigest.usage import UsageStats, summarize_usage, token_budget_percent


class TestSummarizeUsage:
    def test_empty(self):
        assert summarize_usage([]) == UsageStats()

    def test_totals(self):
        stats = summarize_usage([
            UsageEvent(feature="summary", total_tokens=300, latency_ms=100),
            UsageEvent(feature="summary", total_tokens=200, latency_ms=300),
            UsageEvent(feature="chat", total_tokens=1000, latency_ms=200, success=False),
            UsageEvent(feature="tags", total_tokens=0, latency_ms=0),
        ])
        assert stats.total_tokens == 1500
        assert stats.total_calls == 4
        assert stats.success_rate == pytest.approx(0.75)
        assert stats.avg_latency_ms == pytest.approx(150)

    def test_by_feature_sorted_descending(self):
        stats = summarize_usage([
            UsageEvent(feature="a", total_tokens=10),
            UsageEvent(feature="b", total_tokens=30),
            UsageEvent(feature="a", total_tokens=5),
        ])
        assert list(stats.by_feature.items()) == [("b", 30), ("a", 15)]


class TestTokenBudget:
    def test_percent(self):
        assert token_budget_percent(UsageStats(total_tokens=250_000), 1_000_000) == pytest.approx(25.0)

    def test_capped_at_hundred(self):
        assert token_budget_percent(UsageStats(total_tokens=5_000), 1_000) == 100.0

    def test_zero_limit(self):
        assert token_budget_percent(UsageStats(), 0) == 100.0
