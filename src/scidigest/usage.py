"""Read-side aggregation of generative-AI usage telemetry."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from pydantic import BaseModel, Field

from .models import UsageEvent


class UsageStats(BaseModel):
    """Totals over a window of usage events."""

    total_tokens: int = 0
    total_calls: int = 0
    success_rate: float = 0.0
    avg_latency_ms: float = 0.0
    by_feature: dict[str, int] = Field(default_factory=dict)


def summarize_usage(events: Iterable[UsageEvent]) -> UsageStats:
    """Aggregate usage events into totals and per-feature token counts.

    Args:
        events: Usage history, any order.

    Returns:
        UsageStats with zeroed fields when there are no events.
    """
    events = list(events)
    if not events:
        return UsageStats()

    by_feature: dict[str, int] = defaultdict(int)
    for event in events:
        by_feature[event.feature] += event.total_tokens

    successes = sum(1 for e in events if e.success)
    return UsageStats(
        total_tokens=sum(e.total_tokens for e in events),
        total_calls=len(events),
        success_rate=successes / len(events),
        avg_latency_ms=sum(e.latency_ms for e in events) / len(events),
        by_feature=dict(sorted(by_feature.items(), key=lambda kv: kv[1], reverse=True)),
    )


def token_budget_percent(stats: UsageStats, monthly_limit: int) -> float:
    """Share of the monthly token budget consumed, capped at 100."""
    if monthly_limit <= 0:
        return 100.0
    return min(100.0, stats.total_tokens / monthly_limit * 100)
