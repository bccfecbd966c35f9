"""Tests for statistics aggregation."""

from __future__ import annotations

import pytest

from agentdb.core.action_pattern import ActionPattern
from agentdb.database import AgentDB
from agentdb.engine.statistics import PatternSummary, Statistics, StatisticsAggregator


def _pattern(
    pattern_id: int,
    action: str,
    selector: str | None = None,
    success: bool = False,
    timestamp: str = "2025-01-01T00:00:00.000Z",
) -> ActionPattern:
    return ActionPattern(
        id=pattern_id, action=action, selector=selector, success=success, timestamp=timestamp
    )


class TestCompute:
    """Totals, rates and histograms."""

    def test_empty(self) -> None:
        stats = StatisticsAggregator().compute([])
        assert stats.total_actions == 0
        assert stats.success_rate == 0.0
        assert stats.action_type_histogram == {}
        assert stats.top_patterns == ()

    def test_totals(self) -> None:
        patterns = [
            _pattern(0, "fill", "#email", success=True),
            _pattern(1, "fill", "#email", success=False),
            _pattern(2, "click", "#submit", success=True),
            _pattern(3, "fill", "#name", success=True),
        ]
        stats = StatisticsAggregator().compute(patterns)
        assert stats.total_actions == 4
        assert stats.success_rate == pytest.approx(0.75)
        assert stats.action_type_histogram == {"fill": 3, "click": 1}

    def test_histogram_sums_to_total(self, populated_db: AgentDB) -> None:
        stats = populated_db.get_statistics()
        assert sum(stats.action_type_histogram.values()) == stats.total_actions == 4

    def test_embedding_time_excluded_from_equality(self) -> None:
        a = Statistics(1, 1.0, {"fill": 1}, average_embedding_ms=0.1)
        b = Statistics(1, 1.0, {"fill": 1}, average_embedding_ms=5.0)
        assert a == b

    def test_to_dict_keys(self) -> None:
        stats = StatisticsAggregator().compute(
            [_pattern(0, "fill", "#email", success=True)], average_embedding_ms=0.25
        )
        data = stats.to_dict()
        assert data["totalActions"] == 1
        assert data["successRate"] == 1.0
        assert data["actionTypes"] == {"fill": 1}
        assert data["averageEmbeddingTime"] == 0.25
        assert data["topPatterns"][0]["pattern"] == "fill|#email"


class TestTopPatterns:
    """Ranking of ``action|selector`` groups."""

    def test_ranked_by_count(self) -> None:
        patterns = [
            _pattern(0, "click", "#submit"),
            _pattern(1, "fill", "#email", success=True),
            _pattern(2, "fill", "#email", success=False),
            _pattern(3, "fill", "#email", success=True),
            _pattern(4, "click", "#submit"),
            _pattern(5, "scroll"),
        ]
        top = StatisticsAggregator().top_patterns(patterns, 2)
        assert [s.pattern for s in top] == ["fill|#email", "click|#submit"]
        assert top[0].count == 3
        assert top[0].success_rate == pytest.approx(2 / 3)
        assert top[0].action == "fill"
        assert top[0].selector == "#email"

    def test_newest_first_on_equal_counts(self) -> None:
        patterns = [
            _pattern(0, "click", "#a", timestamp="2025-01-01T00:00:00.000Z"),
            _pattern(1, "click", "#b", timestamp="2025-03-01T00:00:00.000Z"),
            _pattern(2, "click", "#c", timestamp="2025-02-01T00:00:00.000Z"),
        ]
        top = StatisticsAggregator().top_patterns(patterns, 3)
        assert [s.pattern for s in top] == ["click|#b", "click|#c", "click|#a"]

    def test_last_seen_is_latest(self) -> None:
        patterns = [
            _pattern(0, "fill", "#email", timestamp="2025-05-01T00:00:00.000Z"),
            _pattern(1, "fill", "#email", timestamp="2025-01-01T00:00:00.000Z"),
        ]
        (summary,) = StatisticsAggregator().top_patterns(patterns, 1)
        assert summary.last_seen == "2025-05-01T00:00:00.000Z"

    def test_missing_selector_groups_together(self) -> None:
        patterns = [_pattern(0, "scroll"), _pattern(1, "scroll")]
        (summary,) = StatisticsAggregator().top_patterns(patterns, 5)
        assert summary == PatternSummary(
            pattern="scroll|",
            action="scroll",
            selector=None,
            count=2,
            success_rate=0.0,
            last_seen="2025-01-01T00:00:00.000Z",
        )

    def test_non_positive_n(self) -> None:
        assert StatisticsAggregator().top_patterns([_pattern(0, "click")], 0) == []

    def test_database_top_patterns(self, populated_db: AgentDB) -> None:
        top = populated_db.top_patterns(1)
        assert top[0].pattern == "fill|#email"
        assert top[0].count == 2
        assert top[0].success_rate == pytest.approx(0.5)
