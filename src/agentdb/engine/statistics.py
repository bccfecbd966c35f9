"""Statistics over the stored action patterns.

Everything is recomputed with one linear pass per call; there are no
cached counters to drift out of sync with the record map.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from agentdb.core.action_pattern import ActionPattern, parse_timestamp

_EPOCH = parse_timestamp("1970-01-01T00:00:00Z")


@dataclass(frozen=True)
class PatternSummary:
    """
    Aggregate for one ``action|selector`` group.

    Attributes:
        pattern: Grouping key, ``action + "|" + selector``
        action: Action type of the group
        selector: Selector of the group (None when not recorded)
        count: Number of patterns in the group
        success_rate: Fraction of the group recorded as successful
        last_seen: Most recent timestamp in the group
    """

    pattern: str
    action: str
    selector: str | None
    count: int
    success_rate: float
    last_seen: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "action": self.action,
            "selector": self.selector,
            "count": self.count,
            "successRate": self.success_rate,
            "lastSeen": self.last_seen,
        }


@dataclass(frozen=True)
class Statistics:
    """
    Database-wide statistics.

    Attributes:
        total_actions: Number of stored patterns
        success_rate: successful / total, 0.0 when empty
        action_type_histogram: Count per action type
        top_patterns: Most frequent ``action|selector`` groups
        average_embedding_ms: Mean embedding time in this process; not
            persisted, so it is excluded from equality
    """

    total_actions: int
    success_rate: float
    action_type_histogram: dict[str, int]
    top_patterns: tuple[PatternSummary, ...] = ()
    average_embedding_ms: float = field(default=0.0, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalActions": self.total_actions,
            "successRate": self.success_rate,
            "actionTypes": dict(self.action_type_histogram),
            "topPatterns": [s.to_dict() for s in self.top_patterns],
            "averageEmbeddingTime": self.average_embedding_ms,
        }


@dataclass
class _Group:
    action: str
    selector: str | None
    count: int = 0
    successes: int = 0
    last_seen: datetime | None = None
    last_seen_raw: str = ""


class StatisticsAggregator:
    """Computes :class:`Statistics` from an iterable of patterns."""

    def compute(
        self,
        patterns: Iterable[ActionPattern],
        top_n: int = 10,
        average_embedding_ms: float = 0.0,
    ) -> Statistics:
        total = 0
        successes = 0
        histogram: dict[str, int] = {}
        groups: dict[str, _Group] = {}

        for pattern in patterns:
            total += 1
            if pattern.success:
                successes += 1
            histogram[pattern.action] = histogram.get(pattern.action, 0) + 1

            group = groups.get(pattern.pattern_key)
            if group is None:
                group = _Group(action=pattern.action, selector=pattern.selector)
                groups[pattern.pattern_key] = group
            group.count += 1
            if pattern.success:
                group.successes += 1
            seen = parse_timestamp(pattern.timestamp)
            if group.last_seen is None or seen > group.last_seen:
                group.last_seen = seen
                group.last_seen_raw = pattern.timestamp

        return Statistics(
            total_actions=total,
            success_rate=successes / total if total > 0 else 0.0,
            action_type_histogram=histogram,
            top_patterns=_rank_groups(groups, top_n),
            average_embedding_ms=average_embedding_ms,
        )

    def top_patterns(self, patterns: Iterable[ActionPattern], n: int = 10) -> list[PatternSummary]:
        """Most frequent ``action|selector`` groups, newest first on equal counts."""
        return list(self.compute(patterns, top_n=n).top_patterns)


def _rank_groups(groups: dict[str, _Group], n: int) -> tuple[PatternSummary, ...]:
    if n <= 0:
        return ()
    ranked = sorted(
        groups.items(),
        key=lambda item: (item[1].count, item[1].last_seen or _EPOCH),
        reverse=True,
    )
    return tuple(
        PatternSummary(
            pattern=key,
            action=group.action,
            selector=group.selector,
            count=group.count,
            success_rate=group.successes / group.count,
            last_seen=group.last_seen_raw,
        )
        for key, group in ranked[:n]
    )
