"""Intent recognition over action sequences.

Groups a sequence of actions into an intent string
``<domain>_<action>_<action>...`` and tracks how often each intent is
seen and how reliable it was.  Built only on the public ``AgentDB``
surface; it never changes what the store records.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from agentdb.core.action_pattern import ActionContext, ActionPattern, PatternInput

if TYPE_CHECKING:
    from agentdb.database import AgentDB

logger = logging.getLogger(__name__)

ActionLike = ActionPattern | PatternInput


@dataclass
class SemanticPattern:
    """
    A recognised intent.

    Attributes:
        intent: ``<domain>_<action>_...`` key
        confidence: Success fraction of the first sequence seen
        actions: The first sequence seen for this intent
        frequency: Number of times the intent was recognised
    """

    intent: str
    confidence: float
    actions: tuple[ActionLike, ...]
    frequency: int = 1


def extract_domain(url: str | None) -> str:
    """Hostname without ``www.``, or "unknown" when there is none."""
    if not url:
        return "unknown"
    raw = url if "://" in url else "//" + url
    try:
        host = urlsplit(raw).hostname
    except ValueError:
        return "unknown"
    if not host:
        return "unknown"
    return host.removeprefix("www.")


class PatternRecognizer:
    """Recognises repeated action sequences and delegates similarity to AgentDB."""

    def __init__(self, db: AgentDB) -> None:
        self._db = db
        self._patterns: dict[str, SemanticPattern] = {}

    def recognize_pattern(self, actions: Sequence[ActionLike]) -> SemanticPattern | None:
        """Register a sequence and return its intent, or None for an empty sequence."""
        if not actions:
            return None

        intent = self.extract_intent(actions)
        existing = self._patterns.get(intent)
        if existing is not None:
            existing.frequency += 1
            return existing

        pattern = SemanticPattern(
            intent=intent,
            confidence=sum(1 for a in actions if a.success) / len(actions),
            actions=tuple(actions),
        )
        self._patterns[intent] = pattern
        logger.debug("New intent recognised: %s", intent)
        return pattern

    def find_similar_patterns(self, query: ActionContext, limit: int = 5) -> list[ActionPattern]:
        return [r.pattern for r in self._db.find_similar(query, limit)]

    @staticmethod
    def extract_intent(actions: Sequence[ActionLike]) -> str:
        action_types = "_".join(a.action for a in actions)
        return f"{extract_domain(actions[0].url)}_{action_types}"

    def get_patterns(self) -> list[SemanticPattern]:
        return list(self._patterns.values())

    def get_statistics(self) -> dict[str, Any]:
        patterns = self.get_patterns()
        count = len(patterns)
        return {
            "totalPatterns": count,
            "averageConfidence": sum(p.confidence for p in patterns) / count if count else 0.0,
            "totalFrequency": sum(p.frequency for p in patterns),
            "topPatterns": sorted(patterns, key=lambda p: p.frequency, reverse=True)[:5],
        }
