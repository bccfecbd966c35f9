"""Click Factory adapter.

Form-filling sessions record every field they touch and ask the store
which selectors have worked on similar pages before.  The adapter gets
its :class:`AgentDB` injected; several adapters can share one instance.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Literal

from agentdb.core.action_pattern import ActionContext, utc_timestamp
from agentdb.database import AgentDB
from agentdb.engine.query import SearchFilter, SearchResult
from agentdb.engine.statistics import Statistics

logger = logging.getLogger(__name__)

SESSION_START = "session_start"
FORM_FILL = "form_fill"


class ClickFactoryAdapter:
    """Recording and lookup interface used by form-filling sessions."""

    def __init__(self, db: AgentDB) -> None:
        self._db = db

    @property
    def db(self) -> AgentDB:
        """The underlying database, for advanced operations."""
        return self._db

    def create_session(
        self,
        url: str,
        mode: Literal["manual", "auto"] = "auto",
        started_at: float | None = None,
        **extra: Any,
    ) -> int:
        """Record the start of a session and return its id."""
        metadata: dict[str, Any] = {
            "mode": mode,
            "startedAt": started_at if started_at is not None else time.time(),
            **extra,
        }
        return self._db.record(SESSION_START, url=url, success=True, metadata=metadata)

    def record_form_fill(
        self,
        url: str,
        selector: str,
        success: bool,
        *,
        session_id: int | None = None,
        value: str | None = None,
        field_type: str | None = None,
    ) -> int:
        """Record one field fill attempt."""
        metadata: dict[str, Any] = {}
        if session_id is not None:
            metadata["sessionId"] = session_id
        if field_type is not None:
            metadata["fieldType"] = field_type
        return self._db.record(
            FORM_FILL,
            selector=selector,
            url=url,
            value=value,
            success=success,
            timestamp=utc_timestamp(),
            metadata=metadata,
        )

    def find_successful_patterns(self, url: str, limit: int = 10) -> list[SearchResult]:
        """Successful form fills on pages similar to ``url`` (same URL substring)."""
        return self._db.find_similar(
            ActionContext(action=FORM_FILL, url=url),
            limit,
            SearchFilter(success_only=True, url_contains=url),
        )

    def suggest_selectors(
        self,
        url: str,
        field_hint: str | None = None,
        limit: int = 5,
    ) -> list[str]:
        """Distinct selectors worth trying first, most similar first."""
        results = self._db.find_similar(
            ActionContext(action=FORM_FILL, selector=field_hint, url=url),
            limit * 3,
            SearchFilter(success_only=True),
        )
        selectors: list[str] = []
        for result in results:
            selector = result.pattern.selector
            if selector and selector not in selectors:
                selectors.append(selector)
            if len(selectors) >= limit:
                break
        return selectors

    def get_statistics(self) -> Statistics:
        return self._db.get_statistics()

    def save(self) -> None:
        self._db.save()

    def close(self) -> None:
        """Save before letting go of the database."""
        self._db.save()
        logger.info("Click Factory database saved and closed")
