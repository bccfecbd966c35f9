"""Action pattern - a recorded browser-automation event.

An action pattern captures what was done (``action``), where
(``selector`` and ``url``), and whether it worked (``success``).
Only ``(action, selector, url)`` contribute to the embedding; ``value``
and ``metadata`` ride along for collaborators but never affect search.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, returning ``datetime.min`` (UTC) if malformed."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return datetime.min.replace(tzinfo=UTC)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class ActionContext:
    """The part of an action that drives similarity search.

    Attributes:
        action: Action type (e.g. "fill", "click")
        selector: Optional CSS selector the action targeted
        url: Optional page URL or host
    """

    action: str
    selector: str | None = None
    url: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ActionContext:
        """Build a context from a collaborator-supplied mapping."""
        return cls(
            action=str(data.get("action") or ""),
            selector=_optional_str(data, "selector"),
            url=_optional_str(data, "url"),
        )


@dataclass(frozen=True)
class PatternInput:
    """An action pattern before it has been assigned an id.

    Attributes:
        action: Action type, must be non-empty
        selector: Optional CSS selector
        url: Optional page URL
        value: Optional entered value (scrubbed for sensitive fields)
        success: Whether the action worked
        timestamp: ISO-8601 timestamp, defaults to now at store time
        metadata: Free-form collaborator data
    """

    action: str
    selector: str | None = None
    url: str | None = None
    value: str | None = None
    success: bool = False
    timestamp: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.action, str) or not self.action.strip():
            raise ValueError(f"action must be a non-empty string, got {self.action!r}")

    @property
    def context(self) -> ActionContext:
        return ActionContext(action=self.action, selector=self.selector, url=self.url)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PatternInput:
        """Build an input from a JSON-shaped mapping (ids are ignored)."""
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise ValueError(f"metadata must be an object, got {type(metadata).__name__}")
        timestamp = data.get("timestamp")
        return cls(
            action=data.get("action", ""),
            selector=_optional_str(data, "selector"),
            url=_optional_str(data, "url"),
            value=_optional_str(data, "value"),
            success=data.get("success") is True,
            timestamp=str(timestamp) if timestamp else None,
            metadata=dict(metadata),
        )


@dataclass(frozen=True)
class ActionPattern:
    """A stored action pattern.

    Attributes:
        id: Sequential id assigned at insert, never reused
        action: Action type
        selector: Optional CSS selector
        url: Optional page URL
        value: Optional entered value, never set for sensitive fields
        success: Whether the action worked
        timestamp: ISO-8601 time of the action
        metadata: Free-form collaborator data
    """

    id: int
    action: str
    selector: str | None = None
    url: str | None = None
    value: str | None = None
    success: bool = False
    timestamp: str = field(default_factory=utc_timestamp)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def context(self) -> ActionContext:
        return ActionContext(action=self.action, selector=self.selector, url=self.url)

    @property
    def pattern_key(self) -> str:
        """Grouping key used by top-pattern statistics."""
        return f"{self.action}|{self.selector or ''}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON record shape (id is stored alongside, not inside)."""
        data: dict[str, Any] = {"action": self.action}
        if self.selector is not None:
            data["selector"] = self.selector
        if self.url is not None:
            data["url"] = self.url
        if self.value is not None:
            data["value"] = self.value
        data["success"] = self.success
        data["timestamp"] = self.timestamp
        data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, pattern_id: int, data: Mapping[str, Any]) -> ActionPattern:
        """Deserialize a persisted record."""
        return cls(
            id=int(pattern_id),
            action=str(data.get("action", "")),
            selector=_optional_str(data, "selector"),
            url=_optional_str(data, "url"),
            value=_optional_str(data, "value"),
            success=data.get("success") is True,
            timestamp=str(data.get("timestamp") or utc_timestamp()),
            metadata=dict(data.get("metadata") or {}),
        )
