"""Safety utilities for AgentDB.

Keeps credentials and payment data out of the recorded ``value`` field.
"""

from agentdb.safety.sensitive import (
    SensitivePattern,
    SensitiveType,
    find_sensitive_value,
    get_default_patterns,
    is_sensitive_field,
    scrub_value,
)

__all__ = [
    "SensitivePattern",
    "SensitiveType",
    "find_sensitive_value",
    "get_default_patterns",
    "is_sensitive_field",
    "scrub_value",
]
