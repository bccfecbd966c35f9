"""Sensitive value detection for recorded actions.

A pattern's ``value`` is what the automation typed.  It is kept for
ordinary fields (names, company, website) and dropped for anything that
looks like a credential, payment detail or identity number.  Two checks
apply:

- the field itself is sensitive, judged from the selector and from
  ``fieldType``/``inputType``/``name`` metadata keys
- the value looks like a secret regardless of field (card number,
  SSN, JWT, private key, long hex/base64 blob)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from functools import lru_cache
from typing import Any

logger = logging.getLogger(__name__)

# Maximum value length for sensitive detection (prevent ReDoS on huge input)
_MAX_VALUE_LENGTH = 10_000

# Metadata keys collaborators use to describe the target field
_FIELD_METADATA_KEYS = ("fieldType", "inputType", "type", "name", "autocomplete")

# Web addresses typed into website fields; generic-secret patterns skip these
_URL_VALUE_RE = re.compile(r"^(?:[a-z][a-z0-9+.-]*://|www\.)\S+$", re.IGNORECASE)

# Short abbreviations only count as whole words ("ssn" but not "classname")
_SENSITIVE_FIELD_RE = re.compile(
    r"(?i)(password|passwd|passcode|secret|token|api[_-]?key|one[_-]?time|"
    r"verification[_-]?code|security[_-]?code|card[_-]?(number|num|no)|"
    r"cc[_-]?(number|num|csc)|social[_-]?security|tax[_-]?id|"
    r"(?<![a-z])(pass|pwd|otp|2fa|mfa|cvv|cvc|csc|ssn|pin)(?![a-z]))"
)


class SensitiveType(StrEnum):
    """Types of sensitive values."""

    PASSWORD = "password"
    TOKEN = "token"
    PRIVATE_KEY = "private_key"
    CREDIT_CARD = "credit_card"
    SSN = "ssn"
    JWT = "jwt"
    GENERIC_SECRET = "generic_secret"


@dataclass(frozen=True)
class SensitivePattern:
    """A pattern for detecting a sensitive value."""

    name: str
    pattern: str
    type: SensitiveType
    severity: int = 1  # 1=low, 2=medium, 3=high


@lru_cache(maxsize=1)
def get_default_patterns() -> tuple[SensitivePattern, ...]:
    """Get default sensitive value patterns (cached after first call)."""
    return (
        SensitivePattern(
            name="Private Key",
            pattern=r"-----BEGIN\s+(RSA|DSA|EC|OPENSSH|PGP)?\s*PRIVATE KEY-----",
            type=SensitiveType.PRIVATE_KEY,
            severity=3,
        ),
        SensitivePattern(
            name="JWT Token",
            pattern=r"eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*",
            type=SensitiveType.JWT,
            severity=2,
        ),
        SensitivePattern(
            name="Credit Card",
            pattern=r"\b(?:4[0-9]{12}(?:[0-9]{3})?|5[1-5][0-9]{14}|3[47][0-9]{13}|6(?:011|5[0-9]{2})[0-9]{12})\b",
            type=SensitiveType.CREDIT_CARD,
            severity=3,
        ),
        SensitivePattern(
            name="SSN",
            pattern=r"\b\d{3}-\d{2}-\d{4}\b",
            type=SensitiveType.SSN,
            severity=3,
        ),
        SensitivePattern(
            name="Bearer Token",
            pattern=r"(?i)\bbearer\s+[a-zA-Z0-9_\-\.]{16,}",
            type=SensitiveType.TOKEN,
            severity=3,
        ),
        SensitivePattern(
            name="Long Base64 String",
            pattern=(
                r"\b(?=[A-Za-z0-9+/]*[A-Z])(?=[A-Za-z0-9+/]*[a-z])(?=[A-Za-z0-9+/]*[0-9])"
                r"(?![A-Za-z0-9+/]*//)[A-Za-z0-9+/]{40,512}={0,2}"
            ),
            type=SensitiveType.GENERIC_SECRET,
            severity=1,
        ),
        SensitivePattern(
            name="Long Hex String",
            pattern=r"\b[a-fA-F0-9]{32,512}\b",
            type=SensitiveType.GENERIC_SECRET,
            severity=1,
        ),
    )


@lru_cache(maxsize=64)
def _compiled(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def find_sensitive_value(value: str, min_severity: int = 1) -> SensitivePattern | None:
    """Return the first pattern ``value`` matches, or None."""
    text = value[:_MAX_VALUE_LENGTH]
    url_shaped = _URL_VALUE_RE.match(text.strip()) is not None
    for pattern in get_default_patterns():
        if pattern.severity < min_severity:
            continue
        if url_shaped and pattern.type is SensitiveType.GENERIC_SECRET:
            continue
        if _compiled(pattern.pattern).search(text):
            return pattern
    return None


def is_sensitive_field(selector: str | None, metadata: Mapping[str, Any] | None = None) -> bool:
    """Whether the targeted field holds credentials, payment or identity data."""
    if selector and _SENSITIVE_FIELD_RE.search(selector):
        return True
    if metadata:
        if metadata.get("sensitive") is True:
            return True
        for key in _FIELD_METADATA_KEYS:
            hint = metadata.get(key)
            if isinstance(hint, str) and _SENSITIVE_FIELD_RE.search(hint):
                return True
    return False


def scrub_value(
    value: str | None,
    selector: str | None,
    metadata: Mapping[str, Any] | None = None,
) -> str | None:
    """Return ``value`` if it is safe to persist, otherwise None."""
    if value is None:
        return None
    if is_sensitive_field(selector, metadata):
        logger.debug("Dropping value for sensitive field %r", selector)
        return None
    match = find_sensitive_value(value)
    if match is not None:
        logger.debug("Dropping value matching %s for field %r", match.name, selector)
        return None
    return value
