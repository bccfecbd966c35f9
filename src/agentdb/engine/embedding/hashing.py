"""Feature-hashing embedding provider.

Builds a fixed-length vector from field-tagged tokens of an action
context: the action type, the full selector and its word pieces, and the
URL host and path segments.  Each token is hashed with MD5 into a bucket
and a sign, weighted by field, then the vector is L2-normalised.

No model, no external state: the same context always yields the same
vector, in every process.
"""

from __future__ import annotations

import hashlib
import re
import struct
from urllib.parse import urlsplit

import numpy as np

from agentdb.engine.embedding.provider import EmbeddingProvider
from agentdb.utils.config import DEFAULT_DIMENSIONS

# Field weights; the action type dominates, URL path pieces matter least
_ACTION_WEIGHT = 2.0
_SELECTOR_WEIGHT = 1.5
_SELECTOR_PART_WEIGHT = 1.0
_HOST_WEIGHT = 1.5
_HOST_PART_WEIGHT = 0.5
_PATH_WEIGHT = 0.5

_SPLIT_RE = re.compile(r"[^a-z0-9]+")


def _pieces(text: str) -> list[str]:
    return [p for p in _SPLIT_RE.split(text.lower()) if p]


def _url_tokens(url: str) -> list[tuple[str, float]]:
    raw = url.strip().lower()
    if not raw:
        return []
    if "://" not in raw:
        raw = "//" + raw
    parts = urlsplit(raw)
    host = parts.hostname or ""
    if host.startswith("www."):
        host = host[4:]

    tokens: list[tuple[str, float]] = []
    if host:
        tokens.append((f"host:{host}", _HOST_WEIGHT))
        tokens.extend((f"host_part:{p}", _HOST_PART_WEIGHT) for p in _pieces(host))
    tokens.extend((f"path:{p}", _PATH_WEIGHT) for p in _pieces(parts.path))
    return tokens


def context_tokens(
    action: str,
    selector: str | None = None,
    url: str | None = None,
) -> list[tuple[str, float]]:
    """Return the weighted tokens an action context contributes."""
    tokens: list[tuple[str, float]] = [(f"action:{action.strip().lower()}", _ACTION_WEIGHT)]
    if selector:
        tokens.append((f"selector:{selector.strip()}", _SELECTOR_WEIGHT))
        tokens.extend((f"selector_part:{p}", _SELECTOR_PART_WEIGHT) for p in _pieces(selector))
    if url:
        tokens.extend(_url_tokens(url))
    return tokens


def _bucket(token: str, dimension: int) -> tuple[int, float]:
    digest = hashlib.md5(token.encode("utf-8", errors="surrogatepass")).digest()
    h = struct.unpack("<Q", digest[:8])[0]
    sign = 1.0 if (h >> 63) == 0 else -1.0
    return h % dimension, sign


class HashingEmbedding(EmbeddingProvider):
    """Deterministic signed feature-hashing projection."""

    def __init__(self, dimension: int = DEFAULT_DIMENSIONS) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be > 0, got {dimension}")
        self._dimension = dimension

    def embed(
        self,
        action: str,
        selector: str | None = None,
        url: str | None = None,
    ) -> np.ndarray:
        vector = np.zeros(self._dimension, dtype=np.float32)
        for token, weight in context_tokens(action, selector, url):
            index, sign = _bucket(token, self._dimension)
            vector[index] += sign * weight

        norm = float(np.linalg.norm(vector))
        if norm == 0.0:
            # Colliding tokens cancelled out; fall back to the action bucket
            index, sign = _bucket(f"action:{action.strip().lower()}", self._dimension)
            vector[index] = sign
            return vector
        return vector / np.float32(norm)

    @property
    def dimension(self) -> int:
        return self._dimension
