"""In-process memoization of API results."""

from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Hashable

import pandas as pd

logger = logging.getLogger(__name__)

CacheKey = tuple


def _freeze(value: Any) -> Hashable:
    if isinstance(value, (list, tuple, set)):
        items = [_freeze(v) for v in value]
        return tuple(sorted(items, key=repr) if isinstance(value, set) else items)
    if isinstance(value, dict):
        return tuple(sorted((str(k), _freeze(v)) for k, v in value.items()))
    return value


def make_cache_key(endpoint: str, params: dict[str, Any] | None, raw: bool) -> CacheKey:
    """Deterministic key from endpoint name, sorted params and the raw flag."""
    items = tuple(
        sorted((str(k), _freeze(v)) for k, v in (params or {}).items() if v is not None)
    )
    return (endpoint, items, bool(raw))


def _copy_value(value: Any) -> Any:
    if isinstance(value, pd.DataFrame):
        # deep=True copies data, list cells are deep-copied separately
        frame = value.copy(deep=True)
        for column in frame.columns[frame.dtypes == object]:
            frame[column] = pd.Series(
                [copy.deepcopy(v) for v in frame[column]], index=frame.index, dtype=object
            )
        return frame
    if isinstance(value, dict):
        return {k: _copy_value(v) for k, v in value.items()}
    return copy.deepcopy(value)


@dataclass
class CacheEntry:
    value: Any
    created_at: float = field(default_factory=time.time)


class ResponseCache:
    """Keyed store with no eviction; entries live until `clear()`."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}

    def get(self, key: CacheKey) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        logger.debug("Cache hit for %s", key[0])
        # hand out a copy so callers cannot change what is stored
        return CacheEntry(_copy_value(entry.value), entry.created_at)

    def put(self, key: CacheKey, value: Any) -> CacheEntry:
        entry = CacheEntry(_copy_value(value))
        self._entries[key] = entry
        return entry

    def clear(self) -> None:
        logger.debug("Clearing %d cached entries", len(self._entries))
        self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
