import time
from typing import Any, Callable, Dict, List, Optional

from src.specs.documents.poster_document_spec import PosterDocument


class PosterCache:
    """Time-bounded, per-process copy of the sorted poster list."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._posters: Optional[List[PosterDocument]] = None
        self._stored_at = 0.0
        self.hits = 0
        self.misses = 0

    def get(self) -> Optional[List[PosterDocument]]:
        if (
            self._posters is None
            or self.ttl_seconds <= 0
            or self._clock() - self._stored_at > self.ttl_seconds
        ):
            self.misses += 1
            return None
        self.hits += 1
        return list(self._posters)

    def set(self, posters: List[PosterDocument]) -> None:
        self._posters = list(posters)
        self._stored_at = self._clock()

    def invalidate(self) -> None:
        self._posters = None
        self._stored_at = 0.0

    def stats(self) -> Dict[str, Any]:
        return {
            "cached": self._posters is not None,
            "size": len(self._posters) if self._posters is not None else 0,
            "hits": self.hits,
            "misses": self.misses,
            "ttlSeconds": self.ttl_seconds,
        }
