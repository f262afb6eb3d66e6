from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    reset_at: float


@dataclass
class _Bucket:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window request counter keyed by client.

    At most ``max_keys`` buckets are kept; the least recently touched one is
    evicted first.
    """

    def __init__(
        self,
        limit: int = 20,
        window_seconds: float = 60.0,
        max_keys: int = 1024,
        clock: Clock = time.monotonic,
    ) -> None:
        if limit < 1 or window_seconds <= 0 or max_keys < 1:
            raise ValueError("limit, window_seconds and max_keys must be positive.")
        self.limit = limit
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._buckets: "OrderedDict[str, _Bucket]" = OrderedDict()
        self._lock = threading.Lock()

    def check(self, identifier: str) -> RateDecision:
        with self._lock:
            return self._check(identifier)

    def _check(self, identifier: str) -> RateDecision:
        now = self._clock()
        bucket = self._buckets.get(identifier)
        if bucket is None or bucket.reset_at <= now:
            bucket = _Bucket(count=1, reset_at=now + self.window_seconds)
            self._buckets[identifier] = bucket
            self._buckets.move_to_end(identifier)
            self._evict()
            return RateDecision(True, self.limit - 1, bucket.reset_at)

        self._buckets.move_to_end(identifier)
        if bucket.count >= self.limit:
            return RateDecision(False, 0, bucket.reset_at)
        bucket.count += 1
        return RateDecision(True, self.limit - bucket.count, bucket.reset_at)

    def __len__(self) -> int:
        return len(self._buckets)

    def _evict(self) -> None:
        while len(self._buckets) > self.max_keys:
            self._buckets.popitem(last=False)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    lowered = {key.lower(): value for key, value in headers.items()}
    return lowered.get(name.lower())


def get_client_id(headers: Mapping[str, str]) -> str:
    forwarded = _header(headers, "x-forwarded-for") or _header(headers, "cf-connecting-ip")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = _header(headers, "x-real-ip")
    if real_ip:
        return real_ip.strip()
    return "unknown"


def is_model_allowed(provider: str, model_id: str, allowed_models: Mapping[str, List[Dict[str, str]]]) -> bool:
    if not provider or not model_id:
        return False
    return any(option["id"] == model_id for option in allowed_models.get(provider, []))
