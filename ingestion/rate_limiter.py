"""Per-domain politeness for the crawlers.

Website evidence, JS fallbacks and brand search calls can hit the same host
several times in a row (standard fetch, Googlebot retry, rendering pass).
The limiter spaces those requests out per host while leaving requests to
other hosts free to run from other worker threads.
"""
import threading
import time
from typing import Dict, Optional
from urllib.parse import urlparse

from config.settings import SETTINGS


class PerDomainRateLimiter:
    """Thread-safe minimum interval between requests to the same host.

    Usage:
        limiter = PerDomainRateLimiter(min_interval=1.0)
        limiter.wait('https://acme.com/')        # first hit, no wait
        limiter.wait('https://acme.com/about')   # waits until 1s after the first
    """

    def __init__(self, min_interval: float = 1.0):
        self.min_interval = min_interval
        self._next_slot: Dict[str, float] = {}
        self._host_locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, host: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._host_locks.get(host)
            if lock is None:
                lock = self._host_locks[host] = threading.Lock()
            return lock

    def wait(self, url: str) -> float:
        """Block until a request to ``url``'s host is allowed.

        Returns:
            Seconds slept (0.0 when no wait was needed)
        """
        if self.min_interval <= 0:
            return 0.0

        host = urlparse(url).netloc.lower()
        if not host:
            return 0.0

        with self._lock_for(host):
            now = time.monotonic()
            slot = max(now, self._next_slot.get(host, 0.0))
            # Reserve the slot before sleeping so concurrent callers queue behind it
            self._next_slot[host] = slot + self.min_interval
        delay = slot - now

        # Sleep outside the lock so other hosts are not blocked
        if delay > 0:
            time.sleep(delay)
            return delay
        return 0.0

    def reset(self) -> None:
        with self._registry_lock:
            self._next_slot.clear()
            self._host_locks.clear()


_LIMITER: Optional[PerDomainRateLimiter] = None
_LIMITER_LOCK = threading.Lock()


def get_rate_limiter() -> PerDomainRateLimiter:
    """Shared limiter used by every crawler in the process."""
    global _LIMITER
    with _LIMITER_LOCK:
        if _LIMITER is None:
            _LIMITER = PerDomainRateLimiter(float(SETTINGS.get("crawl_request_interval", 1.0)))
    return _LIMITER
