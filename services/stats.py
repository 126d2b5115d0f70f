import threading
from typing import Any, Dict

from routing.models import SCORED_TIERS


class RoutingStats:
    """
    Process-lifetime routing counters.

    Requests are handled on one event loop, but sync code paths (threadpool
    endpoints, threaded servers) may touch the same instance, so increments
    go through a lock. Read through ``snapshot()``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._total = 0
        self._routed = {tier: 0 for tier in SCORED_TIERS}
        self._saved = 0

    def record(self, tier: str, saved: bool = False) -> None:
        """Count one classified request. Forced/passthrough tiers only bump ``total``."""
        with self._lock:
            self._total += 1
            if tier in self._routed:
                self._routed[tier] += 1
            if saved:
                self._saved += 1

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total": self._total,
                "routed": dict(self._routed),
                "saved": self._saved,
            }
