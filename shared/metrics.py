"""
Shared metrics for the token cache.
"""

from typing import Dict, Any, Optional
import threading

from prometheus_client import Counter, CollectorRegistry


LOOKUP_OUTCOMES = ("hit", "matched", "miss", "refreshed", "purged")


class CacheMetrics:
    """Prometheus counters for cache manager outcomes."""

    def __init__(self, client_id: str, registry: Optional[CollectorRegistry] = None):
        self.client_id = client_id
        # Private registry unless one is given.
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up cache metrics."""
        self._metrics["lookups_total"] = Counter(
            "token_cache_lookups_total",
            "Total cache lookups by outcome",
            ["client_id", "outcome"],
            registry=self.registry
        )

        self._metrics["writes_total"] = Counter(
            "token_cache_writes_total",
            "Total cache writes",
            ["client_id"],
            registry=self.registry
        )

        self._metrics["clears_total"] = Counter(
            "token_cache_clears_total",
            "Total cache clears",
            ["client_id", "mode"],
            registry=self.registry
        )

    def record_lookup(self, outcome: str):
        """Record the outcome of a cache lookup."""
        if outcome not in LOOKUP_OUTCOMES:
            raise ValueError(f"Unknown lookup outcome: {outcome}")
        with self._lock:
            self._metrics["lookups_total"].labels(
                client_id=self.client_id,
                outcome=outcome
            ).inc()

    def record_write(self):
        """Record a cache write."""
        with self._lock:
            self._metrics["writes_total"].labels(client_id=self.client_id).inc()

    def record_clear(self, mode: str = "async"):
        """Record a cache clear."""
        with self._lock:
            self._metrics["clears_total"].labels(client_id=self.client_id, mode=mode).inc()

    def get_value(self, metric_name: str, **labels) -> float:
        """Read a counter value from the registry."""
        value = self.registry.get_sample_value(
            f"token_cache_{metric_name}_total",
            {"client_id": self.client_id, **labels}
        )
        return value or 0.0
