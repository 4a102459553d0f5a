# -----------------------------------------------------------------------------
# Copyright (c) 2025 DS8K Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Metric descriptors and per-target scrape-health accounting.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, Tuple

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.metrics_core import Metric

PREFIX = "ds8k_"

GAUGE = "gauge"
COUNTER = "counter"


@dataclass(frozen=True)
class MetricDescriptor:
    """Name, help text and label names of one exported metric."""
    name: str
    documentation: str
    labels: Tuple[str, ...]
    kind: str = GAUGE

    def family(self) -> Metric:
        """Build an empty metric family for this descriptor."""
        if self.kind == COUNTER:
            return CounterMetricFamily(self.name, self.documentation, labels=list(self.labels))
        return GaugeMetricFamily(self.name, self.documentation, labels=list(self.labels))


def gauge(name: str, documentation: str, labels: Tuple[str, ...]) -> MetricDescriptor:
    return MetricDescriptor(name, documentation, tuple(labels), GAUGE)


def counter(name: str, documentation: str, labels: Tuple[str, ...]) -> MetricDescriptor:
    return MetricDescriptor(name, documentation, tuple(labels), COUNTER)


TARGET_LABELS = ("target",)

SCRAPE_DURATION = gauge(PREFIX + "collector_duration_seconds",
                        "Duration of a collector scrape for one target", TARGET_LABELS)
SCRAPE_SUCCESS = gauge(PREFIX + "collector_success",
                       "Scrape of target was successful", TARGET_LABELS)
REQUEST_ERRORS = counter(PREFIX + "request_errors_total",
                         "Errors in requests to the DS8K REST API", TARGET_LABELS)
TOKEN_CACHE_HITS = counter(PREFIX + "authtoken_cache_hits_total",
                           "Count of auth token cache hits", TARGET_LABELS)
TOKEN_CACHE_MISSES = counter(PREFIX + "authtoken_cache_misses_total",
                             "Count of auth token cache misses", TARGET_LABELS)

HEALTH_DESCRIPTORS = (
    SCRAPE_DURATION,
    SCRAPE_SUCCESS,
    REQUEST_ERRORS,
    TOKEN_CACHE_HITS,
    TOKEN_CACHE_MISSES,
)


@dataclass
class ScrapeCounts:
    """Request error and token cache counts, either for one task or cumulative."""
    errors: int = 0
    hits: int = 0
    misses: int = 0

    def __iadd__(self, other: "ScrapeCounts") -> "ScrapeCounts":
        self.errors += other.errors
        self.hits += other.hits
        self.misses += other.misses
        return self


@dataclass
class ScrapeHealth:
    """
    Process-wide cumulative scrape counters, kept separately for each target.

    Scrape tasks count into a local ScrapeCounts and fold it in once at the
    end, so concurrent targets never touch each other's totals.
    """
    _totals: Dict[str, ScrapeCounts] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, address: str, counts: ScrapeCounts) -> ScrapeCounts:
        """Add a task's counts to the target's totals and return a copy of the new totals."""
        with self._lock:
            totals = self._totals.setdefault(address, ScrapeCounts())
            totals += counts
            return ScrapeCounts(totals.errors, totals.hits, totals.misses)

    def totals(self, address: str) -> ScrapeCounts:
        with self._lock:
            totals = self._totals.get(address, ScrapeCounts())
            return ScrapeCounts(totals.errors, totals.hits, totals.misses)


SCRAPE_HEALTH = ScrapeHealth()
