# -----------------------------------------------------------------------------
# Copyright (c) 2025 DS8K Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Scrape orchestrator for the DS8K exporter.

DS8kCollector is a Prometheus custom collector. Each collect() fans out one
scrape task per configured target, resolves and validates a session token
for every target, runs the active resource collectors for the targets that
authenticated, and always reports per-target scrape health.
"""

import concurrent.futures
import logging
import time
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from prometheus_client.metrics_core import Metric

from ds8k_exporter.cache.token_cache import TOKEN_CACHE, TokenCache
from ds8k_exporter.client import DS8kClient
from ds8k_exporter.collectors.base import ResourceCollector
from ds8k_exporter.collectors.registry import ResourceCollectorRegistry
from ds8k_exporter.config import Target
from ds8k_exporter.connection import Transport
from ds8k_exporter.exceptions import TransportError
from ds8k_exporter.health import (
    HEALTH_DESCRIPTORS,
    REQUEST_ERRORS,
    SCRAPE_DURATION,
    SCRAPE_HEALTH,
    SCRAPE_SUCCESS,
    TOKEN_CACHE_HITS,
    TOKEN_CACHE_MISSES,
    MetricDescriptor,
    ScrapeCounts,
    ScrapeHealth,
)
from ds8k_exporter.sink import MetricSink

LOG = logging.getLogger(__name__)

# Validation attempts per target and scrape. Retries are immediate, there is
# no backoff between attempts.
MAX_VALIDATION_ATTEMPTS = 3


class DS8kCollector:
    """Prometheus collector scraping a list of DS8K targets concurrently."""

    def __init__(
        self,
        targets: Sequence[Target],
        collectors: Mapping[str, ResourceCollector],
        location: Optional[str] = None,
        transport: Optional[Transport] = None,
        token_cache: TokenCache = TOKEN_CACHE,
        health: ScrapeHealth = SCRAPE_HEALTH,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            targets: Targets scraped on every collect
            collectors: Active resource collectors by name
            location: Default IANA time zone for targets without a locale
            transport: Shared HTTPS transport; a default one is created if omitted
            token_cache: Token cache shared with other orchestrators
            health: Cumulative per-target scrape counters
            max_workers: Upper bound on concurrent scrape tasks, default one per target
        """
        self.targets = list(targets)
        self.collectors = dict(collectors)
        self.location = location
        self.token_cache = token_cache
        self.health = health
        self.max_workers = max_workers
        self.transport = transport or Transport()

    @classmethod
    def from_registry(cls, targets: Sequence[Target], registry: ResourceCollectorRegistry,
                      enabled: Optional[Mapping[str, bool]] = None, **kwargs) -> "DS8kCollector":
        """
        Build an orchestrator with the collectors the registry activates.

        Raises:
            RegistrationError: if a collector factory fails
        """
        return cls(targets, registry.activate(enabled), **kwargs)

    def _client(self, target: Target) -> DS8kClient:
        return DS8kClient(target, self.transport, location=self.location)

    def descriptors(self) -> List[MetricDescriptor]:
        descriptors = list(HEALTH_DESCRIPTORS)
        for name in sorted(self.collectors):
            descriptors.extend(self.collectors[name].describe())
        return descriptors

    def describe(self) -> Iterable[Metric]:
        """Implements the describe half of the prometheus_client collector protocol."""
        return [descriptor.family() for descriptor in self.descriptors()]

    def collect(self) -> Iterator[Metric]:
        """Implements the collect half of the prometheus_client collector protocol."""
        sink = MetricSink()
        self.scrape(sink)
        yield from sink.families()

    def scrape(self, sink: MetricSink) -> Dict[str, bool]:
        """
        Scrape every target concurrently into the sink.

        Returns only after all scrape tasks have finished.

        Returns:
            Mapping of target address to scrape success
        """
        results: Dict[str, bool] = {}
        if not self.targets:
            return results

        workers = self.max_workers or len(self.targets)
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers,
                                                   thread_name_prefix="ds8k-scrape") as executor:
            futures = {executor.submit(self._scrape_target, target, sink): target for target in self.targets}
            for future in concurrent.futures.as_completed(futures):
                target = futures[future]
                try:
                    results[target.address] = future.result()
                except Exception as e:
                    LOG.error(f"Unexpected error while scraping {target.address}: {e}", exc_info=True)
                    results[target.address] = False
        return results

    def _scrape_target(self, target: Target, sink: MetricSink) -> bool:
        start = time.time()
        counts = ScrapeCounts()
        success = False
        try:
            client = self._client(target)
            success = self._authenticate(client, counts)
            if success:
                self._run_collectors(client, sink)
        finally:
            totals = self.health.record(target.address, counts)
            self._emit_health(sink, target.address, time.time() - start, success, totals)
        return success

    def _authenticate(self, client: DS8kClient, counts: ScrapeCounts) -> bool:
        """
        Resolve a token for the client and validate it.

        A cached token is used when present; otherwise a new one is requested.
        A token that fails validation is invalidated and the next attempt
        authenticates again. Failure to obtain a token is not retried.
        """
        address = client.address
        for attempt in range(1, MAX_VALIDATION_ATTEMPTS + 1):
            LOG.debug(f"Looking for cached auth token for {address}")
            token = self.token_cache.lookup(address)
            if token is None:
                counts.misses += 1
                LOG.debug(f"Auth token not found in cache, retrieving auth token for {address}")
                try:
                    token = client.retrieve_auth_token()
                except TransportError as e:
                    LOG.error(f"Error getting auth token for {address}, the error was {e}")
                    counts.errors += 1
                    return False
                self.token_cache.store(address, token)
            else:
                LOG.debug(f"Auth token pulled from cache for {address}")
                counts.hits += 1

            client.token = token
            try:
                client.validate()
                return True
            except TransportError as e:
                self.token_cache.invalidate(address)
                LOG.info(f"Invalidating auth token for {address} "
                         f"(attempt {attempt} of {MAX_VALIDATION_ATTEMPTS}): {e}")

        LOG.error(f"Error validating auth token for {address}, please check network or username and password.")
        counts.errors += 1
        return False

    def _run_collectors(self, client: DS8kClient, sink: MetricSink) -> None:
        for name in sorted(self.collectors):
            try:
                self.collectors[name].collect(client, sink)
            except Exception as e:
                LOG.error(f"Collector '{name}' failed for {client.address}: {e}", exc_info=True)

    @staticmethod
    def _emit_health(sink: MetricSink, address: str, duration: float, success: bool,
                     totals: ScrapeCounts) -> None:
        labels = [address]
        sink.add(SCRAPE_DURATION, duration, labels)
        sink.add(SCRAPE_SUCCESS, 1.0 if success else 0.0, labels)
        sink.add(REQUEST_ERRORS, totals.errors, labels)
        sink.add(TOKEN_CACHE_HITS, totals.hits, labels)
        sink.add(TOKEN_CACHE_MISSES, totals.misses, labels)
