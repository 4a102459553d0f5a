from typing import List

from ds8k_exporter.client import DS8kClient
from ds8k_exporter.collectors.base import ResourceCollector, resource_label, to_float, used_ratio
from ds8k_exporter.exceptions import TransportError
from ds8k_exporter.health import PREFIX, MetricDescriptor, gauge
from ds8k_exporter.sink import MetricSink

PREFIX_POOL = PREFIX + "pool_"
LABELS = ("target", "pool", "node")

TOTAL_CAPACITY = gauge(PREFIX_POOL + "capacity_total", "The total capacity of pool", LABELS)
AVAILABLE_CAPACITY = gauge(PREFIX_POOL + "capacity_available", "The available capacity of pool", LABELS)
ALLOCATED_CAPACITY = gauge(PREFIX_POOL + "capacity_allocated", "The allocated capacity of pool", LABELS)
USED_PERCENT = gauge(PREFIX_POOL + "capacity_used_percent", "The pool capacity utilization.", LABELS)


class PoolCollector(ResourceCollector):
    """Collects capacity metrics of every extent pool."""

    name = "pool"

    def describe(self) -> List[MetricDescriptor]:
        return [TOTAL_CAPACITY, AVAILABLE_CAPACITY, ALLOCATED_CAPACITY, USED_PERCENT]

    def collect(self, client: DS8kClient, sink: MetricSink) -> None:
        self.logger.debug("Entering pools collector ...")
        try:
            pools = client.get_resources("/pools", "pools")
        except TransportError as e:
            self.logger.error(f"Executing '/api/v1/pools' failed for {client.address}: {e}")
            return

        for pool in pools:
            try:
                cap = to_float(pool, "cap")
                capavail = to_float(pool, "capavail")
                capalloc = to_float(pool, "capalloc")
            except ValueError as e:
                self.logger.warning(f"Skipping pool {resource_label(pool)} on {client.address}: {e}")
                continue

            labels = [client.address, resource_label(pool), str(pool.get("node", ""))]
            sink.add(TOTAL_CAPACITY, cap, labels)
            sink.add(AVAILABLE_CAPACITY, capavail, labels)
            sink.add(ALLOCATED_CAPACITY, capalloc, labels)
            ratio = used_ratio(capalloc, cap)
            if ratio is not None:
                sink.add(USED_PERCENT, ratio, labels)
        self.logger.debug("Leaving pools collector.")
