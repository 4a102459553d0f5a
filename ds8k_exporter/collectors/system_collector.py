from typing import List

from ds8k_exporter.client import DS8kClient
from ds8k_exporter.collectors.base import ResourceCollector, to_float, used_ratio
from ds8k_exporter.exceptions import TransportError
from ds8k_exporter.health import PREFIX, MetricDescriptor, gauge
from ds8k_exporter.sink import MetricSink

PREFIX_SYSTEM = PREFIX + "system_"
LABELS = ("resource", "target")

TOTAL_CAPACITY = gauge(PREFIX_SYSTEM + "capacity_total", "The total capacity of system", LABELS)
AVAILABLE_CAPACITY = gauge(PREFIX_SYSTEM + "capacity_available", "The available capacity of system", LABELS)
ALLOCATED_CAPACITY = gauge(PREFIX_SYSTEM + "capacity_allocated", "The allocated capacity of system", LABELS)
USED_PERCENT = gauge(PREFIX_SYSTEM + "capacity_used_percent", "The system capacity utilization.", LABELS)
RAW_CAPACITY = gauge(PREFIX_SYSTEM + "capacity_raw", "The raw capacity of system", LABELS)


class SystemCollector(ResourceCollector):
    """Collects capacity metrics of the storage systems behind a target."""

    name = "system"

    def describe(self) -> List[MetricDescriptor]:
        return [TOTAL_CAPACITY, AVAILABLE_CAPACITY, ALLOCATED_CAPACITY, USED_PERCENT, RAW_CAPACITY]

    def collect(self, client: DS8kClient, sink: MetricSink) -> None:
        self.logger.debug("Entering systems collector ...")
        try:
            systems = client.get_resources("/systems", "systems")
        except TransportError as e:
            self.logger.error(f"Executing '/api/v1/systems' failed for {client.address}: {e}")
            return

        for system in systems:
            try:
                cap = to_float(system, "cap")
                capavail = to_float(system, "capavail")
                capalloc = to_float(system, "capalloc")
                capraw = to_float(system, "capraw")
            except ValueError as e:
                self.logger.warning(f"Skipping system {system.get('name')} on {client.address}: {e}")
                continue

            labels = [system.get("name", ""), client.address]
            sink.add(TOTAL_CAPACITY, cap, labels)
            sink.add(AVAILABLE_CAPACITY, capavail, labels)
            sink.add(ALLOCATED_CAPACITY, capalloc, labels)
            ratio = used_ratio(capalloc, cap)
            if ratio is not None:
                sink.add(USED_PERCENT, ratio, labels)
            sink.add(RAW_CAPACITY, capraw, labels)
        self.logger.debug("Leaving systems collector.")
