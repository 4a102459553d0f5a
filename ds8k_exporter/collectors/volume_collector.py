from typing import List

from ds8k_exporter.client import DS8kClient
from ds8k_exporter.collectors.base import ResourceCollector, resource_label, to_float, used_ratio
from ds8k_exporter.exceptions import TransportError
from ds8k_exporter.health import PREFIX, MetricDescriptor, gauge
from ds8k_exporter.sink import MetricSink

PREFIX_VOLUME = PREFIX + "volume_"
LABELS = ("target", "volume", "pool")

TOTAL_CAPACITY = gauge(PREFIX_VOLUME + "capacity_total", "The total capacity of volume.", LABELS)
ALLOCATED_CAPACITY = gauge(PREFIX_VOLUME + "capacity_allocated", "The allocated capacity of volume.", LABELS)
USED_PERCENT = gauge(PREFIX_VOLUME + "capacity_used_percent", "The volume capacity utilization.", LABELS)


class VolumeCollector(ResourceCollector):
    """
    Collects capacity metrics of every volume.

    Volumes are listed per extent pool, so this costs one request for the
    pool list plus one request per pool.
    """

    name = "volume"

    def describe(self) -> List[MetricDescriptor]:
        return [TOTAL_CAPACITY, ALLOCATED_CAPACITY, USED_PERCENT]

    def collect(self, client: DS8kClient, sink: MetricSink) -> None:
        self.logger.debug("Entering volumes collector ...")
        try:
            pools = client.get_resources("/pools", "pools")
        except TransportError as e:
            self.logger.error(f"Executing '/api/v1/pools' request failed for {client.address}: {e}")
            return

        for pool in pools:
            pool_id = pool.get("id")
            if not pool_id:
                self.logger.warning(f"Skipping pool without id on {client.address}")
                continue
            path = f"/pools/{pool_id}/volumes"
            try:
                volumes = client.get_resources(path, "volumes")
            except TransportError as e:
                self.logger.error(f"Executing '/api/v1{path}' request failed for {client.address}: {e}")
                continue

            pool_label = resource_label(pool)
            for volume in volumes:
                try:
                    cap = to_float(volume, "cap")
                    capalloc = to_float(volume, "capalloc")
                except ValueError as e:
                    self.logger.warning(f"Skipping volume {resource_label(volume)} on {client.address}: {e}")
                    continue

                labels = [client.address, resource_label(volume), pool_label]
                sink.add(TOTAL_CAPACITY, cap, labels)
                sink.add(ALLOCATED_CAPACITY, capalloc, labels)
                ratio = used_ratio(capalloc, cap)
                if ratio is not None:
                    sink.add(USED_PERCENT, ratio, labels)
        self.logger.debug("Leaving volumes collector.")
