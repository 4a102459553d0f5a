from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ds8k_exporter.client import DS8kClient
from ds8k_exporter.collectors.base import ResourceCollector, to_float
from ds8k_exporter.exceptions import TransportError
from ds8k_exporter.health import PREFIX, MetricDescriptor, gauge
from ds8k_exporter.sink import MetricSink

PREFIX_PERFORMANCE = PREFIX + "performance_"
LABELS = ("resource", "target")

READ_IOPS = gauge(PREFIX_PERFORMANCE + "read",
                  "The average number of I/O operations that are transferred per second for read "
                  "operations to Systems during the sample period.", LABELS)
WRITE_IOPS = gauge(PREFIX_PERFORMANCE + "write",
                   "The average number of I/O operations that are transferred per second for write "
                   "operations to Systems during the sample period.", LABELS)
TOTAL_IOPS = gauge(PREFIX_PERFORMANCE + "total",
                   "The average number of I/O operations that are transferred per second for read and "
                   "write operations to Systems during the sample period.", LABELS)

DS8K_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
SAMPLE_PERIOD = timedelta(minutes=1)


def performance_window(device_tz: tzinfo, now: datetime) -> Tuple[str, str]:
    """
    Return the (after, before) query bounds for the last complete minute.

    The window is [now - 2m, now - 1m] expressed in the device's local time,
    e.g. ('2019-07-09T23:18:47-0400', '2019-07-09T23:19:47-0400').
    """
    device_time = now.astimezone(device_tz)
    before = device_time - SAMPLE_PERIOD
    after = before - SAMPLE_PERIOD
    return after.strftime(DS8K_TIME_FORMAT), before.strftime(DS8K_TIME_FORMAT)


class PerformanceCollector(ResourceCollector):
    """Collects system IOPS reported by the DS8K for the last complete minute."""

    name = "performance"

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        super().__init__()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def describe(self) -> List[MetricDescriptor]:
        return [READ_IOPS, WRITE_IOPS, TOTAL_IOPS]

    def _device_timezone(self, client: DS8kClient) -> tzinfo:
        if not client.location:
            self.logger.warning(f"No location configured for {client.address}, using UTC")
            return timezone.utc
        try:
            return ZoneInfo(client.location)
        except (ZoneInfoNotFoundError, ValueError) as e:
            self.logger.error(f"Loading location of device {client.address} failed: {e}")
            return timezone.utc

    def collect(self, client: DS8kClient, sink: MetricSink) -> None:
        self.logger.debug("Entering performance collector ...")
        try:
            systems = client.get_resources("/systems", "systems")
        except TransportError as e:
            self.logger.error(f"Executing /api/v1/systems request failed for {client.address}: {e}")
            return

        device_tz = self._device_timezone(client)
        for system in systems:
            serial_number = system.get("sn")
            if not serial_number:
                self.logger.warning(f"Skipping system without serial number on {client.address}")
                continue

            after, before = performance_window(device_tz, self._clock())
            path = f"/systems/{serial_number}/performance"
            try:
                performances = client.get_resources(path, "performance",
                                                    params={"after": after, "before": before})
            except TransportError as e:
                self.logger.error(f"Executing '/api/v1{path}' request failed for {client.address}: {e}")
                continue

            if not performances:
                self.logger.error(f"Metric of performance is null for system {serial_number} on {client.address}")
                continue

            iops = performances[0].get("IOPS") or {}
            try:
                read = to_float(iops, "read")
                write = to_float(iops, "write")
                total = to_float(iops, "total")
            except ValueError as e:
                self.logger.warning(f"Skipping performance of system {serial_number} on {client.address}: {e}")
                continue

            labels = [system.get("name", ""), client.address]
            sink.add(READ_IOPS, read, labels)
            sink.add(WRITE_IOPS, write, labels)
            sink.add(TOTAL_IOPS, total, labels)
        self.logger.debug("Leaving performance collector.")
