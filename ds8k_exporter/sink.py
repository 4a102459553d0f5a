import threading
from typing import Dict, List, Sequence, Tuple

from prometheus_client.metrics_core import Metric

from ds8k_exporter.health import MetricDescriptor


class MetricSink:
    """
    Collects samples from concurrent scrape tasks.

    Samples of the same descriptor are merged into a single metric family, so
    every metric name appears once in the exposition no matter how many
    targets contributed to it.
    """

    def __init__(self):
        self._families: Dict[str, Metric] = {}
        self._lock = threading.Lock()

    def add(self, descriptor: MetricDescriptor, value: float, label_values: Sequence[str]) -> None:
        if len(label_values) != len(descriptor.labels):
            raise ValueError(f"{descriptor.name} expects labels {descriptor.labels}, got {list(label_values)}")
        with self._lock:
            family = self._families.get(descriptor.name)
            if family is None:
                family = descriptor.family()
                self._families[descriptor.name] = family
            family.add_metric([str(v) for v in label_values], value)

    def families(self) -> List[Metric]:
        with self._lock:
            return list(self._families.values())

    def samples(self, sample_name: str) -> List[Tuple[Dict[str, str], float]]:
        """Return (labels, value) pairs of every sample with the given name."""
        found = []
        for family in self.families():
            for sample in family.samples:
                if sample.name == sample_name:
                    found.append((dict(sample.labels), sample.value))
        return found
