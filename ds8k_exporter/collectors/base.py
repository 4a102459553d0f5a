"""
Base interface for resource collectors.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ds8k_exporter.client import DS8kClient
from ds8k_exporter.health import MetricDescriptor
from ds8k_exporter.sink import MetricSink

LOG = logging.getLogger(__name__)


class ResourceCollector(ABC):
    """
    Translates one category of DS8K REST resources into metric samples.

    Collectors receive an already authenticated client. They never
    authenticate, retry or touch the token cache themselves.
    """

    name = "resource"

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def describe(self) -> List[MetricDescriptor]:
        """
        Describe the metrics this collector can emit.

        Returns:
            The same descriptors on every call
        """
        pass

    @abstractmethod
    def collect(self, client: DS8kClient, sink: MetricSink) -> None:
        """
        Collect metrics from the DS8K REST API into the sink.

        Args:
            client: Authenticated client for one target
            sink: Shared, thread-safe output sink
        """
        pass


def to_float(record: Dict[str, Any], key: str) -> float:
    """
    Read a numeric field; the DS8K API reports numbers as strings.

    Raises:
        ValueError: if the record is not an object, or the field is missing or not numeric
    """
    if not isinstance(record, dict):
        raise ValueError(f"expected an object holding '{key}', got {record!r}")
    value = record.get(key)
    if value is None or value == "":
        raise ValueError(f"missing field '{key}'")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"non-numeric field '{key}': {value!r}")


def used_ratio(allocated: float, total: float) -> Optional[float]:
    """Allocated share of total capacity, or None when total is zero."""
    if total == 0:
        return None
    return allocated / total


def resource_label(record: Dict[str, Any]) -> str:
    """Label of a pool or volume: '<name>_<id>'."""
    return f"{record.get('name', '')}_{record.get('id', '')}"
