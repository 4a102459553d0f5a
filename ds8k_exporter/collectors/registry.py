"""
Registry of resource collector kinds for the DS8K exporter.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional

from ds8k_exporter.collectors.base import ResourceCollector
from ds8k_exporter.collectors.performance_collector import PerformanceCollector
from ds8k_exporter.collectors.pool_collector import PoolCollector
from ds8k_exporter.collectors.system_collector import SystemCollector
from ds8k_exporter.collectors.volume_collector import VolumeCollector
from ds8k_exporter.exceptions import RegistrationError

LOG = logging.getLogger(__name__)

DEFAULT_ENABLED = True
DEFAULT_DISABLED = False

CollectorFactory = Callable[[], ResourceCollector]


@dataclass(frozen=True)
class CollectorRegistration:
    name: str
    default_enabled: bool
    factory: CollectorFactory


class ResourceCollectorRegistry:
    """
    Known resource collector kinds with their default enabled state.

    Kinds are registered once during startup; afterwards the registry is
    only read, so it needs no locking.
    """

    def __init__(self):
        self._registrations: Dict[str, CollectorRegistration] = {}

    def register(self, name: str, default_enabled: bool, factory: CollectorFactory) -> None:
        """
        Register a collector kind.

        Args:
            name: Unique collector name, e.g. 'pool'
            default_enabled: Whether the collector runs unless configured otherwise
            factory: Callable returning a new ResourceCollector
        """
        if name in self._registrations:
            LOG.warning(f"Collector '{name}' registered twice, the last registration wins")
        self._registrations[name] = CollectorRegistration(name, default_enabled, factory)

    def names(self) -> List[str]:
        return sorted(self._registrations)

    def default_enabled(self, name: str) -> bool:
        return self._registrations[name].default_enabled

    def __contains__(self, name: str) -> bool:
        return name in self._registrations

    def __len__(self) -> int:
        return len(self._registrations)

    def activate(self, enabled: Optional[Mapping[str, bool]] = None) -> Dict[str, ResourceCollector]:
        """
        Instantiate every enabled collector.

        Args:
            enabled: Per-name overrides of the default enabled state

        Returns:
            Mapping of collector name to collector instance

        Raises:
            RegistrationError: if an enabled collector's factory fails
        """
        enabled = dict(enabled or {})
        for unknown in sorted(set(enabled) - set(self._registrations)):
            LOG.warning(f"Ignoring unknown collector '{unknown}' in configuration")

        collectors: Dict[str, ResourceCollector] = {}
        for name, registration in sorted(self._registrations.items()):
            if not enabled.get(name, registration.default_enabled):
                LOG.debug(f"Collector '{name}' is disabled")
                continue
            try:
                collectors[name] = registration.factory()
            except Exception as e:
                raise RegistrationError(f"Couldn't create collector '{name}': {e}") from e
        return collectors


def build_default_registry() -> ResourceCollectorRegistry:
    """Create a registry holding every built-in DS8K resource collector."""
    registry = ResourceCollectorRegistry()
    registry.register(SystemCollector.name, DEFAULT_ENABLED, SystemCollector)
    registry.register(PoolCollector.name, DEFAULT_ENABLED, PoolCollector)
    registry.register(VolumeCollector.name, DEFAULT_ENABLED, VolumeCollector)
    registry.register(PerformanceCollector.name, DEFAULT_ENABLED, PerformanceCollector)
    return registry
