"""Shared pytest configuration and fixtures."""

import json
import threading
import time
from collections import deque
from typing import List

import pytest

from ds8k_exporter.cache.token_cache import TokenCache
from ds8k_exporter.collectors.base import ResourceCollector
from ds8k_exporter.config import Target
from ds8k_exporter.exceptions import TransportError
from ds8k_exporter.health import MetricDescriptor, ScrapeHealth, gauge


def api_url(address: str, path: str) -> str:
    return f"https://{address}:8452/api/v1{path}"


def token_body(token: str) -> dict:
    return {
        "server": {"status": "ok", "code": "", "message": "Operation done successfully."},
        "token": {"token": token, "expired_time": "2019-05-20T12:00:00-0400", "max_idle_interval": "1800000"}
    }


SYSTEMS_BODY = {
    "counts": {"data_counts": 1, "total_counts": 1},
    "data": {
        "systems": [
            {
                "MTM": "2831-984",
                "bundle": "88.33.41.0",
                "cap": "43512313675776",
                "capalloc": "31521838727168",
                "capavail": "11906723086336",
                "capraw": "87241523200000",
                "id": "2107-75DXA41",
                "name": "IBM.2107-75DXA40",
                "release": "8.3.3",
                "sn": "75DXA41",
                "state": "online",
                "wwnn": "5005076306FFD65A"
            }
        ]
    },
    "server": {"code": "", "message": "Operation done successfully.", "status": "ok"}
}

POOLS_BODY = {
    "counts": {"data_counts": 2, "total_counts": 2},
    "data": {
        "pools": [
            {
                "cap": "5541581553664",
                "capalloc": "1248761741312",
                "capavail": "4273492459520",
                "id": "P0",
                "name": "Prod_code",
                "node": "0",
                "stgtype": "fb"
            },
            {
                "cap": "2000",
                "capalloc": "500",
                "capavail": "1500",
                "id": "P1",
                "name": "Test",
                "node": "1",
                "stgtype": "fb"
            }
        ]
    },
    "server": {"code": "", "message": "Operation done successfully.", "status": "ok"}
}

P0_VOLUMES_BODY = {
    "counts": {"data_counts": 1, "total_counts": 1},
    "data": {
        "volumes": [
            {
                "MTM": "2107-900",
                "cap": "53687091200",
                "capalloc": "26843545600",
                "id": "0002",
                "name": "mgr_hm1_code",
                "pool": {"id": "P0"},
                "state": "normal"
            }
        ]
    },
    "server": {"code": "", "message": "Operation done successfully.", "status": "ok"}
}

P1_VOLUMES_BODY = {
    "counts": {"data_counts": 1, "total_counts": 1},
    "data": {
        "volumes": [
            {"cap": "1000", "capalloc": "250", "id": "0100", "name": "scratch", "pool": {"id": "P1"}}
        ]
    },
    "server": {"code": "", "message": "Operation done successfully.", "status": "ok"}
}

PERFORMANCE_BODY = {
    "counts": {"data_counts": 1, "total_counts": 1},
    "data": {
        "performance": [
            {
                "IOPS": {"read": "4.38", "total": "457", "write": "452.62"},
                "performancesampletime": "2019-05-20T01:44:42-0400",
                "responseTime": {"average": "0.44", "read": "0", "write": "0.44"}
            }
        ]
    },
    "server": {"code": "", "message": "Operation done successfully.", "status": "ok"}
}


class FakeTransport:
    """
    Stand-in for Transport that answers from registered routes.

    Routes are keyed by method and URL without query string. Each route holds
    a sequence of responses; the last one repeats. A response is a dict (sent
    as JSON), a string, an exception to raise, or a callable returning one of those.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self._lock = threading.Lock()

    def on(self, method: str, url: str, *responses):
        self.routes[(method, url)] = deque(responses)
        return self

    def request(self, method, url, headers=None, body=None):
        with self._lock:
            self.calls.append((method, url, dict(headers or {}), body))
            queue = self.routes.get((method, url.split('?')[0]))
            if not queue:
                raise TransportError(f"Got error code: 404 when accessing URL: {url}", url=url, status_code=404)
            response = queue.popleft() if len(queue) > 1 else queue[0]

        if callable(response) and not isinstance(response, Exception):
            response = response()
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            response = json.dumps(response)
        return response, 200

    def count(self, method: str, url: str) -> int:
        with self._lock:
            return sum(1 for call in self.calls if call[0] == method and call[1].split('?')[0] == url)

    def urls(self, method: str) -> List[str]:
        with self._lock:
            return [call[1] for call in self.calls if call[0] == method]


FAKE_VALUE = gauge("ds8k_fake_value", "Fake resource value", ("target",))


class RecordingCollector(ResourceCollector):
    """Resource collector that records its invocations and emits one sample per target."""

    name = "fake"

    def __init__(self, descriptor: MetricDescriptor = FAKE_VALUE):
        super().__init__()
        self.descriptor = descriptor
        self.addresses = []
        self._lock = threading.Lock()

    def describe(self):
        return [self.descriptor]

    def collect(self, client, sink):
        with self._lock:
            self.addresses.append(client.address)
        sink.add(self.descriptor, 1.0, [client.address])


def slow(response, seconds: float):
    def delayed():
        time.sleep(seconds)
        return response
    return delayed


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def token_cache():
    return TokenCache()


@pytest.fixture
def scrape_health():
    return ScrapeHealth()


@pytest.fixture
def recording_collector():
    return RecordingCollector()


@pytest.fixture
def target_a():
    return Target(ipAddress="10.0.0.1", userid="monitor", password="secret-a")


@pytest.fixture
def target_b():
    return Target(ipAddress="10.0.0.2", userid="monitor", password="secret-b")
