"""Tests for the metric sink and scrape health accounting."""

import threading

import pytest

from ds8k_exporter.health import REQUEST_ERRORS, SCRAPE_SUCCESS, ScrapeCounts, ScrapeHealth
from ds8k_exporter.sink import MetricSink


def test_samples_of_one_descriptor_share_a_family():
    sink = MetricSink()
    sink.add(SCRAPE_SUCCESS, 1, ["10.0.0.1"])
    sink.add(SCRAPE_SUCCESS, 0, ["10.0.0.2"])

    families = sink.families()
    assert len(families) == 1
    assert families[0].type == "gauge"
    assert len(families[0].samples) == 2


def test_counter_samples_use_total_suffix():
    sink = MetricSink()
    sink.add(REQUEST_ERRORS, 3, ["10.0.0.1"])

    family = sink.families()[0]
    assert family.type == "counter"
    assert family.name == "ds8k_request_errors"
    assert sink.samples("ds8k_request_errors_total") == [({"target": "10.0.0.1"}, 3)]


def test_label_count_must_match():
    with pytest.raises(ValueError):
        MetricSink().add(SCRAPE_SUCCESS, 1, ["10.0.0.1", "extra"])


def test_concurrent_adds_are_not_lost():
    sink = MetricSink()

    def worker(n):
        for i in range(100):
            sink.add(SCRAPE_SUCCESS, 1, [f"{n}-{i}"])

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(sink.families()[0].samples) == 800


def test_scrape_health_totals_are_per_target():
    health = ScrapeHealth()

    health.record("10.0.0.1", ScrapeCounts(errors=1, misses=1))
    totals = health.record("10.0.0.1", ScrapeCounts(hits=1))
    other = health.record("10.0.0.2", ScrapeCounts(misses=1))

    assert totals == ScrapeCounts(errors=1, hits=1, misses=1)
    assert other == ScrapeCounts(misses=1)
    assert health.totals("10.0.0.3") == ScrapeCounts()
