"""Tests for the auth token cache."""

import threading

from ds8k_exporter.cache.token_cache import TokenCache


def test_lookup_miss_returns_none():
    assert TokenCache().lookup("10.0.0.1") is None


def test_store_overwrites_previous_token():
    cache = TokenCache()
    cache.store("10.0.0.1", "first")
    cache.store("10.0.0.1", "second")

    assert cache.lookup("10.0.0.1") == "second"
    assert len(cache) == 1


def test_invalidate_clears_only_that_address():
    cache = TokenCache()
    cache.store("10.0.0.1", "a")
    cache.store("10.0.0.2", "b")

    cache.invalidate("10.0.0.1")
    cache.invalidate("10.0.0.1")

    assert cache.lookup("10.0.0.1") is None
    assert cache.lookup("10.0.0.2") == "b"
    assert "10.0.0.1" not in cache


def test_concurrent_access_keeps_one_token_per_address():
    cache = TokenCache()
    addresses = [f"10.0.0.{i}" for i in range(8)]

    def worker(n):
        for i in range(200):
            address = addresses[(n + i) % len(addresses)]
            cache.store(address, f"tok-{n}-{i}")
            cache.lookup(address)
            if i % 3 == 0:
                cache.invalidate(address)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) <= len(addresses)
    for address in addresses:
        token = cache.lookup(address)
        assert token is None or token.startswith("tok-")
