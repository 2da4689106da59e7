"""Tests for the Redis-backed expiring store using a mocked Redis client.

``redis.from_url`` is patched so no server is needed; the mock keeps values in
a dict and records the TTL passed to SET.
"""
from unittest.mock import MagicMock, patch

import pytest
import redis

from paynotify.config import STORE_SETTINGS
from paynotify.jobs.expiring_store import InMemoryExpiringStore
from paynotify.jobs.redis_store import RedisExpiringStore, create_expiring_store


@pytest.fixture
def mock_redis():
    with patch("redis.from_url") as mock_from_url:
        mock_client = MagicMock()
        mock_client.ping.return_value = True
        data: dict[str, bytes] = {}
        ttls: dict[str, int] = {}

        def mock_set(key, value, ex=None):
            data[key] = value.encode("utf-8")
            ttls[key] = ex
            return True

        def mock_getdel(key):
            ttls.pop(key, None)
            return data.pop(key, None)

        def mock_delete(*keys):
            return sum(1 for k in keys if data.pop(k, None) is not None)

        def mock_scan_iter(match=None):
            prefix = (match or "*").rstrip("*")
            return [k for k in list(data) if k.startswith(prefix)]

        mock_client.set.side_effect = mock_set
        mock_client.get.side_effect = lambda key: data.get(key)
        mock_client.getdel.side_effect = mock_getdel
        mock_client.delete.side_effect = mock_delete
        mock_client.exists.side_effect = lambda key: int(key in data)
        mock_client.scan_iter.side_effect = mock_scan_iter
        mock_client.data = data
        mock_client.ttls = ttls
        mock_from_url.return_value = mock_client
        yield mock_client


@pytest.fixture
def mock_redis_unavailable():
    with patch("redis.from_url") as mock_from_url:
        mock_from_url.side_effect = redis.RedisError("Connection refused")
        yield mock_from_url


def test_set_uses_namespaced_key_and_native_ttl(mock_redis):
    store = RedisExpiringStore("acks", default_ttl=120)
    store.set("ts1", {"user": "U1", "name": "Ana"})
    key = f"{STORE_SETTINGS['redis_key_prefix']}:acks:ts1"
    assert key in mock_redis.data
    assert mock_redis.ttls[key] == 120
    assert store.get("ts1") == {"user": "U1", "name": "Ana"}
    assert store.contains("ts1")


def test_pop_consumes_entry_atomically(mock_redis):
    store = RedisExpiringStore("acks", default_ttl=120)
    store.set("ts1", {"user": "U1"})
    assert store.pop("ts1") == {"user": "U1"}
    assert store.pop("ts1") is None
    mock_redis.getdel.assert_called()


def test_fractional_ttl_rounds_up_to_one_second(mock_redis):
    store = RedisExpiringStore("processed", default_ttl=120)
    store.set("F1", True, ttl_seconds=0.2)
    assert mock_redis.ttls[f"{STORE_SETTINGS['redis_key_prefix']}:processed:F1"] == 1


def test_clear_only_touches_namespace(mock_redis):
    acks = RedisExpiringStore("acks", default_ttl=60)
    processed = RedisExpiringStore("processed", default_ttl=60)
    acks.set("ts1", 1)
    processed.set("F1", True)
    acks.clear()
    assert not acks.contains("ts1")
    assert processed.contains("F1")


def test_fallback_when_redis_unavailable(mock_redis_unavailable):
    store = RedisExpiringStore("acks", default_ttl=60)
    assert store.health_check() is False
    store.set("ts1", {"user": "U1"})
    assert store.get("ts1") == {"user": "U1"}
    assert store.pop("ts1") == {"user": "U1"}
    assert store.snapshot()["redis_active"] is False


def test_redis_error_mid_operation_falls_back(mock_redis):
    store = RedisExpiringStore("acks", default_ttl=60)
    mock_redis.set.side_effect = redis.RedisError("boom")
    store.set("ts1", {"user": "U1"})
    # Value landed in the fallback; Redis stays down for the read
    mock_redis.ping.side_effect = redis.RedisError("down")
    assert store.get("ts1") == {"user": "U1"}


def test_factory_respects_configuration(mock_redis, monkeypatch):
    monkeypatch.setitem(STORE_SETTINGS, "use_redis", False)
    assert isinstance(create_expiring_store("acks"), InMemoryExpiringStore)
    monkeypatch.setitem(STORE_SETTINGS, "use_redis", True)
    assert isinstance(create_expiring_store("acks"), RedisExpiringStore)


def test_factory_falls_back_when_redis_down(mock_redis_unavailable, monkeypatch):
    monkeypatch.setitem(STORE_SETTINGS, "use_redis", True)
    assert isinstance(create_expiring_store("acks"), InMemoryExpiringStore)
