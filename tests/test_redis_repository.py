"""
Tests for the Redis cache store against a mocked client.
"""

import json
from unittest.mock import MagicMock

import pytest
import redis

from eshop_api.errors import CacheSerializationError
from eshop_api.repositories import RedisCacheRepository


@pytest.fixture
def client():
    return MagicMock(spec=redis.Redis)


@pytest.fixture
def store(client):
    return RedisCacheRepository(redis_client=client, prefix="test")


def test_set_uses_native_expiry(store, client):
    client.set.return_value = True
    assert store.set("get_settings|type:all|user_id:", {"a": 1}, 300) is True
    client.set.assert_called_once_with("test:get_settings|type:all|user_id:", '{"a": 1}', ex=300)


def test_set_skips_non_positive_ttl(store, client):
    assert store.set("k", {"a": 1}, 0) is False
    client.set.assert_not_called()


def test_set_rejects_unserializable(store, client):
    with pytest.raises(CacheSerializationError):
        store.set("k", {"a": {1, 2}}, 300)
    client.set.assert_not_called()


def test_get_hit_counts(store, client):
    client.get.return_value = json.dumps({"error": False})
    assert store.get("k") == {"error": False}
    client.hincrby.assert_called_once_with("test:__stats__", "hits", 1)


def test_get_miss_counts(store, client):
    client.get.return_value = None
    assert store.get("k") is None
    client.hincrby.assert_called_once_with("test:__stats__", "misses", 1)


def test_keys_skip_stats_hash(store, client):
    client.scan_iter.return_value = iter(["test:a", "test:__stats__", "test:b"])
    assert store.keys() == ["a", "b"]
    client.scan_iter.assert_called_once_with(match="test:*")


def test_delete_matching(store, client):
    client.scan_iter.return_value = iter(["test:get_products|id:1", "test:get_settings|type:all"])
    client.delete.return_value = 1
    assert store.delete_matching("get_products") == 1
    client.delete.assert_called_once_with("test:get_products|id:1")


def test_delete_matching_nothing(store, client):
    client.scan_iter.return_value = iter(["test:get_settings|type:all"])
    assert store.delete_matching("get_products") == 0
    client.delete.assert_not_called()


def test_stats(store, client):
    client.scan_iter.return_value = iter(["test:ab", "test:c"])
    client.hgetall.return_value = {"hits": "4", "misses": "2"}
    pipe = client.pipeline.return_value
    pipe.execute.return_value = [10, 5]

    stats = store.stats()
    assert stats.to_dict() == {"keys": 2, "hits": 4, "misses": 2, "ksize": 3, "vsize": 15}


def test_health_check_failure(store, client):
    client.ping.side_effect = redis.ConnectionError("down")
    assert store.health_check() is False


def test_get_unreachable_reads_as_miss(store, client):
    client.get.side_effect = redis.ConnectionError("down")
    assert store.get("k") is None


def test_set_unreachable_not_stored(store, client):
    client.set.side_effect = redis.ConnectionError("down")
    assert store.set("k", {"a": 1}, 300) is False
