# tests/test_cache.py

"""
Tests for caching and rate limiting.
"""

import pytest
from fastapi import HTTPException
from unittest.mock import Mock

from core.cache import cache_get, cache_set, cache_clear, cache_delete, cache_delete_prefix, SimpleCache
from core.rate_limiter import check_rate_limit, require_rate_limit, get_rate_limit_identifier


def test_cache_set_and_get():
    """Test setting and getting values from cache."""
    cache_set("test_key", "test_value", ttl_seconds=60)
    assert cache_get("test_key") == "test_value"


def test_cache_expiration():
    """A zero TTL entry is already expired."""
    cache_set("expiring_key", "expired_value", ttl_seconds=0)
    assert cache_get("expiring_key") is None


def test_cache_delete():
    cache_set("delete_key", "delete_value")
    assert cache_get("delete_key") == "delete_value"

    cache_delete("delete_key")

    assert cache_get("delete_key") is None


def test_cache_delete_prefix_only_touches_family():
    cache_set("ads:page:1", [1])
    cache_set("ads:page:2", [2])
    cache_set("parks:list:100", {"data": []})

    cache_delete_prefix("ads:")

    assert cache_get("ads:page:1") is None
    assert cache_get("ads:page:2") is None
    assert cache_get("parks:list:100") == {"data": []}


def test_cache_clear():
    cache_set("key1", "value1")
    cache_set("key2", "value2")

    cache_clear()

    assert cache_get("key1") is None
    assert cache_get("key2") is None


def test_simple_cache_is_independent():
    local = SimpleCache()
    local.set("k", "v")
    assert local.get("k") == "v"
    assert cache_get("k") is None


# ------------------------------------------------------------------
# Rate limiting
# ------------------------------------------------------------------
def test_check_rate_limit_blocks_after_max():
    for _ in range(3):
        allowed, _ = check_rate_limit("test:client", max_requests=3, window_seconds=60)
        assert allowed

    allowed, remaining = check_rate_limit("test:client", max_requests=3, window_seconds=60)
    assert allowed is False
    assert remaining == 0


def _request(ip="10.0.0.1", forwarded=None):
    request = Mock()
    request.client.host = ip
    request.headers = {"X-Forwarded-For": forwarded} if forwarded else {}
    return request


def test_identifier_prefers_forwarded_address():
    assert get_rate_limit_identifier(_request(forwarded="203.0.113.9, 10.0.0.1")) == "ip:203.0.113.9"
    assert get_rate_limit_identifier(_request(), user_id="abc") == "user:abc"


def test_require_rate_limit_raises_429_per_scope():
    request = _request()
    require_rate_limit(request, max_requests=1, window_seconds=60, scope="login")

    with pytest.raises(HTTPException) as exc:
        require_rate_limit(request, max_requests=1, window_seconds=60, scope="login")
    assert exc.value.status_code == 429

    # Other scopes have their own budget
    require_rate_limit(request, max_requests=1, window_seconds=60, scope="tracking")
