from atelier.core.session_cache import SessionCache


def test_disabled_cache_stores_nothing():
    cache = SessionCache(ttl_seconds=0)
    cache.set("tok", "u1", "value")
    assert not cache.enabled
    assert cache.get("tok") is None


def test_get_returns_fresh_entry():
    cache = SessionCache(ttl_seconds=60)
    cache.set("tok", "u1", "value")
    assert cache.get("tok") == "value"


def test_expired_entry_is_evicted(monkeypatch):
    cache = SessionCache(ttl_seconds=10)
    now = [1000.0]
    monkeypatch.setattr("atelier.core.session_cache.time.monotonic", lambda: now[0])
    cache.set("tok", "u1", "value")
    now[0] += 11
    assert cache.get("tok") is None
    assert "u1" not in cache._tokens_by_user


def test_invalidate_user_drops_all_their_sessions():
    cache = SessionCache(ttl_seconds=60)
    cache.set("tok-a", "u1", "a")
    cache.set("tok-b", "u1", "b")
    cache.set("tok-c", "u2", "c")
    cache.invalidate_user("u1")
    assert cache.get("tok-a") is None
    assert cache.get("tok-b") is None
    assert cache.get("tok-c") == "c"


def test_set_purges_expired_entries_of_other_users(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("atelier.core.session_cache.time.monotonic", lambda: now[0])
    cache = SessionCache(ttl_seconds=1)
    for i in range(500):
        cache.set(f"tok-{i}", f"u{i}", i)
        now[0] += 5
    assert len(cache._cache) == 1
    assert list(cache._tokens_by_user) == ["u499"]


def test_set_keeps_entries_still_within_ttl(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("atelier.core.session_cache.time.monotonic", lambda: now[0])
    cache = SessionCache(ttl_seconds=60)
    cache.set("tok-a", "u1", "a")
    now[0] += 30
    cache.set("tok-b", "u2", "b")
    now[0] += 40
    cache.set("tok-c", "u3", "c")
    assert cache.get("tok-a") is None
    assert cache.get("tok-b") == "b"
    assert cache.get("tok-c") == "c"
