from peercache.lru import LRUCache


def test_add_and_get():
    cache = LRUCache(100)
    cache.add("key1", "1234")
    assert cache.get("key1") == "1234"
    assert cache.get("missing") is None


def test_empty_key_ignored():
    cache = LRUCache(100)
    cache.add("", "value")
    assert len(cache) == 0
    assert cache.get("") is None


def test_len_counts_entries():
    cache = LRUCache(0)
    for key in ("a", "b", "c"):
        cache.add(key, "x")
    assert len(cache) == 3
    cache.add("a", "y")
    assert len(cache) == 3


def test_evicts_oldest_when_over_capacity():
    k1, k2, k3 = "key1", "key2", "k3"
    v1, v2, v3 = "value1", "value2", "v3"
    capacity = len(k1 + k2 + v1 + v2)
    evicted = []
    cache = LRUCache(capacity, lambda key, value: evicted.append(key))
    cache.add(k1, v1)
    cache.add(k2, v2)
    cache.add(k3, v3)
    assert cache.get(k1) is None
    assert evicted == [k1]
    assert len(cache) == 2


def test_on_evicted_receives_key_and_value():
    evicted = []
    cache = LRUCache(10, lambda key, value: evicted.append((key, value)))
    cache.add("k1", "v1")
    cache.add("k2", "v2")
    cache.add("k3", "v3")
    cache.add("k4", "v4")
    assert evicted == [("k1", "v1"), ("k2", "v2")]


def test_get_refreshes_recency():
    evicted = []
    cache = LRUCache(8, lambda key, value: evicted.append(key))
    cache.add("k1", "v1")
    cache.add("k2", "v2")
    cache.get("k1")
    cache.add("k3", "v3")
    assert evicted == ["k2"]
    assert cache.get("k1") == "v1"


def test_update_replaces_value():
    cache = LRUCache(100)
    cache.add("key", b"old")
    cache.add("key", b"new")
    assert cache.get("key") == b"new"


def test_zero_capacity_never_evicts():
    evicted = []
    cache = LRUCache(0, lambda key, value: evicted.append(key))
    for n in range(100):
        cache.add(f"key{n}", "value" * 10)
    assert evicted == []
    assert len(cache) == 100


def test_remove_oldest_on_empty_does_nothing():
    evicted = []
    cache = LRUCache(10, lambda key, value: evicted.append(key))
    cache.remove_oldest()
    assert evicted == []
    assert len(cache) == 0


def test_remove_oldest_explicitly():
    cache = LRUCache(0)
    cache.add("first", "1")
    cache.add("second", "2")
    cache.remove_oldest()
    assert cache.get("first") is None
    assert cache.get("second") == "2"
    assert len(cache) == 1