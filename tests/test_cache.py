from __future__ import annotations

from pysynclist.cache import OrderedCache, Record
from pysynclist.values import Keyed, Scalar


def _cache() -> OrderedCache:
    cache = OrderedCache()
    cache.insert_at(0, Record("a", Keyed({"hello": "world"})), 0)
    cache.insert_at(1, Record("b", Scalar("bar")), 1)
    cache.insert_at(2, Record("c", Keyed({"bar": "baz"})), 2)
    return cache


def test_position_and_record_lookups() -> None:
    cache = _cache()

    assert cache.position_of("b") == 1
    assert cache.position_of("missing") == -1
    assert cache.record_at(2) is not None and cache.record_at(2).key == "c"
    assert cache.record_at(3) is None
    assert cache.record_at(-1) is None
    assert cache.keys() == ["a", "b", "c"]
    assert cache.entries() == [("a", 0), ("b", 1), ("c", 2)]


def test_placement_index_rules() -> None:
    cache = _cache()

    assert cache.placement_index(None) == 0
    assert cache.placement_index("a") == 1
    assert cache.placement_index("c") == 3
    # Unknown preceding sibling: place last.
    assert cache.placement_index("gone") == 3


def test_remove_at_drops_shadow_metadata() -> None:
    cache = _cache()

    record = cache.remove_at(1)

    assert record.key == "b"
    assert "b" not in cache
    assert cache.priority_of("b") is None
    assert len(cache) == 2


def test_replace_at_keeps_record_and_fields_objects() -> None:
    cache = _cache()
    record = cache[0]
    fields = record.value.fields  # type: ignore[union-attr]

    replaced = cache.replace_at(0, Keyed({"test": True}), 0.5)

    assert replaced is record
    assert record.value.fields is fields  # type: ignore[union-attr]
    assert fields == {"test": True}
    assert cache.priority_of("a") == 0.5


def test_replace_at_swaps_value_variant() -> None:
    cache = _cache()
    record = cache[1]

    cache.replace_at(1, Keyed({"hello": "world"}), 1)

    assert cache[1] is record
    assert record.value == Keyed({"hello": "world"})


def test_set_priority_ignores_unknown_keys() -> None:
    cache = _cache()

    cache.set_priority("zzz", 5)
    cache.set_priority("a", -1)

    assert "zzz" not in cache
    assert cache.priority_of("a") == -1
