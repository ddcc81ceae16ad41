import pytest
from unittest.mock import MagicMock

from src.querysync.cache import QueryCache, QueryCacheProtocol, key_matches
from src.querysync.errors import CacheError


class TestKeyMatching:

    def test_string_prefix(self):
        assert key_matches(("tasks",), ("tasks", {"projectId": "p1"}))
        assert key_matches(("tasks",), ("tasks",))
        assert not key_matches(("task",), ("tasks", "t1"))

    def test_longer_prefix_never_matches(self):
        assert not key_matches(("task", "t1", "x"), ("task", "t1"))

    def test_mapping_segment_is_partial(self):
        key = ("tasks", {"projectId": "p1", "status": "open"})
        assert key_matches(("tasks", {"projectId": "p1"}), key)
        assert not key_matches(("tasks", {"projectId": "p2"}), key)
        assert not key_matches(("tasks", {"projectId": "p1"}), ("tasks", "p1"))

    def test_exact(self):
        assert key_matches(("task", "t1"), ("task", "t1"), exact=True)
        assert not key_matches(("task",), ("task", "t1"), exact=True)


class TestQueryCache:

    def test_implements_protocol(self, query_cache):
        assert isinstance(query_cache, QueryCacheProtocol)

    def test_set_and_get(self, query_cache):
        query_cache.set_query_data(["task", "t1"], {"title": "X"})

        assert query_cache.get_query_data(("task", "t1")) == {"title": "X"}
        state = query_cache.get_query_state(("task", "t1"))
        assert state.data_update_count == 1
        assert state.is_invalidated is False

    def test_mapping_segments_are_order_independent(self, query_cache):
        query_cache.set_query_data(("tasks", {"a": 1, "b": 2}), ["x"])
        assert query_cache.get_query_data(("tasks", {"b": 2, "a": 1})) == ["x"]

    def test_invalidate_by_prefix(self, query_cache):
        query_cache.set_query_data(("tasks", {"projectId": "p1"}), [1])
        query_cache.set_query_data(("tasks", {"projectId": "p2"}), [2])
        query_cache.set_query_data(("task", "t1"), {"id": "t1"})

        count = query_cache.invalidate_queries(["tasks"])

        assert count == 2
        assert query_cache.is_stale(("tasks", {"projectId": "p1"}))
        assert query_cache.is_stale(("tasks", {"projectId": "p2"}))
        assert not query_cache.is_stale(("task", "t1"))
        # Data is kept until refetched
        assert query_cache.get_query_data(("tasks", {"projectId": "p1"})) == [1]

    def test_bare_string_key(self, query_cache):
        query_cache.set_query_data(("settings",), {"theme": "dark"})
        assert query_cache.invalidate_queries("settings") == 1

    def test_remove_by_prefix(self, query_cache):
        query_cache.set_query_data(("chat", "c9"), {"id": "c9"})
        query_cache.set_query_data(("chat", "c9", "messages"), [])
        query_cache.set_query_data(("chat", "c1"), {"id": "c1"})

        assert query_cache.remove_queries(("chat", "c9")) == 2
        assert query_cache.get_query_state(("chat", "c9")) is None
        assert query_cache.get_query_data(("chat", "c1")) == {"id": "c1"}

    def test_remove_exact(self, query_cache):
        query_cache.set_query_data(("chat", "c9"), {"id": "c9"})
        query_cache.set_query_data(("chat", "c9", "messages"), [])

        assert query_cache.remove_queries(("chat", "c9"), exact=True) == 1
        assert query_cache.get_query_data(("chat", "c9", "messages")) == []

    def test_operations_on_missing_keys_are_noops(self, query_cache):
        assert query_cache.invalidate_queries(("nothing",)) == 0
        assert query_cache.remove_queries(("nothing", "here")) == 0
        assert query_cache.get_query_data(("nothing",), default="d") == "d"
        assert query_cache.is_stale(("nothing",))

    def test_fetch_query_refetches_only_when_stale(self, query_cache):
        fetcher = MagicMock(side_effect=[["v1"], ["v2"]])

        assert query_cache.fetch_query(("projects",), fetcher) == ["v1"]
        assert query_cache.fetch_query(("projects",), fetcher) == ["v1"]
        assert fetcher.call_count == 1

        query_cache.invalidate_queries(("projects",))
        assert query_cache.fetch_query(("projects",), fetcher) == ["v2"]
        assert fetcher.call_count == 2
        assert not query_cache.is_stale(("projects",))

    def test_fetch_error_keeps_stale_entry(self, query_cache):
        query_cache.set_query_data(("projects",), ["old"])
        query_cache.invalidate_queries(("projects",))

        with pytest.raises(ConnectionError):
            query_cache.fetch_query(("projects",), MagicMock(side_effect=ConnectionError()))

        assert query_cache.get_query_data(("projects",)) == ["old"]
        assert query_cache.is_stale(("projects",))

    def test_find_all(self, query_cache):
        query_cache.set_query_data(("git", "status"), {})
        query_cache.set_query_data(("git", "log"), [])
        query_cache.set_query_data(("tasks",), [])

        assert {s.key for s in query_cache.find_all(("git",))} == {("git", "status"), ("git", "log")}
        assert len(query_cache.find_all()) == 3

    def test_change_signal(self, query_cache):
        observer = MagicMock()
        query_cache.on_change.connect(observer)

        query_cache.set_query_data(("task", "t1"), {})
        query_cache.invalidate_queries(("task",))
        query_cache.remove_queries(("task", "t1"))

        assert [c.args for c in observer.call_args_list] == [
            ("updated", ("task", "t1")),
            ("invalidated", ("task", "t1")),
            ("removed", ("task", "t1")),
        ]

    def test_closed_cache_raises(self, query_cache):
        query_cache.set_query_data(("task", "t1"), {})
        query_cache.close()

        assert query_cache.closed
        with pytest.raises(CacheError):
            query_cache.invalidate_queries(("tasks",))
        with pytest.raises(CacheError):
            query_cache.set_query_data(("task", "t1"), {})
        with pytest.raises(CacheError):
            query_cache.remove_queries(("task", "t1"))
