"""
Tests for the namespaced store and its backends
"""
import asyncio

import pytest
import redis

from campus_support.database.database import SqlStore
from campus_support.database.redis import RedisStore
from campus_support.database.store import MemoryStore
from campus_support.errors import WriteConflict

pytestmark = pytest.mark.asyncio


class FakeRedis:
    """Minimal stand-in for redis.StrictRedis(decode_responses=True)"""

    def __init__(self):
        self.data = {}
        self.writes = {}
        # Called once just before the next transaction executes, to play another client
        self.before_execute = None

    def get(self, key):
        return self.data.get(key)

    def mget(self, *keys):
        return [self.data.get(key) for key in keys]

    def set(self, key, value):
        self.data[key] = str(value)
        self.writes[key] = self.writes.get(key, 0) + 1
        return True

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """WATCH/MULTI/EXEC over FakeRedis"""

    def __init__(self, client):
        self.client = client
        self.reset()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.reset()

    def reset(self):
        self.watched = {}
        self.queued = None

    def watch(self, *keys):
        self.watched = {key: self.client.writes.get(key, 0) for key in keys}

    def get(self, key):
        return self.client.get(key)

    def multi(self):
        self.queued = []

    def set(self, key, value):
        self.queued.append((key, value))

    def execute(self):
        if self.client.before_execute is not None:
            hook, self.client.before_execute = self.client.before_execute, None
            hook()
        if any(self.client.writes.get(key, 0) != count for key, count in self.watched.items()):
            raise redis.WatchError("Watched variable changed.")
        results = [self.client.set(key, value) for key, value in self.queued]
        self.reset()
        return results


class TestMemoryStore:
    """Test the whole-namespace read/modify/write contract"""

    async def test_absent_namespace_returns_default(self, store):
        assert await store.get("student", "requests", []) == []

    async def test_set_then_get(self, store):
        await store.set("student", "requests", [{"id": "req-1"}])
        assert await store.get("student", "requests") == [{"id": "req-1"}]

    async def test_set_keeps_other_keys(self, store):
        await store.set("tutor", "profiles", {"a": 1})
        await store.set("tutor", "ratings", {"b": 2})
        assert await store.get("tutor", "profiles") == {"a": 1}
        assert await store.get("tutor", "ratings") == {"b": 2}

    async def test_namespaces_are_isolated(self, store):
        await store.set("student", "key", "student value")
        await store.set("admin", "key", "admin value")
        assert await store.get("student", "key") == "student value"
        assert await store.get("admin", "key") == "admin value"

    async def test_corrupt_namespace_reads_as_empty(self, store):
        await store._write_raw("student", "{not json")
        assert await store.get("student", "requests", "fallback") == "fallback"

    async def test_non_object_namespace_reads_as_empty(self, store):
        await store._write_raw("student", "[1, 2, 3]")
        assert await store.load_namespace("student") == {}

    async def test_write_after_corruption_starts_fresh(self, store):
        await store._write_raw("student", "garbage")
        await store.set("student", "requests", [])
        assert await store.load_namespace("student") == {"requests": []}

    async def test_update_applies_mutation(self, store):
        await store.set("admin", "counter", 1)
        result = await store.update("admin", "counter", lambda v: v + 1)
        assert result == 2
        assert await store.get("admin", "counter") == 2

    async def test_update_uses_default_when_key_missing(self, store):
        await store.update("admin", "items", lambda v: v + ["x"], default=[])
        assert await store.get("admin", "items") == ["x"]

    async def test_update_repairs_corrupt_namespace(self, store):
        await store._write_raw("admin", "{broken")
        await store.update("admin", "items", lambda v: v + ["x"], default=[])
        assert await store.load_namespace("admin") == {"items": ["x"]}

    async def test_failed_mutation_writes_nothing(self, store):
        await store.set("admin", "items", ["a"])

        def explode(value):
            value.append("b")
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.update("admin", "items", explode)
        assert await store.get("admin", "items") == ["a"]

    async def test_readers_do_not_share_objects(self, store):
        await store.set("admin", "items", ["a"])
        items = await store.get("admin", "items")
        items.append("b")
        assert await store.get("admin", "items") == ["a"]

    async def test_last_writer_wins_between_instances(self, store):
        # Two "tabs" read the same snapshot, then both write
        first = await store.load_namespace("shared")
        second = await store.load_namespace("shared")
        first["requests"] = ["from first tab"]
        second["ratings"] = ["from second tab"]
        await store.save_namespace("shared", first)
        await store.save_namespace("shared", second)
        assert await store.get("shared", "requests") is None
        assert await store.get("shared", "ratings") == ["from second tab"]

    async def test_every_write_bumps_revision(self, store):
        assert await store._read_raw("admin") == (None, 0)
        await store.set("admin", "a", 1)
        await store.set("admin", "b", 2)
        _, revision = await store._read_raw("admin")
        assert revision == 2

    async def test_stale_conditional_write_is_rejected(self, store):
        await store.set("admin", "items", ["a"])
        _, revision = await store._read_raw("admin")
        await store.set("admin", "items", ["b"])
        assert await store._write_raw("admin", '{"items": ["c"]}', expected_revision=revision) is False
        assert await store.get("admin", "items") == ["b"]


class TestUpdateRetries:
    """Test that overlapping read-modify-write cycles are re-applied, not lost"""

    async def test_interleaved_write_is_kept(self, racing_store):
        store = racing_store
        await store.set("admin", "items", ["a"])
        store.competing_payload = '{"items": ["a", "other tab"]}'
        calls = []

        def append_mine(items):
            calls.append(list(items))
            return items + ["mine"]

        result = await store.update("admin", "items", append_mine)
        assert result == ["a", "other tab", "mine"]
        assert calls == [["a"], ["a", "other tab"]]
        assert await store.get("admin", "items") == ["a", "other tab", "mine"]

    async def test_gives_up_after_max_attempts(self):
        class AlwaysLosing(MemoryStore):
            async def _write_raw(self, namespace, payload, expected_revision=None):
                if expected_revision is not None:
                    return False
                return await super()._write_raw(namespace, payload)

        store = AlwaysLosing()
        with pytest.raises(WriteConflict):
            await store.update("admin", "items", lambda v: ["x"], default=[])
        assert await store.get("admin", "items") is None


class TestSqlStore:
    """Test the SQLAlchemy backend against a file-backed SQLite database"""

    @pytest.fixture
    def sql_store(self, tmp_path):
        return SqlStore(f"sqlite:///{tmp_path / 'store.db'}")

    async def test_round_trip_and_overwrite(self, sql_store):
        await sql_store.set("tutor", "profiles", {"t1": {"name": "Alice"}})
        await sql_store.set("tutor", "profiles", {"t2": {"name": "Bongani"}})
        assert await sql_store.get("tutor", "profiles") == {"t2": {"name": "Bongani"}}

    async def test_data_survives_a_new_store_instance(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'store.db'}"
        await SqlStore(url).set("admin", "flag", True)
        assert await SqlStore(url).get("admin", "flag") is True

    async def test_corrupt_row_reads_as_empty(self, sql_store):
        await sql_store._write_raw("admin", "}{")
        assert await sql_store.get("admin", "flag", False) is False

    async def test_stale_conditional_write_is_rejected(self, sql_store):
        await sql_store.set("admin", "flag", 1)
        _, revision = await sql_store._read_raw("admin")
        await sql_store.set("admin", "flag", 2)
        assert await sql_store._write_raw("admin", '{"flag": 3}', expected_revision=revision) is False
        assert await sql_store.get("admin", "flag") == 2

    async def test_racing_first_writes_have_one_winner(self, sql_store):
        results = await asyncio.gather(
            sql_store._write_raw("fresh", '{"by": "first"}', expected_revision=0),
            sql_store._write_raw("fresh", '{"by": "second"}', expected_revision=0),
        )
        assert sorted(results) == [False, True]
        assert await sql_store._read_raw("fresh") in [('{"by": "first"}', 1), ('{"by": "second"}', 1)]

    async def test_racing_unconditional_first_writes_do_not_fail(self, sql_store):
        await asyncio.gather(*(sql_store._write_raw("fresh", f'{{"n": {i}}}') for i in range(4)))
        _, revision = await sql_store._read_raw("fresh")
        assert revision == 4

    async def test_concurrent_updates_keep_every_change(self, sql_store):
        def append(value):
            return lambda items: items + [value]

        await asyncio.gather(*(sql_store.update("admin", "items", append(i), default=[]) for i in range(5)))
        assert sorted(await sql_store.get("admin", "items")) == [0, 1, 2, 3, 4]


class TestRedisStore:
    """Test the Redis backend with an in-process fake client"""

    async def test_namespace_is_one_prefixed_key(self):
        client = FakeRedis()
        store = RedisStore("localhost", 6379, client=client, key_prefix="cs")
        await store.set("counsellor", "profiles", {"c1": {"name": "Dr. Peters"}})
        assert sorted(client.data) == ["cs:counsellor", "cs:counsellor:revision"]
        assert await store.get("counsellor", "profiles") == {"c1": {"name": "Dr. Peters"}}

    async def test_missing_key_returns_default(self):
        store = RedisStore("localhost", 6379, client=FakeRedis())
        assert await store.get("counsellor", "profiles", {}) == {}

    async def test_stale_conditional_write_is_rejected(self):
        store = RedisStore("localhost", 6379, client=FakeRedis(), key_prefix="cs")
        await store.set("admin", "flag", 1)
        _, revision = await store._read_raw("admin")
        await store.set("admin", "flag", 2)
        assert await store._write_raw("admin", '{"flag": 3}', expected_revision=revision) is False
        assert await store.get("admin", "flag") == 2

    async def test_write_racing_another_client_is_retried(self):
        client = FakeRedis()
        store = RedisStore("localhost", 6379, client=client, key_prefix="cs")
        await store.set("admin", "items", ["a"])
        client.before_execute = lambda: client.set("cs:admin:revision", 7)

        result = await store.update("admin", "items", lambda items: items + ["b"])
        assert result == ["a", "b"]
        assert await store._read_raw("admin") == ('{"items": ["a", "b"]}', 8)
