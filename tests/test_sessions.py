import os
import time

import pytest

from graphql_query_builder.errors import SessionNotFound, StoreError
from graphql_query_builder.model import QueryState
from graphql_query_builder.store import (
    FileSessionStore,
    MemorySessionStore,
    generate_session_id,
    normalize_session_id,
)
from graphql_query_builder.tree import add_path


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_session_ids():
    sid = generate_session_id()
    assert len(sid) == 32
    assert normalize_session_id(sid.upper()) == sid
    with pytest.raises(SessionNotFound):
        normalize_session_id("not-a-session")


async def test_memory_store_returns_copies():
    store = MemorySessionStore()
    state = QueryState(operation_name="Q")
    await store.save("a" * 32, state)

    loaded = await store.load("a" * 32)
    add_path(loaded.root.children, "user")
    again = await store.load("a" * 32)
    assert again.root.children == {}
    assert again.operation_name == "Q"


async def test_memory_store_expires_after_inactivity():
    clock = FakeClock()
    store = MemorySessionStore(ttl=60, clock=clock)
    await store.save("b" * 32, QueryState())

    clock.now += 50
    assert await store.load("b" * 32) is not None
    # loading refreshed the access time
    clock.now += 50
    assert await store.load("b" * 32) is not None
    clock.now += 61
    assert await store.load("b" * 32) is None
    assert len(store) == 0


async def test_memory_store_ttl_zero_never_expires():
    clock = FakeClock()
    store = MemorySessionStore(ttl=0, clock=clock)
    await store.save("c" * 32, QueryState())
    clock.now += 10**9
    assert await store.load("c" * 32) is not None


async def test_file_store_round_trip(tmp_path):
    store = FileSessionStore(str(tmp_path / "sessions"), ttl=3600)
    sid = generate_session_id()
    state = QueryState(operation_name="Saved", headers={"Authorization": "Bearer x"})
    add_path(state.root.children, "user.name")
    await store.save(sid, state)

    loaded = await store.load(sid)
    assert loaded.operation_name == "Saved"
    assert loaded.headers == {"Authorization": "Bearer x"}
    assert "name" in loaded.root.children["user"].children
    assert store.session_ids() == [sid]

    assert await store.delete(sid) is True
    assert await store.delete(sid) is False
    assert await store.load(sid) is None


async def test_file_store_expiry(tmp_path):
    store = FileSessionStore(str(tmp_path), ttl=60)
    sid = generate_session_id()
    await store.save(sid, QueryState())

    old = time.time() - 120
    os.utime(store.path_for(sid), (old, old))
    assert await store.load(sid) is None
    assert not os.path.exists(store.path_for(sid))


async def test_file_store_corrupt_file(tmp_path):
    store = FileSessionStore(str(tmp_path), ttl=0)
    sid = generate_session_id()
    with open(store.path_for(sid), "w") as f:
        f.write("{not json")
    with pytest.raises(StoreError):
        await store.load(sid)


async def test_start_session(builder):
    result = await builder.start_query_session("query", "Q1", headers={"X-Trace": "1"})
    assert result["success"] is True
    assert result["operationType"] == "query"
    assert result["operationTypeName"] == "Query"
    assert result["operationName"] == "Q1"
    assert len(result["sessionId"]) == 32
    assert "warnings" not in result


async def test_start_session_merges_config_headers(builder, store, cfg):
    cfg.headers = {"Authorization": "Bearer default", "X-Env": "prod"}
    result = await builder.start_query_session(headers={"X-Env": "staging"})
    state = await store.load(result["sessionId"])
    assert state.headers == {"Authorization": "Bearer default", "X-Env": "staging"}


async def test_start_session_rejects_unsupported_operation(builder):
    result = await builder.start_query_session("subscription")
    assert result["code"] == "InvalidInput"
    assert "not supported by schema" in result["error"]

    result = await builder.start_query_session("fetch")
    assert result["code"] == "InvalidInput"


async def test_start_session_rejects_bad_operation_name(builder):
    result = await builder.start_query_session("query", "bad name")
    assert result["code"] == "InvalidName"


async def test_start_session_without_schema(offline_builder):
    result = await offline_builder.start_query_session("mutation")
    assert result["success"] is True
    assert result["operationTypeName"] == "Mutation"
    assert result["operationName"] is None
    assert "Schema unavailable" in result["warnings"][0]


async def test_end_session(builder, session_id):
    result = await builder.end_query_session(session_id)
    assert result["message"] == f"Session {session_id} ended successfully"
    assert result["sessionInfo"]["operationName"] == "Q1"
    assert result["sessionInfo"]["endedAt"]

    again = await builder.select_field(session_id, "user")
    assert again["code"] == "SessionNotFound"


async def test_unknown_session(builder):
    result = await builder.get_current_query("0" * 32)
    assert result == {"error": f"Session '{'0' * 32}' not found.", "code": "SessionNotFound"}

    result = await builder.get_current_query("garbage")
    assert result["code"] == "SessionNotFound"


async def test_session_id_is_case_insensitive(builder, session_id):
    result = await builder.get_current_query(session_id.upper())
    assert "error" not in result


async def test_store_failures_are_reported(builder, store, session_id, monkeypatch):
    async def broken_save(session_id, state):
        raise StoreError("disk full")

    monkeypatch.setattr(store, "save", broken_save)
    result = await builder.select_field(session_id, "user")
    assert result == {"error": "disk full", "code": "StoreError"}


async def test_unexpected_errors_become_internal_errors(builder, store, session_id, monkeypatch):
    async def exploding_load(session_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(store, "load", exploding_load)
    result = await builder.get_current_query(session_id)
    assert result == {"error": "boom", "code": "InternalError"}
