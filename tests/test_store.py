"""Unit tests for the local state store."""
import pytest

from realtychat.store import (
    GLOBAL_NAMESPACE,
    LocalStore,
    create_local_store,
    namespace_for,
    scoped_key,
)
from realtychat.store.in_memory import InMemoryLocalStore
from realtychat.store.sqlite import SQLiteLocalStore


class TestLocalStore:
    """Tests for LocalStore interface."""

    def test_local_store_is_abstract(self):
        """Test that LocalStore cannot be instantiated directly."""
        with pytest.raises(TypeError):
            LocalStore()  # type: ignore


class TestNamespaces:
    """Tests for key namespacing."""

    def test_anonymous_callers_share_global(self):
        """Test that no user id maps to the global namespace."""
        assert namespace_for(None) == GLOBAL_NAMESPACE
        assert namespace_for("") == GLOBAL_NAMESPACE

    def test_users_get_own_namespace(self):
        """Test that each user id gets a distinct namespace."""
        assert namespace_for("u1") == "user:u1"
        assert namespace_for("u1") != namespace_for("u2")

    def test_scoped_key(self):
        assert scoped_key("user:u1", "session_id") == "user:u1/session_id"


@pytest.fixture(params=["memory", "sqlite"])
async def store(request, tmp_path):
    """Each backend, connected and empty."""
    if request.param == "memory":
        backend = create_local_store("memory")
    else:
        backend = create_local_store("sqlite", path=tmp_path / "state" / "state.db")
    async with backend:
        yield backend


class TestStoreBackends:
    """Behaviour shared by every backend."""

    async def test_get_missing_returns_none(self, store):
        assert await store.get("nope") is None

    async def test_set_replaces_value(self, store):
        """Test that set overwrites an existing key."""
        await store.set("global/session_id", "a")
        await store.set("global/session_id", "b")
        assert await store.get("global/session_id") == "b"

    async def test_delete_is_idempotent(self, store):
        """Test that deleting twice is harmless."""
        await store.set("k", "v")
        await store.delete("k")
        await store.delete("k")
        assert await store.get("k") is None

    async def test_keys_by_prefix(self, store):
        """Test that keys are listed sorted and filtered by prefix."""
        await store.set("user:u1/b", "1")
        await store.set("user:u1/a", "1")
        await store.set("user:u10/a", "1")
        await store.set("global/a", "1")

        assert await store.keys("user:u1/") == ["user:u1/a", "user:u1/b"]
        assert len(await store.keys()) == 4

    async def test_json_helpers(self, store):
        """Test JSON values and the default for unreadable data."""
        await store.set_json("prefs", {"tone": "friendly"})
        assert await store.get_json("prefs") == {"tone": "friendly"}

        await store.set("broken", "{not json")
        assert await store.get_json("broken", default={}) == {}
        assert await store.get_json("absent", default=[]) == []


class TestSQLiteLocalStore:
    """Tests specific to the SQLite backend."""

    async def test_values_survive_reconnect(self, tmp_path):
        """Test that data persists across connections."""
        path = tmp_path / "state.db"
        async with SQLiteLocalStore(path) as first:
            await first.set("global/session_id", "session_1")

        async with SQLiteLocalStore(path) as second:
            assert await second.get("global/session_id") == "session_1"

    async def test_requires_connect(self, tmp_path):
        """Test that use before connect fails clearly."""
        store = SQLiteLocalStore(tmp_path / "state.db")
        with pytest.raises(RuntimeError):
            await store.get("k")


class TestStoreFactory:
    """Tests for create_local_store."""

    def test_create_memory_store(self):
        store = create_local_store("memory", initial={"k": "v"})
        assert isinstance(store, InMemoryLocalStore)
        assert store.backend_type == "memory"

    def test_create_sqlite_store(self, tmp_path):
        store = create_local_store("sqlite", path=tmp_path / "x.db")
        assert isinstance(store, SQLiteLocalStore)
        assert store.backend_type == "sqlite"

    def test_unknown_backend_fails(self):
        """Test that unsupported backends are rejected."""
        with pytest.raises(ValueError, match="Unsupported state backend"):
            create_local_store("redis")
