"""Unit tests for session identity."""
import pytest

from realtychat.session import SessionIdentity, new_session_token
from realtychat.store import scoped_key
from realtychat.store.in_memory import InMemoryLocalStore


class TestSessionToken:
    """Tests for token generation."""

    def test_token_format(self):
        """Test that tokens are prefixed and unique."""
        tokens = {new_session_token() for _ in range(50)}
        assert len(tokens) == 50
        assert all(t.startswith("session_") for t in tokens)


class TestSessionIdentity:
    """Tests for SessionIdentity."""

    @pytest.fixture
    def store(self):
        return InMemoryLocalStore()

    async def test_id_is_created_once_and_persisted(self, store):
        """Test that repeated calls return the same persisted id."""
        identity = SessionIdentity(store)

        first = await identity.get_or_create_session_id()
        second = await identity.get_or_create_session_id()

        assert first == second
        assert await store.get(scoped_key("global", "session_id")) == first

    async def test_id_survives_new_instance(self, store):
        """Test that a fresh instance reads the stored id."""
        first = await SessionIdentity(store).get_or_create_session_id()
        again = await SessionIdentity(store).get_or_create_session_id()
        assert again == first

    async def test_namespaces_are_isolated(self, store):
        """Test that two callers on one store get different sessions."""
        anon = await SessionIdentity(store, "global").get_or_create_session_id()
        user = await SessionIdentity(store, "user:u1").get_or_create_session_id()
        assert anon != user

    async def test_reset_creates_different_id(self, store):
        """Test that reset replaces the id and clears the ratings cache."""
        identity = SessionIdentity(store)
        old = await identity.get_or_create_session_id()
        await store.set_json(scoped_key("global", "ratings"), {"1_t": "up"})

        new = await identity.reset()

        assert new != old
        assert identity.current == new
        assert await store.get(scoped_key("global", "session_id")) == new
        assert await store.get_json(scoped_key("global", "ratings")) == {}

    async def test_reset_runs_hooks(self, store):
        """Test that reset hooks get the old and new ids."""
        identity = SessionIdentity(store)
        old = await identity.get_or_create_session_id()
        calls = []

        async def hook(before, after):
            calls.append((before, after))

        identity.on_reset(hook)
        new = await identity.reset()

        assert calls == [(old, new)]

    async def test_adopt_switches_and_notifies(self, store):
        """Test that adopting a server id replaces the stored one."""
        identity = SessionIdentity(store)
        old = await identity.get_or_create_session_id()
        calls = []

        async def hook(before, after):
            calls.append((before, after))

        identity.on_reset(hook)
        await identity.adopt("session_server")
        await identity.adopt("session_server")

        assert await identity.get_or_create_session_id() == "session_server"
        assert calls == [(old, "session_server")]

    async def test_adopt_before_any_id_skips_hooks(self, store):
        """Test that adopting into an empty identity does not fire hooks."""
        identity = SessionIdentity(store)
        calls = []

        async def hook(before, after):
            calls.append((before, after))

        identity.on_reset(hook)
        await identity.adopt("session_loaded")

        assert identity.current == "session_loaded"
        assert calls == []

    async def test_draft_round_trip(self, store):
        """Test that drafts are saved per session and cleared when empty."""
        identity = SessionIdentity(store)
        await identity.save_draft("2BHK near the metro")
        assert await identity.load_draft() == "2BHK near the metro"

        await identity.save_draft("")
        assert await identity.load_draft() == ""

    async def test_draft_does_not_follow_reset(self, store):
        """Test that a new session starts without the old draft."""
        identity = SessionIdentity(store)
        await identity.save_draft("unsent")
        await identity.reset()
        assert await identity.load_draft() == ""
