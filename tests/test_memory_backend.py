"""Tests for the in-memory state backend."""

from unittest.mock import patch

import pytest

from agent_runtime.state.memory import MemoryStateBackend


@pytest.fixture
def backend():
    return MemoryStateBackend()


class TestBasicOperations:
    """Tests for get/set/delete."""

    async def test_get_missing_key_returns_none(self, backend):
        """Test that unknown keys read as None."""
        assert await backend.get("non-existent") is None

    async def test_set_and_get(self, backend):
        """Test storing and reading a value."""
        await backend.set("key1", "value1")
        assert await backend.get("key1") == "value1"

    async def test_stores_complex_values(self, backend):
        """Test nested dicts and lists round trip unchanged."""
        value = {"name": "test", "count": 42, "nested": {"items": [1, "two", {"three": 3}]}}
        await backend.set("complex", value)
        assert await backend.get("complex") == value

    async def test_set_overwrites(self, backend):
        """Test that a second set replaces the first value."""
        await backend.set("key", "first")
        await backend.set("key", "second")
        assert await backend.get("key") == "second"

    async def test_delete_removes_value(self, backend):
        """Test that delete removes the key."""
        await backend.set("to-delete", "value")
        await backend.delete("to-delete")
        assert await backend.get("to-delete") is None

    async def test_delete_missing_key_is_noop(self, backend):
        """Test deleting an unknown key does not raise."""
        await backend.delete("non-existent")

    async def test_instances_do_not_share_storage(self):
        """Test that two backends never see each other's keys."""
        first = MemoryStateBackend()
        second = MemoryStateBackend()

        await first.set("shared", 1)

        assert await second.get("shared") is None


class TestPrefix:
    """Tests for key namespacing."""

    def test_full_key_with_prefix(self):
        """Test that the prefix is joined with a colon."""
        assert MemoryStateBackend(prefix="agent").full_key("k") == "agent:k"

    def test_full_key_without_prefix(self):
        """Test that keys are left alone without a prefix."""
        assert MemoryStateBackend().full_key("k") == "k"

    async def test_clear_only_removes_own_namespace(self):
        """Test clear with a prefix leaves other namespaces intact."""
        own = MemoryStateBackend(prefix="own")
        other = MemoryStateBackend(prefix="other")
        # Both namespaces in one store
        other._store = own._store

        await own.set("a", 1)
        await other.set("b", 2)
        await own.clear()

        assert await own.get("a") is None
        assert await other.get("b") == 2

    async def test_clear_without_prefix_removes_everything(self, backend):
        """Test clear without a prefix empties the store."""
        await backend.set("a", 1)
        await backend.set("b", 2)
        await backend.clear()

        assert await backend.get("a") is None
        assert await backend.get("b") is None


class TestExpiry:
    """Tests for TTL handling."""

    async def test_value_expires_after_ttl(self, backend):
        """Test that a value disappears once its ttl has passed."""
        with patch("agent_runtime.state.memory.time") as mock_time:
            mock_time.time.return_value = 1000.0
            await backend.set("session", "data", ttl=60)

            mock_time.time.return_value = 1059.0
            assert await backend.get("session") == "data"

            mock_time.time.return_value = 1061.0
            assert await backend.get("session") is None

    async def test_default_ttl_applies(self):
        """Test the constructor ttl is used when set() has none."""
        backend = MemoryStateBackend(ttl=10)
        with patch("agent_runtime.state.memory.time") as mock_time:
            mock_time.time.return_value = 0.0
            await backend.set("key", "value")

            mock_time.time.return_value = 11.0
            assert await backend.get("key") is None

    async def test_per_call_ttl_overrides_default(self):
        """Test an explicit ttl wins over the default."""
        backend = MemoryStateBackend(ttl=10)
        with patch("agent_runtime.state.memory.time") as mock_time:
            mock_time.time.return_value = 0.0
            await backend.set("key", "value", ttl=100)

            mock_time.time.return_value = 50.0
            assert await backend.get("key") == "value"

    async def test_no_ttl_never_expires(self, backend):
        """Test values without a ttl stay forever."""
        with patch("agent_runtime.state.memory.time") as mock_time:
            mock_time.time.return_value = 0.0
            await backend.set("key", "value")

            mock_time.time.return_value = 10**9
            assert await backend.get("key") == "value"

    async def test_cleanup_removes_expired_entries(self, backend):
        """Test cleanup purges expired entries and reports the count."""
        with patch("agent_runtime.state.memory.time") as mock_time:
            mock_time.time.return_value = 0.0
            await backend.set("short", 1, ttl=5)
            await backend.set("long", 2, ttl=500)
            await backend.set("forever", 3)

            mock_time.time.return_value = 10.0
            assert backend.cleanup() == 1

            assert await backend.get("long") == 2
            assert await backend.get("forever") == 3
            assert "short" not in backend._store
