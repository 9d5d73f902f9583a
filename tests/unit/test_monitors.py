"""Unit tests for the monitor registry."""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from dockstream.core import monitors
from dockstream.core.monitors import MonitorRegistry, ReadWriteLock, TOKEN_ALLOCATION_ATTEMPTS


@pytest.fixture
def registry():
    return MonitorRegistry()


class TestTokens:
    """Token allocation and liveness."""

    def test_new_token_is_live(self, registry):
        token = registry.new_token()
        assert registry.is_live(token)
        assert token in registry
        assert len(registry) == 1

    def test_tokens_fit_in_63_bits(self, registry):
        for _ in range(100):
            assert 0 <= registry.new_token() < 2**63

    def test_tokens_are_unique(self, registry):
        tokens = {registry.new_token() for _ in range(1000)}
        assert len(tokens) == 1000
        assert len(registry) == 1000

    def test_unknown_token_is_not_live(self, registry):
        assert registry.is_live(42) is False

    def test_collision_is_redrawn(self, registry):
        with patch.object(monitors._random, "getrandbits", side_effect=[7, 7, 9]):
            assert registry.new_token() == 7
            assert registry.new_token() == 9

    def test_unresolved_collision_is_accepted(self, registry):
        draws = [7] + [7] * TOKEN_ALLOCATION_ATTEMPTS
        with patch.object(monitors._random, "getrandbits", side_effect=draws) as mock_draw:
            registry.new_token()
            assert registry.new_token() == 7
        assert mock_draw.call_count == 1 + TOKEN_ALLOCATION_ATTEMPTS
        assert registry.is_live(7)

    def test_concurrent_allocation(self, registry):
        with ThreadPoolExecutor(max_workers=8) as pool:
            tokens = list(pool.map(lambda _: registry.new_token(), range(500)))
        assert len(set(tokens)) == 500
        assert all(registry.is_live(t) for t in tokens)


class TestStop:
    """Stopping monitors."""

    def test_stop_removes_token(self, registry):
        token = registry.new_token()
        registry.stop(token)
        assert not registry.is_live(token)

    def test_stop_is_idempotent(self, registry):
        token = registry.new_token()
        registry.stop(token)
        registry.stop(token)
        assert len(registry) == 0

    def test_stop_unknown_token_is_noop(self, registry):
        token = registry.new_token()
        registry.stop(token + 1)
        assert registry.is_live(token)

    def test_stop_leaves_other_tokens(self, registry):
        first = registry.new_token()
        second = registry.new_token()
        registry.stop(first)
        assert registry.is_live(second)

    def test_clear(self, registry):
        tokens = [registry.new_token() for _ in range(5)]
        registry.clear()
        assert len(registry) == 0
        assert not any(registry.is_live(t) for t in tokens)


class TestReadWriteLock:
    def test_readers_share_the_lock(self):
        lock = ReadWriteLock()
        with lock.read():
            with lock.read():
                assert lock._readers == 2
        assert lock._readers == 0

    def test_writer_released_after_block(self):
        lock = ReadWriteLock()
        with lock.write():
            assert lock._writer
        assert not lock._writer
        with lock.read():
            pass
