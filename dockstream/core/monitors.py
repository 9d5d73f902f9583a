"""Registry of live stream monitors.

A monitor is live exactly while its token is in the registry; stopping a
monitor removes the token, and streaming readers notice between decoded
units. There is no other cancellation path.
"""

import random
import threading
from contextlib import contextmanager
from typing import Iterator, Set

import structlog

logger = structlog.get_logger(__name__)

# Shared by every registry in the process
_random = random.Random()

TOKEN_ALLOCATION_ATTEMPTS = 5


class ReadWriteLock:
    """Many concurrent readers or one writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class MonitorRegistry:
    """Thread-safe set of live monitor tokens."""

    def __init__(self):
        self._lock = ReadWriteLock()
        self._tokens: Set[int] = set()

    def new_token(self) -> int:
        """Allocate and register a token.

        A colliding candidate is redrawn up to TOKEN_ALLOCATION_ATTEMPTS
        times; after that the last candidate is accepted even if it
        collides. With 63-bit tokens this is not expected to happen.
        """
        with self._lock.write():
            token = 0
            for _ in range(TOKEN_ALLOCATION_ATTEMPTS):
                token = _random.getrandbits(63)
                if token not in self._tokens:
                    break
            else:
                logger.warning("Monitor token collision not resolved", token=token)
            self._tokens.add(token)
        return token

    def stop(self, token: int) -> None:
        """Remove ``token``. Stopping an unknown or stopped token is a no-op."""
        with self._lock.write():
            self._tokens.discard(token)

    def is_live(self, token: int) -> bool:
        with self._lock.read():
            return token in self._tokens

    def clear(self) -> None:
        """Stop every monitor."""
        with self._lock.write():
            self._tokens.clear()

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._tokens)

    def __contains__(self, token: int) -> bool:
        return self.is_live(token)
