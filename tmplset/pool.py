"""Bounded pool of reusable output buffers."""

import io
import queue
from typing import Protocol

from tmplset.config import DEFAULT_POOL_SIZE
from tmplset.exceptions import ConfigurationException
from tmplset.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


class Pool(Protocol):
    """Protocol for output buffer pools."""

    def get(self) -> io.BytesIO: ...

    def put(self, buffer: io.BytesIO) -> None: ...


class BufferPool:
    """Naive bounded buffer pool.

    Idle buffers wait in a bounded queue. ``get`` and ``put`` never block:
    an empty pool allocates, a full pool drops the returned buffer.
    Thread-safe through the queue's own locking.
    """

    def __init__(self, capacity: int = DEFAULT_POOL_SIZE):
        if capacity < 1:
            raise ConfigurationException(
                f"Buffer pool capacity must be positive, got {capacity}",
                details={"capacity": capacity},
            )
        self._capacity = capacity
        self._free: queue.Queue[io.BytesIO] = queue.Queue(maxsize=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self) -> io.BytesIO:
        """Return an empty buffer, reused if one is idle or newly allocated if not."""
        try:
            return self._free.get_nowait()
        except queue.Empty:
            return io.BytesIO()

    def put(self, buffer: io.BytesIO) -> None:
        """Reset buffer and keep it for reuse unless the pool is full."""
        buffer.seek(0)
        buffer.truncate()
        try:
            self._free.put_nowait(buffer)
        except queue.Full:
            log_with_context(
                logger,
                "debug",
                "Buffer pool full, discarding buffer",
                capacity=self._capacity,
                event_type="buffer_pool_discard",
            )

    def __len__(self) -> int:
        """Number of idle buffers (approximate under concurrency)."""
        return self._free.qsize()


# Global pool instance
_default_pool = BufferPool()


def default_pool() -> BufferPool:
    """Get the process-wide buffer pool."""
    return _default_pool
