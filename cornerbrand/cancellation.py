"""Cooperative cancellation flags keyed by batch request id."""
from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class CancellationScope:
    """
    Owns one registry entry for the lifetime of a run.

    Releasing is idempotent. Use as a context manager so the entry goes away
    on every exit path:

        with registry.begin(request_id):
            stamp_batch_with_progress(..., request_id=request_id)
    """

    def __init__(self, registry: CancellationRegistry, request_id: str) -> None:
        self.registry = registry
        self.request_id = request_id
        self._released = False

    def release(self) -> None:
        if not self._released:
            self._released = True
            self.registry.clear(self.request_id)

    def __enter__(self) -> CancellationScope:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class CancellationRegistry:
    """Thread-safe map of request id -> cancelled flag."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._flags: dict[str, bool] = {}

    def begin(self, request_id: str) -> CancellationScope:
        """Register a fresh, uncancelled entry (replacing any stale one)."""
        with self._lock:
            self._flags[request_id] = False
        return CancellationScope(self, request_id)

    def cancel(self, request_id: str) -> bool:
        """Flag a running request. Returns False if the id is unknown."""
        with self._lock:
            if request_id not in self._flags:
                return False
            self._flags[request_id] = True
        logger.info("Cancellation requested for %s", request_id)
        return True

    def is_cancelled(self, request_id: str) -> bool:
        with self._lock:
            return self._flags.get(request_id, False)

    def clear(self, request_id: str) -> None:
        with self._lock:
            self._flags.pop(request_id, None)

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._flags


# Shared by the desktop host: the cancel button and the worker thread look up
# the same request id here.
default_registry = CancellationRegistry()
