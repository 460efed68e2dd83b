"""Single owner of the mutable state of a migration run."""

import copy
import logging
import threading
from typing import Callable, List

from ..models.migration import Manifest

logger = logging.getLogger(__name__)

Listener = Callable[[Manifest], None]


class RunStateOwner:
    """
    Holds the run manifest behind a lock.

    Readers get a copy; writers go through `set` or `update`. Subscribers
    receive a copy after every change.
    """

    def __init__(self, manifest: Manifest):
        self._manifest = manifest
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

    def get(self) -> Manifest:
        with self._lock:
            return copy.deepcopy(self._manifest)

    def set(self, manifest: Manifest) -> None:
        with self._lock:
            self._manifest = manifest
            snapshot = copy.deepcopy(manifest)
        self._notify(snapshot)

    def update(self, mutate: Callable[[Manifest], None]) -> Manifest:
        """Apply `mutate` to the owned manifest and return a copy of the result."""
        with self._lock:
            mutate(self._manifest)
            snapshot = copy.deepcopy(self._manifest)
        self._notify(snapshot)
        return snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; the returned callable unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, snapshot: Manifest) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Run state listener failed: {e}")
