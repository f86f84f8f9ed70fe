"""Durable key-value storage.

Dispatch state (rate-limit records, history, preferences, the in-app feed
and queue snapshots) is persisted through the ``DurableStore`` protocol.
Values are JSON-compatible structures.
"""

import copy
import json
import threading
from typing import Any, Dict, Optional, Protocol

from carenotify.errors import StorageError
from carenotify.logging import get_module_logger

logger = get_module_logger()


class DurableStore(Protocol):
    """Storage interface for dispatch state.

    Methods:
        get: Return the value stored under ``key`` or None
        set: Store a JSON-compatible value under ``key``
        delete: Remove ``key`` (no-op when missing)

    Implementations raise ``StorageError`` on backend failures.
    """

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryDurableStore:
    """Thread-safe in-memory implementation of DurableStore.

    Values are validated as JSON-serializable on write and copied on read
    and write, so callers never share mutable state with the store.

    Suitable for single-instance deployments, development and tests.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            value = self._data.get(key)
            return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error("store_serialization_error", key=key, error=str(e))
            raise StorageError("set", key, f"value is not JSON serializable: {e}") from e
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data
