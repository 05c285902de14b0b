"""Process-wide store for consumer configuration referenced by ack handles."""

import logging
import threading
import uuid
from typing import Any

from pullstage.exceptions import UnknownRegistryKey

logger = logging.getLogger(__name__)


class AckRegistry:
    """
    Keyed store of immutable values shared by every message of a producer.

    Messages carry the key returned by put() instead of a copy of the
    configuration, so handles stay small and never embed credentials.
    Entries are written once and never updated; a producer releases its
    entry when it stops.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}
        self._lock = threading.Lock()

    def put(self, value: Any) -> str:
        """
        Store a value under a fresh key.

        Args:
            value: Immutable value to share

        Returns:
            Opaque key identifying the entry
        """
        key = uuid.uuid4().hex
        with self._lock:
            self._entries[key] = value
        return key

    def get(self, key: str) -> Any:
        """
        Return the value stored under key.

        Raises:
            UnknownRegistryKey: key was never issued or has been released.
                This is a programming error, not a transient condition.
        """
        with self._lock:
            try:
                return self._entries[key]
            except KeyError:
                raise UnknownRegistryKey(key) from None

    def release(self, key: str) -> None:
        """Drop the entry for a stopped producer. Unknown keys are ignored."""
        with self._lock:
            if self._entries.pop(key, None) is not None:
                logger.debug("Released registry entry %s", key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


default_registry = AckRegistry()
