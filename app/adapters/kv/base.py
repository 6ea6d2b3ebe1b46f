"""Key-value store interface.

The contract is get, put with per-key TTL, and delete.
No transactions or atomic increments are assumed, so any store with native
key expiration can back it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractKeyValueStore(ABC):
    """Interface for TTL-capable key-value stores."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the stored value, or None if the key is absent or expired.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def put(
        self,
        key: str,
        value: bytes,
        *,
        expiration_ttl: int | None = None,
        keep_ttl: bool = False,
    ) -> None:
        """Store a value.

        Args:
            key: Entry key.
            value: Raw bytes to store.
            expiration_ttl: Seconds until the entry expires. None means no expiry.
            keep_ttl: When True and the key is still live, keep its remaining
                TTL instead of resetting it. If the key is absent,
                ``expiration_ttl`` applies as for a fresh write.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Deleting an absent key is a no-op.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources (no-op by default)."""
        return None
