"""
Durable key-value storage adapters for the trip store.

Every adapter exposes the same asynchronous contract: ``read`` returns the
stored string or None, ``write`` and ``remove`` return True on success.
Failures are logged and reported through those return values; callers never
see I/O exceptions.
"""

import abc
import asyncio
import logging
from typing import Optional, Dict

from redis import asyncio as aioredis
from redis.asyncio import Redis

from trip_planner.config.settings import RedisSettings


class StorageAdapter(abc.ABC):
    """Asynchronous string-blob storage keyed by namespace key."""

    @abc.abstractmethod
    async def read(self, key: str) -> Optional[str]:
        """Return the blob stored at key, or None if absent or unreadable."""

    @abc.abstractmethod
    async def write(self, key: str, value: str) -> bool:
        """Store value at key. Returns True if the write landed."""

    @abc.abstractmethod
    async def remove(self, key: str) -> bool:
        """Delete key. Returns True if the removal succeeded."""

    async def close(self) -> None:
        """Release any underlying connection."""


class MemoryStorage(StorageAdapter):
    """Process-local storage, used for tests and the ``memory`` backend."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def write(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    async def remove(self, key: str) -> bool:
        self._data.pop(key, None)
        return True

    def dump(self) -> Dict[str, str]:
        """Copy of everything currently stored."""
        return dict(self._data)


class RedisStorage(StorageAdapter):
    """
    Redis-backed storage with lazy connection management.

    The connection is established on first use. After ``max_connect_attempts``
    consecutive connection failures the adapter stops trying and every call
    degrades to a miss / failed write.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        socket_timeout: float = 5.0,
        max_connect_attempts: int = 3,
        client: Optional[Redis] = None
    ):
        """
        Initialize the storage adapter.

        Args:
            redis_url: Redis connection URL (defaults to RedisSettings)
            socket_timeout: Socket and connect timeout in seconds
            max_connect_attempts: Consecutive connection failures tolerated
            client: Pre-built client, skips URL based connection
        """
        self.redis_url = redis_url or RedisSettings().url
        self.socket_timeout = socket_timeout
        self.redis_client: Optional[Redis] = client
        self.logger = logging.getLogger(__name__)
        self._connection_lock = asyncio.Lock()
        self._is_connected = client is not None
        self._connection_failures = 0
        self._max_connect_attempts = max_connect_attempts

    @classmethod
    def from_settings(cls, redis_settings: RedisSettings) -> "RedisStorage":
        return cls(
            redis_url=redis_settings.url,
            socket_timeout=float(redis_settings.socket_timeout),
            max_connect_attempts=redis_settings.max_connect_attempts,
        )

    async def connect(self) -> bool:
        """
        Establish connection to Redis server.

        Returns:
            True if connection successful, False otherwise
        """
        async with self._connection_lock:
            if self._is_connected and self.redis_client:
                return True

            try:
                self.logger.info(f"Connecting to Redis at {self.redis_url}")
                self.redis_client = aioredis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_timeout=self.socket_timeout,
                    socket_connect_timeout=self.socket_timeout,
                    retry_on_timeout=True,
                )
                await self.redis_client.ping()
                self._is_connected = True
                self._connection_failures = 0
                self.logger.info("Successfully connected to Redis")
                return True

            except Exception as e:
                self._connection_failures += 1
                self.logger.error(
                    f"Failed to connect to Redis (attempt {self._connection_failures}): {e}"
                )
                await self._drop_client()
                return False

    async def close(self) -> None:
        """Disconnect from Redis server."""
        async with self._connection_lock:
            if self.redis_client:
                self.logger.info("Disconnecting from Redis")
            await self._drop_client()

    async def read(self, key: str) -> Optional[str]:
        if not await self._ensure_connection():
            return None

        try:
            value = await self.redis_client.get(key)
            self.logger.debug(f"Storage {'hit' if value else 'miss'} for key: {key}")
            return value
        except Exception as e:
            self.logger.warning(f"Error reading storage key '{key}': {e}")
            await self._handle_connection_error()
            return None

    async def write(self, key: str, value: str) -> bool:
        if not await self._ensure_connection():
            return False

        try:
            result = await self.redis_client.set(key, value)
            if not result:
                self.logger.warning(f"Failed to write storage key: {key}")
                return False
            self.logger.debug(f"Storage write for key: {key}")
            return True
        except Exception as e:
            self.logger.warning(f"Error writing storage key '{key}': {e}")
            await self._handle_connection_error()
            return False

    async def remove(self, key: str) -> bool:
        if not await self._ensure_connection():
            return False

        try:
            await self.redis_client.delete(key)
            self.logger.debug(f"Storage delete for key: {key}")
            return True
        except Exception as e:
            self.logger.warning(f"Error deleting storage key '{key}': {e}")
            await self._handle_connection_error()
            return False

    async def _ensure_connection(self) -> bool:
        if self._is_connected and self.redis_client:
            return True

        if self._connection_failures >= self._max_connect_attempts:
            self.logger.warning(
                f"Max connection attempts ({self._max_connect_attempts}) exceeded, "
                "storage operations are disabled"
            )
            return False

        return await self.connect()

    async def _handle_connection_error(self) -> None:
        """Mark the connection as failed so the next call reconnects."""
        await self._drop_client()

    async def _drop_client(self) -> None:
        client = self.redis_client
        self.redis_client = None
        self._is_connected = False
        if client is not None:
            try:
                await client.aclose()
            except Exception as e:
                self.logger.debug(f"Ignoring error while closing Redis client: {e}")

    @property
    def is_connected(self) -> bool:
        """Check if client is connected to Redis."""
        return self._is_connected and self.redis_client is not None
