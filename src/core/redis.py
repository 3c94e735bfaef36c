"""Redis client with connection pooling for the job queues."""
import logging

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RedisNotConnectedError(RuntimeError):
    """Raised when the client is used before connect() or after close()."""

    def __init__(self) -> None:
        super().__init__("Redis client is not connected")


class RedisClient:
    """
    Async Redis client with connection pooling.

    Unlike a cache, a queue cannot silently fall back when Redis is down, so
    connection failures propagate to the caller.
    """

    def __init__(self, url: str, pool_size: int = 20) -> None:
        self._url = url
        self._pool_size = pool_size
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Initialize the connection pool and verify the server answers."""
        self._pool = ConnectionPool.from_url(self._url, max_connections=self._pool_size)
        self._client = Redis(connection_pool=self._pool)
        try:
            await self._client.ping()
        except RedisError:
            await self.close()
            raise
        logger.info("Redis connected successfully")

    async def close(self) -> None:
        """Close connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
            self._pool = None
            logger.info("Redis connection closed")

    @property
    def client(self) -> Redis:
        """The underlying redis.asyncio client."""
        if self._client is None:
            raise RedisNotConnectedError()
        return self._client
