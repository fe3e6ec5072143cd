import functools
import redis
from typing import TypeVar, Any
from collections.abc import Callable

from shorty.dao.exceptions import DataStoreError


__all__ = ['handle_redis_connection_error', 'data_store_error', 'REDIS_CONNECTIVITY_ERRORS']

F = TypeVar('F', bound=Callable[..., Any])

# Errors meaning "Redis can't be reached right now" (transient I/O)
REDIS_CONNECTIVITY_ERRORS = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)


def data_store_error(client: redis.Redis) -> DataStoreError:
    """Build a DataStoreError naming the Redis server a client talks to"""
    info = client.connection_pool.connection_kwargs
    redis_host = info.get('host')
    redis_port = info.get('port')
    redis_db = info.get('db')
    return DataStoreError(f"Can't connect to Redis at {redis_host}:{redis_port}/{redis_db}.")


def handle_redis_connection_error[F](method: F) -> F:
    """Wrap Redis-interacting DAO methods to handle connection errors

    Both refused connections and socket timeouts are reported as DataStoreError
    so request handlers can answer with a retryable failure.

    NOTE: generator methods must handle errors raised during iteration
          themselves, since the wrapper only guards the call that creates them.

    Args:
        method (Callable[..., Any]):
            DAO method performing Redis operations which may raise
            redis.exceptions.ConnectionError or redis.exceptions.TimeoutError.

    Returns:
        Callable[..., Any]:
            Wrapped method which raises DataStoreError on connectivity issues with Redis.

    Example:
        >>> @handle_redis_connection_error
        ... def exists(self, shortcode):
        ...     return self.redis.exists(shortcode)
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except REDIS_CONNECTIVITY_ERRORS as e:
            raise data_store_error(self.redis) from e

    return wrapper
