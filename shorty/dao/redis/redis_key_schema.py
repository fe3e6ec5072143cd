import functools
from collections.abc import Callable

from shorty.constants import KeyPrefix


__all__ = ['RedisKeySchema']  # hide internal decorator prefix_key from imports


def prefix_key(func: Callable) -> Callable:
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> str:
        key = func(self, *args, **kwargs)
        return f'{self.prefix}:{key}' if self.prefix is not None else key

    return wrapper


class RedisKeySchema:
    """Provide standardized Redis keys for short URLs and their side records.

    Three record kinds share one flat keyspace:
        <token>               -> target URL
        s3_exists:<token>     -> cached object name ('' when not object-backed)
        s3_cred:<token>       -> JSON encoded object storage credentials

    An optional prefix can be provided to namespace all generated keys,
    e.g. "shorty:prod" or "shorty:dev".
    """

    def __init__(self, prefix: str | None = None):
        if prefix is not None and not isinstance(prefix, str):
            raise TypeError(f'Prefix must be of type string (given type: {type(prefix)}).')

        self.prefix = prefix

    @prefix_key
    def link_url_key(self, shortcode: str) -> str:
        return shortcode

    @prefix_key
    def object_cache_key(self, shortcode: str) -> str:
        return f'{KeyPrefix.OBJECT_CACHE}{shortcode}'

    @prefix_key
    def credentials_key(self, shortcode: str) -> str:
        return f'{KeyPrefix.CREDENTIALS}{shortcode}'

    @prefix_key
    def all_keys_pattern(self) -> str:
        return '*'

    @prefix_key
    def object_cache_pattern(self) -> str:
        return f'{KeyPrefix.OBJECT_CACHE}*'

    def unprefixed(self, key: str) -> str:
        """Strip the namespace prefix from a key returned by SCAN"""
        if self.prefix is not None and key.startswith(f'{self.prefix}:'):
            return key[len(self.prefix) + 1 :]
        return key

    def is_internal_key(self, key: str) -> bool:
        """True for object cache and credential keys (never short URLs themselves)"""
        return self.unprefixed(key).startswith((KeyPrefix.OBJECT_CACHE, KeyPrefix.CREDENTIALS))

    def shortcode_from_cache_key(self, key: str) -> str:
        return self.unprefixed(key).removeprefix(KeyPrefix.OBJECT_CACHE)
