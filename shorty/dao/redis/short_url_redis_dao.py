"""Data Access Object (DAO) implementation for managing shortened URLs in Redis

This module provides a Redis-based implementation of ShortURLBaseDAO: the key
store owning the shortcode lifecycle (creation, lookup, rename, deletion and
TTL-driven expiry) together with its object existence cache.

Responsibilities:
    - Insert and retrieve short URLs from Redis;
    - Keep '<prefix>:s3_exists:<shortcode>' in step with the short URL target;
    - Store per-shortcode credentials with compensating rollback;
    - Enumerate live short URLs, skipping internal cache/credential keys;
    - Translate Redis failures into the appropriate DAO exceptions.

Classes:
    ShortURLRedisDAO:
        DAO for storing and retrieving ShortURLModel in a Redis datastore.

Example:
    >>> from shorty.models import ShortURLModel
    >>> from shorty.dao.redis import ShortURLRedisDAO

    >>> dao = ShortURLRedisDAO(prefix='shorty:dev', s3_endpoint='s3.example', s3_bucket='bucket')

    >>> short_url = ShortURLModel(
    ...     target='https://s3.example/bucket/report.pdf',
    ...     shortcode='tanoreli',
    ... )
    >>> dao.insert(short_url, ttl=3600)
    <ShortURLRedisDAO>

    >>> retrieved = dao.get('tanoreli')
    >>> retrieved.target
    'https://s3.example/bucket/report.pdf'
    >>> retrieved.object_name
    'report.pdf'
    >>> retrieved.expires_at
    <datetime>
"""

import logging
from collections.abc import Iterator
from datetime import datetime, timedelta, UTC

import redis
from beartype import beartype

from shorty.constants import TTL, SCAN_COUNT
from shorty.models import ShortURLModel, S3Credentials
from shorty.dao.base import ShortURLBaseDAO
from shorty.dao.redis.mixins import RedisClientMixin
from shorty.dao.redis.credentials_redis_dao import CredentialsRedisDAO
from shorty.dao.redis.helpers import handle_redis_connection_error, data_store_error, REDIS_CONNECTIVITY_ERRORS
from shorty.dao.exceptions import (
    DAOError,
    ShortURLAlreadyExistsError,
    ShortURLNotFoundError,
    CredentialsNotFoundError,
    MalformedDataError,
)
from shorty.utils.helpers import object_name_from_url
from shorty.utils.shortener import validate_shortcode


logger = logging.getLogger(__name__)


class ShortURLRedisDAO(RedisClientMixin, ShortURLBaseDAO):
    """Redis-based Data Access Object (DAO) for managing short URL mappings

    This class implements the ShortURLBaseDAO interface using Redis as a data store.
    Redis TTLs are the only source of expiry: there is no application-level
    timestamp check, so an expired short URL is simply absent.

    Attributes (see RedisClientMixin):
        redis (redis.Redis):
            Redis client used to communicate with the Redis datastore.
        keys (RedisKeySchema):
            Key schema helper for generating namespaced Redis keys.
        credentials (CredentialsRedisDAO):
            Credential store sharing the same Redis client.

    Example:
        >>> dao = ShortURLRedisDAO(redis_host='localhost', prefix='shorty:test')
        >>> dao.insert(ShortURLModel(target='https://example.com', shortcode='abc123'))
        <ShortURLRedisDAO>
        >>> dao.get('abc123').target
        'https://example.com'
        >>> dao.delete('abc123')
        True
    """

    def __init__(
        self,
        s3_endpoint: str | None = None,
        s3_bucket: str | None = None,
        default_ttl: int = TTL.DEFAULT_LINK,
        not_object_cache_ttl: int = TTL.NOT_OBJECT_CACHE,
        credentials_dao: CredentialsRedisDAO | None = None,
        **redis_kwargs,
    ):
        """Initialize the key store

        Args:
            s3_endpoint (str | None):
                Object storage endpoint. Targets on this host are object-backed.
                None disables object detection altogether.
            s3_bucket (str | None):
                Bucket the service stores objects in.
            default_ttl (int):
                TTL in seconds for short URLs inserted without a valid TTL.
            not_object_cache_ttl (int):
                TTL in seconds of cache entries recording "not object-backed".
            credentials_dao (CredentialsRedisDAO | None):
                Credential store. Created on the same Redis client if None.
            **redis_kwargs:
                Connection arguments forwarded to RedisClientMixin.
        """
        super().__init__(**redis_kwargs)
        self.s3_endpoint = s3_endpoint or None
        self.s3_bucket = s3_bucket or None
        self.default_ttl = default_ttl
        self.not_object_cache_ttl = not_object_cache_ttl
        self.credentials = credentials_dao or CredentialsRedisDAO(redis_client=self.redis, prefix=self.keys.prefix)

    def object_name(self, target: str) -> str:
        """Derive the object key a target points to ('' when not object-backed)"""
        if self.s3_endpoint is None:
            return ''
        return object_name_from_url(target, self.s3_endpoint, self.s3_bucket)

    def _ttl(self, ttl: int | None) -> int:
        return ttl if ttl is not None and ttl > 0 else self.default_ttl

    @staticmethod
    def _expires_at(ttl: int | None) -> datetime | None:
        if ttl is None or ttl < 0:
            return None
        return datetime.now(UTC) + timedelta(seconds=ttl)

    def _cache_ttl(self, object_name: str, token_ttl: int | None) -> int | None:
        """TTL of a cache entry: outlives its short URL so the reconciler can find it"""
        if not object_name:
            return self.not_object_cache_ttl
        if token_ttl is None or token_ttl < 0:
            return None
        return token_ttl + TTL.CACHE_MARGIN

    def _scan(self, pattern: str) -> Iterator[str]:
        try:
            yield from self.redis.scan_iter(match=pattern, count=SCAN_COUNT)
        except REDIS_CONNECTIVITY_ERRORS as e:
            raise data_store_error(self.redis) from e

    def _rollback(self, shortcode: str) -> None:
        """Best-effort removal of a partially written short URL"""
        try:
            self.redis.delete(
                self.keys.link_url_key(shortcode),
                self.keys.object_cache_key(shortcode),
                self.keys.credentials_key(shortcode),
            )
        except REDIS_CONNECTIVITY_ERRORS:
            logger.exception('Failed to roll back partially written short URL.', extra={'shortcode': shortcode})
        else:
            logger.warning('Rolled back partially written short URL.', extra={'shortcode': shortcode})

    def _insert(self, short_url: ShortURLModel, ttl: int, fail_if_exists: bool, drop_credentials: bool) -> None:
        validate_shortcode(short_url.shortcode)
        link_url_key = self.keys.link_url_key(short_url.shortcode)
        object_cache_key = self.keys.object_cache_key(short_url.shortcode)
        object_name = self.object_name(short_url.target)

        # SET NX is the atomic "check no short URL exists, then write" step
        created = self.redis.set(link_url_key, short_url.target, ex=ttl, nx=fail_if_exists)
        if not created:
            raise ShortURLAlreadyExistsError(f"Short URL with code '{short_url.shortcode}' already exists.")

        # NOTE: Redis has no cross-key transaction covering the SET NX above, so
        #       side records are written afterwards and the short URL is deleted
        #       again if they fail. Otherwise the cache could disagree with
        #       the target for the whole lifetime of the short URL.
        try:
            with self.redis.pipeline(transaction=True) as pipe:
                if object_name:
                    pipe.set(object_cache_key, object_name, ex=self._cache_ttl(object_name, ttl))
                else:
                    pipe.delete(object_cache_key)
                if drop_credentials:
                    pipe.delete(self.keys.credentials_key(short_url.shortcode))
                pipe.execute()
        except redis.exceptions.RedisError:
            self._rollback(short_url.shortcode)
            raise

    @handle_redis_connection_error
    @beartype
    def insert(self, short_url: ShortURLModel, ttl: int | None = None, fail_if_exists: bool = True) -> 'ShortURLRedisDAO':
        """Insert a short URL mapping into Redis

        When the target resolves to an object in the configured bucket, the
        object existence cache entry is written with a TTL slightly longer than
        the short URL's. Credentials left over from a previous owner of the
        shortcode are removed.

        Args:
            short_url (ShortURLModel):
                ShortURLModel instance representing the shortened URL mapping.
            ttl (int | None):
                Lifetime in seconds. None or non-positive values use the default TTL.
            fail_if_exists (bool):
                If True, refuse to overwrite an existing shortcode. Defaults to True.

        Returns:
            ShortURLRedisDAO: self (for method chaining)

        Raises:
            ValueError:
                If the shortcode contains ':', '/' or whitespace (see validate_shortcode).
            ShortURLAlreadyExistsError:
                If fail_if_exists and a short URL with the same shortcode already exists.
            DataStoreError:
                If a Redis connection issue occurs.

        Example:
            >>> dao.insert(ShortURLModel(target='https://example.com', shortcode='abc123'), ttl=60)
            <ShortURLRedisDAO>
        """
        self._insert(short_url, self._ttl(ttl), fail_if_exists, drop_credentials=True)
        logger.debug('Inserted short URL.', extra={'shortcode': short_url.shortcode})
        return self

    @handle_redis_connection_error
    @beartype
    def insert_with_credentials(
        self,
        short_url: ShortURLModel,
        credentials: S3Credentials,
        ttl: int | None = None,
        fail_if_exists: bool = True,
    ) -> 'ShortURLRedisDAO':
        """Insert a short URL mapping together with its object storage credentials

        The short URL is written first. If the credentials can't be stored, the
        short URL is deleted again, so no short URL is left without its
        credentials and no credentials are left without a short URL.

        Raises:
            ShortURLAlreadyExistsError:
                If fail_if_exists and a short URL with the same shortcode already exists.
            DataStoreError:
                If a Redis connection issue occurs (after rolling back).
        """
        ttl = self._ttl(ttl)
        self._insert(short_url, ttl, fail_if_exists, drop_credentials=False)
        try:
            self.credentials.put(short_url.shortcode, credentials, ttl=ttl)
        except (DAOError, redis.exceptions.RedisError):
            self._rollback(short_url.shortcode)
            raise

        logger.debug('Inserted short URL with credentials.', extra={'shortcode': short_url.shortcode})
        return self

    @handle_redis_connection_error
    @beartype
    def get(self, shortcode: str) -> ShortURLModel:
        """Retrieve a stored short URL mapping by shortcode

        Fetches the target, the cached object name and the remaining TTL in a
        single Redis transaction. A missing cache entry is derived on the fly
        (without writing it back).

        Args:
            shortcode (str):
                The shortcode identifier for the shortened URL.

        Returns:
            ShortURLModel:
                The retrieved ShortURLModel instance if found.

        Raises:
            ShortURLNotFoundError:
                If the short URL does not exist in Redis (or expired).
            MalformedDataError:
                If the key holds something other than a short URL.
            DataStoreError:
                If Redis connectivity issues occur.

        Example:
            >>> dao.get('abc123')
            ShortURLModel(target='https://example.com', shortcode='abc123', ...)
        """
        link_url_key = self.keys.link_url_key(shortcode)
        try:
            with self.redis.pipeline(transaction=True) as pipe:
                pipe.get(link_url_key)
                pipe.get(self.keys.object_cache_key(shortcode))
                pipe.ttl(link_url_key)
                target, cached_object, ttl = pipe.execute()
        except redis.exceptions.ResponseError as e:
            raise MalformedDataError(f"Key for short URL with code '{shortcode}' does not hold a short URL.") from e

        if target is None:
            raise ShortURLNotFoundError(f"Short URL with code '{shortcode}' not found.")

        return ShortURLModel(
            target=target,
            shortcode=shortcode,
            object_name=cached_object if cached_object is not None else self.object_name(target),
            expires_at=self._expires_at(ttl),
        )

    @beartype
    def get_credentials(self, shortcode: str) -> S3Credentials:
        """Retrieve the object storage credentials stored for a shortcode

        Raises:
            CredentialsNotFoundError:
                If no credentials are stored (not an error for plain links).
            MalformedDataError:
                If the stored credentials can't be decoded.
            DataStoreError:
                If Redis connectivity issues occur.
        """
        return self.credentials.get(shortcode)

    @handle_redis_connection_error
    def list_links(self) -> list[ShortURLModel]:
        """Enumerate all live short URLs

        Internal cache and credential keys are skipped. Short URLs without an
        object existence cache entry get one: the object name is derived from
        the target once and cached for at least the short URL's remaining TTL
        (or a short fixed TTL when the target is not object-backed).

        NOTE: the SCAN cursor is weakly consistent. Short URLs written or
              deleted while listing may or may not show up.

        Returns:
            list[ShortURLModel]: live short URLs with object names and expiry.
        """
        links = []
        for shortcode in self.iter_shortcodes():
            link_url_key = self.keys.link_url_key(shortcode)
            object_cache_key = self.keys.object_cache_key(shortcode)
            try:
                with self.redis.pipeline(transaction=False) as pipe:
                    pipe.get(link_url_key)
                    pipe.get(object_cache_key)
                    pipe.ttl(link_url_key)
                    target, cached_object, ttl = pipe.execute()
            except redis.exceptions.ResponseError:
                logger.warning('Skipping key that is not a short URL.', extra={'key': link_url_key})
                continue

            if target is None:
                continue  # expired or deleted since the scan

            if cached_object is None:
                cached_object = self.object_name(target)
                self.redis.set(object_cache_key, cached_object, ex=self._cache_ttl(cached_object, ttl))

            links.append(
                ShortURLModel(
                    target=target,
                    shortcode=shortcode,
                    object_name=cached_object,
                    expires_at=self._expires_at(ttl),
                )
            )
        return links

    @handle_redis_connection_error
    @beartype
    def rename(self, old_shortcode: str, new_shortcode: str, ttl: int | None = None) -> ShortURLModel:
        """Move a short URL to a new shortcode

        The new short URL keeps the target and the credentials of the old one.
        Unless a TTL is given, it also keeps the remaining lifetime. The old
        short URL is deleted only after the new one is fully written.

        Raises:
            ValueError:
                If both shortcodes are the same, or the new one contains ':', '/'
                or whitespace.
            ShortURLNotFoundError:
                If the old short URL does not exist.
            ShortURLAlreadyExistsError:
                If the new shortcode is taken (the old short URL is left intact).
            DataStoreError:
                If Redis connectivity issues occur.
        """
        if old_shortcode == new_shortcode:
            raise ValueError('Both shortcodes cannot be the same.')

        current = self.get(old_shortcode)
        try:
            credentials = self.credentials.get(old_shortcode)
        except CredentialsNotFoundError:
            credentials = None
        except MalformedDataError:
            logger.warning('Dropping malformed credentials on rename.', extra={'shortcode': old_shortcode})
            credentials = None

        if ttl is None or ttl <= 0:
            ttl = current.ttl or None

        renamed = ShortURLModel(target=current.target, shortcode=new_shortcode)
        if credentials is not None:
            self.insert_with_credentials(renamed, credentials, ttl=ttl, fail_if_exists=True)
        else:
            self.insert(renamed, ttl=ttl, fail_if_exists=True)
        self.delete(old_shortcode)

        logger.info('Renamed short URL.', extra={'shortcode': old_shortcode, 'newShortcode': new_shortcode})
        return self.get(new_shortcode)

    @handle_redis_connection_error
    @beartype
    def delete(self, shortcode: str) -> bool:
        """Delete a short URL with its object cache and credential entries

        Deleting an absent short URL is not an error. The object the short URL
        may point to is left alone: only the reconciler deletes objects, once it
        has confirmed no live short URL references them.

        Returns:
            bool: True if the short URL existed.
        """
        link_url_key = self.keys.link_url_key(shortcode)
        with self.redis.pipeline(transaction=True) as pipe:
            pipe.exists(link_url_key)
            pipe.delete(link_url_key, self.keys.object_cache_key(shortcode), self.keys.credentials_key(shortcode))
            existed, _ = pipe.execute()
        return bool(existed)

    @handle_redis_connection_error
    @beartype
    def exists(self, shortcode: str) -> bool:
        return bool(self.redis.exists(self.keys.link_url_key(shortcode)))

    def iter_shortcodes(self) -> Iterator[str]:
        for key in self._scan(self.keys.all_keys_pattern()):
            if not self.keys.is_internal_key(key):
                yield self.keys.unprefixed(key)

    def iter_cached_shortcodes(self) -> Iterator[str]:
        for key in self._scan(self.keys.object_cache_pattern()):
            yield self.keys.shortcode_from_cache_key(key)

    @handle_redis_connection_error
    @beartype
    def cached_object(self, shortcode: str) -> str | None:
        return self.redis.get(self.keys.object_cache_key(shortcode))

    @handle_redis_connection_error
    @beartype
    def cache_object(self, shortcode: str, object_name: str) -> None:
        """Write (or refresh) the object existence cache entry of a live short URL

        The entry's TTL follows the short URL's remaining TTL. Nothing is written
        when the short URL no longer exists.
        """
        ttl = self.redis.ttl(self.keys.link_url_key(shortcode))
        if ttl == -2:
            return
        self.redis.set(self.keys.object_cache_key(shortcode), object_name, ex=self._cache_ttl(object_name, ttl))

    @handle_redis_connection_error
    @beartype
    def drop_cached_object(self, shortcode: str) -> None:
        self.redis.delete(self.keys.object_cache_key(shortcode))
