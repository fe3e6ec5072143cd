"""Redis DAO for per-shortcode object storage credentials

Credentials are kept under '<prefix>:s3_cred:<shortcode>' as a JSON document
{"access": "...", "secret": "..."} with the same TTL as their short URL.
They let a redirect presign downloads with the caller's keys instead of the
service's own keys.
"""

import json
import logging

from beartype import beartype

from shorty.models import S3Credentials
from shorty.dao.base import CredentialsBaseDAO
from shorty.dao.redis.mixins import RedisClientMixin
from shorty.dao.redis.helpers import handle_redis_connection_error
from shorty.dao.exceptions import CredentialsNotFoundError, MalformedDataError


logger = logging.getLogger(__name__)


class CredentialsRedisDAO(RedisClientMixin, CredentialsBaseDAO):
    """Redis-based credential store

    Example:
        >>> dao = CredentialsRedisDAO(redis_client=client, prefix='shorty:dev')
        >>> dao.put('tanoreli', S3Credentials(access='AKIA...', secret='...'), ttl=3600)
        >>> dao.get('tanoreli').access
        'AKIA...'
    """

    @handle_redis_connection_error
    @beartype
    def put(self, shortcode: str, credentials: S3Credentials, ttl: int) -> None:
        if ttl <= 0:
            raise ValueError(f'Credentials TTL must be positive (given value: {ttl}).')

        payload = json.dumps({'access': credentials.access, 'secret': credentials.secret}, separators=(',', ':'))
        self.redis.set(self.keys.credentials_key(shortcode), payload, ex=ttl)

    @handle_redis_connection_error
    @beartype
    def get(self, shortcode: str) -> S3Credentials:
        """Retrieve the credentials stored for a shortcode

        Raises:
            CredentialsNotFoundError:
                If no credentials are stored (the common case for plain links).
            MalformedDataError:
                If the stored JSON can't be decoded into an access/secret pair.
            DataStoreError:
                If Redis connectivity issues occur.
        """
        blob = self.redis.get(self.keys.credentials_key(shortcode))
        if blob is None:
            raise CredentialsNotFoundError(f"No credentials stored for short URL with code '{shortcode}'.")

        try:
            document = json.loads(blob)
            return S3Credentials(access=str(document['access']), secret=str(document['secret']))
        except (ValueError, TypeError, KeyError) as e:
            logger.warning('Stored credentials are malformed.', extra={'shortcode': shortcode})
            raise MalformedDataError(f"Credentials stored for short URL with code '{shortcode}' are malformed.") from e

    @handle_redis_connection_error
    @beartype
    def delete(self, shortcode: str) -> None:
        self.redis.delete(self.keys.credentials_key(shortcode))
