"""Composition root: long-lived clients, DAOs and the reconciler scheduler

Every connection (Redis, S3) is created once here and shared by all requests
and by the reconciler. Both redis-py connection pools and boto3 clients are
safe to use from several threads.

Example:
    >>> with ShortyApp.from_config('config.yaml') as app:
    ...     short_url = app.service.shorten('https://example.com', authorized=True)
"""

import logging
from pathlib import Path

from shorty.utils.config import AppConfig, load_config
from shorty.dao.redis import ShortURLRedisDAO
from shorty.dao.s3 import ObjectS3DAO
from shorty.reconciler import Reconciler, ReconcileScheduler
from shorty.services import ShortenerService
from shorty.types import RedisClient, S3Client


logger = logging.getLogger(__name__)


class ShortyApp:
    """Wire configuration into DAOs, the service facade and the reconciler

    Attributes:
        config (AppConfig): loaded configuration.
        short_urls (ShortURLRedisDAO): key store.
        objects (ObjectS3DAO | None): object store (None when object storage is disabled).
        reconciler (Reconciler | None): reconciler (None without object storage).
        scheduler (ReconcileScheduler | None): timer thread (None when the reconciler is disabled).
        service (ShortenerService): facade used by request handlers.
    """

    def __init__(
        self,
        config: AppConfig,
        redis_client: RedisClient | None = None,
        s3_client: S3Client | None = None,
    ):
        self.config = config
        s3 = config.s3

        # fmt: off
        self.short_urls = ShortURLRedisDAO(
            redis_host=config.redis.host,
            redis_port=config.redis.port,
            redis_db=config.redis.db,
            redis_username=config.redis.username,
            redis_password=config.redis.password,
            redis_socket_timeout=config.redis.socket_timeout,
            redis_client=redis_client,
            prefix=config.prefix,
            s3_endpoint=s3.endpoint if s3.enabled else None,
            s3_bucket=s3.bucket if s3.enabled else None,
            default_ttl=config.links.default_ttl,
            not_object_cache_ttl=config.links.not_object_cache_ttl,
        )
        self.objects = ObjectS3DAO(
            endpoint=s3.endpoint,
            bucket=s3.bucket,
            access_key=s3.access_key,
            secret_key=s3.secret_key,
            region=s3.region,
            secure=s3.secure,
            connect_timeout=s3.connect_timeout,
            read_timeout=s3.read_timeout,
            upload_timeout=s3.upload_timeout,
            s3_client=s3_client,
        ) if s3.enabled else None
        # fmt: on

        self.reconciler = None
        self.scheduler = None
        if self.objects is not None:
            self.reconciler = Reconciler(
                self.short_urls,
                self.objects,
                pass_timeout=config.reconciler.pass_timeout,
                orphan_grace=config.reconciler.orphan_grace,
            )
            if config.reconciler_enabled:
                self.scheduler = ReconcileScheduler(self.reconciler, interval=config.reconciler.interval)

        self.service = ShortenerService(
            self.short_urls,
            self.objects,
            base_url=config.base_url,
            default_ttl=config.links.default_ttl,
            presign_expiry=s3.presign_expiry,
        )

    @classmethod
    def from_config(cls, path: Path | str | None = None) -> 'ShortyApp':
        return cls(load_config(path))

    def start(self) -> None:
        """Start background work (the reconciler scheduler, when enabled)"""
        if self.scheduler is not None:
            self.scheduler.start()
        logger.info('Shorty started.', extra={'s3Enabled': self.objects is not None, 'reconciler': self.scheduler is not None})

    def close(self) -> None:
        """Stop background work and release the Redis connection pool"""
        if self.scheduler is not None:
            self.scheduler.stop()
        self.short_urls.redis.close()
        logger.info('Shorty stopped.')

    def __enter__(self) -> 'ShortyApp':
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
