"""Core operations of the URL shortener, as called by the HTTP layer

The service glues the key store, the credential store and the object store
together. It owns no connections: DAOs are created once at startup (see
shorty.app.ShortyApp) and shared by every request.

Classes:
    ShortenerService:
        Shorten, upload, resolve, rename, delete and list short URLs.

Example:
    >>> service = ShortenerService(short_url_dao, object_dao, base_url='https://sho.rt')
    >>> short_url = service.shorten('https://example.com/blog', authorized=True)
    >>> service.short_url(short_url.shortcode)
    'https://sho.rt/tanoreli'
    >>> service.resolve(short_url.shortcode)
    'https://example.com/blog'
"""

import logging
import threading
import contextlib
import urllib.parse
from datetime import datetime, timedelta, UTC
from typing import BinaryIO

from shorty.constants import TTL, DEFAULT_SHORTCODE_LENGTH, SHORTCODE_ATTEMPTS
from shorty.exceptions import UnauthorizedError, UploadCancelledError, ConfigurationError
from shorty.models import ShortURLModel, S3Credentials
from shorty.dao.base import ShortURLBaseDAO, ObjectBaseDAO
from shorty.dao.exceptions import (
    DAOError,
    ShortURLAlreadyExistsError,
    ObjectAlreadyExistsError,
    CredentialsNotFoundError,
    MalformedDataError,
    ObjectStoreError,
)
from shorty.utils.helpers import get_short_url, slugify_filename
from shorty.utils.shortener import generate_shortcode, validate_shortcode


logger = logging.getLogger(__name__)


class CancellableStream:
    """Read-only stream wrapper raising UploadCancelledError once cancelled"""

    def __init__(self, stream: BinaryIO, cancel_event: threading.Event):
        self._stream = stream
        self._cancel_event = cancel_event

    def read(self, size: int = -1) -> bytes:
        if self._cancel_event.is_set():
            raise UploadCancelledError('Upload cancelled by the caller.')
        return self._stream.read(size)

    def __getattr__(self, name):
        return getattr(self._stream, name)


def _require_authorized(authorized: bool) -> None:
    if not authorized:
        raise UnauthorizedError('This operation requires an authorized caller.')


def _validate_target(target: str) -> str:
    target = target.strip()
    components = urllib.parse.urlsplit(target)
    if components.scheme not in {'http', 'https'} or not components.netloc:
        raise ValueError(f'Target must be an absolute http(s) URL (given value: {target!r}).')
    return target


class ShortenerService:
    """Facade over the key store and the object store

    Attributes:
        short_urls (ShortURLBaseDAO):
            Key store (with its credential store).
        objects (ObjectBaseDAO | None):
            Object store. None when object storage is disabled.
        base_url (str):
            Public base URL short URLs are formatted with.
        default_ttl (int):
            Lifetime of short URLs created without a TTL.
        presign_expiry (int):
            Validity in seconds of presigned download URLs.
    """

    def __init__(
        self,
        short_urls: ShortURLBaseDAO,
        objects: ObjectBaseDAO | None = None,
        base_url: str = 'http://localhost:1106',
        default_ttl: int = TTL.DEFAULT_LINK,
        presign_expiry: int = TTL.PRESIGN,
        shortcode_length: int = DEFAULT_SHORTCODE_LENGTH,
    ):
        self.short_urls = short_urls
        self.objects = objects
        self.base_url = base_url
        self.default_ttl = default_ttl
        self.presign_expiry = presign_expiry
        self.shortcode_length = shortcode_length
        self._uploads_in_progress: set[str] = set()
        self._uploads_lock = threading.Lock()

    def short_url(self, shortcode: str) -> str:
        return get_short_url(shortcode, self.base_url)

    def _require_objects(self) -> ObjectBaseDAO:
        if self.objects is None:
            raise ConfigurationError('Object storage is disabled.')
        return self.objects

    def _presign_expiry(self, ttl: int | None) -> int:
        expires_in = min(self.presign_expiry, ttl) if ttl else self.presign_expiry
        return max(1, min(expires_in, TTL.PRESIGN))

    # -------------------------------------------------
    # Short URLs
    # -------------------------------------------------

    def shorten(
        self,
        target: str,
        ttl: int | None = None,
        shortcode: str | None = None,
        credentials: S3Credentials | None = None,
        *,
        authorized: bool,
    ) -> ShortURLModel:
        """Create a short URL for a target

        Args:
            target (str):
                Absolute http(s) URL to shorten.
            ttl (int | None):
                Lifetime in seconds. None or non-positive values use the default TTL.
            shortcode (str | None):
                Custom shortcode. A fresh one is generated when None.
            credentials (S3Credentials | None):
                Object storage credentials redirects of this short URL presign with.
            authorized (bool):
                Whether the caller may create short URLs.

        Returns:
            ShortURLModel: the stored short URL.

        Raises:
            UnauthorizedError:
                If the caller is not authorized.
            ValueError:
                If the target is not an absolute http(s) URL, or the custom
                shortcode contains ':', '/' or whitespace.
            ShortURLAlreadyExistsError:
                If a custom shortcode is taken, or no free shortcode was found.
            DataStoreError:
                If Redis can't be reached.
        """
        _require_authorized(authorized)
        target = _validate_target(target)
        if shortcode is not None:
            validate_shortcode(shortcode)
        ttl = ttl if ttl is not None and ttl > 0 else self.default_ttl

        candidates = [shortcode] if shortcode else [generate_shortcode(self.shortcode_length) for _ in range(SHORTCODE_ATTEMPTS)]
        for attempt, candidate in enumerate(candidates, start=1):
            short_url = ShortURLModel(target=target, shortcode=candidate)
            try:
                if credentials is not None:
                    self.short_urls.insert_with_credentials(short_url, credentials, ttl=ttl, fail_if_exists=True)
                else:
                    self.short_urls.insert(short_url, ttl=ttl, fail_if_exists=True)
            except ShortURLAlreadyExistsError:
                if shortcode or attempt == len(candidates):
                    raise
                logger.debug('Shortcode collision, retrying.', extra={'shortcode': candidate, 'attempt': attempt})
                continue

            logger.info('Shortened URL.', extra={'shortcode': candidate, 'ttl': ttl})
            return self.short_urls.get(candidate)

    def resolve(self, shortcode: str) -> str:
        """Return the URL a redirect for this shortcode should point to

        Object-backed short URLs with stored credentials get a fresh presigned
        URL signed with those credentials. In every other case, and whenever
        presigning fails, the stored target is returned.

        Raises:
            ShortURLNotFoundError:
                If the short URL does not exist (or expired).
            DataStoreError:
                If Redis can't be reached.
        """
        short_url = self.short_urls.get(shortcode)
        if self.objects is None or not short_url.is_object_backed:
            return short_url.target

        try:
            credentials = self.short_urls.get_credentials(shortcode)
        except CredentialsNotFoundError:
            return short_url.target
        except MalformedDataError:
            logger.warning('Ignoring malformed credentials.', extra={'shortcode': shortcode})
            return short_url.target

        try:
            return self.objects.presign_get(
                short_url.object_name,
                expires_in=self._presign_expiry(short_url.ttl),
                credentials=credentials,
            )
        except ObjectStoreError:
            logger.exception('Failed to presign with stored credentials.', extra={'shortcode': shortcode})
            return short_url.target

    def rename(self, old_shortcode: str, new_shortcode: str, ttl: int | None = None, *, authorized: bool) -> ShortURLModel:
        _require_authorized(authorized)
        return self.short_urls.rename(old_shortcode, new_shortcode, ttl=ttl)

    def delete(self, shortcode: str, *, authorized: bool) -> bool:
        """Delete a short URL; its object is left for the reconciler to reap"""
        _require_authorized(authorized)
        deleted = self.short_urls.delete(shortcode)
        logger.info('Deleted short URL.', extra={'shortcode': shortcode, 'existed': deleted})
        return deleted

    def list_links(self, *, authorized: bool) -> list[ShortURLModel]:
        _require_authorized(authorized)
        return self.short_urls.list_links()

    # -------------------------------------------------
    # Uploads
    # -------------------------------------------------

    def check_filename(self, filename: str) -> tuple[str, bool]:
        """Return the object name an upload of this file would get, and whether it's taken"""
        name = slugify_filename(filename)
        return name, self._require_objects().exists(name)

    def upload(
        self,
        filename: str,
        stream: BinaryIO,
        size: int = -1,
        ttl: int | None = None,
        credentials: S3Credentials | None = None,
        cancel_event: threading.Event | None = None,
        *,
        authorized: bool,
    ) -> ShortURLModel:
        """Upload a file and shorten a presigned download URL for it

        Procedure:
            - Step 1: Slugify the filename into the object name
            - Step 2: Conditionally put the object, expiring with the short URL
            - Step 3: Presign a download URL with the service credentials
            - Step 4: Shorten the presigned URL under a fresh shortcode

        If the short URL can't be written, the object is deleted again
        (best effort; the reconciler reaps it otherwise).

        Raises:
            UnauthorizedError:
                If the caller is not authorized.
            ConfigurationError:
                If object storage is disabled.
            ObjectAlreadyExistsError:
                If a live object with the same name exists or is being uploaded.
            UploadCancelledError:
                If cancel_event was set before or during the upload.
            ObjectStoreError / DataStoreError:
                If either store can't be reached.
        """
        _require_authorized(authorized)
        objects = self._require_objects()
        ttl = ttl if ttl is not None and ttl > 0 else self.default_ttl
        name = slugify_filename(filename)

        if cancel_event is not None:
            if cancel_event.is_set():
                raise UploadCancelledError('Upload cancelled by the caller.')
            stream = CancellableStream(stream, cancel_event)

        with self._claim_upload(name):
            objects.put(name, stream, size, datetime.now(UTC) + timedelta(seconds=ttl))

        try:
            target = objects.presign_get(name, expires_in=self._presign_expiry(None))
            short_url = self.shorten(target, ttl=ttl, credentials=credentials, authorized=authorized)
        except (DAOError, ValueError):
            self._discard_object(name)
            raise

        logger.info('Uploaded file.', extra={'objectName': name, 'shortcode': short_url.shortcode})
        return short_url

    @contextlib.contextmanager
    def _claim_upload(self, name: str):
        """Hold an object name for the duration of its upload

        The object store's existence check and write are separate requests, so
        a second upload of a name that is still streaming is refused here.
        """
        with self._uploads_lock:
            if name in self._uploads_in_progress:
                raise ObjectAlreadyExistsError(f"An upload of '{name}' is already in progress.")
            self._uploads_in_progress.add(name)
        try:
            yield
        finally:
            with self._uploads_lock:
                self._uploads_in_progress.discard(name)

    def _discard_object(self, name: str) -> None:
        try:
            self._require_objects().delete(name)
        except ObjectStoreError:
            logger.exception('Failed to remove object of a failed upload.', extra={'objectName': name})
