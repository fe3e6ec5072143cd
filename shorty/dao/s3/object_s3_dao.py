"""Data Access Object (DAO) implementation for objects in S3-compatible storage

Responsibilities:
    - Conditional uploads (a live object of the same name is never overwritten);
    - Downloads, deletes and paginated listing of the bucket;
    - Presigned GET URLs, optionally signed with per-short-URL credentials.

The DAO does not know about short URLs. It never decides on its own that an
object may be deleted.

Classes:
    ObjectS3DAO:
        DAO for objects stored in a single S3 bucket.

Example:
    >>> dao = ObjectS3DAO(endpoint='s3.example.com', bucket='shorty')
    >>> with open('report.pdf', 'rb') as f:
    ...     dao.put('report.pdf', f, size=1024, expires_at=datetime.now(UTC) + timedelta(hours=1))
    >>> dao.presign_get('report.pdf', expires_in=3600)
    'https://s3.example.com/shorty/report.pdf?X-Amz-Algorithm=...'
"""

import logging
import mimetypes
from collections.abc import Iterator
from datetime import datetime, UTC
from email.utils import parsedate_to_datetime
from typing import BinaryIO

from beartype import beartype
from botocore.exceptions import ClientError

from shorty.constants import TTL
from shorty.models import S3Credentials, StoredObject
from shorty.dao.base import ObjectBaseDAO
from shorty.dao.s3.mixins import S3ClientMixin
from shorty.dao.s3.helpers import handle_s3_client_error, object_store_error, is_not_found, OBJECT_STORE_ERRORS
from shorty.dao.exceptions import ObjectAlreadyExistsError, ObjectNotFoundError


logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = 'application/octet-stream'


def _expires_header(head: dict) -> datetime | None:
    """Read the Expires header of a HEAD response as an aware datetime"""
    expires = head.get('Expires')
    if isinstance(expires, datetime):
        return expires if expires.tzinfo is not None else expires.replace(tzinfo=UTC)

    raw = head.get('ExpiresString')
    if not raw:
        return None
    try:
        parsed = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


class ObjectS3DAO(S3ClientMixin, ObjectBaseDAO):
    """S3-based Data Access Object (DAO) for uploaded objects

    Attributes (see S3ClientMixin):
        s3 (BaseClient):
            boto3 client for metadata, downloads, deletes and presigning.
        s3_upload (BaseClient):
            boto3 client with the upload read timeout.
        bucket (str):
            Bucket every request targets.
    """

    def _head(self, name: str) -> dict | None:
        try:
            return self.s3.head_object(Bucket=self.bucket, Key=name)
        except ClientError as e:
            if is_not_found(e):
                return None
            raise

    @handle_s3_client_error
    @beartype
    def exists(self, name: str) -> bool:
        return self._head(name) is not None

    @handle_s3_client_error
    def put(self, name: str, stream: BinaryIO, size: int, expires_at: datetime) -> None:
        """Upload an object unless a live object with the same name exists

        An existing object whose Expires header lies in the past counts as
        absent and is overwritten. A failed upload is followed by a best-effort
        delete of whatever was written under the name.

        NOTE: the existence check is a HEAD request followed by the upload, so
              two concurrent uploads of the same name can both pass it. boto3's
              managed upload does not accept 'IfNoneMatch' in ExtraArgs.
              ShortenerService.upload refuses concurrent uploads of one name
              within a process; across processes the race remains.

        Args:
            name (str):
                Object key.
            stream (BinaryIO):
                Readable binary stream with the object content.
            size (int):
                Content length in bytes (-1 when unknown).
            expires_at (datetime):
                Value of the object's Expires header.

        Raises:
            ObjectAlreadyExistsError:
                If a live object with the same name exists.
            ObjectStoreError:
                If the object storage fails or can't be reached.
            UploadCancelledError:
                If the caller cancelled the upload while it was streaming.
        """
        head = self._head(name)
        if head is not None:
            expires = _expires_header(head)
            if expires is None or expires > datetime.now(UTC):
                raise ObjectAlreadyExistsError(f"Object '{name}' already exists in bucket '{self.bucket}'.")
            logger.info('Overwriting expired object.', extra={'objectName': name})

        extra_args = {
            'ContentType': mimetypes.guess_type(name, strict=False)[0] or DEFAULT_CONTENT_TYPE,
            'Expires': expires_at,
        }
        try:
            self.s3_upload.upload_fileobj(stream, self.bucket, name, ExtraArgs=extra_args)
        except Exception:
            self._discard(name)
            raise

        logger.info('Uploaded object.', extra={'objectName': name, 'size': size})

    def _discard(self, name: str) -> None:
        """Best-effort removal of a partially uploaded object"""
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=name)
        except OBJECT_STORE_ERRORS:
            logger.exception('Failed to remove partially uploaded object.', extra={'objectName': name})

    @handle_s3_client_error
    @beartype
    def get(self, name: str) -> bytes:
        """Download an object's content

        Raises:
            ObjectNotFoundError:
                If no object with this name exists.
            ObjectStoreError:
                If the object storage fails or can't be reached.
        """
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=name)
        except ClientError as e:
            if is_not_found(e):
                raise ObjectNotFoundError(f"Object '{name}' not found in bucket '{self.bucket}'.") from e
            raise

        body = response['Body']
        try:
            return body.read()
        finally:
            body.close()

    @handle_s3_client_error
    @beartype
    def delete(self, name: str) -> None:
        self.s3.delete_object(Bucket=self.bucket, Key=name)
        logger.info('Deleted object.', extra={'objectName': name})

    def list_objects(self) -> Iterator[StoredObject]:
        """Lazily enumerate every object in the bucket (paginated)"""
        paginator = self.s3.get_paginator('list_objects_v2')
        try:
            for page in paginator.paginate(Bucket=self.bucket):
                for entry in page.get('Contents', []):
                    yield StoredObject(
                        name=entry['Key'],
                        size=entry.get('Size', 0),
                        last_modified=entry.get('LastModified'),
                    )
        except OBJECT_STORE_ERRORS as e:
            raise object_store_error(self, e) from e

    @handle_s3_client_error
    @beartype
    def presign_get(self, name: str, expires_in: int = TTL.PRESIGN, credentials: S3Credentials | None = None) -> str:
        """Create a time-limited download URL for an object

        Args:
            name (str):
                Object key.
            expires_in (int):
                Validity in seconds, between 1 second and 7 days.
            credentials (S3Credentials | None):
                Sign with these credentials instead of the service's own.

        Returns:
            str: presigned URL (path-style, '<endpoint>/<bucket>/<key>?X-Amz-...').

        Raises:
            ValueError:
                If expires_in is out of range.
        """
        if not 0 < expires_in <= TTL.PRESIGN:
            raise ValueError(f'Presigned URL expiry must be between 1 and {TTL.PRESIGN} seconds (given value: {expires_in}).')

        client = self.s3 if credentials is None else self._build_client(self.read_timeout, credentials)
        return client.generate_presigned_url(
            'get_object',
            Params={'Bucket': self.bucket, 'Key': name, 'ResponseContentDisposition': 'inline'},
            ExpiresIn=expires_in,
        )
