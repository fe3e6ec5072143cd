import functools
from typing import TypeVar, Any
from collections.abc import Callable

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from shorty.dao.exceptions import ObjectStoreError


__all__ = ['handle_s3_client_error', 'object_store_error', 'is_not_found', 'NOT_FOUND_CODES', 'OBJECT_STORE_ERRORS']

F = TypeVar('F', bound=Callable[..., Any])

# Error codes S3-compatible services answer with for missing keys/buckets
NOT_FOUND_CODES = frozenset({'404', 'NoSuchKey', 'NotFound', 'NoSuchBucket'})

# Transport and service failures; boto3's managed uploads wrap ClientError in S3UploadFailedError
OBJECT_STORE_ERRORS = (BotoCoreError, ClientError, S3UploadFailedError)


def is_not_found(error: ClientError) -> bool:
    """Check whether a botocore ClientError reports a missing key"""
    return str(error.response.get('Error', {}).get('Code')) in NOT_FOUND_CODES


def object_store_error(dao: Any, error: Exception) -> ObjectStoreError:
    """Build an ObjectStoreError naming the bucket a DAO talks to"""
    return ObjectStoreError(f"Object storage request to '{dao.endpoint_url}/{dao.bucket}' failed: {error}")


def handle_s3_client_error[F](method: F) -> F:
    """Wrap S3-interacting DAO methods to handle transport and service errors

    Connection failures, timeouts, failed managed uploads and unexpected S3
    error responses are reported as ObjectStoreError. Methods translate
    "not found" responses themselves before the error reaches this wrapper.

    NOTE: generator methods must handle errors raised during iteration
          themselves, since the wrapper only guards the call that creates them.

    Example:
        >>> @handle_s3_client_error
        ... def delete(self, name):
        ...     self.s3.delete_object(Bucket=self.bucket, Key=name)
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except OBJECT_STORE_ERRORS as e:
            raise object_store_error(self, e) from e

    return wrapper
