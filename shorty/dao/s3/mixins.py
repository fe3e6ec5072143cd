"""S3 mixin providing shared client initialization and connectivity checks.

Responsibilities:
    - Initialize boto3 S3 clients against any S3-compatible endpoint
    - Bound every request with connect/read timeouts (longer ones for uploads)
    - Healthcheck the configured bucket

Classes:
    - S3ClientMixin: Base mixin to inject S3 client setup & healthcheck.

Example:
    Typical usage with a DAO implementation:

        >>> class ObjectS3DAO(S3ClientMixin, ObjectBaseDAO):
        ...     pass
        ...
        >>> dao = ObjectS3DAO(endpoint='s3.example.com', bucket='shorty')
        >>> dao._heatlhcheck()
        True
"""

from typing import Optional

import boto3
from botocore.config import Config
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from shorty.constants import Timeout
from shorty.models import S3Credentials
from shorty.dao.exceptions import ObjectStoreError


DEFAULT_REGION = 'us-east-1'


def endpoint_url(endpoint: str, secure: bool = True) -> str:
    """Turn 'host[:port]' into a URL boto3 accepts (a given scheme is kept)"""
    endpoint = endpoint.strip().rstrip('/')
    if '://' in endpoint:
        return endpoint
    return f'{"https" if secure else "http"}://{endpoint}'


class S3ClientMixin:
    """Mixin S3 client setup and health check for object storage DAOs.

    Attributes:
        s3 (BaseClient):
            boto3 S3 client for metadata, downloads, deletes and presigning.

        s3_upload (BaseClient):
            boto3 S3 client with the (longer) upload read timeout.

        bucket (str):
            Bucket every request targets.

        endpoint_url (str):
            Endpoint URL including scheme.

    Methods:
        _heatlhcheck(raise_error: bool = True) -> bool:
            HEAD the bucket to verify connectivity and access.
            Optionally raise an ObjectStoreError if unreachable.
    """

    def __init__(
        self,
        endpoint: str,
        bucket: str,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: Optional[str] = None,
        secure: bool = True,
        connect_timeout: float = Timeout.S3_CONNECT,
        read_timeout: float = Timeout.S3_READ,
        upload_timeout: float = Timeout.S3_UPLOAD,
        s3_client: Optional[BaseClient] = None,
        upload_client: Optional[BaseClient] = None,
    ):
        """Initialize an S3-based DAO

        Either reuse existing boto3 clients or create them from the connection
        parameters. Addressing is path-style, so presigned URLs have the form
        '<endpoint>/<bucket>/<key>?X-Amz-...'.

        Args:
            endpoint (str):
                S3-compatible endpoint as 'host[:port]' (a scheme is tolerated).

            bucket (str):
                Bucket name.

            access_key (Optional[str]), secret_key (Optional[str]):
                Service credentials. If None, boto3's default credential chain applies.

            region (Optional[str]):
                Signing region. Defaults to 'us-east-1'.

            secure (bool):
                Use https when the endpoint carries no scheme. Defaults to True.

            connect_timeout (float), read_timeout (float), upload_timeout (float):
                Request timeouts in seconds.

            s3_client (Optional[BaseClient]):
                Pre-initialized client. If given and upload_client is None, it is used for uploads too.

            upload_client (Optional[BaseClient]):
                Pre-initialized client for uploads.

        Raises:
            ObjectStoreError:
                If the bucket healthcheck fails.
        """
        self.endpoint_url = endpoint_url(endpoint, secure)
        self.bucket = bucket
        self.region = region or DEFAULT_REGION
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self._credentials = S3Credentials(access=access_key, secret=secret_key) if access_key and secret_key else None

        self.s3 = s3_client or self._build_client(read_timeout)
        self.s3_upload = upload_client or (s3_client if s3_client is not None else self._build_client(upload_timeout))

        self._heatlhcheck()

    def _build_client(self, read_timeout: float, credentials: Optional[S3Credentials] = None) -> BaseClient:
        """Create a boto3 S3 client (signed with the given or the service credentials)"""
        credentials = credentials or self._credentials
        # fmt: off
        config = Config(
            connect_timeout=self.connect_timeout,
            read_timeout=read_timeout,
            retries={'max_attempts': 3, 'mode': 'standard'},
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )
        client_kwargs = {
            'aws_access_key_id': credentials.access,
            'aws_secret_access_key': credentials.secret,
        } if credentials is not None else {}
        # fmt: on
        return boto3.client('s3', endpoint_url=self.endpoint_url, region_name=self.region, config=config, **client_kwargs)

    def _heatlhcheck(self, raise_error: bool = True) -> bool:
        """HEAD the bucket to healthcheck connectivity

        Args:
            raise_error (bool):
                If True, raises ObjectStoreError on failure. Defaults to True.

        Returns:
            bool:
                True if the bucket is reachable, False otherwise (only if raise_error=False).

        Raises:
            ObjectStoreError:
                If the bucket can't be reached and raise_error=True.
        """
        try:
            self.s3.head_bucket(Bucket=self.bucket)
        except (BotoCoreError, ClientError) as e:
            if raise_error:
                raise ObjectStoreError(
                    f"Can't reach bucket '{self.bucket}' at {self.endpoint_url}. Check the provided configuration parameters."
                ) from e
            return False
        else:
            return True
