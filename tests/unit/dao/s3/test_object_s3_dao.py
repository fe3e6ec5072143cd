"""Unit tests for the ObjectS3DAO

Test coverage includes:

1. Existence checks
   - HEAD answers map to True / False; other errors raise ObjectStoreError.

2. Conditional uploads
   - New objects are uploaded with content type and Expires header.
   - Live objects are never overwritten; expired ones are.
   - Failed or cancelled uploads are followed by a best-effort delete.

3. Downloads, deletes and listing
   - Missing objects raise ObjectNotFoundError.
   - Listing walks every page of list_objects_v2.

4. Presigning
   - Service credentials by default, caller credentials on request.
   - Expiry outside 1 second .. 7 days is rejected.
"""

import io
from datetime import datetime, timedelta, UTC
from unittest.mock import MagicMock, patch

import pytest
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError
from freezegun import freeze_time

from shorty.constants import TTL
from shorty.exceptions import UploadCancelledError
from shorty.models import S3Credentials, StoredObject
from shorty.dao.exceptions import ObjectAlreadyExistsError, ObjectNotFoundError, ObjectStoreError
from shorty.dao.s3 import ObjectS3DAO


def client_error(code: str, operation: str = 'HeadObject') -> ClientError:
    return ClientError({'Error': {'Code': code, 'Message': code}}, operation)


# -------------------------------
# Fixtures
# -------------------------------


@pytest.fixture
def s3_client():
    client = MagicMock()
    client.head_object.side_effect = client_error('404')
    return client


@pytest.fixture
def dao(s3_client):
    return ObjectS3DAO(endpoint='s3.example', bucket='bucket', s3_client=s3_client)


# -------------------------------
# 1. Existence checks
# -------------------------------


def test_exists_for_missing_object(dao, s3_client):
    assert dao.exists('report.pdf') is False
    s3_client.head_object.assert_called_once_with(Bucket='bucket', Key='report.pdf')


def test_exists_for_stored_object(dao, s3_client):
    s3_client.head_object.side_effect = None
    s3_client.head_object.return_value = {'ContentLength': 10}
    assert dao.exists('report.pdf') is True


def test_exists_with_access_error(dao, s3_client):
    s3_client.head_object.side_effect = client_error('403')
    with pytest.raises(ObjectStoreError):
        dao.exists('report.pdf')


# -------------------------------
# 2. Conditional uploads
# -------------------------------


@freeze_time('2025-10-15 12:00:00')
def test_put_new_object(dao, s3_client):
    expires_at = datetime.now(UTC) + timedelta(hours=1)
    stream = io.BytesIO(b'%PDF-1.7')

    dao.put('report.pdf', stream, size=8, expires_at=expires_at)

    s3_client.upload_fileobj.assert_called_once_with(
        stream,
        'bucket',
        'report.pdf',
        ExtraArgs={'ContentType': 'application/pdf', 'Expires': expires_at},
    )


def test_put_unknown_content_type(dao, s3_client):
    dao.put('archive.bin', io.BytesIO(b'...'), size=3, expires_at=datetime.now(UTC))
    assert s3_client.upload_fileobj.call_args.kwargs['ExtraArgs']['ContentType'] == 'application/octet-stream'


@pytest.mark.parametrize(
    'head',
    [
        {'ContentLength': 1},
        {'ContentLength': 1, 'Expires': datetime(2025, 10, 16, tzinfo=UTC)},
        {'ContentLength': 1, 'ExpiresString': 'Thu, 16 Oct 2025 00:00:00 GMT'},
    ],
)
@freeze_time('2025-10-15 12:00:00')
def test_put_refuses_to_overwrite_live_object(dao, s3_client, head):
    s3_client.head_object.side_effect = None
    s3_client.head_object.return_value = head

    with pytest.raises(ObjectAlreadyExistsError, match="Object 'report.pdf' already exists in bucket 'bucket'."):
        dao.put('report.pdf', io.BytesIO(b''), size=0, expires_at=datetime.now(UTC))
    s3_client.upload_fileobj.assert_not_called()


@freeze_time('2025-10-15 12:00:00')
def test_put_overwrites_expired_object(dao, s3_client):
    s3_client.head_object.side_effect = None
    s3_client.head_object.return_value = {'ContentLength': 1, 'Expires': datetime(2025, 10, 14, tzinfo=UTC)}

    dao.put('report.pdf', io.BytesIO(b''), size=0, expires_at=datetime.now(UTC) + timedelta(hours=1))
    s3_client.upload_fileobj.assert_called_once()


@pytest.mark.parametrize(
    'error',
    [
        client_error('InternalError', 'PutObject'),
        client_error('AccessDenied', 'PutObject'),
        S3UploadFailedError('Failed to upload report.pdf to bucket/report.pdf: An error occurred (InternalError) when calling the PutObject operation'),
    ],
)
def test_put_failure_discards_partial_object(dao, s3_client, error):
    s3_client.upload_fileobj.side_effect = error

    with pytest.raises(ObjectStoreError, match="Object storage request to 'https://s3.example/bucket' failed"):
        dao.put('report.pdf', io.BytesIO(b''), size=0, expires_at=datetime.now(UTC))
    s3_client.delete_object.assert_called_once_with(Bucket='bucket', Key='report.pdf')


def test_put_cancelled(dao, s3_client):
    s3_client.upload_fileobj.side_effect = UploadCancelledError('Upload cancelled by the caller.')

    with pytest.raises(UploadCancelledError):
        dao.put('report.pdf', io.BytesIO(b''), size=0, expires_at=datetime.now(UTC))
    s3_client.delete_object.assert_called_once_with(Bucket='bucket', Key='report.pdf')


def test_put_failure_when_discard_fails_too(dao, s3_client):
    s3_client.upload_fileobj.side_effect = S3UploadFailedError('Failed to upload report.pdf')
    s3_client.delete_object.side_effect = client_error('InternalError', 'DeleteObject')

    with pytest.raises(ObjectStoreError):
        dao.put('report.pdf', io.BytesIO(b''), size=0, expires_at=datetime.now(UTC))


# -------------------------------
# 3. Downloads, deletes and listing
# -------------------------------


def test_get_object(dao, s3_client):
    body = MagicMock()
    body.read.return_value = b'%PDF-1.7'
    s3_client.get_object.return_value = {'Body': body}

    assert dao.get('report.pdf') == b'%PDF-1.7'
    body.close.assert_called_once()


def test_get_missing_object(dao, s3_client):
    s3_client.get_object.side_effect = client_error('NoSuchKey', 'GetObject')
    with pytest.raises(ObjectNotFoundError):
        dao.get('report.pdf')


def test_delete_object(dao, s3_client):
    dao.delete('report.pdf')
    s3_client.delete_object.assert_called_once_with(Bucket='bucket', Key='report.pdf')


def test_list_objects_walks_all_pages(dao, s3_client):
    modified = datetime(2025, 10, 15, tzinfo=UTC)
    s3_client.get_paginator.return_value.paginate.return_value = [
        {'Contents': [{'Key': 'a.png', 'Size': 1, 'LastModified': modified}]},
        {'Contents': [{'Key': 'b.png', 'Size': 2, 'LastModified': modified}]},
        {},
    ]

    assert list(dao.list_objects()) == [
        StoredObject(name='a.png', size=1, last_modified=modified),
        StoredObject(name='b.png', size=2, last_modified=modified),
    ]
    assert list(dao.list_all()) == ['a.png', 'b.png']
    s3_client.get_paginator.assert_called_with('list_objects_v2')


def test_list_objects_with_error(dao, s3_client):
    s3_client.get_paginator.return_value.paginate.side_effect = client_error('InternalError', 'ListObjectsV2')
    with pytest.raises(ObjectStoreError):
        list(dao.list_objects())


# -------------------------------
# 4. Presigning
# -------------------------------


def test_presign_with_service_credentials(dao, s3_client):
    s3_client.generate_presigned_url.return_value = 'https://s3.example/bucket/report.pdf?X-Amz-Expires=3600'

    assert dao.presign_get('report.pdf', expires_in=3600) == 'https://s3.example/bucket/report.pdf?X-Amz-Expires=3600'
    s3_client.generate_presigned_url.assert_called_once_with(
        'get_object',
        Params={'Bucket': 'bucket', 'Key': 'report.pdf', 'ResponseContentDisposition': 'inline'},
        ExpiresIn=3600,
    )


def test_presign_with_caller_credentials(dao, s3_client):
    with patch('shorty.dao.s3.mixins.boto3.client') as client_mock:
        client_mock.return_value.generate_presigned_url.return_value = 'https://s3.example/bucket/report.pdf?X-Amz-Credential=AKIACALLER'
        dao.presign_get('report.pdf', expires_in=60, credentials=S3Credentials(access='AKIACALLER', secret='s3cr3t'))

    assert client_mock.call_args.kwargs['aws_access_key_id'] == 'AKIACALLER'
    client_mock.return_value.generate_presigned_url.assert_called_once()
    s3_client.generate_presigned_url.assert_not_called()


@pytest.mark.parametrize('expires_in', [0, -1, TTL.PRESIGN + 1])
def test_presign_with_invalid_expiry(dao, expires_in):
    with pytest.raises(ValueError):
        dao.presign_get('report.pdf', expires_in=expires_in)
