"""In-memory test doubles for Redis and the object store

FakeRedis implements the subset of redis.Redis the DAOs use (string values,
TTLs, SCAN, pipelines) with decode_responses=True semantics. Expiry follows
time.time(), so freezegun moves it along.

FakeObjectStore implements ObjectBaseDAO on a dict and records deletions.
"""

import math
import time
import fnmatch
from collections.abc import Iterator
from datetime import datetime, UTC
from types import SimpleNamespace
from typing import BinaryIO

import pytest

from shorty.models import S3Credentials, StoredObject
from shorty.dao.base import ObjectBaseDAO
from shorty.dao.exceptions import ObjectAlreadyExistsError, ObjectNotFoundError


class FakePipeline:
    """Queue commands and run them against FakeRedis on execute()"""

    def __init__(self, client: 'FakeRedis'):
        self.client = client
        self.commands = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.commands = []

    def __getattr__(self, name):
        def queue(*args, **kwargs):
            self.commands.append((name, args, kwargs))
            return self

        return queue

    def execute(self):
        commands, self.commands = self.commands, []
        return [getattr(self.client, name)(*args, **kwargs) for name, args, kwargs in commands]


class FakeRedis:
    def __init__(self):
        self.store: dict[str, tuple[str, float | None]] = {}
        self.connection_pool = SimpleNamespace(connection_kwargs={'host': 'redis.fake', 'port': 6379, 'db': 0})

    def _alive(self, key: str) -> bool:
        entry = self.store.get(key)
        if entry is None:
            return False
        if entry[1] is not None and entry[1] <= time.time():
            del self.store[key]
            return False
        return True

    def ping(self):
        return True

    def close(self):
        pass

    def set(self, key, value, ex=None, nx=False):
        if nx and self._alive(key):
            return None
        self.store[key] = (str(value), time.time() + ex if ex else None)
        return True

    def get(self, key):
        return self.store[key][0] if self._alive(key) else None

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self._alive(key):
                del self.store[key]
                removed += 1
        return removed

    def exists(self, *keys):
        return sum(1 for key in keys if self._alive(key))

    def ttl(self, key):
        if not self._alive(key):
            return -2
        expires_at = self.store[key][1]
        if expires_at is None:
            return -1
        return math.ceil(expires_at - time.time())

    def scan_iter(self, match=None, count=None):
        for key in list(self.store):
            if self._alive(key) and fnmatch.fnmatchcase(key, match or '*'):
                yield key

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakeObjectStore(ObjectBaseDAO):
    ENDPOINT = 's3.example'
    BUCKET = 'bucket'

    def __init__(self):
        self.objects: dict[str, tuple[bytes, datetime, datetime | None]] = {}
        self.deleted: list[str] = []

    def add(self, name: str, content: bytes = b'', last_modified: datetime | None = None, expires_at: datetime | None = None):
        """Place an object directly in the bucket (bypassing put's checks)"""
        self.objects[name] = (content, last_modified or datetime.now(UTC), expires_at)

    def exists(self, name: str) -> bool:
        return name in self.objects

    def put(self, name: str, stream: BinaryIO, size: int, expires_at: datetime) -> None:
        current = self.objects.get(name)
        if current is not None and (current[2] is None or current[2] > datetime.now(UTC)):
            raise ObjectAlreadyExistsError(f"Object '{name}' already exists in bucket '{self.BUCKET}'.")
        chunks = []
        while chunk := stream.read(4):
            chunks.append(chunk)
        self.objects[name] = (b''.join(chunks), datetime.now(UTC), expires_at)

    def get(self, name: str) -> bytes:
        if name not in self.objects:
            raise ObjectNotFoundError(f"Object '{name}' not found in bucket '{self.BUCKET}'.")
        return self.objects[name][0]

    def delete(self, name: str) -> None:
        self.objects.pop(name, None)
        self.deleted.append(name)

    def list_objects(self) -> Iterator[StoredObject]:
        for name, (content, last_modified, _) in list(self.objects.items()):
            yield StoredObject(name=name, size=len(content), last_modified=last_modified)

    def presign_get(self, name: str, expires_in: int = 604800, credentials: S3Credentials | None = None) -> str:
        signer = credentials.access if credentials is not None else 'service'
        return f'https://{self.ENDPOINT}/{self.BUCKET}/{name}?X-Amz-Credential={signer}&X-Amz-Expires={expires_in}'


@pytest.fixture
def app_prefix() -> str:
    return 'testapp:test'


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()
