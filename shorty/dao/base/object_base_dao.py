"""Abstract base class for object storage DAOs.

The object store is a pure side-effecting leaf: it knows nothing about short
URLs. Deciding which objects may be deleted is the reconciler's job.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from datetime import datetime
from typing import BinaryIO

from shorty.models import S3Credentials, StoredObject


class ObjectBaseDAO(ABC):
    """Interface for object storage access

    Methods:
        exists(name: str) -> bool:
            True if an object with this name is stored (expired or not).

        put(name: str, stream: BinaryIO, size: int, expires_at: datetime) -> None:
            Upload an object unless a live object of the same name exists.
            Raises ObjectAlreadyExistsError in that case.

        get(name: str) -> bytes:
            Download an object. Raises ObjectNotFoundError if absent.

        delete(name: str) -> None:
            Remove an object (no error when it's already gone).

        list_objects() -> Iterator[StoredObject]:
            Lazily enumerate every object in the bucket with its metadata.

        list_all() -> Iterator[str]:
            Lazily enumerate every object name in the bucket.

        presign_get(name: str, expires_in: int, credentials: S3Credentials | None) -> str:
            Create a time-limited download URL, optionally signed with caller credentials.
    """

    @abstractmethod
    def exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def put(self, name: str, stream: BinaryIO, size: int, expires_at: datetime) -> None:
        pass

    @abstractmethod
    def get(self, name: str) -> bytes:
        pass

    @abstractmethod
    def delete(self, name: str) -> None:
        pass

    @abstractmethod
    def list_objects(self) -> Iterator[StoredObject]:
        pass

    def list_all(self) -> Iterator[str]:
        for stored_object in self.list_objects():
            yield stored_object.name

    @abstractmethod
    def presign_get(self, name: str, expires_in: int, credentials: S3Credentials | None = None) -> str:
        pass
