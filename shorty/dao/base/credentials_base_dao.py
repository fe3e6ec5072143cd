"""Abstract base class for per-shortcode object storage credential DAOs."""

from abc import ABC, abstractmethod

from shorty.models import S3Credentials


class CredentialsBaseDAO(ABC):
    """Interface for storing object storage credentials next to a short URL

    Methods:
        put(shortcode: str, credentials: S3Credentials, ttl: int) -> None:
            Store credentials with the same TTL as their short URL.
            Raises DataStoreError on write failure.

        get(shortcode: str) -> S3Credentials:
            Raises CredentialsNotFoundError when nothing is stored.
            Raises MalformedDataError when the stored value can't be decoded.

        delete(shortcode: str) -> None:
            Idempotent removal.
    """

    @abstractmethod
    def put(self, shortcode: str, credentials: S3Credentials, ttl: int) -> None:
        pass

    @abstractmethod
    def get(self, shortcode: str) -> S3Credentials:
        pass

    @abstractmethod
    def delete(self, shortcode: str) -> None:
        pass
