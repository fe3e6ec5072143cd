"""Abstract base class for ShortURL data access objects (DAOs).

This class establishes a consistent contract for all ShortURL DAO implementations,
regardless of the underlying storage mechanism (e.g., Redis, DynamoDB, PostgreSQL).

Responsibilities:
    - Own the shortcode -> target mapping and its TTL.
    - Keep the per-shortcode object existence cache in step with the mapping.
    - Store optional per-shortcode object storage credentials atomically with the mapping.
    - Expose the scanning primitives the reconciler is built on.

Example:
    Typical usage with a datastore-specific implementation:

        >>> from shorty.models import ShortURLModel
        >>> from shorty.dao.redis import ShortURLRedisDAO

        >>> dao = ShortURLRedisDAO(...)

        >>> short_url = ShortURLModel(
        ...     target="https://example.com/blog/article-123",
        ...     shortcode="tanoreli",
        ... )
        >>> dao.insert(short_url, ttl=3600)

        >>> retrieved = dao.get("tanoreli")
        >>> print(retrieved.target)
        https://example.com/blog/article-123

        >>> dao.delete("tanoreli")
        True
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator

from shorty.models import ShortURLModel, S3Credentials


class ShortURLBaseDAO(ABC):
    """Interface for ShortURL data access objects (DAOs).

    Methods:
        insert(short_url: ShortURLModel, ttl: int | None, fail_if_exists: bool) -> ShortURLBaseDAO:
            Insert a short URL mapping (and refresh its object existence cache entry).
            Raises ShortURLAlreadyExistsError if fail_if_exists and the shortcode exists.
            Raises DataStoreError on connection or write failure.

        insert_with_credentials(short_url, credentials, ttl, fail_if_exists) -> ShortURLBaseDAO:
            Same as insert(), plus storage of per-shortcode credentials.
            Rolls the mapping back if the credentials can't be stored.

        get(shortcode: str) -> ShortURLModel:
            Retrieve a short URL by shortcode.
            Raises ShortURLNotFoundError if the entry does not exist (or expired).

        get_credentials(shortcode: str) -> S3Credentials:
            Retrieve per-shortcode credentials.
            Raises CredentialsNotFoundError if none are stored.

        list_links() -> list[ShortURLModel]:
            Enumerate all live short URLs with derived object names and expiry.

        rename(old_shortcode: str, new_shortcode: str, ttl: int | None) -> ShortURLModel:
            Move a mapping (and its credentials) to a new shortcode.

        delete(shortcode: str) -> bool:
            Remove a mapping with its cache and credential entries (idempotent).

    Subclassing:
        Datastore-specific implementations (e.g., ShortURLRedisDAO) must extend
        this class and implement all abstract methods.

    NOTE:
        - Mappings expire automatically. Expired and unknown shortcodes are
          indistinguishable for callers.
    """

    @abstractmethod
    def insert(self, short_url: ShortURLModel, ttl: int | None = None, fail_if_exists: bool = True) -> 'ShortURLBaseDAO':
        """Insert a new short URL mapping into the data store.

        Args:
            short_url (ShortURLModel):
                The ShortURLModel instance to be inserted.

            ttl (int | None):
                Lifetime in seconds. None or non-positive values use the default TTL.

            fail_if_exists (bool):
                If True, refuse to overwrite an existing shortcode.

        Returns:
            ShortURLBaseDAO: self (for method chaining)

        Raises:
            ShortURLAlreadyExistsError:
                If fail_if_exists and a short URL with the same shortcode already exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def insert_with_credentials(
        self,
        short_url: ShortURLModel,
        credentials: S3Credentials,
        ttl: int | None = None,
        fail_if_exists: bool = True,
    ) -> 'ShortURLBaseDAO':
        """Insert a short URL mapping together with its object storage credentials.

        Either both records are written or neither is left behind.

        Raises:
            ShortURLAlreadyExistsError:
                If fail_if_exists and a short URL with the same shortcode already exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def get(self, shortcode: str) -> ShortURLModel:
        """Retrieve a short URL from the data store by its shortcode.

        Args:
            shortcode (str):
                The shortcode of the short URL to be retrieved.

        Returns:
            ShortURLModel: The short URL, with derived object name and expiry.

        Raises:
            ShortURLNotFoundError:
                If no short URL with the given shortcode exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def get_credentials(self, shortcode: str) -> S3Credentials:
        """Retrieve the object storage credentials stored for a shortcode."""
        pass

    @abstractmethod
    def list_links(self) -> list[ShortURLModel]:
        """Enumerate all live short URLs."""
        pass

    @abstractmethod
    def rename(self, old_shortcode: str, new_shortcode: str, ttl: int | None = None) -> ShortURLModel:
        """Move a short URL to a new shortcode and delete the old one."""
        pass

    @abstractmethod
    def delete(self, shortcode: str) -> bool:
        """Delete a short URL with its side records.

        Returns:
            bool: True if the short URL existed.
        """
        pass

    @abstractmethod
    def exists(self, shortcode: str) -> bool:
        """Check whether a live short URL exists for a shortcode."""
        pass

    @abstractmethod
    def object_name(self, target: str) -> str:
        """Derive the object key a target points to ('' when not object-backed)."""
        pass

    @abstractmethod
    def iter_shortcodes(self) -> Iterator[str]:
        """Lazily enumerate shortcodes of live short URLs (internal keys excluded)."""
        pass

    @abstractmethod
    def iter_cached_shortcodes(self) -> Iterator[str]:
        """Lazily enumerate shortcodes owning an object existence cache entry."""
        pass

    @abstractmethod
    def cached_object(self, shortcode: str) -> str | None:
        """Return the cached object name of a shortcode, None when there is no entry."""
        pass

    @abstractmethod
    def cache_object(self, shortcode: str, object_name: str) -> None:
        """Write (or refresh) the object existence cache entry of a shortcode."""
        pass

    @abstractmethod
    def drop_cached_object(self, shortcode: str) -> None:
        """Remove the object existence cache entry of a shortcode."""
        pass
