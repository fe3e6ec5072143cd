"""Exceptions related to Data Access Objects (DAO) operations.

Classes:
    DAOError:
        Generic base class for DAO-related exceptions.

    ShortURLNotFoundError:
        Raised when a short URL is not found in the data store.

    ShortURLAlreadyExistsError:
        Raised when attempting to insert a short URL that already exists.

    CredentialsNotFoundError:
        Raised when no object storage credentials are stored for a short URL.

    MalformedDataError:
        Raised when a stored value cannot be decoded (e.g. credential JSON).

    DataStoreError:
        Raised when there is an error in the data store (e.g., connection issues, timeouts, OOM, etc.).

    ObjectStoreError:
        Raised when the object storage service fails or can't be reached.

    ObjectNotFoundError:
        Raised when an object does not exist in the bucket.

    ObjectAlreadyExistsError:
        Raised when a conditional put finds a live object of the same name.

Example:
    >>> from shorty.dao.exceptions import ShortURLNotFoundError
    >>> raise ShortURLNotFoundError("Short URL with code 'abc123' not found.")
    Traceback (most recent call last):
        ...
    shorty.dao.exceptions.ShortURLNotFoundError: Short URL with code 'abc123' not found.
"""

from shorty.exceptions import ShortyError


class DAOError(ShortyError):
    """Generic base class for DAO-related exceptions."""

    error_code = 'dao:dao_error'


class ShortURLNotFoundError(DAOError):
    """Exception raised when a short URL is not found in the data store."""

    error_code = 'dao:short_url_not_found_error'


class ShortURLAlreadyExistsError(DAOError):
    """Exception raised when attempting to insert a short URL that already exists in the data store."""

    error_code = 'dao:short_url_already_exists_error'


class CredentialsNotFoundError(DAOError):
    """Exception raised when a short URL has no stored object storage credentials."""

    error_code = 'dao:credentials_not_found_error'


class MalformedDataError(DAOError):
    """Exception raised when a stored value can't be decoded."""

    error_code = 'dao:malformed_data_error'


class DataStoreError(DAOError):
    """Exception raised when there is an error in the data store.

    e.g. connection issues, timeouts, OOM, etc.
    """

    error_code = 'dao:data_store_error'


class ObjectStoreError(DAOError):
    """Exception raised when the object storage service fails or can't be reached."""

    error_code = 'dao:object_store_error'


class ObjectNotFoundError(DAOError):
    """Exception raised when an object does not exist in the bucket."""

    error_code = 'dao:object_not_found_error'


class ObjectAlreadyExistsError(DAOError):
    """Exception raised when a live object with the same name already exists."""

    error_code = 'dao:object_already_exists_error'
