class ShortyError(Exception):
    """Base exception for all application-specific errors."""

    error_code = 'app:shorty_error'


class UnauthorizedError(ShortyError):
    """Raised when a mutating operation is attempted by an unauthorized caller."""

    error_code = 'app:unauthorized_error'


class UploadCancelledError(ShortyError):
    """Raised when the caller cancels an in-flight upload."""

    error_code = 'app:upload_cancelled_error'


class ConfigurationError(ShortyError):
    """Base exception for all configuration errors."""

    error_code = 'config:configuration_error'


class BadConfigurationError(ConfigurationError):
    """Raised when the application is configured with invalid parameters."""

    error_code = 'config:bad_configuration_error'
