"""Utility functions for application configuration management.

Configuration is read from a YAML document (`config.yaml` in the working
directory by default, or the file named by `SHORTY_CONFIG`). Every value can be
overridden by an environment variable, which makes container deployments
possible without a config file at all.

The configuration YAML follows this structure:

    app:
      base_url: https://sho.rt
    redis:
      host: 127.0.0.1
      port: 6379
      db: 0
      password: ...
    s3:
      enabled: true
      endpoint: s3.example.com
      bucket: shorty
      access_key: ...
      secret_key: ...
      presign_expiry: 604800     # seconds
      cleanup_interval: 600      # seconds, 0 disables the reconciler
    links:
      default_ttl: 1800          # seconds

Functions:
    app_env() -> str
        Return the current application environment (`APP_ENV`) value,
        defaulting to `'local'`.

    app_name() -> str | None
        Return the application name (`APP_NAME`), or None if not set.

    app_prefix() -> str | None
        Return application prefix for DAOs, or None if `APP_NAME` is not set.

    config_path() -> Path
        Return the path of the YAML configuration file.

    load_config(path: Path | str | None = None) -> AppConfig
        Load the YAML document, apply environment overrides and validate.

Example:
    >>> from shorty.utils.config import load_config
    >>> config = load_config('config.yaml')
    >>> config.redis.host
    '127.0.0.1'
    >>> config.reconciler_enabled
    True
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from shorty.constants import ENV, TTL, Timeout, DEFAULT_ORPHAN_GRACE_SECONDS
from shorty.exceptions import BadConfigurationError
from shorty.types import ConfigDocument


logger = logging.getLogger(__name__)


# fmt: off
@dataclass(frozen=True)
class RedisConfig:
    host: str = '127.0.0.1'
    port: int = 6379
    db: int = 0
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    socket_timeout: float = Timeout.REDIS_SOCKET


@dataclass(frozen=True)
class S3Config:
    enabled: bool = False
    endpoint: str = ''                      # host[:port], a scheme is tolerated
    bucket: str = ''
    region: str | None = None
    access_key: str | None = None
    secret_key: str | None = field(default=None, repr=False)
    secure: bool = True                     # https when the endpoint carries no scheme
    presign_expiry: int = TTL.PRESIGN       # seconds
    connect_timeout: float = Timeout.S3_CONNECT
    read_timeout: float = Timeout.S3_READ
    upload_timeout: float = Timeout.S3_UPLOAD


@dataclass(frozen=True)
class LinksConfig:
    default_ttl: int = TTL.DEFAULT_LINK     # seconds
    not_object_cache_ttl: int = TTL.NOT_OBJECT_CACHE


@dataclass(frozen=True)
class ReconcilerConfig:
    interval: int = 0                       # seconds, 0 disables the reconciler
    pass_timeout: float = Timeout.RECONCILE_PASS
    orphan_grace: int = DEFAULT_ORPHAN_GRACE_SECONDS


@dataclass(frozen=True)
class AppConfig:
    base_url: str = 'http://localhost:1106'
    prefix: str | None = None               # Redis key namespace, e.g. 'shorty:prod'
    redis: RedisConfig = field(default_factory=RedisConfig)
    s3: S3Config = field(default_factory=S3Config)
    links: LinksConfig = field(default_factory=LinksConfig)
    reconciler: ReconcilerConfig = field(default_factory=ReconcilerConfig)

    @property
    def reconciler_enabled(self) -> bool:
        return self.s3.enabled and self.reconciler.interval > 0
# fmt: on


def app_env() -> str:
    """Return the current application environment by reading 'APP_ENV'

    Returns:
        str:
            Value of `APP_ENV` environment variable, `'local'` by default.

    Example:
        >>> os.environ['APP_ENV'] = 'dev'
        >>> app_env()
        'dev'
    """
    return os.environ.get(ENV.App.APP_ENV, 'local').lower()


def app_name() -> str | None:
    """Return the current application name by reading 'APP_NAME'

    Returns:
        str:
            Value of `APP_NAME` environment variable.
            None if variable is not set.
    """
    return os.environ.get(ENV.App.APP_NAME)


def app_prefix() -> str | None:
    """Return application prefix for DAOs

    Returns:
        str: app prefix as <app name>:<app env>.
             None if APP_NAME is not set.

    Example:
        >>> os.environ['APP_NAME'] = 'shorty'
        >>> os.environ['APP_ENV'] = 'local'
        >>> app_prefix()
        'shorty:local'
    """
    return None if app_name() is None else f'{app_name()}:{app_env()}'


def config_path() -> Path:
    """Return the path of the YAML configuration file ('SHORTY_CONFIG' or ./config.yaml)"""
    return Path(os.environ.get(ENV.App.CONFIG_PATH, 'config.yaml'))


def _load_yaml(path: Path) -> ConfigDocument:
    if not path.is_file():
        logger.debug('No configuration file found, using defaults.', extra={'configPath': str(path)})
        return {}
    with path.open('r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BadConfigurationError(f'Configuration file {path} must contain a mapping at the top level.')
    return data


def _section(document: ConfigDocument, name: str) -> dict[str, Any]:
    section = document.get(name) or {}
    if not isinstance(section, dict):
        raise BadConfigurationError(f"Configuration section '{name}' must be a mapping.")
    return section


def _env_overrides(section: dict[str, Any], overrides: dict[str, str]) -> dict[str, Any]:
    merged = dict(section)
    for key, env_name in overrides.items():
        value = os.environ.get(env_name)
        if value is not None and value != '':
            merged[key] = value
    return merged


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise BadConfigurationError(f"Configuration value '{name}' must be an integer (given value: {value!r}).")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise BadConfigurationError(f"Configuration value '{name}' must be an integer (given value: {value!r}).") from e


def _as_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise BadConfigurationError(f"Configuration value '{name}' must be a number (given value: {value!r}).") from e


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {'1', 'true', 'yes', 'on'}:
        return True
    if normalized in {'0', 'false', 'no', 'off', ''}:
        return False
    raise BadConfigurationError(f"Configuration value '{name}' must be a boolean (given value: {value!r}).")


def _non_negative(name: str, value: int) -> int:
    if value < 0:
        raise BadConfigurationError(f"Configuration value '{name}' must not be negative (given value: {value}).")
    return value


def _redis_config(document: ConfigDocument) -> RedisConfig:
    # fmt: off
    section = _env_overrides(_section(document, 'redis'), {
        'host': ENV.Redis.HOST,
        'port': ENV.Redis.PORT,
        'db': ENV.Redis.DB,
        'username': ENV.Redis.USERNAME,
        'password': ENV.Redis.PASSWORD,
    })
    # fmt: on
    defaults = RedisConfig()
    return RedisConfig(
        host=str(section.get('host', defaults.host)),
        port=_as_int('redis.port', section.get('port', defaults.port)),
        db=_as_int('redis.db', section.get('db', defaults.db)),
        username=section.get('username') or None,
        password=section.get('password') or None,
        socket_timeout=_as_float('redis.socket_timeout', section.get('socket_timeout', defaults.socket_timeout)),
    )


def _s3_config(document: ConfigDocument) -> S3Config:
    # fmt: off
    section = _env_overrides(_section(document, 's3'), {
        'enabled': ENV.S3.ENABLED,
        'endpoint': ENV.S3.ENDPOINT,
        'bucket': ENV.S3.BUCKET,
        'region': ENV.S3.REGION,
        'access_key': ENV.S3.ACCESS_KEY,
        'secret_key': ENV.S3.SECRET_KEY,
        'secure': ENV.S3.SECURE,
        'presign_expiry': ENV.S3.PRESIGN_EXPIRY,
    })
    # fmt: on
    defaults = S3Config()
    config = S3Config(
        enabled=_as_bool('s3.enabled', section.get('enabled', defaults.enabled)),
        endpoint=str(section.get('endpoint') or ''),
        bucket=str(section.get('bucket') or ''),
        region=section.get('region') or None,
        access_key=section.get('access_key') or None,
        secret_key=section.get('secret_key') or None,
        secure=_as_bool('s3.secure', section.get('secure', defaults.secure)),
        presign_expiry=_as_int('s3.presign_expiry', section.get('presign_expiry', defaults.presign_expiry)),
        connect_timeout=_as_float('s3.connect_timeout', section.get('connect_timeout', defaults.connect_timeout)),
        read_timeout=_as_float('s3.read_timeout', section.get('read_timeout', defaults.read_timeout)),
        upload_timeout=_as_float('s3.upload_timeout', section.get('upload_timeout', defaults.upload_timeout)),
    )

    if config.enabled and not (config.endpoint and config.bucket):
        raise BadConfigurationError('Object storage is enabled but s3.endpoint or s3.bucket is missing.')
    if config.presign_expiry <= 0:
        raise BadConfigurationError(f's3.presign_expiry must be positive (given value: {config.presign_expiry}).')
    return config


def _links_config(document: ConfigDocument) -> LinksConfig:
    section = _env_overrides(_section(document, 'links'), {'default_ttl': ENV.Links.DEFAULT_TTL})
    defaults = LinksConfig()
    default_ttl = _as_int('links.default_ttl', section.get('default_ttl', defaults.default_ttl))
    if default_ttl <= 0:
        raise BadConfigurationError(f'links.default_ttl must be positive (given value: {default_ttl}).')
    return LinksConfig(
        default_ttl=default_ttl,
        not_object_cache_ttl=_as_int('links.not_object_cache_ttl', section.get('not_object_cache_ttl', defaults.not_object_cache_ttl)),
    )


def _reconciler_config(document: ConfigDocument) -> ReconcilerConfig:
    # 'cleanup_interval' sits under 's3' because the reconciler only exists for object storage
    s3_section = _env_overrides(_section(document, 's3'), {'cleanup_interval': ENV.S3.CLEANUP_INTERVAL})
    section = _section(document, 'reconciler')
    defaults = ReconcilerConfig()
    return ReconcilerConfig(
        interval=_non_negative('s3.cleanup_interval', _as_int('s3.cleanup_interval', s3_section.get('cleanup_interval', defaults.interval))),
        pass_timeout=_as_float('reconciler.pass_timeout', section.get('pass_timeout', defaults.pass_timeout)),
        orphan_grace=_non_negative('reconciler.orphan_grace', _as_int('reconciler.orphan_grace', section.get('orphan_grace', defaults.orphan_grace))),
    )


def load_config(path: Path | str | None = None) -> AppConfig:
    """Load application configuration from YAML and environment variables

    Args:
        path (Path | str | None):
            YAML file to read. Defaults to config_path(). A missing file is not
            an error: every setting then comes from environment variables or defaults.

    Returns:
        AppConfig: validated, immutable configuration.

    Raises:
        BadConfigurationError:
            If a value has the wrong type or object storage is half-configured.
        yaml.YAMLError:
            If the file is not valid YAML.

    Example:
        >>> os.environ['S3_CLEANUP_INTERVAL'] = '600'
        >>> load_config('missing.yaml').reconciler.interval
        600
    """
    document = _load_yaml(Path(path) if path is not None else config_path())
    app_section = _env_overrides(_section(document, 'app'), {'base_url': ENV.App.BASE_URL})

    config = AppConfig(
        base_url=str(app_section.get('base_url') or AppConfig.base_url),
        prefix=app_prefix(),
        redis=_redis_config(document),
        s3=_s3_config(document),
        links=_links_config(document),
        reconciler=_reconciler_config(document),
    )
    logger.debug(
        'Loaded configuration.',
        extra={'prefix': config.prefix, 's3Enabled': config.s3.enabled, 'reconcilerInterval': config.reconciler.interval},
    )
    return config
