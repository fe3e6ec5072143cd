from enum import StrEnum


class TTL:
    """TTL durations in seconds."""

    # Default short URL TTL when none (or a non-positive one) is given
    DEFAULT_LINK = 1_800  # 60 * 30
    # Object existence cache entry for targets confirmed not to be objects
    NOT_OBJECT_CACHE = 1_200  # 60 * 20
    # Extra lifetime of an object existence cache entry over its token
    CACHE_MARGIN = 300  # 60 * 5
    # Default presigned GET URL expiry (7 days in seconds)
    PRESIGN = 604_800  # 60 * 60 * 24 * 7


class Timeout:
    """Network timeouts in seconds."""

    REDIS_SOCKET = 5
    S3_CONNECT = 10
    S3_READ = 30
    S3_UPLOAD = 300
    # Overall deadline of a single reconciliation pass
    RECONCILE_PASS = 300


class KeyPrefix(StrEnum):
    """Prefixes of internal Redis namespaces living next to plain token keys."""

    OBJECT_CACHE = 's3_exists:'
    CREDENTIALS = 's3_cred:'


# Objects younger than this are never treated as orphans
DEFAULT_ORPHAN_GRACE_SECONDS = 600

# Length of generated shortcodes and how many collisions are tolerated
DEFAULT_SHORTCODE_LENGTH = 8
SHORTCODE_ATTEMPTS = 5

# Number of keys fetched per SCAN round trip
SCAN_COUNT = 500

# Double extensions preserved when slugifying uploaded filenames
DOUBLE_EXTENSIONS = ('.tar.gz', '.tar.bz2', '.tar.xz', '.tar.zst')


class ENV:
    """Environment variable names."""

    class App(StrEnum):
        APP_ENV = 'APP_ENV'
        APP_NAME = 'APP_NAME'
        CONFIG_PATH = 'SHORTY_CONFIG'
        LOG_LEVEL = 'LOG_LEVEL'
        BASE_URL = 'BASE_URL'

    class Redis(StrEnum):
        HOST = 'REDIS_HOST'
        PORT = 'REDIS_PORT'
        DB = 'REDIS_DB'
        USERNAME = 'REDIS_USERNAME'
        PASSWORD = 'REDIS_PASSWORD'  # noqa: S105

    class S3(StrEnum):
        ENABLED = 'S3_ENABLED'
        ENDPOINT = 'S3_ENDPOINT'
        BUCKET = 'S3_BUCKET'
        REGION = 'S3_REGION'
        ACCESS_KEY = 'S3_ACCESS_KEY'
        SECRET_KEY = 'S3_SECRET_KEY'  # noqa: S105
        SECURE = 'S3_SECURE'
        PRESIGN_EXPIRY = 'S3_PRESIGN_EXPIRY'
        CLEANUP_INTERVAL = 'S3_CLEANUP_INTERVAL'

    class Links(StrEnum):
        DEFAULT_TTL = 'LINK_DEFAULT_TTL'
