from typing import Any

import redis
from botocore.client import BaseClient


# Type aliases for clients shared across DAOs
type RedisClient = redis.Redis
type S3Client = BaseClient

# Type aliases for Python dictionaries
type ConfigDocument = dict[str, Any]
