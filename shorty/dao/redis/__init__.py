from shorty.dao.redis.redis_key_schema import RedisKeySchema
from shorty.dao.redis.short_url_redis_dao import ShortURLRedisDAO
from shorty.dao.redis.credentials_redis_dao import CredentialsRedisDAO
from shorty.dao.redis.mixins import RedisClientMixin


__all__ = [
    'RedisKeySchema',
    'ShortURLRedisDAO',
    'CredentialsRedisDAO',
    'RedisClientMixin',
]
