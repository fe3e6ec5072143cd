from shorty.dao.s3.object_s3_dao import ObjectS3DAO
from shorty.dao.s3.mixins import S3ClientMixin


__all__ = [
    'ObjectS3DAO',
    'S3ClientMixin',
]
