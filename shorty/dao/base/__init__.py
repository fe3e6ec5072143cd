from shorty.dao.base.short_url_base_dao import ShortURLBaseDAO
from shorty.dao.base.credentials_base_dao import CredentialsBaseDAO
from shorty.dao.base.object_base_dao import ObjectBaseDAO


__all__ = [
    'ShortURLBaseDAO',
    'CredentialsBaseDAO',
    'ObjectBaseDAO',
]
