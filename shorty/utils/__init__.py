from shorty.utils.config import app_env, app_name, app_prefix, load_config
from shorty.utils.helpers import get_short_url, object_name_from_url, slugify_filename
from shorty.utils.shortener import generate_shortcode, validate_shortcode
from shorty.utils.logging import initialize_logging


__all__ = [
    'generate_shortcode',
    'validate_shortcode',
    'app_env',
    'app_name',
    'app_prefix',
    'load_config',
    'get_short_url',
    'object_name_from_url',
    'slugify_filename',
    'initialize_logging',
]
