"""Unit tests for configuration utilities in config.py

Test coverage includes:

1. Environment variable resolution
   - Ensures app_env(), app_name(), app_prefix() correctly read environment variables.
   - Ensures config_path() honours SHORTY_CONFIG.

2. Configuration loading behavior
   - Ensures load_config() returns defaults when no file exists.
   - Ensures YAML values are parsed into AppConfig.
   - Ensures environment variables override YAML values.
   - Ensures reconciler_enabled requires object storage and a positive interval.

3. Validation
   - Ensures malformed documents and values raise BadConfigurationError.
"""

import os
from pathlib import Path

import pytest
import yaml

from shorty.constants import ENV, TTL, Timeout
from shorty.exceptions import BadConfigurationError
from shorty.utils import config


# -------------------------------
# Fixtures
# -------------------------------


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove every variable load_config() reads so the host environment can't leak in."""
    for group in (ENV.App, ENV.Redis, ENV.S3, ENV.Links):
        for name in group:
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_config(tmp_path):
    def _write(document) -> Path:
        path = tmp_path / 'config.yaml'
        path.write_text(document if isinstance(document, str) else yaml.safe_dump(document), encoding='utf-8')
        return path

    return _write


@pytest.fixture
def full_document():
    # fmt: off
    return {
        'app': {'base_url': 'https://sho.rt'},
        'redis': {'host': 'redis.internal', 'port': 6380, 'db': 2, 'password': 'hunter2'},
        's3': {
            'enabled': True,
            'endpoint': 's3.example',
            'bucket': 'bucket',
            'access_key': 'AKIASERVICE',
            'secret_key': 's3cr3t',
            'presign_expiry': 3600,
            'cleanup_interval': 600,
        },
        'links': {'default_ttl': 900},
        'reconciler': {'pass_timeout': 120, 'orphan_grace': 60},
    }
    # fmt: on


# -------------------------------
# 1. Environment variable resolution
# -------------------------------


def test_app_env(monkeypatch):
    """Ensure app_env() returns the lowercased value of APP_ENV"""
    monkeypatch.setitem(os.environ, 'APP_ENV', 'Test')
    assert config.app_env() == 'test'


def test_app_env_default():
    assert config.app_env() == 'local'


def test_app_name(monkeypatch):
    """Ensure app_name() returns the correct environment value from APP_NAME"""
    monkeypatch.setitem(os.environ, 'APP_NAME', 'test-app')
    assert config.app_name() == 'test-app'


def test_app_name_not_set():
    """Ensure app_name() returns None when APP_NAME is not set"""
    assert config.app_name() is None


def test_app_prefix(monkeypatch):
    monkeypatch.setitem(os.environ, 'APP_NAME', 'test-app')
    monkeypatch.setitem(os.environ, 'APP_ENV', 'test')
    assert config.app_prefix() == 'test-app:test'


def test_app_prefix_without_app_name():
    assert config.app_prefix() is None


def test_config_path(monkeypatch):
    assert config.config_path() == Path('config.yaml')
    monkeypatch.setenv('SHORTY_CONFIG', '/etc/shorty/config.yaml')
    assert config.config_path() == Path('/etc/shorty/config.yaml')


# -------------------------------
# 2. Configuration loading behavior
# -------------------------------


def test_load_config_defaults(tmp_path):
    """Ensure a missing configuration file yields the defaults"""
    loaded = config.load_config(tmp_path / 'missing.yaml')

    assert loaded.base_url == 'http://localhost:1106'
    assert loaded.prefix is None
    assert loaded.redis.host == '127.0.0.1'
    assert loaded.redis.port == 6379
    assert loaded.s3.enabled is False
    assert loaded.s3.presign_expiry == TTL.PRESIGN
    assert loaded.s3.read_timeout == Timeout.S3_READ
    assert loaded.links.default_ttl == TTL.DEFAULT_LINK
    assert loaded.reconciler.interval == 0
    assert loaded.reconciler_enabled is False


def test_load_config_empty_file(write_config):
    assert config.load_config(write_config('')).redis.host == '127.0.0.1'


def test_load_config_from_yaml(write_config, full_document, monkeypatch):
    monkeypatch.setenv('APP_NAME', 'shorty')
    monkeypatch.setenv('APP_ENV', 'prod')

    loaded = config.load_config(write_config(full_document))

    assert loaded.base_url == 'https://sho.rt'
    assert loaded.prefix == 'shorty:prod'
    assert loaded.redis.host == 'redis.internal'
    assert loaded.redis.port == 6380
    assert loaded.redis.db == 2
    assert loaded.redis.password == 'hunter2'
    assert loaded.s3.enabled is True
    assert loaded.s3.endpoint == 's3.example'
    assert loaded.s3.bucket == 'bucket'
    assert loaded.s3.presign_expiry == 3600
    assert loaded.links.default_ttl == 900
    assert loaded.reconciler.interval == 600
    assert loaded.reconciler.pass_timeout == 120.0
    assert loaded.reconciler.orphan_grace == 60
    assert loaded.reconciler_enabled is True


def test_load_config_uses_config_path(write_config, full_document, monkeypatch):
    monkeypatch.setenv('SHORTY_CONFIG', str(write_config(full_document)))
    assert config.load_config().redis.host == 'redis.internal'


def test_env_overrides_yaml(write_config, full_document, monkeypatch):
    monkeypatch.setenv('REDIS_HOST', 'redis.override')
    monkeypatch.setenv('REDIS_PORT', '7000')
    monkeypatch.setenv('S3_ENABLED', 'false')
    monkeypatch.setenv('LINK_DEFAULT_TTL', '60')
    monkeypatch.setenv('BASE_URL', 'https://other.example')
    monkeypatch.setenv('S3_CLEANUP_INTERVAL', '30')

    loaded = config.load_config(write_config(full_document))

    assert loaded.redis.host == 'redis.override'
    assert loaded.redis.port == 7000
    assert loaded.s3.enabled is False
    assert loaded.links.default_ttl == 60
    assert loaded.base_url == 'https://other.example'
    assert loaded.reconciler.interval == 30
    assert loaded.reconciler_enabled is False


def test_empty_env_value_is_ignored(write_config, full_document, monkeypatch):
    monkeypatch.setenv('REDIS_HOST', '')
    assert config.load_config(write_config(full_document)).redis.host == 'redis.internal'


def test_env_only_configuration(tmp_path, monkeypatch):
    monkeypatch.setenv('S3_ENABLED', 'yes')
    monkeypatch.setenv('S3_ENDPOINT', 'https://s3.example')
    monkeypatch.setenv('S3_BUCKET', 'bucket')
    monkeypatch.setenv('S3_SECURE', '0')

    loaded = config.load_config(tmp_path / 'missing.yaml')

    assert loaded.s3.enabled is True
    assert loaded.s3.endpoint == 'https://s3.example'
    assert loaded.s3.secure is False


def test_secrets_hidden_from_repr(write_config, full_document):
    loaded = config.load_config(write_config(full_document))
    assert 'hunter2' not in repr(loaded)
    assert 's3cr3t' not in repr(loaded)


# -------------------------------
# 3. Validation
# -------------------------------


def test_top_level_must_be_mapping(write_config):
    with pytest.raises(BadConfigurationError):
        config.load_config(write_config('- just\n- a list\n'))


def test_section_must_be_mapping(write_config):
    with pytest.raises(BadConfigurationError, match="Configuration section 'redis' must be a mapping."):
        config.load_config(write_config({'redis': 'localhost'}))


@pytest.mark.parametrize(
    'document',
    [
        {'redis': {'port': 'six'}},
        {'redis': {'db': True}},
        {'s3': {'enabled': 'maybe'}},
        {'s3': {'enabled': True, 'endpoint': 's3.example'}},
        {'s3': {'presign_expiry': 0}},
        {'links': {'default_ttl': -5}},
        {'s3': {'cleanup_interval': -1}},
        {'reconciler': {'pass_timeout': 'soon'}},
    ],
)
def test_invalid_values(write_config, document):
    with pytest.raises(BadConfigurationError):
        config.load_config(write_config(document))


def test_invalid_yaml(write_config):
    with pytest.raises(yaml.YAMLError):
        config.load_config(write_config('redis: [unclosed\n'))
