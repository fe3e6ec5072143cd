"""Application-wide logging initialization

IMPORTANT: Call `initialize_logging()` once at process startup (the CLI does)
before any other logging is done.

Records are written as one JSON object per line to stderr, which keeps stdout
free for command output. Fields passed through `extra` are attached as
top-level keys; values of keys that look like secrets are masked.

Logging format:
{
    "timestamp": "2025-12-26T12:00:00.000Z",
    "level": "INFO",
    "logger": "shorty.reconciler.reconciler",
    "message": "Removed orphaned object.",
    "objectName": "report.pdf"
}
"""

import os
import re
import json
import logging
import logging.config
from datetime import datetime, UTC

from shorty.constants import ENV
from shorty.exceptions import BadConfigurationError


REDACTED = '***'

# Extras whose key matches are never written out
SECRET_KEY_RE = re.compile(r'secret|password', re.IGNORECASE)

# Chatty SDK loggers, kept at WARNING unless debugging
SDK_LOGGERS = ('boto3', 'botocore', 's3transfer', 'urllib3')

_RECORD_ATTRS = frozenset(vars(logging.LogRecord('', logging.INFO, '', 0, '', None, None))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """JSON formatter that includes LogRecord extras"""

    def format(self, record: logging.LogRecord) -> str:
        # fmt: off
        timestamp = datetime.fromtimestamp(record.created, tz=UTC) \
                            .isoformat(timespec="milliseconds") \
                            .replace("+00:00", "Z")
        # fmt: on

        log = {
            'timestamp': timestamp,
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        log.update(
            (key, REDACTED if SECRET_KEY_RE.search(key) else value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
        )

        if record.exc_info:
            log['exception'] = self.formatException(record.exc_info)

        return json.dumps(log, default=str)


def resolve_level(level: str | None = None) -> str:
    """Pick the log level name (argument, then LOG_LEVEL, then INFO)

    Raises:
        BadConfigurationError: If the name is not a standard logging level.
    """
    name = (level or os.getenv(ENV.App.LOG_LEVEL) or 'INFO').strip().upper()
    if name not in logging.getLevelNamesMapping():
        raise BadConfigurationError(f'Unknown log level {name!r}.')
    return name


def initialize_logging(level: str | None = None, stream: str = 'ext://sys.stderr') -> None:
    log_level = resolve_level(level)
    sdk_level = log_level if log_level == 'DEBUG' else 'WARNING'
    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'json': {
                    '()': JsonFormatter,
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'json',
                    'stream': stream,
                }
            },
            'loggers': {name: {'level': sdk_level} for name in SDK_LOGGERS},
            'root': {
                'level': log_level,
                'handlers': ['console'],
            },
        }
    )
