"""Operator command line interface

Usage:
    python -m shorty shorten https://example.com --ttl 3600
    python -m shorty upload ./report.pdf
    python -m shorty get tanoreli
    python -m shorty rename tanoreli mylink
    python -m shorty delete mylink
    python -m shorty list
    python -m shorty check-filename "Quarterly Report.pdf"
    python -m shorty reconcile
    python -m shorty run-reconciler

The operator is trusted: mutating commands run as an authorized caller.
"""

import os
import sys
import json
import logging
import argparse
import threading

from shorty.app import ShortyApp
from shorty.exceptions import ShortyError
from shorty.models import S3Credentials, ShortURLModel
from shorty.utils.logging import initialize_logging


logger = logging.getLogger(__name__)


def _ttl(value: str) -> int:
    try:
        ttl = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError('--ttl must be an integer') from None
    if ttl <= 0:
        raise argparse.ArgumentTypeError('--ttl must be > 0')
    return ttl


def _credentials(args: argparse.Namespace) -> S3Credentials | None:
    if not args.access_key and not args.secret_key:
        return None
    if not (args.access_key and args.secret_key):
        raise ValueError('--access-key and --secret-key must be given together')
    return S3Credentials(access=args.access_key, secret=args.secret_key)


def _describe(app: ShortyApp, short_url: ShortURLModel) -> dict:
    return {
        'shortcode': short_url.shortcode,
        'short_url': app.service.short_url(short_url.shortcode),
        'target': short_url.target,
        'object_name': short_url.object_name or None,
        'expires_at': short_url.expires_at.isoformat() if short_url.expires_at else None,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='shorty', description='URL shortener with object storage uploads')
    parser.add_argument('--config', default=None, help='YAML configuration file (default: $SHORTY_CONFIG or ./config.yaml)')
    parser.add_argument('--log-level', default=None, help='Log level (default: $LOG_LEVEL or INFO)')
    commands = parser.add_subparsers(dest='command', required=True)

    shorten = commands.add_parser('shorten', help='Create a short URL')
    shorten.add_argument('target', help='Absolute http(s) URL')
    shorten.add_argument('--shortcode', default=None, help='Custom shortcode (generated by default)')
    shorten.add_argument('--ttl', type=_ttl, default=None, help='Lifetime in seconds')
    shorten.add_argument('--access-key', default=None, help='Access key redirects presign with')
    shorten.add_argument('--secret-key', default=None, help='Secret key redirects presign with')

    upload = commands.add_parser('upload', help='Upload a file and shorten its download URL')
    upload.add_argument('path', help='File to upload')
    upload.add_argument('--name', default=None, help='Filename to store (default: basename of path)')
    upload.add_argument('--ttl', type=_ttl, default=None, help='Lifetime in seconds')
    upload.add_argument('--access-key', default=None, help='Access key redirects presign with')
    upload.add_argument('--secret-key', default=None, help='Secret key redirects presign with')

    get = commands.add_parser('get', help='Print the URL a shortcode redirects to')
    get.add_argument('shortcode')

    rename = commands.add_parser('rename', help='Move a short URL to a new shortcode')
    rename.add_argument('old_shortcode')
    rename.add_argument('new_shortcode')
    rename.add_argument('--ttl', type=_ttl, default=None, help='New lifetime in seconds (default: keep remaining)')

    delete = commands.add_parser('delete', help='Delete a short URL')
    delete.add_argument('shortcode')

    commands.add_parser('list', help='List live short URLs')

    check = commands.add_parser('check-filename', help='Show the object name of an upload and whether it is taken')
    check.add_argument('filename')

    commands.add_parser('reconcile', help='Run a single reconciliation pass')
    commands.add_parser('run-reconciler', help='Run the reconciler scheduler until interrupted')

    return parser


def _run(app: ShortyApp, args: argparse.Namespace) -> int:
    service = app.service

    if args.command == 'shorten':
        short_url = service.shorten(args.target, ttl=args.ttl, shortcode=args.shortcode, credentials=_credentials(args), authorized=True)
        print(json.dumps(_describe(app, short_url)))
    elif args.command == 'upload':
        size = os.path.getsize(args.path)
        with open(args.path, 'rb') as f:
            short_url = service.upload(
                args.name or os.path.basename(args.path),
                f,
                size=size,
                ttl=args.ttl,
                credentials=_credentials(args),
                authorized=True,
            )
        print(json.dumps(_describe(app, short_url)))
    elif args.command == 'get':
        print(service.resolve(args.shortcode))
    elif args.command == 'rename':
        short_url = service.rename(args.old_shortcode, args.new_shortcode, ttl=args.ttl, authorized=True)
        print(json.dumps(_describe(app, short_url)))
    elif args.command == 'delete':
        existed = service.delete(args.shortcode, authorized=True)
        print(f"Done. {'Deleted' if existed else 'No short URL with code'} '{args.shortcode}'.")
    elif args.command == 'list':
        for short_url in service.list_links(authorized=True):
            print(json.dumps(_describe(app, short_url)))
    elif args.command == 'check-filename':
        name, taken = service.check_filename(args.filename)
        print(json.dumps({'object_name': name, 'exists': taken}))
    elif args.command == 'reconcile':
        if app.reconciler is None:
            raise ValueError('Object storage is disabled; nothing to reconcile')
        report = app.reconciler.run()
        if report is None:
            print('Skipped. Another reconciliation pass is running.')
        else:
            print(f'Done. Deleted {len(report.deleted_objects)} objects, removed {len(report.removed_cache_entries)} cache entries.')
    elif args.command == 'run-reconciler':
        if app.scheduler is None:
            raise ValueError('Reconciler is disabled (enable object storage and set s3.cleanup_interval > 0)')
        app.start()
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            logger.info('Interrupted.')
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point

    Returns:
        int: process exit code (0 on success, 1 on application errors).
    """
    args = build_parser().parse_args(argv)

    try:
        initialize_logging(args.log_level)
        app = ShortyApp.from_config(args.config)
    except ShortyError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    try:
        return _run(app, args)
    except (ShortyError, ValueError, OSError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1
    finally:
        app.close()
