"""Helper utilities shared by the DAOs, the reconciler and the service layer.

Functions:
    get_short_url(shortcode: str, base_url: str) -> str
        Get string representation of short URL for a given shortcode
    endpoint_host(endpoint: str) -> str
        Normalize an object storage endpoint to a lowercase 'host[:port]'
    object_name_from_url(target: str, endpoint: str, bucket: str | None = None) -> str
        Derive the object key a target URL points to ('' if none)
    has_known_extension(name: str) -> bool
        Check whether a filename carries a recognized file extension
    slugify_filename(filename: str) -> str
        Turn an uploaded filename into a safe object key

Example:
    >>> from shorty.utils.helpers import object_name_from_url
    >>> object_name_from_url('https://s3.example/bucket/report.pdf', 's3.example', 'bucket')
    'report.pdf'
    >>> object_name_from_url('https://example.com/report.pdf', 's3.example', 'bucket')
    ''
"""

import re
import hashlib
import mimetypes
import unicodedata
import urllib.parse

from shorty.constants import DOUBLE_EXTENSIONS


_NON_ALNUM_RE = re.compile(r'[^a-z0-9]+')


def get_short_url(shortcode: str, base_url: str) -> str:
    """Get string representation of shortened URL

    Args:
        shortcode (str): shortcode
        base_url (str): public base URL of the service

    Returns:
        str: short url string representation

    Example:
        >>> get_short_url('abc123', 'https://sho.rt/')
        'https://sho.rt/abc123'
    """
    return f'{base_url.rstrip("/")}/{shortcode}'


def endpoint_host(endpoint: str) -> str:
    """Normalize an object storage endpoint to a lowercase 'host[:port]'

    Both 's3.example' and 'https://s3.example/' yield 's3.example'.
    """
    endpoint = endpoint.strip()
    if '://' in endpoint:
        endpoint = urllib.parse.urlsplit(endpoint).netloc
    return endpoint.rstrip('/').lower()


def has_known_extension(name: str) -> bool:
    """Check whether a filename carries a recognized file extension

    NOTE: extensionless paths are never treated as files, so that ordinary
          links hosted on the object storage domain aren't mistaken for objects.
    """
    if name.lower().endswith(DOUBLE_EXTENSIONS):
        return True
    mime_type, encoding = mimetypes.guess_type(name, strict=False)
    return mime_type is not None or encoding is not None


def object_name_from_url(target: str, endpoint: str, bucket: str | None = None) -> str:
    """Derive the object key a target URL points to

    A target identifies an object only if its host is the configured object
    storage endpoint (path-style, bucket as first path segment) or the bucket's
    virtual-hosted subdomain of it. The object name is the final path segment.

    Malformed targets derive nothing: the function never raises on bad input.

    Args:
        target (str):
            Short URL target (plain URL or presigned object URL).
        endpoint (str):
            Object storage endpoint, with or without scheme.
        bucket (str | None):
            Bucket name. When None, any path under the endpoint host matches.

    Returns:
        str:
            Object name, or '' when the target is not object-backed.

    Example:
        >>> object_name_from_url('https://s3.example/bucket/a/b/c.png?X-Amz-Expires=60', 's3.example', 'bucket')
        'c.png'
        >>> object_name_from_url('https://bucket.s3.example/c.png', 's3.example', 'bucket')
        'c.png'
        >>> object_name_from_url('https://s3.example/bucket/folder', 's3.example', 'bucket')
        ''
    """
    if not target or not endpoint:
        return ''

    try:
        components = urllib.parse.urlsplit(target.strip())
    except ValueError:
        return ''

    host = components.netloc.rpartition('@')[2].lower()
    expected_host = endpoint_host(endpoint)
    segments = [segment for segment in components.path.split('/') if segment]

    if host == expected_host:
        if bucket is not None:
            if len(segments) < 2 or segments[0] != bucket:
                return ''
            segments = segments[1:]
    elif bucket is None or host != f'{bucket.lower()}.{expected_host}':
        return ''

    if not segments:
        return ''

    name = urllib.parse.unquote(segments[-1])
    if name in {'.', '..'} or not has_known_extension(name):
        return ''
    return name


def slugify_filename(filename: str) -> str:
    """Turn an uploaded filename into a safe object key

    The stem is folded to ASCII, lowercased and hyphenated; the extension
    (including common double extensions such as '.tar.gz') is kept. Stems with
    letters that have no ASCII form (Cyrillic, CJK, ...) get a short hash of
    the original stem appended, so distinct names stay distinct.
    Names without a recognized extension get '.bin' so that the stored object
    is still recognized as a file.

    Example:
        >>> slugify_filename('Quarterly Report (Final).PDF')
        'quarterly-report-final.pdf'
        >>> slugify_filename('backup 2025.tar.gz')
        'backup-2025.tar.gz'
    """
    filename = filename.strip().replace('\\', '/').rsplit('/', 1)[-1]

    extension = next((ext for ext in DOUBLE_EXTENSIONS if filename.lower().endswith(ext)), None)
    if extension is None:
        stem, dot, suffix = filename.rpartition('.')
        if not dot or not stem:
            stem, extension = filename, ''
        else:
            extension = f'.{suffix}'
    else:
        stem = filename[: -len(extension)]

    decomposed = unicodedata.normalize('NFKD', stem)
    ascii_stem = decomposed.encode('ascii', 'ignore').decode('ascii')
    slug = _NON_ALNUM_RE.sub('-', ascii_stem.lower()).strip('-')
    if any(char.isalnum() and not char.isascii() for char in decomposed):
        # Letters without an ASCII form were dropped; keep distinct stems distinct
        digest = hashlib.blake2s(unicodedata.normalize('NFC', stem).encode('utf-8'), digest_size=4).hexdigest()
        slug = f'{slug or "file"}-{digest}'
    slug = slug or 'file'
    extension = '.'.join(filter(None, (_NON_ALNUM_RE.sub('', part) for part in extension.lower().split('.'))))

    name = f'{slug}.{extension}' if extension else slug
    return name if has_known_extension(name) else f'{name}.bin'
