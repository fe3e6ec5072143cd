"""Shorty: short links to URLs and presigned object storage files."""

__version__ = '0.1.0'
