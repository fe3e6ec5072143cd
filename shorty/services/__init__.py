from shorty.services.shortener_service import ShortenerService, CancellableStream


__all__ = [
    'ShortenerService',
    'CancellableStream',
]
