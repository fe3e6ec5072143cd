"""Shortcode generation utility

This module provides a helper function for generating short, pronounceable,
random shortcodes. Letters are drawn with English letter frequencies and
vowels alternate with consonants, so codes are easy to read out loud.

Functions:
    generate_shortcode(length=8):
        Generate a random pronounceable string suitable for use as a URL slug.
    validate_shortcode(shortcode):
        Reject shortcodes that would collide with internal key namespaces.

Example:
    >>> from shorty.utils import generate_shortcode
    >>> generate_shortcode()
    'tanoreli'
"""

import re
import secrets

from shorty.constants import DEFAULT_SHORTCODE_LENGTH


# Relative frequency of letters in English text
LETTER_FREQUENCIES = {
    'e': 21912, 't': 16587, 'a': 14810, 'o': 14003, 'i': 13318, 'n': 12666,
    's': 11450, 'r': 10977, 'h': 10795, 'd': 7874, 'l': 7253, 'u': 5246,
    'c': 4943, 'm': 4761, 'f': 4200, 'y': 3853, 'w': 3819, 'g': 3693,
    'p': 3316, 'b': 2715, 'v': 2019, 'k': 1257, 'x': 315, 'q': 205,
    'j': 188, 'z': 128,
}  # fmt: skip
VOWELS = frozenset('aeiou')

_FORBIDDEN_SHORTCODE_RE = re.compile(r'[:/\s]')

_random = secrets.SystemRandom()


def _weighted(letters: dict[str, int]) -> tuple[tuple[str, ...], tuple[int, ...]]:
    return tuple(letters), tuple(letters.values())


_ANY = _weighted(LETTER_FREQUENCIES)
_VOWELS = _weighted({k: v for k, v in LETTER_FREQUENCIES.items() if k in VOWELS})
_CONSONANTS = _weighted({k: v for k, v in LETTER_FREQUENCIES.items() if k not in VOWELS})


def _pick(pool: tuple[tuple[str, ...], tuple[int, ...]]) -> str:
    letters, weights = pool
    return _random.choices(letters, weights=weights)[0]


def generate_shortcode(length: int = DEFAULT_SHORTCODE_LENGTH) -> str:
    """Generate a random, pronounceable shortcode.

    Every other letter is a vowel (the phase is random). The remaining letters
    are consonants, except for a rare (1 in 100) letter drawn from the whole
    alphabet. A letter never repeats its neighbour or the letter two places back.

    Args:
        length (int, optional):
            Length of the resulting shortcode. Defaults to 8.

    Returns:
        str: A lowercase ASCII shortcode.

    Raises:
        TypeError: If length is not an integer.
        ValueError: If length is not positive.

    NOTE:
        - Uniqueness is not guaranteed here: the store rejects colliding writes
          and callers are expected to retry with a fresh code.
    """
    if not isinstance(length, int) or isinstance(length, bool):
        raise TypeError(f'Length must be of type integer (given type: {type(length)}).')
    if length < 1:
        raise ValueError(f'Length must be a positive integer (given value: {length}).')

    vowel_offset = _random.randrange(2)
    letters: list[str] = []
    while len(letters) < length:
        position = len(letters)
        if (position + vowel_offset) % 2 == 0:
            letter = _pick(_VOWELS)
        elif _random.randrange(100) > 0:
            letter = _pick(_CONSONANTS)
        else:
            letter = _pick(_ANY)

        if letters[-1:] == [letter] or letters[-2:-1] == [letter]:
            continue
        letters.append(letter)

    return ''.join(letters)


def validate_shortcode(shortcode: str) -> str:
    """Reject shortcodes that can't be stored as plain short URL keys

    Internal records live under 's3_exists:<shortcode>' and 's3_cred:<shortcode>'
    in the same keyspace, so a shortcode containing ':' could impersonate one
    of them. Slashes and whitespace would not survive a redirect path.

    Raises:
        ValueError: If the shortcode is empty or contains ':', '/' or whitespace.

    Example:
        >>> validate_shortcode('blog')
        'blog'
        >>> validate_shortcode('s3_exists:blog')
        Traceback (most recent call last):
        ...
        ValueError: Shortcode must not contain ':', '/' or whitespace (given value: 's3_exists:blog').
    """
    if not shortcode:
        raise ValueError('Shortcode must not be empty.')
    if _FORBIDDEN_SHORTCODE_RE.search(shortcode):
        raise ValueError(f"Shortcode must not contain ':', '/' or whitespace (given value: {shortcode!r}).")
    return shortcode
