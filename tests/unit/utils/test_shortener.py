"""Unit tests for generate_shortcode and validate_shortcode in shortener.py.

This test suite verifies the output format and the pronounceability rules of
the random shortcode generator.

Test coverage includes:

1. Basic functionality
   - Ensures the function returns a string of the expected length.

2. Output format
   - All characters are lowercase ASCII letters.
   - Vowels and consonants alternate (apart from the rare wildcard letter).
   - A letter never repeats its neighbour or the letter two places back.

3. Randomness
   - Repeated calls produce different shortcodes.

4. Error handling
   - Ensures invalid lengths raise appropriate exceptions.

5. Performance sanity
   - The function executes efficiently for a large number of iterations.

6. Custom shortcode validation
   - Shortcodes containing ':', '/' or whitespace are rejected.
"""

import string
import time

import pytest

from shorty.utils import generate_shortcode, validate_shortcode
from shorty.utils.shortener import VOWELS


# -------------------------------
# 1. Basic functionality
# -------------------------------


def test_default_length():
    result = generate_shortcode()
    assert isinstance(result, str)
    assert len(result) == 8


@pytest.mark.parametrize('length', [1, 2, 5, 12, 64])
def test_custom_length(length):
    assert len(generate_shortcode(length)) == length


# -------------------------------
# 2. Output format
# -------------------------------


def test_lowercase_letters_only():
    for _ in range(200):
        assert set(generate_shortcode()) <= set(string.ascii_lowercase)


def test_no_close_repeats():
    for _ in range(200):
        code = generate_shortcode(16)
        for i in range(1, len(code)):
            assert code[i] != code[i - 1]
            if i >= 2:
                assert code[i] != code[i - 2]


def test_vowels_alternate():
    """Every other letter is a vowel; the wildcard letter may break the pattern only rarely"""
    codes = [generate_shortcode(10) for _ in range(200)]
    alternating = 0
    for code in codes:
        even = [letter in VOWELS for letter in code[0::2]]
        odd = [letter in VOWELS for letter in code[1::2]]
        if (all(even) and not any(odd)) or (all(odd) and not any(even)):
            alternating += 1
    assert alternating >= 150


# -------------------------------
# 3. Randomness
# -------------------------------


def test_codes_differ():
    assert len({generate_shortcode() for _ in range(100)}) > 95


# -------------------------------
# 4. Error handling
# -------------------------------


@pytest.mark.parametrize('length', ['8', 8.0, None, True])
def test_invalid_length_type(length):
    with pytest.raises(TypeError):
        generate_shortcode(length)


@pytest.mark.parametrize('length', [0, -1])
def test_invalid_length_value(length):
    with pytest.raises(ValueError):
        generate_shortcode(length)


# -------------------------------
# 5. Performance sanity
# -------------------------------


def test_performance():
    start = time.perf_counter()
    for _ in range(10_000):
        generate_shortcode()
    assert time.perf_counter() - start < 5


# -------------------------------
# 6. Custom shortcode validation
# -------------------------------


@pytest.mark.parametrize('shortcode', ['blog', 'tanoreli', 'Q3-report_2025', 'ünï'])
def test_valid_custom_shortcodes(shortcode):
    assert validate_shortcode(shortcode) == shortcode


@pytest.mark.parametrize('shortcode', ['s3_exists:blog', 's3_cred:blog', 'blog:', 'a/b', 'a b', 'tab\tbed', ''])
def test_invalid_custom_shortcodes(shortcode):
    with pytest.raises(ValueError):
        validate_shortcode(shortcode)


def test_generated_shortcodes_are_valid():
    for _ in range(100):
        validate_shortcode(generate_shortcode())
