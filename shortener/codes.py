"""Short code generation and custom slug validation.

Random codes are nanoid strings over the base62 alphabet. They are *not*
assumed to be unique: the creation flow inserts them with insert-if-absent and
retries on collision.

Custom slugs are accepted verbatim when they are non-empty, short enough,
made of ``[A-Za-z0-9_-]`` and do not shadow one of the service's own routes.

Functions:
    generate_random():  Creates a random URL-safe code.
    validate_custom():  Checks a caller-supplied slug, raising InvalidSlugFormat.
"""

import re

from nanoid import generate

from shortener.config import get_settings
from shortener.enums import SlugViolation
from shortener.errors import InvalidSlugFormat

__all__ = ["ALPHABET", "RESERVED_SLUGS", "SLUG_PATTERN", "generate_random", "validate_custom"]

ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
SLUG_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

# First path segments already served by the application itself.
RESERVED_SLUGS = frozenset({"docs", "health", "metrics", "redoc", "shorten", "stats"})


def generate_random(length: int | None = None) -> str:
    if length is None:
        length = get_settings().SHORT_CODE_LENGTH
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return generate(ALPHABET, length)


def validate_custom(candidate: str | None, max_length: int | None = None) -> str:
    if max_length is None:
        max_length = get_settings().SLUG_MAX_LENGTH
    if not candidate:
        raise InvalidSlugFormat(SlugViolation.EMPTY_INPUT, "Slug must not be empty")
    if len(candidate) > max_length:
        raise InvalidSlugFormat(
            SlugViolation.TOO_LONG,
            f"Slug must be at most {max_length} characters",
        )
    if not SLUG_PATTERN.fullmatch(candidate):
        raise InvalidSlugFormat(
            SlugViolation.INVALID_CHARACTERS,
            "Slug may only contain letters, digits, '-' and '_'",
        )
    if candidate.lower() in RESERVED_SLUGS:
        raise InvalidSlugFormat(SlugViolation.RESERVED, f"Slug '{candidate}' is reserved")
    return candidate
