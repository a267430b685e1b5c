"""Unit tests for short-code generation and slug validation."""

import pytest

from shortener.codes import ALPHABET, generate_random, validate_custom
from shortener.config import Settings, get_settings
from shortener.enums import SlugViolation
from shortener.errors import InvalidSlugFormat

settings = get_settings()


def test_generate_random_default_length() -> None:
    code = generate_random()
    assert len(code) == settings.SHORT_CODE_LENGTH


def test_generate_random_custom_length() -> None:
    code = generate_random(length=12)
    assert len(code) == 12


def test_generate_random_only_alphanumeric() -> None:
    for _ in range(100):
        code = generate_random()
        assert all(c in ALPHABET for c in code)


def test_generate_random_codes_are_valid_slugs() -> None:
    for _ in range(100):
        code = generate_random()
        assert validate_custom(code) == code


def test_generate_random_uniqueness() -> None:
    codes = {generate_random() for _ in range(1000)}
    # With 62^8 possibilities, 1000 codes should all be unique
    assert len(codes) == 1000


@pytest.mark.parametrize("slug", ["a", "docs-home", "my_link", "ABC123", "x" * 64])
def test_validate_custom_accepts(slug: str) -> None:
    assert validate_custom(slug) == slug


@pytest.mark.parametrize(
    ("slug", "reason"),
    [
        ("", SlugViolation.EMPTY_INPUT),
        (None, SlugViolation.EMPTY_INPUT),
        ("x" * 65, SlugViolation.TOO_LONG),
        ("has spaces", SlugViolation.INVALID_CHARACTERS),
        ("my.code", SlugViolation.INVALID_CHARACTERS),
        ("slash/inside", SlugViolation.INVALID_CHARACTERS),
        ("trailing\n", SlugViolation.INVALID_CHARACTERS),
        ("café", SlugViolation.INVALID_CHARACTERS),
        ("health", SlugViolation.RESERVED),
        ("Metrics", SlugViolation.RESERVED),
    ],
)
def test_validate_custom_rejects(slug: str | None, reason: SlugViolation) -> None:
    with pytest.raises(InvalidSlugFormat) as exc_info:
        validate_custom(slug)
    assert exc_info.value.reason is reason


def test_validate_custom_respects_max_length_argument() -> None:
    assert validate_custom("abcd", max_length=4) == "abcd"
    with pytest.raises(InvalidSlugFormat) as exc_info:
        validate_custom("abcde", max_length=4)
    assert exc_info.value.reason is SlugViolation.TOO_LONG


def test_defaults_follow_current_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    overridden = Settings(_env_file=None, SHORT_CODE_LENGTH=5, SLUG_MAX_LENGTH=4)
    monkeypatch.setattr("shortener.codes.get_settings", lambda: overridden)

    assert len(generate_random()) == 5
    assert validate_custom("abcd") == "abcd"
    with pytest.raises(InvalidSlugFormat) as exc_info:
        validate_custom("abcde")
    assert exc_info.value.reason is SlugViolation.TOO_LONG
