"""Shared enums for the short-link service.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["CacheStatus", "ErrorKind", "HealthStatus", "RequestStatus", "SlugViolation"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DISABLED = "disabled"


class RequestStatus(StrEnum):
    """Outcome labels for request metrics."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    ERROR = "error"


class CacheStatus(StrEnum):
    """Lookup cache outcome labels."""

    HIT = "hit"
    MISS = "miss"
    DISABLED = "disabled"


class ErrorKind(StrEnum):
    """Failure kinds reported to API callers."""

    INVALID_URL = "invalid_url"
    INVALID_SLUG_FORMAT = "invalid_slug_format"
    INVALID_REQUEST = "invalid_request"
    SLUG_TAKEN = "slug_taken"
    GENERATION_EXHAUSTED = "generation_exhausted"
    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"


class SlugViolation(StrEnum):
    """Reasons a caller-supplied slug is rejected."""

    EMPTY_INPUT = "empty_input"
    INVALID_CHARACTERS = "invalid_characters"
    TOO_LONG = "too_long"
    RESERVED = "reserved"
