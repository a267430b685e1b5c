"""Domain exceptions for the short-link service.

Every failure a caller can observe is a ``ShortenerError`` subclass carrying an
``ErrorKind`` and the HTTP status the API answers with. The exception handler in
``shortener.main`` renders them as ``{"error": kind, "detail": message}``.
"""

from shortener.enums import ErrorKind, SlugViolation

__all__ = [
    "GenerationExhausted",
    "InvalidSlugFormat",
    "InvalidUrl",
    "LinkNotFound",
    "ShortenerError",
    "SlugTaken",
    "StoreUnavailable",
]


class ShortenerError(Exception):
    kind: ErrorKind = ErrorKind.STORE_UNAVAILABLE
    status_code: int = 500

    def to_payload(self) -> dict[str, str]:
        return {"error": self.kind.value, "detail": str(self)}


class InvalidUrl(ShortenerError):
    kind = ErrorKind.INVALID_URL
    status_code = 400


class InvalidSlugFormat(ShortenerError):
    kind = ErrorKind.INVALID_SLUG_FORMAT
    status_code = 400

    def __init__(self, reason: SlugViolation, message: str) -> None:
        super().__init__(message)
        self.reason = reason

    def to_payload(self) -> dict[str, str]:
        payload = super().to_payload()
        payload["reason"] = self.reason.value
        return payload


class SlugTaken(ShortenerError):
    kind = ErrorKind.SLUG_TAKEN
    status_code = 409

    def __init__(self, slug: str) -> None:
        super().__init__(f"Slug '{slug}' is already taken")
        self.slug = slug


class GenerationExhausted(ShortenerError):
    """Every random candidate collided with an existing code."""

    kind = ErrorKind.GENERATION_EXHAUSTED
    status_code = 500

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Could not allocate a unique code after {attempts} attempts")
        self.attempts = attempts


class LinkNotFound(ShortenerError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, code: str) -> None:
        super().__init__(f"Short code '{code}' not found")
        self.code = code


class StoreUnavailable(ShortenerError):
    """The link database could not be reached or failed mid-operation."""

    kind = ErrorKind.STORE_UNAVAILABLE
    status_code = 500
