"""Failure values returned by the Letterbox layer.

Layer operations never raise these; they return them so callers can inspect
the outcome with :func:`is_err`.
"""

from __future__ import annotations

from typing import Any, TypeGuard

__all__ = [
    "DraftIdExhaustedError",
    "LetterboxError",
    "NoIdentityError",
    "WriteFailure",
    "is_err",
]


class LetterboxError(Exception):
    """Base class for every failure value produced by this package."""


class NoIdentityError(LetterboxError):
    """An operation needed a signing identity and none was configured."""


class WriteFailure(LetterboxError):
    """The replica rejected or failed a write."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class DraftIdExhaustedError(LetterboxError):
    """No free thread-draft id was found within the configured attempt budget."""


def is_err(value: Any) -> TypeGuard[LetterboxError]:
    """Return True if ``value`` is a failure value rather than a result."""
    return isinstance(value, LetterboxError)
