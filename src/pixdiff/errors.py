"""Error kinds raised by the comparison core.

Every error is terminal for the comparison that raised it. The
orchestrator records the stage it failed in; callers map ``kind`` to
their own transport signals.
"""

from __future__ import annotations


class CompareError(Exception):
    """Base class for all comparison failures."""

    kind = "CompareError"

    def __init__(self, message: str, *, image: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.image = image
        self.stage: str | None = None

    def __str__(self) -> str:
        return self.message


class InvalidInputError(CompareError):
    """Missing source, malformed data URI, or option out of range."""

    kind = "InvalidInput"


class InvalidImageError(InvalidInputError):
    """Image with zero width or height."""


class DecodeError(CompareError):
    kind = "DecodeError"


class DimensionMismatchError(CompareError):
    kind = "DimensionMismatchError"


class ResizeError(CompareError):
    kind = "ResizeError"


class PayloadTooLargeError(CompareError):
    kind = "PayloadTooLarge"


class EncodeError(CompareError):
    kind = "EncodeError"
