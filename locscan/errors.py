"""Exception hierarchy shared by the extraction pipeline and the runtime."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "LocScanError",
    "ClassFormatError",
    "BodyDecodeError",
    "CatalogFormatError",
    "ConfigError",
    "ExtractionError",
    "UnrecoverableKeyError",
    "ConflictingEntryError",
]


class LocScanError(Exception):
    """Base class for every error raised by :mod:`locscan`."""


class ClassFormatError(LocScanError, ValueError):
    """A container or class file does not follow the class file format."""


class BodyDecodeError(ClassFormatError):
    """A single method body could not be decoded.

    The scanner recovers from this error: the offending method is reported
    and skipped while the remaining methods of the module are still scanned.
    """

    def __init__(self, message: str, *, offset: Optional[int] = None) -> None:
        if offset is not None:
            message = f"{message} at offset 0x{offset:04X}"
        super().__init__(message)
        self.offset = offset


class CatalogFormatError(LocScanError, ValueError):
    """A serialised localisation catalog has an unexpected shape."""


class ConfigError(LocScanError, ValueError):
    """A configuration file is not a valid JSON object."""


class ExtractionError(LocScanError):
    """Fatal error that aborts the extraction of a whole module."""


class UnrecoverableKeyError(ExtractionError):
    """A localize call site whose key could not be recovered statically."""

    def __init__(self, origin: str, reason: str) -> None:
        super().__init__(f"could not recover key for call in {origin}: {reason}")
        self.origin = origin
        self.reason = reason


class ConflictingEntryError(ExtractionError):
    """Two call sites define the same key with different fallback text."""

    def __init__(
        self,
        key: str,
        first_message: Optional[str],
        first_origin: str,
        second_message: Optional[str],
        second_origin: str,
    ) -> None:
        super().__init__(
            f"message with key {key!r} has previous appearance with other fallback text: "
            f"{first_message!r} (from {first_origin}) != {second_message!r} (from {second_origin})"
        )
        self.key = key
        self.first_message = first_message
        self.first_origin = first_origin
        self.second_message = second_message
        self.second_origin = second_origin
