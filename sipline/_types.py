"""
Type definitions and exceptions for SIP messages.

This module centralizes the small value types shared by the header and
message models, together with the exceptions raised while parsing.
"""

from __future__ import annotations

import typing
from typing import NamedTuple


# =============================================================================
# Header Types
# =============================================================================


class Via(NamedTuple):
    """A single hop recorded by a Via header."""

    transport: str  # UDP, TCP, ...
    host: str


# Receives a free-form diagnostic line, e.g. an ignored header
DiagnosticSink = typing.Callable[[str], None]


# =============================================================================
# Parse Exceptions
# =============================================================================


class SIPError(ValueError):
    """Base exception for malformed or unexpected SIP messages."""

    pass


class InvalidMethodError(SIPError):
    """
    Raised when the request line names a different method than the
    message being parsed. This is usually a caller error.
    """

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(expected, actual)
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        return f"Expected Method {self.expected} but got {self.actual}"


class UnsupportedSipVersionError(SIPError):
    """Raised when a version of SIP other than 2.0 is requested."""

    def __init__(self, version: float) -> None:
        super().__init__(version)
        self.version = version

    def __str__(self) -> str:
        return f"Unsupported SIP version: {self.version:f}"


class InvalidMessageFormatError(SIPError):
    """Raised when a message violates a structural assumption."""

    def __init__(self, line: str) -> None:
        super().__init__(line)
        self.line = line

    def __str__(self) -> str:
        return f"Invalid Message Format: {self.line}"


class HeaderParseError(SIPError):
    """
    Raised when a header value cannot be converted.

    ``line`` is the 0-based index of the header within the header block and
    ``message`` is the full message text, lines joined without separators.
    """

    def __init__(self, line: int, message: str) -> None:
        super().__init__(line, message)
        self.line = line
        self.message = message

    def __str__(self) -> str:
        return f"Error parsing header on line {self.line}. Full Message: \n{self.message}"


# =============================================================================
# Re-exports for convenience
# =============================================================================

__all__ = [
    # Header types
    "Via",
    "DiagnosticSink",
    # Exceptions
    "SIPError",
    "InvalidMethodError",
    "UnsupportedSipVersionError",
    "InvalidMessageFormatError",
    "HeaderParseError",
]
