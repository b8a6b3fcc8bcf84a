"""sipline - SIP request models with parsing and rendering for Python."""

from __future__ import annotations

# Message models
from ._models import (
    CallControlHeaders,
    CommonHeaders,
    HeaderParser,
    HeaderValue,
    Invite,
    Message,
    MessageParser,
    Register,
    RepeatableHeader,
    Request,
    SingleTagHeader,
    render_headers,
    validate_request_line,
)

# Types and exceptions
from ._types import (
    DiagnosticSink,
    HeaderParseError,
    InvalidMessageFormatError,
    InvalidMethodError,
    SIPError,
    UnsupportedSipVersionError,
    Via,
)

# Constants
from ._utils import SUPPORTED_METHODS, SUPPORTED_RESPONSES

__version__ = "0.1.0"

__all__ = [
    # Headers
    "HeaderValue",
    "RepeatableHeader",
    "SingleTagHeader",
    "CommonHeaders",
    "CallControlHeaders",
    "HeaderParser",
    "render_headers",
    "Via",
    # Messages
    "Message",
    "Request",
    "Invite",
    "Register",
    "MessageParser",
    "validate_request_line",
    # Exceptions
    "SIPError",
    "InvalidMethodError",
    "UnsupportedSipVersionError",
    "InvalidMessageFormatError",
    "HeaderParseError",
    # Types
    "DiagnosticSink",
    # Constants
    "SUPPORTED_METHODS",
    "SUPPORTED_RESPONSES",
]
