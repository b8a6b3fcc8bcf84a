"""
SIP Models Package.

This package contains models for SIP messages and headers.
"""

from ._header import (
    CallControlHeaders,
    CommonHeaders,
    HeaderParser,
    HeaderValue,
    RepeatableHeader,
    SingleTagHeader,
    render_headers,
)
from ._message import (
    Invite,
    Message,
    MessageParser,
    Register,
    Request,
    validate_request_line,
)

__all__ = [
    # Headers - Base classes
    "HeaderValue",
    # Headers - Implementations
    "RepeatableHeader",
    "SingleTagHeader",
    # Headers - Records
    "CommonHeaders",
    "CallControlHeaders",
    # Headers - Parser / renderer
    "HeaderParser",
    "render_headers",
    # Messages - Base classes
    "Message",
    "Request",
    # Messages - Implementations
    "Invite",
    "Register",
    # Messages - Parser
    "MessageParser",
    "validate_request_line",
]
