"""
SIP Message models (Invite and Register) and Parser.

Messages marshal and unmarshal data to and from raw SIP requests. Each
message owns its header records and payload; parsing replaces them
wholesale and rendering produces the canonical wire form.
"""

from __future__ import annotations

import re
import typing
from abc import ABC, abstractmethod
from types import MappingProxyType

from .._types import (
    DiagnosticSink,
    InvalidMessageFormatError,
    InvalidMethodError,
    SIPError,
    UnsupportedSipVersionError,
)
from .._utils import EOL, SCHEME, SUPPORTED_EXTENSIONS, VERSION
from ._header import CallControlHeaders, CommonHeaders, HeaderParser, render_headers


# ============================================================================
# Request Line Validation
# ============================================================================


def _version_error(line: str, tokens: list[str]) -> SIPError:
    if len(tokens) < 3:
        return InvalidMessageFormatError(line)
    _, sep, number = tokens[2].partition("/")
    if not sep:
        return InvalidMessageFormatError(line)
    try:
        version = float(number)
    except ValueError:
        return InvalidMessageFormatError(line)
    return UnsupportedSipVersionError(version)


def validate_request_line(line: str, method: str) -> None:
    """
    Make sure the request line (the first line) is of the expected method
    and asks for SIP/2.0.

    Both checks always run. A method mismatch takes precedence over any
    version problem.

    Args:
        line: The request line, e.g. 'INVITE sip:bob@biloxi.com SIP/2.0'
        method: The expected method, in upper case

    Raises:
        InvalidMethodError: If the method token does not match ``method``
        UnsupportedSipVersionError: If a version other than 2.0 is requested
        InvalidMessageFormatError: If the version cannot be read
    """
    line = line.strip()
    tokens = line.split()
    actual = tokens[0] if tokens else ""

    method_error = None
    if actual.upper() != method:
        method_error = InvalidMethodError(expected=method, actual=actual)

    # Only 2.0 is supported
    version_error = None
    if len(tokens) < 3 or not line.endswith(f"{SCHEME}/{VERSION}"):
        version_error = _version_error(line, tokens)

    if method_error is not None:
        raise method_error
    if version_error is not None:
        raise version_error


# ============================================================================
# Base Classes
# ============================================================================


class Message(ABC):
    """
    Abstract base class for SIP messages.

    All SIP message types must implement:
    - Rendering to and parsing from wire format
    - Access to the header records and the payload
    """

    @property
    @abstractmethod
    def method(self) -> str:
        """Return the method/request type of the message."""
        ...

    @property
    @abstractmethod
    def headers(self) -> CommonHeaders:
        """Return the common headers."""
        ...

    @property
    @abstractmethod
    def control(self) -> CallControlHeaders:
        """Return the call control headers."""
        ...

    @property
    @abstractmethod
    def payload(self) -> bytes:
        """Return the payload as bytes."""
        ...

    @payload.setter
    @abstractmethod
    def payload(self, value: str | bytes) -> None:
        """Replace the payload."""
        ...

    @abstractmethod
    def render(self) -> str:
        """Serialize the message to its wire format, without the payload."""
        ...

    @abstractmethod
    def parse(self, message: str, *, sink: DiagnosticSink | None = None) -> None:
        """Unmarshal a raw message into this object."""
        ...

    @property
    def string_payload(self) -> str:
        """Return the payload decoded as UTF-8 text."""
        return self.payload.decode("utf-8")

    def to_bytes(self) -> bytes:
        """Serialize message to bytes, followed by the payload."""
        return self.render().encode("utf-8") + self.payload

    def __str__(self) -> str:
        return self.render()


# ============================================================================
# Request Implementation
# ============================================================================


class Request(Message):
    """
    Shared implementation of the request messages.

    Subclasses set ``METHOD`` and may override ``request_target`` when the
    rendered request URI is not simply the To URI.
    """

    __slots__ = ("_headers", "_control", "_payload", "_uri")

    METHOD: typing.ClassVar[str] = ""

    def __init__(self) -> None:
        self._headers = CommonHeaders()
        self._control = CallControlHeaders()
        self._payload = b""
        # Request URI read by the last parse
        self._uri = ""

    @property
    def method(self) -> str:
        return self.METHOD

    @property
    def headers(self) -> CommonHeaders:
        return self._headers

    @property
    def control(self) -> CallControlHeaders:
        return self._control

    @property
    def payload(self) -> bytes:
        return self._payload

    @payload.setter
    def payload(self, value: str | bytes) -> None:
        if isinstance(value, str):
            value = value.encode("utf-8")
        self._payload = value

    @property
    def uri(self) -> str:
        """Return the request URI exactly as it appeared on the parsed request line."""
        return self._uri

    def request_target(self) -> str:
        """Return the request URI used when rendering."""
        return self._headers.to.uri

    def render(self) -> str:
        request_line = f"{self.METHOD} sip:{self.request_target()} {SCHEME}/{VERSION}"
        return (
            f"{request_line}{EOL}"
            f"{render_headers(self._headers, self._control)}{EOL}"
            # CSeq is method-dependent, so it is set outside render_headers
            f"CSeq: {self._control.sequence} {self.METHOD}{EOL}"
            f"Supported: {SUPPORTED_EXTENSIONS}{EOL}"
            f"{EOL}"
        )

    def parse(self, message: str, *, sink: DiagnosticSink | None = None) -> None:
        """
        Parse a string representation of a message into this object.

        Accepts LF or CRLF line endings. On success the header records,
        request URI and payload are all replaced; on failure the message is
        left untouched.

        Args:
            message: The raw message text
            sink: Receives a notice for each unrecognized header

        Raises:
            InvalidMethodError: If the message is not of this method
            UnsupportedSipVersionError: If the message is not SIP/2.0
            InvalidMessageFormatError: If the request line is malformed
            HeaderParseError: If a header cannot be parsed
        """
        lines = message.split("\n")
        validate_request_line(lines[0], self.METHOD)

        # The request URI immediately follows the method
        uri = lines[0].split()[1]
        headers = CommonHeaders()
        control = CallControlHeaders()
        HeaderParser.parse_headers(
            lines[1:], headers, control, sink=sink, message="".join(lines)
        )

        payload = b""
        for index, line in enumerate(lines[1:], start=2):
            if not line.strip():
                payload = "\n".join(lines[index:]).encode("utf-8")
                break

        self._uri = uri
        self._headers = headers
        self._control = control
        self._payload = payload

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.request_target()!r})>"


class Invite(Request):
    """SIP INVITE request. The request URI is the To URI as currently set."""

    __slots__ = ()

    METHOD = "INVITE"


class Register(Request):
    """
    SIP REGISTER request.

    REGISTER targets the registrar's domain rather than a user, so the
    user-info part of the To URI is stripped from the request URI.

    Example:
        >>> register = Register()
        >>> register.headers.to.uri = "sip:bob@biloxi.com"
        >>> register.request_target()
        'biloxi.com'
    """

    __slots__ = ()

    METHOD = "REGISTER"

    def request_target(self) -> str:
        """
        Return the domain of the To URI.

        Raises:
            InvalidMessageFormatError: If the To URI has no '@'
        """
        uri = self._headers.to.uri
        _, at, domain = uri.partition("@")
        if not at:
            raise InvalidMessageFormatError(uri)
        return domain

    def __repr__(self) -> str:
        return f"<Register({self._headers.to.uri!r})>"


# ============================================================================
# Message Parser
# ============================================================================


# End of the header block; a whitespace-only line counts as blank
_BLANK_LINE_RE = re.compile(rb"\r?\n[ \t]*\r?\n")


class MessageParser:
    """
    Parses a raw request into the message type named by its request line.
    """

    MESSAGE_TYPES: typing.Mapping[str, type[Request]] = MappingProxyType(
        {
            Invite.METHOD: Invite,
            Register.METHOD: Register,
        }
    )

    @staticmethod
    def parse(data: bytes | str, *, sink: DiagnosticSink | None = None) -> Request:
        """
        Parse a SIP request from bytes or string.

        Example:
            >>> msg = MessageParser.parse("REGISTER sip:biloxi.com SIP/2.0\\r\\n...")
            >>> isinstance(msg, Register)
            True

        Byte input is split at the first blank line before decoding, so the
        payload is kept exactly as received whatever its encoding.

        Raises:
            InvalidMessageFormatError: If the message is empty or its header
                block is not UTF-8
            InvalidMethodError: If the method is not INVITE or REGISTER
            SIPError: Any error raised while parsing the message itself
        """
        payload = None
        if isinstance(data, bytes):
            match = _BLANK_LINE_RE.search(data)
            if match is not None:
                data, payload = data[: match.start()], data[match.end() :]
            try:
                data = data.decode("utf-8")
            except UnicodeDecodeError as exc:
                first_line = data.split(b"\n", 1)[0].strip()
                raise InvalidMessageFormatError(
                    first_line.decode("utf-8", errors="replace")
                ) from exc

        start_line = data.split("\n", 1)[0].strip()
        if not start_line:
            raise InvalidMessageFormatError(start_line)

        method = start_line.split()[0]
        message_type = MessageParser.MESSAGE_TYPES.get(method.upper())
        if message_type is None:
            raise InvalidMethodError(
                expected=", ".join(MessageParser.MESSAGE_TYPES), actual=method
            )

        message = message_type()
        message.parse(data, sink=sink)
        if payload is not None:
            message.payload = payload
        return message


# ============================================================================
# Exports
# ============================================================================


__all__ = [
    # Validation
    "validate_request_line",
    # Base classes
    "Message",
    "Request",
    # Implementations
    "Invite",
    "Register",
    # Parser
    "MessageParser",
]
