"""
SIP Headers implementation.

Provides the polymorphic header values (repeatable Contact-style headers and
single-tag From/To headers), the per-message header records, and the
HeaderParser / render_headers pair that convert between those records and
the wire-format header block.
"""

from __future__ import annotations

import re
import typing
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field

from .._types import DiagnosticSink, InvalidMessageFormatError, HeaderParseError, Via
from .._utils import DEFAULT_MAX_FORWARDS, EOL, HEADERS_COMPACT, SCHEME, VERSION, logger


# ============================================================================
# Base Classes
# ============================================================================


class HeaderValue(ABC):
    """
    Abstract base class for "complicated" SIP header values.

    A header value is a named primary value (the display name, like "Bob"),
    a URI and a set of key/value parameters. Not every header is a
    HeaderValue: Max-Forwards, for instance, is just an integer.

    All implementations must provide:
    - Get/set of the primary value and the URI
    - Get/set/enumeration of parameters
    - Rendering of the parameter suffix
    """

    @property
    @abstractmethod
    def value(self) -> str:
        """Get the primary value (display name)."""
        ...

    @value.setter
    @abstractmethod
    def value(self, value: str) -> None:
        """Set the primary value (display name)."""
        ...

    @property
    @abstractmethod
    def uri(self) -> str:
        """Get the URI, or an empty string if none was set."""
        ...

    @uri.setter
    @abstractmethod
    def uri(self, value: str) -> None:
        """Set the URI."""
        ...

    @abstractmethod
    def param(self, name: str) -> str:
        """Get a parameter value, or an empty string if it is not set."""
        ...

    @abstractmethod
    def set_param(self, name: str, value: str) -> HeaderValue:
        """
        Set a parameter value.

        Returns:
            The header value itself, so calls can be chained
        """
        ...

    @abstractmethod
    def params(self) -> typing.Iterator[tuple[str, str]]:
        """Iterate over (name, value) pairs of the parameters."""
        ...

    @abstractmethod
    def param_string(self) -> str:
        """Render the parameters as a '; name=value' suffix."""
        ...


# ============================================================================
# Header Value Implementations
# ============================================================================


class RepeatableHeader(HeaderValue):
    """
    A repeatable header with arbitrary parameters, such as Contact.

    Parameters live in an open mapping next to two reserved keys holding the
    primary value and the URI. Any key starting with the reserved prefix is
    left out of the rendered parameter string. The mapping keeps insertion
    order, so rendering is stable.

    Examples:
        >>> contact = RepeatableHeader("Alice", "sip:alice@pc33.atlanta.com")
        >>> contact.set_param("expires", "3600").param_string()
        '; expires=3600'
    """

    __slots__ = ("_store",)

    RESERVED_PREFIX = "_"
    VALUE_KEY = "_value"
    URI_KEY = "_uri"

    def __init__(
        self,
        value: str = "",
        uri: str = "",
        params: Mapping[str, str] | None = None,
    ) -> None:
        self._store: dict[str, str] = {}
        if value:
            self._store[self.VALUE_KEY] = value
        if uri:
            self._store[self.URI_KEY] = uri
        if params:
            for name, param in params.items():
                self.set_param(name, param)

    @property
    def value(self) -> str:
        return self._store.get(self.VALUE_KEY, "")

    @value.setter
    def value(self, value: str) -> None:
        self._store[self.VALUE_KEY] = value

    @property
    def uri(self) -> str:
        return self._store.get(self.URI_KEY, "")

    @uri.setter
    def uri(self, value: str) -> None:
        self._store[self.URI_KEY] = value

    def param(self, name: str) -> str:
        return self._store.get(name, "")

    def set_param(self, name: str, value: str) -> RepeatableHeader:
        self._store[name] = value
        return self

    def params(self) -> typing.Iterator[tuple[str, str]]:
        for name, value in self._store.items():
            if not name.startswith(self.RESERVED_PREFIX):
                yield name, value

    def param_string(self) -> str:
        return "".join(f"; {name}={value}" for name, value in self.params())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RepeatableHeader):
            return NotImplemented
        return (self.value, self.uri, list(self.params())) == (
            other.value,
            other.uri,
            list(other.params()),
        )

    def __repr__(self) -> str:
        params = dict(self.params())
        return f"RepeatableHeader({self.value!r}, {self.uri!r}, {params!r})"


class SingleTagHeader(HeaderValue):
    """
    A header whose only parameter is ``tag``, used for both From and To.

    Setting any other parameter is silently discarded and reading one
    returns an empty string. The rendered parameter string always carries
    the tag, even when it is empty.
    """

    __slots__ = ("_value", "_uri", "_tag")

    def __init__(self, value: str = "", uri: str = "", tag: str = "") -> None:
        self._value = value
        self._uri = uri
        self._tag = tag

    @property
    def value(self) -> str:
        return self._value

    @value.setter
    def value(self, value: str) -> None:
        self._value = value

    @property
    def uri(self) -> str:
        return self._uri

    @uri.setter
    def uri(self, value: str) -> None:
        self._uri = value

    @property
    def tag(self) -> str:
        """Return the dialog tag."""
        return self._tag

    @tag.setter
    def tag(self, value: str) -> None:
        self._tag = value

    def param(self, name: str) -> str:
        if name != "tag":
            return ""
        return self._tag

    def set_param(self, name: str, value: str) -> SingleTagHeader:
        # From and To carry no other parameters
        if name == "tag":
            self._tag = value
        return self

    def params(self) -> typing.Iterator[tuple[str, str]]:
        yield "tag", self._tag

    def param_string(self) -> str:
        return f"; tag={self._tag}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SingleTagHeader):
            return NotImplemented
        return (self._value, self._uri, self._tag) == (
            other._value,
            other._uri,
            other._tag,
        )

    def __repr__(self) -> str:
        return f"SingleTagHeader({self._value!r}, {self._uri!r}, tag={self._tag!r})"


# ============================================================================
# Header Records
# ============================================================================


@dataclass
class CommonHeaders:
    """Header information common across all messages."""

    # The "common name" like "Bob" or "Sally", plus URI and tag
    to: SingleTagHeader = field(default_factory=SingleTagHeader)
    from_: SingleTagHeader = field(default_factory=SingleTagHeader)
    contacts: list[RepeatableHeader] = field(default_factory=list)
    forward: int = 0
    user_agent: str = ""
    # Content-Length only goes out together with a Content-Type
    content_type: str = ""
    content_length: int = 0


@dataclass
class CallControlHeaders:
    """Headers that are usually set by the system, not by users."""

    # At least one Via is required before rendering
    via: list[Via] = field(default_factory=list)
    # The branch of the most recent Via, or ours if we added it
    via_branch: str = ""
    call_id: str = ""
    sequence: int = 0
    authenticate: str = ""


# ============================================================================
# Header Parser
# ============================================================================


_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def _log_ignored(text: str) -> None:
    logger.info(text)


def _parse_max_forwards(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    h.forward = HeaderParser.parse_int32(value)


def _parse_contact(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    h.contacts.extend(HeaderParser.parse_contact(value))


def _parse_content_type(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    h.content_type = value


def _parse_content_length(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    h.content_length = HeaderParser.parse_int32(value)


def _parse_via(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    c.via.append(HeaderParser.parse_via(value))


def _parse_cseq(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    # The CSeq method is assumed to match the request
    c.sequence = HeaderParser.parse_int32(value.split(" ")[0])


def _parse_call_id(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    c.call_id = value


def _parse_from(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    HeaderParser.parse_from_to(value, h.from_)


def _parse_to(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    HeaderParser.parse_from_to(value, h.to)


def _parse_user_agent(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    h.user_agent = value


def _parse_authenticate(value: str, h: CommonHeaders, c: CallControlHeaders) -> None:
    c.authenticate = value


# Normalized header name -> field handler. Compact forms are expanded
# through HEADERS_COMPACT before lookup.
_HANDLERS: Mapping[
    str, typing.Callable[[str, CommonHeaders, CallControlHeaders], None]
] = {
    "max-forwards": _parse_max_forwards,
    "contact": _parse_contact,
    "content-type": _parse_content_type,
    "content-length": _parse_content_length,
    "via": _parse_via,
    "cseq": _parse_cseq,
    "call-id": _parse_call_id,
    "from": _parse_from,
    "to": _parse_to,
    "user-agent": _parse_user_agent,
    "www-authenticate": _parse_authenticate,
}


class HeaderParser:
    """
    Parser for the SIP header block.

    Handles:
    - Dispatch by case-insensitive header name
    - Compact header forms
    - Sub-parsers for From/To, Contact and Via values
    """

    @staticmethod
    def parse_headers(
        lines: list[str],
        h: CommonHeaders,
        c: CallControlHeaders,
        *,
        sink: DiagnosticSink | None = None,
        message: str | None = None,
    ) -> None:
        """
        Parse header lines into the given header records.

        Processing stops at the first empty line; anything after it is
        payload and is not looked at.

        Args:
            lines: Lines following the request line
            h: Common headers to populate
            c: Call control headers to populate
            sink: Receives a notice for each unrecognized header
                (defaults to the package logger)
            message: Full message text reported in errors (defaults to the
                header lines joined together)

        Raises:
            HeaderParseError: If a header value cannot be converted
        """
        report = sink or _log_ignored
        for index, raw_line in enumerate(lines):
            line = raw_line.strip()
            if not line:
                # an empty line ends the header block
                break
            try:
                HeaderParser._parse_line(line, h, c, report)
            except ValueError as exc:
                logger.debug("Failed to parse header %d: %s (%s)", index, line, exc)
                if message is None:
                    message = "".join(lines)
                raise HeaderParseError(index, message) from exc

    @staticmethod
    def _parse_line(
        line: str,
        h: CommonHeaders,
        c: CallControlHeaders,
        report: DiagnosticSink,
    ) -> None:
        name, sep, value = line.partition(":")
        if not sep:
            raise InvalidMessageFormatError(line)
        name = name.strip().lower()
        name = HEADERS_COMPACT.get(name, name)
        handler = _HANDLERS.get(name)
        if handler is None:
            report(f"Ignoring unrecognized header: {line}")
            return
        handler(value.strip(), h, c)

    @staticmethod
    def parse_int32(value: str) -> int:
        """
        Parse a decimal integer that must fit in 32 bits.

        Raises:
            ValueError: If the value is not a decimal integer or is out of range
        """
        if not _INT_RE.fullmatch(value):
            raise ValueError(f"invalid integer: {value!r}")
        number = int(value)
        if not _INT32_MIN <= number <= _INT32_MAX:
            raise ValueError(f"integer out of 32-bit range: {value}")
        return number

    @staticmethod
    def parse_from_to(value: str, target: HeaderValue) -> None:
        """
        Parse a From or To value into ``target``.

        The format is NAME <URI>;tag=TAG, where NAME may be quoted to include
        a space. The value is split on the first angle bracket, which is good
        enough for the names we see.

        Example:
            >>> to = SingleTagHeader()
            >>> HeaderParser.parse_from_to("Bob <sip:bob@biloxi.com>;tag=a6c85cf", to)
            >>> (to.value, to.uri, to.tag)
            ('Bob', 'sip:bob@biloxi.com', 'a6c85cf')

        Raises:
            InvalidMessageFormatError: If the value has no <URI> part
        """
        primary, *params = value.split(";")
        name, bracket, rest = primary.partition("<")
        if not bracket:
            raise InvalidMessageFormatError(value)
        target.value = name.strip()
        target.uri = rest.replace(">", "", 1)
        for param in params:
            param = param.strip()
            if param.startswith("tag="):
                target.set_param("tag", param.split("=", 1)[1])
                break

    @staticmethod
    def parse_contact(value: str) -> list[RepeatableHeader]:
        """
        Parse a Contact value, which may hold several comma-separated entries.

        When an entry has angle brackets, its URI is read from between them
        before the entry is split on ';', so URI parameters such as
        ';transport=tcp' stay part of the URI. Only the text after '>' is
        read as header parameters.

        Example:
            >>> contacts = HeaderParser.parse_contact(
            ...     "Alice <sip:alice@pc33.atlanta.com>;expires=3600, <sip:a@b>"
            ... )
            >>> [(c.value, c.uri, c.param("expires")) for c in contacts]
            [('Alice', 'sip:alice@pc33.atlanta.com', '3600'), ('', 'sip:a@b', '')]
        """
        contacts: list[RepeatableHeader] = []
        for entry in value.split(","):
            entry = entry.strip()
            if not entry:
                continue
            contact = RepeatableHeader()
            if "<" in entry:
                # URI parameters stay inside the brackets
                name, _, rest = entry.partition("<")
                uri, _, param_part = rest.partition(">")
                contact.value = name.strip()
                contact.uri = uri.strip()
                params = param_part.split(";")
            else:
                address, *params = entry.split(";")
                contact.uri = address.strip()
            for param in params:
                param = param.strip()
                if not param:
                    continue
                key, _, param_value = param.partition("=")
                contact.set_param(key.strip(), param_value.strip())
            contacts.append(contact)
        return contacts

    @staticmethod
    def parse_via(value: str) -> Via:
        """
        Parse a Via value into its transport and host.

        Parameters (branch, received, ...) are dropped on read; the branch
        we send is kept separately in CallControlHeaders.

        Example:
            >>> HeaderParser.parse_via("SIP/2.0/UDP pc33.atlanta.com;branch=z9hG4bK776asdhds")
            Via(transport='UDP', host='pc33.atlanta.com')

        Raises:
            InvalidMessageFormatError: If the value has no host part
        """
        sent_by = value.split(";", 1)[0]
        parts = sent_by.split()
        if len(parts) < 2:
            raise InvalidMessageFormatError(value)
        transport = parts[0].rsplit("/", 1)[-1]
        return Via(transport, parts[1])


# ============================================================================
# Header Renderer
# ============================================================================


def _address(value: str, uri: str) -> str:
    if value:
        return f"{value} <{uri}>"
    return f"<{uri}>"


def render_headers(h: CommonHeaders, c: CallControlHeaders) -> str:
    """
    Render the common header block in canonical order.

    Lines are joined with CRLF and there is no trailing separator; the
    caller appends the method-dependent CSeq line and the terminator.

    Raises:
        ValueError: If no Via has been set
    """
    if not c.via:
        raise ValueError("at least one Via is required to render headers")

    lines: list[str] = []

    # As a client or server, and not a proxy, we only send one Via: ourselves
    transport, host = c.via[0]
    lines.append(f"Via: {SCHEME}/{VERSION}/{transport} {host};branch={c.via_branch}")

    # RFC recommends Max-Forwards as one of the first fields
    forward = h.forward or DEFAULT_MAX_FORWARDS
    lines.append(f"Max-Forwards: {forward}")

    # when rendering, there is always a tag in From
    lines.append(f"From: {_address(h.from_.value, h.from_.uri)};tag={h.from_.tag}")

    to = f"To: {_address(h.to.value, h.to.uri)}"
    if h.to.tag:
        to += f";tag={h.to.tag}"
    lines.append(to)

    # Contact is always sent; fall back to From
    if not h.contacts:
        lines.append(f"Contact: {_address(h.from_.value, h.from_.uri)}")
    for contact in h.contacts:
        lines.append(
            f"Contact: {_address(contact.value, contact.uri)}{contact.param_string()}"
        )

    lines.append(f"Call-ID: {c.call_id}")

    if h.user_agent:
        lines.append(f"User-Agent: {h.user_agent}")

    if h.content_type:
        lines.append(f"Content-Type: {h.content_type}")
        lines.append(f"Content-Length: {h.content_length}")

    return EOL.join(lines)


# ============================================================================
# Exports
# ============================================================================


__all__ = [
    # Base classes
    "HeaderValue",
    # Implementations
    "RepeatableHeader",
    "SingleTagHeader",
    # Records
    "CommonHeaders",
    "CallControlHeaders",
    # Parser / renderer
    "HeaderParser",
    "render_headers",
]
