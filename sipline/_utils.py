"""Utilities and constants for SIP protocol."""

import logging
import os
from types import MappingProxyType

from rich.console import Console
from rich.logging import RichHandler


def log_level(name: str | None) -> int:
    """Return the logging level called ``name``, falling back to INFO."""
    level = logging.getLevelName((name or "INFO").strip().upper())
    if not isinstance(level, int):
        return logging.INFO
    return level


# Rich Console for pretty printing
console = Console()

# Configure logging with RichHandler
logging.basicConfig(
    level=log_level(os.environ.get("SIPLINE_LOG_LEVEL")),
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
)

# Get logger for the package
logger = logging.getLogger("sipline")

EOL = "\r\n"
SCHEME = "SIP"
VERSION = "2.0"

# We never proxy, so an unset Max-Forwards goes out as the RFC 3261 default
DEFAULT_MAX_FORWARDS = 70

# Value of the Supported header sent with every request
SUPPORTED_EXTENSIONS = "SUBSCRIBE, NOTIFY"

# Compact header forms (RFC 3261 Section 7.3.3) understood by the parser
# Maps compact form -> normalized (lowercase) name
HEADERS_COMPACT = MappingProxyType(
    {
        "v": "via",
        "f": "from",
        "t": "to",
        "m": "contact",
        "i": "call-id",
        "l": "content-length",
        "c": "content-type",
    }
)

# Request methods known to the library
SUPPORTED_METHODS = ("INVITE", "REGISTER", "NOTIFY", "SUBSCRIBE", "ACK")

# Response codes known to the library and their reason phrases
SUPPORTED_RESPONSES = MappingProxyType(
    {
        100: "Trying",
        180: "Ringing",
        183: "Session Progress",
        200: "OK",
        401: "Unauthorized",
        404: "Not Found",
        486: "Busy Here",
    }
)
