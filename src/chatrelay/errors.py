"""Exception hierarchy for the relay core.

Errors are raised inside the core and only translated into transport
responses at the HTTP boundary (see `chatrelay.callbacks`).
"""

from typing import Optional


class RelayError(Exception):
    """Base class for every error raised by chatrelay."""

    kind = "relay_error"


class BadInput(RelayError):
    """The submitted prompt was empty or otherwise unusable."""

    kind = "bad_input"


class UpstreamError(RelayError):
    """The completion provider could not serve the request."""

    kind = "upstream_error"


class UpstreamTransportError(UpstreamError):
    """Connection, TLS or timeout failure while talking to the provider."""

    kind = "upstream_transport_error"


class UpstreamStatusError(UpstreamError):
    """The provider answered with a non-success HTTP status."""

    kind = "upstream_status_error"

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or f"Provider returned HTTP {status_code}")


class DecodeError(RelayError):
    """A line of the provider stream could not be parsed."""

    kind = "decode_error"

    def __init__(self, message: str, raw: Optional[str] = None):
        self.raw = raw
        super().__init__(message)


class RelayClosed(RelayError):
    """Publish attempted on a relay that has been shut down."""

    kind = "relay_closed"
