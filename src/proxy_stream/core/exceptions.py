"""Exceptions raised by the relay.

The relay distinguishes failures by the scope they affect:

- ``BindError`` aborts startup.
- ``AcceptError`` is transient; the acceptor logs it and keeps listening.
- ``HandshakeWriteError`` and ``DialError`` end one session before forwarding.
- ``ReadError`` and ``WriteError`` end one pump and abort its session.
- ``AdmissionError`` flags misuse of the admission gate (double release).

None of these cross a session boundary: each session catches its own
failures and only the socket closure is visible to the client.

Example:
    try:
        server = RelayServer(config)
    except BindError as e:
        logger.critical(f"Cannot listen: {e}")
"""


class RelayError(Exception):
    """Base exception for relay errors."""


class BindError(RelayError):
    """Raised when the listen socket cannot be bound."""


class AcceptError(RelayError, OSError):
    """Raised when accepting an inbound connection fails.

    Subclasses ``OSError`` so socketserver treats it as a dropped request
    rather than a reason to stop serving.
    """


class HandshakeWriteError(RelayError):
    """Raised when the upgrade response cannot be written to the client."""


class DialError(RelayError):
    """Raised when the destination cannot be reached."""


class PumpError(RelayError):
    """Base exception for failures inside a forwarding pump."""


class ReadError(PumpError):
    """Raised when reading from a pump's source socket fails."""


class WriteError(PumpError):
    """Raised when writing to a pump's sink socket fails."""


class AdmissionError(RelayError):
    """Raised when a permit is released more than once."""
