"""Exception hierarchy shared by every busline layer.

Setup failures (address resolution, dialling, authentication) are raised
synchronously to the caller. Failures inside the background dispatcher are
reported through :attr:`busline.connection.Connection.errors` and fail any
pending calls.
"""

from __future__ import annotations

import builtins


__all__ = [
    "BusError",
    "ConnectionError",
    "AuthError",
    "ProtocolError",
    "OversizedFrame",
    "InvalidMethod",
    "InvalidArguments",
    "Timeout",
    "Cancelled",
    "ConnectionClosed",
    "UnmatchedReply",
    "RemoteError",
]


class BusError(Exception):
    """Base class for all busline errors."""


class ConnectionError(BusError, builtins.ConnectionError):
    """The bus address could not be resolved or the socket not opened."""


class AuthError(BusError):
    """The authentication handshake was rejected or malformed."""


class ProtocolError(BusError):
    """A frame received from the peer could not be decoded."""


class OversizedFrame(ProtocolError):
    """A frame, or the receive buffer, exceeded the configured maximum."""


class InvalidMethod(BusError):
    """The interface or method is not present in the cached introspection."""


class InvalidArguments(BusError):
    """Call arguments do not satisfy the declared type signature."""


class Timeout(BusError):
    """A synchronous call did not receive its reply in time."""


class Cancelled(BusError):
    """A pending call was cancelled before its reply arrived."""


class ConnectionClosed(BusError):
    """The connection was closed while a call was outstanding."""


class UnmatchedReply(BusError):
    """A reply arrived for a serial with no registered caller.

    Never raised to a caller; only reported for diagnostics.
    """

    def __init__(self, reply_serial: int):
        super().__init__(f"no pending call for reply serial {reply_serial}")
        self.reply_serial = reply_serial


class RemoteError(BusError):
    """The peer answered a call with an Error message.

    :ivar name: the error name, e.g. ``org.freedesktop.DBus.Error.UnknownMethod``
    :ivar message: the human-readable description, if the peer sent one
    :ivar reply: the Error :class:`~busline.protocol.message.Message` itself
    """

    def __init__(self, name: str, message: str = "", reply=None):
        if message:
            super().__init__(f"{name}: {message}")
        else:
            super().__init__(name)
        self.name = name
        self.message = message
        self.reply = reply


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
