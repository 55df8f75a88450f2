"""Convenience constructors for protocol messages."""

from __future__ import annotations

from typing import Any, Sequence

from . import fields
from .builder import MessageBuilder
from .message import Message


def method_call(destination: str, path: str, interface: str, member: str,
                signature: str = "", body: Sequence[Any] = ()) -> Message:
    return (
        MessageBuilder()
        .call(member)
        .on(path, interface)
        .to(destination)
        .body(signature, body)
        .build()
    )


def hello() -> Message:
    """The first call on every bus connection; the reply assigns our unique name."""
    return method_call(fields.BUS_NAME, fields.BUS_PATH, fields.BUS_INTERFACE, "Hello")


def introspect(destination: str, path: str) -> Message:
    return method_call(destination, path, fields.INTROSPECTABLE, "Introspect")


def method_return(call: Message, signature: str = "", body: Sequence[Any] = ()) -> Message:
    """Build the reply to *call*; used by peers and test fixtures."""
    return (
        MessageBuilder()
        .reply(call.serial)
        .to(call.sender)
        .body(signature, body)
        .build()
    )


def error(call: Message, name: str, text: str = "") -> Message:
    builder = MessageBuilder().error(call.serial, name).to(call.sender)
    if text:
        builder.body("s", [text])
    return builder.build()
