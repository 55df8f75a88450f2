from __future__ import annotations

from typing import Any, Optional, Sequence

from .message import Message, MessageType


class MessageBuilder:

    def __init__(self):
        self._type: Optional[MessageType] = None
        self._path: Optional[str] = None
        self._interface: Optional[str] = None
        self._member: Optional[str] = None
        self._dest: Optional[str] = None
        self._signature = ""
        self._body: Sequence[Any] = ()
        self._flags = 0
        self._reply_serial: Optional[int] = None
        self._error_name: Optional[str] = None

    # Semantic type setters
    def call(self, member: str):
        self._type = MessageType.METHOD_CALL
        self._member = member
        return self

    def reply(self, serial: int):
        self._type = MessageType.METHOD_RETURN
        self._reply_serial = serial
        return self

    def error(self, serial: int, name: str):
        self._type = MessageType.ERROR
        self._reply_serial = serial
        self._error_name = name
        return self

    # Routing
    def on(self, path: str, interface: Optional[str] = None):
        self._path = path
        self._interface = interface
        return self

    def to(self, destination: Optional[str]):
        self._dest = destination
        return self

    # Data
    def body(self, signature: str, values: Sequence[Any]):
        self._signature = signature
        self._body = values
        return self

    def flags(self, flags: int):
        self._flags |= flags
        return self

    # Finalize
    def build(self) -> Message:

        if self._type is None:
            raise ValueError("Message type not specified")

        return Message(
            self._type,
            path=self._path,
            interface=self._interface,
            member=self._member,
            destination=self._dest,
            signature=self._signature,
            body=self._body,
            reply_serial=self._reply_serial,
            error_name=self._error_name,
            flags=self._flags,
        )
