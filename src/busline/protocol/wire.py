"""Binary wire codec: Message <-> frame bytes.

Layout of one frame (all multi-byte values in the endianness named by the
first byte)::

    y endianness ('l' little, 'B' big)
    y message type
    y flags
    y protocol version (1)
    u body length
    u serial
    a(yv) header fields
    ... padding to a multiple of 8 ...
    body, as described by the SIGNATURE header field

:func:`unmarshal` distinguishes a short buffer (:class:`Incomplete`) from
bytes that can never become a valid frame (:class:`ProtocolError`).
"""

from __future__ import annotations

import struct
from typing import Any, Dict, List, Tuple

from ..errors import InvalidArguments, OversizedFrame, ProtocolError
from . import fields
from .message import Message, MessageType, Variant
from .signature import ALIGNMENT, MAX_DEPTH, check, split, struct_fields, validate


MAX_MESSAGE = 134217728
MAX_ARRAY = 67108864

# Containers and variants together may nest no deeper than this.
MAX_NESTING = 2 * MAX_DEPTH

FORMATS = {
    "y": "B", "b": "I", "n": "h", "q": "H", "i": "i", "u": "I",
    "x": "q", "t": "Q", "d": "d", "h": "I",
}

ENDIANNESS = {ord("l"): "<", ord("B"): ">"}

# Header field code -> (attribute name, signature)
HEADER_FIELDS = {
    fields.PATH: ("path", "o"),
    fields.INTERFACE: ("interface", "s"),
    fields.MEMBER: ("member", "s"),
    fields.ERROR_NAME: ("error_name", "s"),
    fields.REPLY_SERIAL: ("reply_serial", "u"),
    fields.DESTINATION: ("destination", "s"),
    fields.SENDER: ("sender", "s"),
    fields.SIGNATURE: ("signature", "g"),
    fields.UNIX_FDS: ("unix_fds", "u"),
}

REQUIRED = {
    MessageType.METHOD_CALL: ("path", "member"),
    MessageType.METHOD_RETURN: ("reply_serial",),
    MessageType.ERROR: ("error_name", "reply_serial"),
    MessageType.SIGNAL: ("path", "interface", "member"),
}


class Incomplete(Exception):
    """The buffer does not yet hold one complete frame."""


class _Writer:

    def __init__(self, prefix: str):
        self.prefix = prefix
        self.buffer = bytearray()

    def align(self, boundary: int) -> None:
        self.buffer.extend(b"\0" * (-len(self.buffer) % boundary))

    def write(self, code: str, value: Any) -> None:
        first = code[0]

        if first in FORMATS:
            self.align(ALIGNMENT[first])
            if first == "b":
                value = 1 if value else 0
            self.buffer.extend(struct.pack(self.prefix + FORMATS[first], value))

        elif first in "so":
            data = value.encode("utf-8")
            self.write("u", len(data))
            self.buffer.extend(data)
            self.buffer.append(0)

        elif first == "g":
            data = value.encode("ascii")
            self.buffer.append(len(data))
            self.buffer.extend(data)
            self.buffer.append(0)

        elif first == "v":
            self.write("g", value.signature)
            self.write(value.signature, value.value)

        elif first == "a":
            self.align(4)
            length_at = len(self.buffer)
            self.buffer.extend(b"\0\0\0\0")

            element = code[1:]
            self.align(ALIGNMENT[element[0]])
            start = len(self.buffer)

            if element[0] == "{":
                key_code, value_code = struct_fields(element)
                for key, item in value.items():
                    self.align(8)
                    self.write(key_code, key)
                    self.write(value_code, item)
            elif element == "y" and isinstance(value, (bytes, bytearray)):
                self.buffer.extend(value)
            else:
                for item in value:
                    self.write(element, item)

            length = len(self.buffer) - start
            if length > MAX_ARRAY:
                raise InvalidArguments(f"array of {length} bytes exceeds the {MAX_ARRAY} byte limit")
            struct.pack_into(self.prefix + "I", self.buffer, length_at, length)

        elif first == "(":
            self.align(8)
            for member, item in zip(struct_fields(code), value):
                self.write(member, item)

        else:
            raise InvalidArguments(f"cannot marshal type {code!r}")


class _Reader:

    def __init__(self, data, prefix: str, offset: int = 0):
        self.data = data
        self.prefix = prefix
        self.offset = offset

    def _need(self, size: int) -> None:
        if self.offset + size > len(self.data):
            raise ProtocolError("value runs past the end of the frame")

    def align(self, boundary: int) -> None:
        padding = -self.offset % boundary
        self._need(padding)
        self.offset += padding

    def read(self, code: str, depth: int = 0) -> Any:
        first = code[0]

        if depth > MAX_NESTING:
            raise ProtocolError(f"values nested more than {MAX_NESTING} levels deep")

        if first in FORMATS:
            self.align(ALIGNMENT[first])
            fmt = self.prefix + FORMATS[first]
            size = struct.calcsize(fmt)
            self._need(size)
            (value,) = struct.unpack_from(fmt, self.data, self.offset)
            self.offset += size
            if first == "b":
                if value not in (0, 1):
                    raise ProtocolError(f"invalid boolean value {value}")
                value = bool(value)
            return value

        if first in "sog":
            if first == "g":
                self._need(1)
                length = self.data[self.offset]
                self.offset += 1
            else:
                length = self.read("u")
            self._need(length + 1)
            raw = bytes(self.data[self.offset:self.offset + length])
            if self.data[self.offset + length] != 0:
                raise ProtocolError("string is not NUL terminated")
            self.offset += length + 1
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ProtocolError(f"string is not valid UTF-8: {exc}") from exc

        if first == "v":
            signature = self.read("g")
            try:
                types = split(signature)
            except InvalidArguments as exc:
                raise ProtocolError(str(exc)) from exc
            if len(types) != 1:
                raise ProtocolError(f"variant signature {signature!r} is not a single complete type")
            return Variant(signature, self.read(signature, depth + 1))

        if first == "a":
            length = self.read("u")
            if length > MAX_ARRAY:
                raise ProtocolError(f"array length {length} exceeds the {MAX_ARRAY} byte limit")
            element = code[1:]
            self.align(ALIGNMENT[element[0]])
            self._need(length)
            end = self.offset + length

            if element[0] == "{":
                key_code, value_code = struct_fields(element)
                result: Dict[Any, Any] = {}
                while self.offset < end:
                    self.align(8)
                    key = self.read(key_code, depth + 1)
                    result[key] = self.read(value_code, depth + 1)
            elif element == "y":
                result = bytes(self.data[self.offset:end])
                self.offset = end
            else:
                result = []
                while self.offset < end:
                    result.append(self.read(element, depth + 1))

            if self.offset != end:
                raise ProtocolError("array contents do not match the declared length")
            return result

        if first == "(":
            self.align(8)
            return tuple(self.read(member, depth + 1) for member in struct_fields(code))

        raise ProtocolError(f"cannot unmarshal type {code!r}")


def marshal(msg: Message, endian: str = "l") -> bytes:
    """Serialize *msg* to one complete frame.

    The message must already carry a nonzero serial; its body is checked
    against its signature first.
    """

    if not msg.serial:
        raise ValueError("messages must have a serial to be put on the wire")

    prefix = "<" if endian == "l" else ">"

    validate(msg.signature, msg.body)

    body = _Writer(prefix)
    for code, value in zip(split(msg.signature), msg.body):
        body.write(code, value)

    header_fields: List[Tuple[int, Variant]] = []
    for code, (name, sig) in HEADER_FIELDS.items():
        value = getattr(msg, name)
        if value is None or value == "":
            continue
        check(sig, value)
        header_fields.append((code, Variant(sig, value)))

    header = _Writer(prefix)
    header.write("y", ord(endian))
    header.write("y", int(msg.type))
    header.write("y", msg.flags)
    header.write("y", fields.PROTOCOL_VERSION)
    header.write("u", len(body.buffer))
    header.write("u", msg.serial)
    header.write("a(yv)", header_fields)
    header.align(8)

    frame = bytes(header.buffer + body.buffer)
    if len(frame) > MAX_MESSAGE:
        raise InvalidArguments(f"message of {len(frame)} bytes exceeds the {MAX_MESSAGE} byte limit")
    return frame


def frame_length(data) -> int:
    """Return the total length of the frame at the front of *data*.

    Only the 16 byte fixed prefix is needed; raises :class:`Incomplete` when
    even that is not yet available.
    """

    if len(data) < 16:
        raise Incomplete()

    try:
        prefix = ENDIANNESS[data[0]]
    except KeyError:
        raise ProtocolError(f"invalid endianness marker {bytes(data[:1])!r}") from None

    if data[3] != fields.PROTOCOL_VERSION:
        raise ProtocolError(f"unsupported protocol version {data[3]}")

    body_length, _serial, fields_length = struct.unpack_from(prefix + "III", data, 4)
    header_end = 16 + fields_length
    return header_end + (-header_end % 8) + body_length


def unmarshal(data, max_size: int = MAX_MESSAGE) -> Tuple[Message, int]:
    """Decode one frame from the front of *data*.

    Returns the :class:`Message` and the number of bytes it occupied.
    Raises :class:`Incomplete` if more bytes are needed,
    :class:`OversizedFrame` if the declared frame is larger than *max_size*,
    and :class:`ProtocolError` for anything malformed.
    """

    total = frame_length(data)
    if total > max_size:
        raise OversizedFrame(f"frame of {total} bytes exceeds the {max_size} byte limit")
    if len(data) < total:
        raise Incomplete()

    prefix = ENDIANNESS[data[0]]
    frame = bytes(data[:total])

    try:
        msg_type = MessageType(frame[1])
    except ValueError:
        raise ProtocolError(f"unknown message type {frame[1]}") from None

    flags = frame[2]
    body_length, serial = struct.unpack_from(prefix + "II", frame, 4)
    if serial == 0:
        raise ProtocolError("message serial must not be zero")

    reader = _Reader(frame, prefix, 12)
    header: Dict[str, Any] = {}
    for code, variant in reader.read("a(yv)"):
        try:
            name, sig = HEADER_FIELDS[code]
        except KeyError:
            # Unknown header fields must be ignored.
            continue
        if variant.signature != sig:
            raise ProtocolError(
                f"header field {code} has signature {variant.signature!r}, expected {sig!r}"
            )
        header[name] = variant.value
    reader.align(8)

    signature = header.pop("signature", "")
    try:
        types = split(signature)
    except InvalidArguments as exc:
        raise ProtocolError(str(exc)) from exc

    body = [reader.read(code) for code in types]
    if reader.offset != total:
        raise ProtocolError(
            f"body occupies {reader.offset - (total - body_length)} bytes, header declares {body_length}"
        )

    for name in REQUIRED[msg_type]:
        if header.get(name) is None:
            raise ProtocolError(f"{msg_type.name} message is missing its {name} header field")

    msg = Message(msg_type, signature=signature, body=body, serial=serial, flags=flags, **header)
    return msg, total
