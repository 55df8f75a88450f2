"""Type signature parsing and local validation of call arguments.

A signature is a string of type codes; :func:`split` breaks it into its
complete types and :func:`validate` checks an ordered list of Python values
against it. The Python type of each value is its discriminant:

=========  ==========================================================
Code       Python value
=========  ==========================================================
``y``      ``int`` in 0..255
``b``      ``bool``
``nqiuxt`` ``int`` within the signed/unsigned range of its width
``h``      ``int`` (index into the out-of-band file descriptor list)
``d``      ``float`` (or ``int``)
``s``      ``str`` without NUL characters
``o``      ``str`` holding a valid object path
``g``      ``str`` holding a valid signature
``v``      :class:`~busline.protocol.message.Variant`
``a{..}``  ``dict``
``ay``     ``bytes`` (or a list of ``int``)
``a..``    ``list`` or ``tuple``
``(..)``   ``tuple`` or ``list`` of matching length
=========  ==========================================================
"""

from __future__ import annotations

import re
from typing import Any, List, Sequence

from ..errors import InvalidArguments
from .message import Variant


BASIC = "ybnqiuxtdhsog"
FIXED = "ybnqiuxtdh"

ALIGNMENT = {
    "y": 1, "b": 4, "n": 2, "q": 2, "i": 4, "u": 4, "x": 8, "t": 8,
    "d": 8, "h": 4, "s": 4, "o": 4, "g": 1, "a": 4, "(": 8, "{": 8,
    "v": 1,
}

RANGES = {
    "y": (0, 0xFF),
    "n": (-0x8000, 0x7FFF),
    "q": (0, 0xFFFF),
    "i": (-0x80000000, 0x7FFFFFFF),
    "u": (0, 0xFFFFFFFF),
    "h": (0, 0xFFFFFFFF),
    "x": (-0x8000000000000000, 0x7FFFFFFFFFFFFFFF),
    "t": (0, 0xFFFFFFFFFFFFFFFF),
}

MAX_SIGNATURE = 255
MAX_DEPTH = 32

_object_path = re.compile(r"^/([A-Za-z0-9_]+(/[A-Za-z0-9_]+)*)?$")


def is_object_path(value: str) -> bool:
    return bool(_object_path.match(value))


def _end(signature: str, start: int, arrays: int = 0, structs: int = 0) -> int:
    """Return the index just past the complete type starting at *start*."""

    if start >= len(signature):
        raise InvalidArguments(f"incomplete signature: {signature!r}")

    if arrays > MAX_DEPTH or structs > MAX_DEPTH:
        raise InvalidArguments(f"signature nested too deeply: {signature!r}")

    code = signature[start]

    if code in BASIC or code == "v":
        return start + 1

    if code == "a":
        if start + 1 < len(signature) and signature[start + 1] == "{":
            key = start + 2
            if key >= len(signature) or signature[key] not in BASIC:
                raise InvalidArguments(f"dict key must be a basic type: {signature!r}")
            close = _end(signature, key + 1, arrays + 1, structs + 1)
            if close >= len(signature) or signature[close] != "}":
                raise InvalidArguments(f"dict entry must hold exactly two types: {signature!r}")
            return close + 1
        return _end(signature, start + 1, arrays + 1, structs)

    if code == "(":
        position = start + 1
        if position < len(signature) and signature[position] == ")":
            raise InvalidArguments(f"empty struct in signature: {signature!r}")
        while True:
            if position >= len(signature):
                raise InvalidArguments(f"unterminated struct in signature: {signature!r}")
            if signature[position] == ")":
                return position + 1
            position = _end(signature, position, arrays, structs + 1)

    raise InvalidArguments(f"invalid type code {code!r} in signature {signature!r}")


def split(signature: str) -> List[str]:
    """Split *signature* into its complete types.

    >>> split("sa{sv}(ii)")
    ['s', 'a{sv}', '(ii)']
    """

    if not isinstance(signature, str):
        raise InvalidArguments(f"signature must be a string, not {type(signature).__name__}")

    if len(signature) > MAX_SIGNATURE:
        raise InvalidArguments("signature longer than 255 characters")

    types = []
    position = 0
    while position < len(signature):
        end = _end(signature, position)
        types.append(signature[position:end])
        position = end
    return types


def is_single(signature: str) -> bool:
    try:
        return len(split(signature)) == 1
    except InvalidArguments:
        return False


def struct_fields(signature: str) -> List[str]:
    """Complete types inside a ``(..)`` or ``{..}`` signature."""
    return split(signature[1:-1])


def validate(signature: str, values: Sequence[Any]) -> None:
    """Check that *values* satisfy *signature*, argument by argument.

    Raises :class:`~busline.errors.InvalidArguments` naming the first
    offending argument.
    """

    types = split(signature)

    if len(types) != len(values):
        raise InvalidArguments(
            f"signature {signature!r} expects {len(types)} argument(s), got {len(values)}"
        )

    for position, (code, value) in enumerate(zip(types, values)):
        try:
            check(code, value)
        except InvalidArguments as exc:
            raise InvalidArguments(f"argument {position}: {exc}") from None


def check(code: str, value: Any) -> None:
    """Check a single *value* against the single complete type *code*."""

    first = code[0]

    if first in RANGES:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidArguments(f"expected int for {code!r}, got {type(value).__name__}")
        low, high = RANGES[first]
        if value < low or value > high:
            raise InvalidArguments(f"{value} out of range for {code!r}")
        return

    if first == "b":
        if not isinstance(value, bool):
            raise InvalidArguments(f"expected bool for 'b', got {type(value).__name__}")
        return

    if first == "d":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidArguments(f"expected float for 'd', got {type(value).__name__}")
        return

    if first in "sog":
        if not isinstance(value, str):
            raise InvalidArguments(f"expected str for {code!r}, got {type(value).__name__}")
        if "\0" in value:
            raise InvalidArguments("strings cannot contain NUL characters")
        if first == "o" and not is_object_path(value):
            raise InvalidArguments(f"invalid object path: {value!r}")
        if first == "g":
            split(value)
        return

    if first == "v":
        if not isinstance(value, Variant):
            raise InvalidArguments(f"expected Variant for 'v', got {type(value).__name__}")
        if not is_single(value.signature):
            raise InvalidArguments(f"variant signature must be a single complete type: {value.signature!r}")
        check(value.signature, value.value)
        return

    if first == "a":
        element = code[1:]
        if element[0] == "{":
            if not isinstance(value, dict):
                raise InvalidArguments(f"expected dict for {code!r}, got {type(value).__name__}")
            key_code, value_code = struct_fields(element)
            for key, item in value.items():
                check(key_code, key)
                check(value_code, item)
            return
        if element == "y" and isinstance(value, (bytes, bytearray)):
            return
        if not isinstance(value, (list, tuple)):
            raise InvalidArguments(f"expected list for {code!r}, got {type(value).__name__}")
        for item in value:
            check(element, item)
        return

    if first == "(":
        members = struct_fields(code)
        if not isinstance(value, (list, tuple)):
            raise InvalidArguments(f"expected tuple for {code!r}, got {type(value).__name__}")
        if len(value) != len(members):
            raise InvalidArguments(f"{code!r} expects {len(members)} fields, got {len(value)}")
        for member, item in zip(members, value):
            check(member, item)
        return

    raise InvalidArguments(f"invalid type code {code!r}")
