from . import fields
from . import message
from . import signature
from . import wire
from . import introspection
from . import builder
from . import factory

from .message import Message, MessageType, Variant


"""
busline Protocol Layer
======================

This package defines the bus message model and everything needed to turn
it into bytes and back. It has no knowledge of sockets or threads.

---------------------------------------------------------------------

Layer Architecture Overview
---------------------------

Connection (busline.connection)
    Owns the socket, the dispatcher thread, and reply correlation

    │
    ▼
Message Builder (builder.py, factory.py)
    Fluent construction of call/return/error messages

    │
    ▼
Message Model (message.py)
    - Message
    - MessageType
    - Variant

    │
    ▼
Signatures (signature.py)
    Type signature parsing and local argument validation

    │
    ▼
Wire Codec (wire.py)
    Message <-> frame bytes, with incomplete/malformed outcomes

Introspection (introspection.py)
    Introspect XML -> Introspect / InterfaceData / MethodData

Field Vocabulary (fields.py)
    Header field codes, flags, well-known bus names

---------------------------------------------------------------------
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
