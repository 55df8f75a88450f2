""" A class representation of a bus message. Instances are created for each
    outgoing call and for each frame decoded from the wire; beyond that they
    are transient containers.
"""

import enum

from . import fields


class MessageType(enum.IntEnum):
    """ The message type tag, with the numeric values used on the wire.
    """

    METHOD_CALL = 1
    METHOD_RETURN = 2
    ERROR = 3
    SIGNAL = 4


class Variant:
    """ A value tagged with its own type *signature*, for use wherever a
        ``v`` appears in a signature. Decoded variants are also returned as
        :class:`Variant` instances so the original type is not lost.
    """

    __slots__ = ('signature', 'value')

    def __init__(self, signature, value):
        self.signature = signature
        self.value = value


    def __eq__(self, other):
        if isinstance(other, Variant):
            return self.signature == other.signature and self.value == other.value
        return NotImplemented


    def __hash__(self):
        return hash((self.signature, repr(self.value)))


    def __repr__(self):
        return 'Variant(%r, %r)' % (self.signature, self.value)


# end of class Variant



class Message:
    """ The :class:`Message` provides a very thin encapsulation of what it
        means to be a message on the bus. The fields mirror the header fields
        on the wire: the message *type*, the object *path*, the *interface*
        and *member* names, the *destination*, and the type *signature* of
        the *body*, which is an ordered list of parameter values.

        The *serial* is assigned when the message is sent, not when it is
        constructed; incoming replies carry the *reply_serial* of the call
        they answer.

        :ivar flags: Header flag bits, see :mod:`busline.protocol.fields`.
        :ivar sender: Unique name of the sending connection, set by the bus.
        :ivar error_name: Name of the error, for ERROR messages only.
    """

    def __init__(self, type, path=None, interface=None, member=None,
                       destination=None, signature='', body=None,
                       serial=0, reply_serial=None, error_name=None,
                       sender=None, flags=0, unix_fds=None):

        self.type = MessageType(type)
        self.path = path
        self.interface = interface
        self.member = member
        self.destination = destination
        self.signature = signature or ''
        self.serial = serial
        self.reply_serial = reply_serial
        self.error_name = error_name
        self.sender = sender
        self.flags = flags
        self.unix_fds = unix_fds

        if body is None:
            body = list()
        else:
            body = list(body)

        self.body = body


    def __repr__(self):

        parts = list()
        parts.append(self.type.name)
        parts.append('serial=%d' % (self.serial))

        for name in ('reply_serial', 'path', 'interface', 'member', 'error_name', 'destination', 'sender'):
            value = getattr(self, name)
            if value is not None:
                parts.append('%s=%r' % (name, value))

        if self.signature:
            parts.append('signature=%r' % (self.signature))
            parts.append('body=%r' % (self.body,))

        return 'Message(' + ', '.join(parts) + ')'


    @property
    def expects_reply(self):
        return self.type == MessageType.METHOD_CALL and not self.flags & fields.NO_REPLY_EXPECTED


    def first(self, default=None):
        """ Return the first body parameter, or *default* if the body is
            empty. Most replies carry a single value.
        """

        if self.body:
            return self.body[0]
        return default


# end of class Message


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
