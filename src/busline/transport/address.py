""" Locate and open the byte-stream socket to the bus daemon. A bus address
    is a semicolon separated list of entries such as::

        unix:abstract=/tmp/dbus-XXXX,guid=0123456789abcdef
        unix:path=/var/run/dbus/system_bus_socket

    The entries are tried in order; the first one that can be dialled wins.
    Nothing is retried.
"""

import logging
import os
import socket
import urllib.parse

from .. import config
from ..errors import ConnectionError


logger = logging.getLogger(__name__)


class Address:
    """ One parsed entry of a bus address: the *transport* name and its
        key/value *options*, with %-escapes already decoded.
    """

    def __init__(self, transport, options):
        self.transport = transport
        self.options = dict(options)


    def __repr__(self):
        return 'Address(%r, %r)' % (self.transport, self.options)


    @property
    def guid(self):
        return self.options.get('guid')


    def socket_path(self):
        """ Return the address to pass to :func:`socket.socket.connect` for a
            unix transport. Abstract-namespace names are prefixed with a NUL.
        """

        if self.transport != 'unix':
            raise ConnectionError('unsupported bus transport: ' + repr(self.transport))

        try:
            return '\0' + self.options['abstract']
        except KeyError:
            pass

        try:
            return self.options['path']
        except KeyError:
            pass

        raise ConnectionError('unix bus address needs an abstract= or path= key: ' + repr(self.options))


# end of class Address



def parse(address):
    """ Parse a full bus *address* string into a list of :class:`Address`
        instances. Raises :class:`busline.errors.ConnectionError` if the
        string is empty or malformed.
    """

    if not address:
        raise ConnectionError('bus address is empty')

    entries = list()

    for entry in address.split(';'):
        if entry == '':
            continue

        try:
            transport, rest = entry.split(':', 1)
        except ValueError:
            raise ConnectionError('malformed bus address, no transport: ' + repr(entry))

        if transport == '':
            raise ConnectionError('malformed bus address, empty transport: ' + repr(entry))

        options = dict()

        for pair in rest.split(','):
            if pair == '':
                continue
            try:
                key, value = pair.split('=', 1)
            except ValueError:
                raise ConnectionError('malformed bus address, expected key=value: ' + repr(pair))

            if key == '' or value == '':
                raise ConnectionError('malformed bus address, empty key or value: ' + repr(pair))
            if key in options:
                raise ConnectionError('malformed bus address, duplicate key: ' + repr(key))

            try:
                options[key] = urllib.parse.unquote(value, errors='strict')
            except UnicodeDecodeError:
                raise ConnectionError('malformed bus address, bad escape in: ' + repr(pair))

        entries.append(Address(transport, options))

    if len(entries) == 0:
        raise ConnectionError('bus address is empty')

    return entries



def session_address(settings=None):
    """ Return the session bus address from the environment.
    """

    if settings is None:
        settings = config.get()

    variable = settings.session_variable

    try:
        address = os.environ[variable]
    except KeyError:
        raise ConnectionError('session bus address not set: $' + variable + ' is missing')

    if address == '':
        raise ConnectionError('session bus address not set: $' + variable + ' is empty')

    return address



def system_address(settings=None):

    if settings is None:
        settings = config.get()

    return settings.system_bus_address



def connect(address):
    """ Dial the first usable entry of *address*. Returns a tuple of the
        connected stream socket and the :class:`Address` entry used.
    """

    entries = parse(address)
    failures = list()

    for entry in entries:
        try:
            target = entry.socket_path()
        except ConnectionError as e:
            failures.append(str(e))
            continue

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)

        try:
            sock.connect(target)
        except OSError as e:
            sock.close()
            failures.append('cannot connect to %s: %s' % (repr(target.lstrip('\0')), e))
            continue

        logger.info('connected to bus at %s', target.lstrip('\0'))
        return sock, entry

    raise ConnectionError('; '.join(failures))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
