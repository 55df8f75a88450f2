""" The line-oriented authentication handshake that unlocks binary framing
    on a freshly dialled bus socket. Only the EXTERNAL mechanism is
    attempted, exactly once::

        C: \\0
        C: AUTH EXTERNAL <hex-encoded decimal uid>\\r\\n
        S: OK <hex guid>\\r\\n
        C: BEGIN\\r\\n

    Any other response fails the handshake and BEGIN is never sent.
"""

import logging
import os
import re
import socket

from .. import config
from ..errors import AuthError


logger = logging.getLogger(__name__)

_ok = re.compile(rb'^OK ([0-9a-fA-F]+)$')


class LineReader:
    """ Accumulate bytes from *sock* until a CRLF terminator is found, rather
        than trusting a single read to hold the whole response. Lines longer
        than *max_line* bytes are rejected. Any bytes received past the
        terminator are kept in :attr:`buffer`.
    """

    chunk = 256

    def __init__(self, sock, max_line):
        self.sock = sock
        self.max_line = max_line
        self.buffer = bytearray()


    def readline(self):

        while True:
            index = self.buffer.find(b'\r\n')

            if index >= 0:
                if index > self.max_line:
                    break
                line = bytes(self.buffer[:index])
                del self.buffer[:index + 2]
                return line

            if len(self.buffer) > self.max_line:
                break

            try:
                received = self.sock.recv(self.chunk)
            except socket.timeout:
                raise AuthError('timed out waiting for the authentication response')
            except OSError as e:
                raise AuthError('authentication failed, socket error: ' + str(e))

            if received == b'':
                raise AuthError('connection closed during authentication')

            self.buffer.extend(received)

        raise AuthError('authentication response longer than %d bytes' % (self.max_line))


# end of class LineReader



def external_identity(uid=None):
    """ The EXTERNAL mechanism identifies us by our numeric user id, sent as
        the hex encoding of its decimal ASCII representation.
    """

    if uid is None:
        uid = os.getuid()

    return str(uid).encode('ascii').hex()



def authenticate(sock, expected_guid=None, uid=None, settings=None):
    """ Run the handshake on *sock*. Returns a tuple of the guid sent by the
        bus, and any bytes that arrived after the OK line; those belong to
        the binary stream and must be handed to the frame buffer.

        If *expected_guid* is set, the guid from the bus must match it.
    """

    if settings is None:
        settings = config.get()

    previous = sock.gettimeout()
    sock.settimeout(settings.auth_timeout)

    try:
        guid, leftover = _authenticate(sock, expected_guid, uid, settings)
    finally:
        sock.settimeout(previous)

    logger.info('authenticated, bus guid %s', guid)
    return guid, leftover



def _authenticate(sock, expected_guid, uid, settings):

    identity = external_identity(uid)
    request = 'AUTH EXTERNAL ' + identity + '\r\n'

    try:
        sock.sendall(b'\0')
        sock.sendall(request.encode('ascii'))
    except OSError as e:
        raise AuthError('cannot send authentication request: ' + str(e))

    reader = LineReader(sock, settings.max_line)
    line = reader.readline()

    matched = _ok.match(line)

    if matched is None:
        raise AuthError('authentication rejected: ' + repr(line.decode('ascii', 'replace')))

    guid = matched.group(1).decode('ascii')

    if expected_guid is not None and guid.lower() != expected_guid.lower():
        raise AuthError('bus guid %s does not match the address guid %s' % (guid, expected_guid))

    try:
        sock.sendall(b'BEGIN\r\n')
    except OSError as e:
        raise AuthError('cannot send BEGIN: ' + str(e))

    return guid, bytes(reader.buffer)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
