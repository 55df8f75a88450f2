import socket
import threading
import time

import pytest

import busline
from busline.errors import AuthError
from busline.transport import auth


def read_all(sock):

    received = bytearray()

    while True:
        chunk = sock.recv(4096)
        if chunk == b'':
            return bytes(received)
        received.extend(chunk)


def test_external_identity():

    assert auth.external_identity(1000) == '31303030'
    assert auth.external_identity(0) == '30'


def test_accepted(settings):

    client, server = socket.socketpair()
    server.sendall(b'OK 0123456789abcdef\r\n')

    guid, leftover = auth.authenticate(client, uid=1000, settings=settings)

    assert guid == '0123456789abcdef'
    assert leftover == b''

    client.close()
    sent = read_all(server)
    assert sent == b'\0AUTH EXTERNAL 31303030\r\nBEGIN\r\n'
    server.close()


def test_chunked_response(settings):
    """ The response may be split across any number of reads; the handshake
        must keep reading until the line terminator arrives.
    """

    client, server = socket.socketpair()
    response = b'OK 00ff00ff\r\n'

    def trickle():
        for byte in response:
            server.sendall(bytes((byte,)))
            time.sleep(0.005)

    thread = threading.Thread(target=trickle)
    thread.start()

    guid, leftover = auth.authenticate(client, uid=0, settings=settings)
    thread.join()

    assert guid == '00ff00ff'

    client.close()
    assert read_all(server).endswith(b'BEGIN\r\n')
    server.close()


def test_leftover(settings):

    client, server = socket.socketpair()
    server.sendall(b'OK abcdef\r\nl\x02\x00\x01')

    guid, leftover = auth.authenticate(client, uid=0, settings=settings)
    assert leftover == b'l\x02\x00\x01'

    client.close()
    server.close()


def test_rejected(settings):
    """ Anything but OK fails the handshake, and BEGIN is never sent.
    """

    for response in (b'REJECTED EXTERNAL\r\n', b'ERROR\r\n', b'OK\r\n', b'OK not-hex\r\n', b'DATA\r\n'):
        client, server = socket.socketpair()
        server.sendall(response)

        with pytest.raises(AuthError):
            auth.authenticate(client, uid=0, settings=settings)

        client.close()
        sent = read_all(server)
        assert b'BEGIN' not in sent
        server.close()


def test_guid_mismatch(settings):

    client, server = socket.socketpair()
    server.sendall(b'OK aaaa\r\n')

    with pytest.raises(AuthError, match='does not match'):
        auth.authenticate(client, expected_guid='bbbb', uid=0, settings=settings)

    client.close()
    assert b'BEGIN' not in read_all(server)
    server.close()


def test_line_too_long(settings):

    client, server = socket.socketpair()
    server.sendall(b'OK ' + b'a' * 200)

    limited = settings.replace(max_line=64)

    with pytest.raises(AuthError, match='longer than'):
        auth.authenticate(client, uid=0, settings=limited)

    client.close()
    server.close()


def test_closed_and_timeout(settings):

    client, server = socket.socketpair()
    server.close()

    with pytest.raises(AuthError):
        auth.authenticate(client, uid=0, settings=settings)

    client.close()

    client, server = socket.socketpair()
    quick = settings.replace(auth_timeout=0.1)

    with pytest.raises(AuthError, match='timed out'):
        auth.authenticate(client, uid=0, settings=quick)

    assert client.gettimeout() is None

    client.close()
    server.close()


def test_initialize_rejected(run_bus, settings):
    """ A rejected handshake surfaces from initialize() and the bus never
        sees BEGIN.
    """

    run_bus.auth_response = b'REJECTED EXTERNAL\r\n'
    connection = busline.open_session(run_bus.address, settings)

    with pytest.raises(AuthError):
        connection.initialize()

    assert connection.closed
    assert run_bus.finished.wait(2)
    assert b'BEGIN' not in run_bus.raw
    assert run_bus.auth_lines[0].startswith(b'AUTH EXTERNAL ')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
