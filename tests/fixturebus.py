""" This is a super-simple stand-in for a bus daemon, to act as a foil for
    the client-facing unit tests. It listens on a unix socket, performs the
    server side of the authentication handshake, and answers a handful of
    calls using busline's own codec. The run_bus() fixture defined in
    conftest.py starts one per test.
"""

import itertools
import socket
import threading

from busline.protocol import factory
from busline.protocol import wire
from busline.protocol.message import MessageType
from busline.transport.framing import FrameBuffer


guid = '0123456789abcdef0123456789abcdef'
unique_name = ':1.42'

echo_xml = '''<!DOCTYPE node PUBLIC "-//freedesktop//DTD D-BUS Object Introspection 1.0//EN"
 "http://www.freedesktop.org/standards/dbus/1.0/introspect.dtd">
<node>
  <interface name="org.freedesktop.DBus.Introspectable">
    <method name="Introspect">
      <arg name="xml_data" type="s" direction="out"/>
    </method>
  </interface>
  <interface name="com.example.Echo">
    <method name="Ping">
      <arg name="text" type="s" direction="in"/>
      <arg name="echo" type="s" direction="out"/>
    </method>
    <method name="Add">
      <arg name="a" type="i"/>
      <arg name="b" type="i"/>
      <arg name="sum" type="i" direction="out"/>
    </method>
    <method name="Fail"/>
    <method name="Silent"/>
    <method name="Twice"/>
    <signal name="Pinged">
      <arg name="text" type="s"/>
    </signal>
  </interface>
  <node name="child"/>
</node>
'''


class FixtureBus:
    """ Accept exactly one client connection on a unix socket at *path*.
        The response to the AUTH line can be replaced via *auth_response*.

        Setting :attr:`hold` to a number N makes the bus withhold replies to
        Ping until N of them are outstanding, and then answer all of them in
        reverse order.
    """

    def __init__(self, path, auth_response=None):

        if auth_response is None:
            auth_response = ('OK ' + guid + '\r\n').encode()

        self.path = str(path)
        self.address = 'unix:path=%s,guid=%s' % (self.path, guid)
        self.auth_response = auth_response
        self.auth_lines = list()
        self.raw = bytearray()
        self.received = list()
        self.hold = 0
        self.held = list()
        self.objects = {'/com/example/Echo': echo_xml}

        self.conn = None
        self.finished = threading.Event()
        self._serials = itertools.count(1)

        self.listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.listener.bind(self.path)
        self.listener.listen(1)

        self.thread = threading.Thread(target=self.run)
        self.thread.daemon = True
        self.thread.start()


    def run(self):

        try:
            self.conn, peer = self.listener.accept()
            self._serve()
        except OSError:
            pass
        finally:
            self.finished.set()


    def _recv(self):
        received = self.conn.recv(4096)
        self.raw.extend(received)
        return received


    def _serve(self):

        pending = bytearray()

        while b'\r\n' not in pending:
            received = self._recv()
            if received == b'':
                return
            pending.extend(received)

        if pending[:1] != b'\0':
            return

        line, pending = pending[1:].split(b'\r\n', 1)
        self.auth_lines.append(bytes(line))
        self.conn.sendall(self.auth_response)

        if self.auth_response.startswith(b'OK') == False:
            # Keep reading so the test can confirm BEGIN is never sent.
            while self._recv() != b'':
                pass
            return

        while b'\r\n' not in pending:
            received = self._recv()
            if received == b'':
                return
            pending.extend(received)

        line, pending = bytes(pending).split(b'\r\n', 1)
        self.auth_lines.append(line)

        if line != b'BEGIN':
            return

        frames = FrameBuffer()
        frames.append(pending)

        while True:
            while True:
                message = frames.try_pop()
                if message is None:
                    break
                self.received.append(message)
                self.handle(message)

            received = self._recv()
            if received == b'':
                return
            frames.append(received)


    def handle(self, call):

        if call.type != MessageType.METHOD_CALL:
            return

        member = call.member

        if member == 'Hello':
            self.send(factory.method_return(call, 's', [unique_name]))

        elif member == 'Introspect':
            try:
                xml = self.objects[call.path]
            except KeyError:
                self.send(factory.error(call, 'org.freedesktop.DBus.Error.UnknownObject', 'no object at ' + call.path))
            else:
                self.send(factory.method_return(call, 's', [xml]))

        elif member == 'Ping':
            reply = factory.method_return(call, 's', [call.body[0]])
            if self.hold:
                self.held.append(reply)
                if len(self.held) >= self.hold:
                    self.held.reverse()
                    for reply in self.held:
                        self.send(reply)
                    self.held = list()
            else:
                self.send(reply)

        elif member == 'Add':
            self.send(factory.method_return(call, 'i', [call.body[0] + call.body[1]]))

        elif member == 'Fail':
            self.send(factory.error(call, 'com.example.Error.Failed', 'failed on purpose'))

        elif member == 'Twice':
            self.send(factory.method_return(call, 's', ['first']))
            self.send(factory.method_return(call, 's', ['second']))

        elif member == 'Silent':
            pass

        elif member == 'Garbage':
            self.conn.sendall(b'X' * 32)

        else:
            self.send(factory.error(call, 'org.freedesktop.DBus.Error.UnknownMethod', member))


    def send(self, message):
        message.serial = next(self._serials)
        self.conn.sendall(wire.marshal(message))


    def calls(self, member):
        return [message for message in self.received if message.member == member]


    def hang_up(self):
        self.conn.shutdown(socket.SHUT_RDWR)


    def close(self):

        for sock in (self.conn, self.listener):
            if sock is None:
                continue
            try:
                sock.close()
            except OSError:
                pass


# end of class FixtureBus


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
