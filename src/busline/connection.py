""" The :class:`Connection` is the client end of a bus connection. It owns
    the socket, authenticates, runs a single background dispatcher thread
    that reads frames and correlates replies with outstanding calls, and
    lets any number of caller threads block on what is internally an
    asynchronous reply.
"""

import itertools
import logging
import queue
import socket
import threading

import zmq

from . import config
from .errors import ConnectionClosed, InvalidArguments, InvalidMethod, ProtocolError, RemoteError, Timeout, UnmatchedReply
from .protocol import factory
from .protocol import introspection
from .protocol import signature
from .protocol import wire
from .protocol.message import MessageType
from .proxy import Object
from .session import ReplyRegistry
from .transport import address
from .transport import auth
from .transport.framing import FrameBuffer


logger = logging.getLogger(__name__)

zmq_context = zmq.Context()

# Marker for "use the configured timeout", since None means wait forever.
default = object()

_instances = itertools.count()


class Connection:
    """ One connection to a bus daemon. A :class:`Connection` is built around
        an already dialled *sock*; use :func:`open_session` or
        :func:`open_system` rather than invoking the constructor directly.
        Nothing is sent until :func:`initialize` is called.

        :ivar guid: The bus guid received during authentication.
        :ivar unique_name: The name assigned to us by the bus in reply to
            ``Hello``; it always starts with a colon.
        :ivar errors: A :class:`queue.SimpleQueue` of exceptions raised in
            the background dispatcher, for callers that want to observe
            steady-state failures.
        :ivar error_handler: Optional callable invoked with each such
            exception, from the dispatcher thread.
    """

    def __init__(self, sock, entry=None, settings=None):

        if settings is None:
            settings = config.get()

        self.socket = sock
        self.entry = entry
        self.settings = settings

        self.guid = None
        self.unique_name = None

        self.buffer = FrameBuffer(settings.max_buffer, settings.read_size)
        self.replies = ReplyRegistry()

        self.errors = queue.SimpleQueue()
        self.error_handler = None

        # The lock around the socket is necessary in a multithreaded
        # application; otherwise, if two different threads both invoke
        # sendall(), the frames can and will get mixed together.

        self.socket_lock = threading.Lock()

        # The dispatcher blocks in a poll() on the bus socket; closing the
        # connection wakes it up through this internal signal socket.

        internal = 'inproc://busline.Connection:signal:%d' % (next(_instances))
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.setsockopt(zmq.LINGER, 0)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.setsockopt(zmq.LINGER, 0)
        self._signal_tx.connect(internal)

        self.shutdown = False
        self.closed = False
        self._close_lock = threading.Lock()
        self._thread = None


    def __enter__(self):
        return self


    def __exit__(self, *exc_info):
        self.close()


    def __repr__(self):
        return 'Connection(%r, unique_name=%r)' % (self.entry, self.unique_name)


    def initialize(self, uid=None):
        """ Authenticate, start the dispatcher, and send the ``Hello`` call
            that registers us with the bus. Setup failures are raised
            directly to the caller; the connection is closed if any step
            fails. Returns the connection for convenience.
        """

        expected = None
        if self.entry is not None:
            expected = self.entry.guid

        try:
            guid, leftover = auth.authenticate(self.socket, expected, uid, self.settings)
            self.guid = guid

            if leftover:
                self.buffer.append(leftover)

            self._thread = threading.Thread(target=self.run, name='busline.dispatcher')
            self._thread.daemon = True
            self._thread.start()

            reply = self.send_sync(factory.hello())
        except BaseException:
            self.close()
            raise

        self.unique_name = reply.first()
        logger.info('registered on the bus as %s', self.unique_name)
        return self


    def close(self):
        """ Stop the dispatcher, close the socket, and fail every call still
            waiting for a reply with :class:`busline.errors.ConnectionClosed`.
            Calling :func:`close` more than once is harmless.
        """

        with self._close_lock:
            if self.closed:
                return
            self.closed = True

        self.shutdown = True

        thread = self._thread
        if thread is not None and thread.is_alive():
            self._signal_tx.send(b'')
            if thread is not threading.current_thread():
                thread.join()

        self.replies.close(ConnectionClosed('connection closed'))

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Already disconnected.
            pass
        self.socket.close()

        self._signal_tx.close()
        self._signal_rx.close()

        logger.info('connection closed')


    def run(self):
        """ The dispatcher: drain every complete frame already buffered, then
            wait for the socket to become readable, read once, and repeat.
            Frames are dispatched strictly in the order they arrived.
        """

        # For a plain socket the poller reports the file descriptor, not
        # the socket object.

        descriptor = self.socket.fileno()

        poller = zmq.Poller()
        poller.register(descriptor, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        try:
            while self.shutdown == False:
                self._drain()

                for active, flag in poller.poll(10000):
                    if active == self._signal_rx:
                        self._signal_rx.recv(flags=zmq.NOBLOCK)
                    elif active == descriptor:
                        self._receive()
        except Exception as e:
            if self.shutdown:
                return
            logger.error('dispatcher stopped: %s', e)
            self._report(e)
            closed = ConnectionClosed('connection lost: ' + str(e))
            closed.__cause__ = e
            self.shutdown = True
            self.replies.close(closed)


    def _drain(self):

        while self.shutdown == False:
            message = self.buffer.try_pop()
            if message is None:
                return
            logger.debug('received %r', message)
            self._dispatch(message)


    def _receive(self):

        received = self.socket.recv(self.settings.read_size)

        if received == b'':
            raise ConnectionClosed('the bus closed the connection')

        self.buffer.append(received)


    def _dispatch(self, message):
        """ Route one incoming message. Replies are matched to outstanding
            calls by their reply serial, never by arrival order; a reply with
            no matching call is dropped. This is a call-only client, incoming
            method calls and signals are ignored.
        """

        if message.type == MessageType.METHOD_RETURN:
            pending = self.replies.pop(message.reply_serial)
            if pending is None:
                logger.debug('%s', UnmatchedReply(message.reply_serial))
                return
            pending._complete(message)

        elif message.type == MessageType.ERROR:
            text = ''
            if message.signature.startswith('s'):
                text = message.first()

            error = RemoteError(message.error_name, text, message)
            logger.warning('error reply to serial %d: %s', message.reply_serial, error)

            pending = self.replies.pop(message.reply_serial)
            if pending is None:
                self._report(error)
                return
            pending._fail(error)

        else:
            logger.debug('ignoring %s %s.%s', message.type.name, message.interface, message.member)


    def _report(self, error):

        self.errors.put(error)

        handler = self.error_handler
        if handler is None:
            return

        try:
            handler(error)
        except Exception:
            logger.exception('connection error handler raised')


    def send(self, message, on_reply=None):
        """ Assign *message* a fresh serial, register *on_reply* to be called
            with the reply, and write the message to the socket. Returns a
            :class:`busline.session.PendingReply` without waiting; the
            callback is invoked from the dispatcher thread and must not block
            on this connection.
        """

        pending = self.replies.register(message, on_reply)

        try:
            frame = wire.marshal(message)
        except BaseException:
            self.replies.discard(pending)
            raise

        try:
            with self.socket_lock:
                self.socket.sendall(frame)
        except OSError as e:
            self.replies.discard(pending)
            raise ConnectionClosed('cannot send %s: %s' % (message.member, e)) from e

        logger.debug('sent %r', message)
        return pending


    def send_sync(self, message, on_reply=None, timeout=default):
        """ Send *message* and block until its reply arrives. *on_reply*, if
            given, is invoked with the reply exactly once before this method
            returns the reply. The *timeout* defaults to the configured value;
            None waits forever.
        """

        if timeout is default:
            timeout = self.settings.timeout

        pending = self.send(message, on_reply)
        return pending.wait(timeout)


    def get_object(self, destination, path, timeout=default):
        """ Introspect the object at *path* on *destination* and return an
            :class:`busline.proxy.Object` caching the result. A failed
            introspection is not an error here: the object is returned with
            no interfaces, and any method call on it will fail locally.
        """

        try:
            reply = self.send_sync(factory.introspect(destination, path), timeout=timeout)
            text = reply.first()
            if not isinstance(text, str):
                raise ProtocolError('introspection reply does not carry a string')
            data = introspection.parse(text)
        except (RemoteError, ProtocolError, Timeout) as e:
            logger.info('introspection of %s %s failed: %s', destination, path, e)
            data = introspection.Introspect.empty()

        return Object(self, destination, path, data)


    def interface(self, obj, name):
        """ Return the interface view *name* of *obj*, or None if either is
            missing from the cached introspection.
        """

        if obj is None:
            return None

        return obj.interface(name)


    def call_method(self, interface, name, *args, on_reply=None, timeout=default):
        """ Call method *name* on *interface* with the supplied positional
            arguments, and return the reply message. Trailing None arguments
            are dropped. The declared input signature is taken from the
            cached introspection and the arguments are checked against it
            before anything is sent.
        """

        if interface is None:
            raise InvalidMethod('no such interface for method ' + repr(name))

        method = interface.method(name)

        if method is None:
            raise InvalidMethod("'%s' has no method '%s'" % (interface.name, name))

        args = list(args)
        while args and args[-1] is None:
            args.pop()

        declared = method.input_signature

        try:
            signature.validate(declared, args)
        except InvalidArguments as e:
            raise InvalidArguments('%s.%s: %s' % (interface.name, name, e)) from None

        obj = interface.obj
        message = factory.method_call(obj.destination, obj.path, interface.name, name, declared, args)

        reply = self.send_sync(message, on_reply, timeout)
        logger.debug('method call complete: %s.%s', interface.name, name)
        return reply


# end of class Connection



def open_session(bus_address=None, settings=None):
    """ Dial the session bus. The address comes from the environment unless
        *bus_address* is given. The returned :class:`Connection` still needs
        :func:`Connection.initialize`.
    """

    if settings is None:
        settings = config.get()

    if bus_address is None:
        bus_address = address.session_address(settings)

    sock, entry = address.connect(bus_address)
    return Connection(sock, entry, settings)



def open_system(bus_address=None, settings=None):
    """ Dial the system bus at its well-known socket path.
    """

    if settings is None:
        settings = config.get()

    if bus_address is None:
        bus_address = address.system_address(settings)

    sock, entry = address.connect(bus_address)
    return Connection(sock, entry, settings)



def session_bus(bus_address=None, settings=None):
    """ Return a new, initialized connection to the session bus.
    """

    return open_session(bus_address, settings).initialize()



def system_bus(bus_address=None, settings=None):
    """ Return a new, initialized connection to the system bus.
    """

    return open_system(bus_address, settings).initialize()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
