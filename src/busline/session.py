"""Reply correlation: one-shot pending replies keyed by call serial."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Dict, List, Optional

from .errors import BusError, Cancelled, ConnectionClosed, Timeout
from .protocol.message import Message


logger = logging.getLogger(__name__)

SERIAL_MAX = 0xFFFFFFFF


class PendingReply:
    """Client-side helper that blocks a caller until its reply arrives.

    Completion happens at most once: only whoever removes the entry from the
    :class:`ReplyRegistry` may complete or fail it.
    """

    def __init__(self, registry: "ReplyRegistry", message: Message,
                 on_reply: Optional[Callable[[Message], None]] = None):
        self.message = message
        self.on_reply = on_reply
        self.response: Optional[Message] = None
        self.error: Optional[BaseException] = None
        self.rep_event = threading.Event()
        self._registry = registry

    @property
    def serial(self) -> int:
        return self.message.serial

    def poll(self) -> bool:
        return self.rep_event.is_set()

    def wait(self, timeout: Optional[float] = None) -> Message:
        """Block until the reply arrives and return it.

        Raises :class:`Timeout` if *timeout* seconds pass first; the call is
        withdrawn so a late reply is dropped. Raises the failure recorded for
        this call, if any.
        """

        if not self.rep_event.wait(timeout):
            if self._registry.discard(self):
                raise Timeout(
                    f"{self.message.member}: no reply to serial {self.serial} in {timeout:.2f} sec"
                )
            # The dispatcher claimed the reply just as we gave up.
            self.rep_event.wait()

        if self.error is not None:
            raise self.error
        return self.response

    def cancel(self) -> bool:
        """Withdraw the call; a blocked :func:`wait` raises :class:`Cancelled`.

        Returns False if the reply already arrived.
        """

        if self._registry.discard(self):
            self._fail(Cancelled(f"call with serial {self.serial} was cancelled"))
            return True
        return False

    def _complete(self, response: Message) -> None:
        if self.on_reply is not None:
            try:
                self.on_reply(response)
            except Exception as exc:
                logger.exception("reply callback for serial %d raised", self.serial)
                self.error = exc
        self.response = response
        self.rep_event.set()

    def _fail(self, error: BaseException) -> None:
        self.error = error
        self.rep_event.set()


class ReplyRegistry:
    """Serial -> PendingReply map shared by callers and the dispatcher.

    Every operation holds the lock; callers insert, the dispatcher pops.
    """

    def __init__(self):
        self._pending: Dict[int, PendingReply] = {}
        self._lock = threading.Lock()
        self._ticker = itertools.count(1)
        self._closed: Optional[BaseException] = None

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, serial: int) -> bool:
        return serial in self._pending

    def _next_serial(self) -> int:
        while True:
            serial = next(self._ticker)
            if serial > SERIAL_MAX:
                self._ticker = itertools.count(1)
                continue
            if serial not in self._pending:
                return serial

    def register(self, message: Message,
                 on_reply: Optional[Callable[[Message], None]] = None) -> PendingReply:
        """Assign *message* a fresh serial and register a pending reply for it."""

        with self._lock:
            if self._closed is not None:
                raise ConnectionClosed(str(self._closed))
            message.serial = self._next_serial()
            pending = PendingReply(self, message, on_reply)
            self._pending[message.serial] = pending
        return pending

    def pop(self, serial: int) -> Optional[PendingReply]:
        with self._lock:
            return self._pending.pop(serial, None)

    def discard(self, pending: PendingReply) -> bool:
        """Remove *pending* if it is still registered; True if removed here."""

        with self._lock:
            if self._pending.get(pending.serial) is pending:
                del self._pending[pending.serial]
                return True
        return False

    def close(self, error: BaseException) -> List[PendingReply]:
        """Refuse new registrations and fail everything outstanding with *error*."""

        with self._lock:
            if self._closed is None:
                self._closed = error
            failed = list(self._pending.values())
            self._pending.clear()

        for pending in failed:
            pending._fail(error)
        return failed
