"""Accumulate raw bytes from the bus socket and extract complete frames.

Only ever discards exactly the byte count a successful decode reports; a
partial frame leaves the buffer untouched until more bytes arrive.
"""

from __future__ import annotations

from typing import Optional

from ..errors import OversizedFrame
from ..protocol.message import Message
from ..protocol.wire import MAX_MESSAGE, Incomplete, frame_length, unmarshal


class FrameBuffer:
    """Bounded byte buffer with one-frame-at-a-time extraction."""

    def __init__(self, max_size: int = MAX_MESSAGE, headroom: int = 0):
        self.max_size = int(max_size)
        # Room for the start of the next frame arriving in the same read
        # as a frame of the largest allowed size.
        self.capacity = self.max_size + int(headroom)
        self._buffer = bytearray()

    def __len__(self) -> int:
        return len(self._buffer)

    def append(self, data: bytes) -> None:
        """Append newly read bytes.

        Raises OversizedFrame if the buffered bytes would exceed the bound.
        """

        if len(self._buffer) + len(data) > self.capacity:
            raise OversizedFrame(
                f"receive buffer would hold {len(self._buffer) + len(data)} bytes, "
                f"limit is {self.capacity}"
            )
        self._buffer.extend(data)

    def try_pop(self) -> Optional[Message]:
        """Return the next complete frame, or None if more bytes are needed.

        ProtocolError propagates for malformed data; the buffer is left as
        it was, so the caller decides whether the stream is salvageable.
        """

        try:
            total = frame_length(bytes(self._buffer[:16]))
        except Incomplete:
            return None

        if total > self.max_size:
            raise OversizedFrame(f"frame of {total} bytes exceeds the {self.max_size} byte limit")
        if len(self._buffer) < total:
            return None

        msg, consumed = unmarshal(bytes(self._buffer[:total]), self.max_size)

        del self._buffer[:consumed]
        return msg

    def clear(self) -> None:
        self._buffer.clear()
