"""Transport layer: address resolution, authentication, frame buffering."""

from . import address
from . import auth
from . import framing

from .framing import FrameBuffer
