""" Python client for the D-Bus message bus. This covers the connection
    engine: dialling and authenticating to the bus daemon, framing the byte
    stream, the background dispatcher, correlating replies with calls, and
    thin proxies for introspected remote objects.
"""

# Utility components.

from . import json
from . import errors

# Submodules used by multiple other components.

from . import config
from . import protocol
from . import transport

# Primary public-facing interfaces.

from . import connection
from . import session

from .connection import Connection, open_session, open_system, session_bus, system_bus
from .errors import *
from .protocol import Message, MessageType, Variant
from .proxy import Interface, Object

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
