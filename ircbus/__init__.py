from . import protocol, parsing, events, bus, connection, models, handlers

from .protocol import Error, ProtocolViolation, PrefixError, CommandError, ParamError, InvalidPort, \
    AlreadyConnected, IOConfig
from .parsing import Message
from .bus import EventBus
from .connection import Connection
from .models import PrivLevel, User, Channel
from .handlers import PingResponder, Registration

__name__ = 'ircbus'
__version__ = '0.1.0'
__version_info__ = (0, 1, 0)
__license__ = 'BSD'
