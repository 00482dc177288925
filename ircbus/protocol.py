## protocol.py
# IRC protocol constants, errors and I/O configuration.
import collections
import re

DEFAULT_ENCODING = 'utf-8'
FALLBACK_ENCODING = 'iso-8859-1'

# Seconds an I/O loop waits on the socket or the outgoing queue before it re-checks for shutdown.
WAIT_TIME = 5.0
CONNECT_TIMEOUT = 10

DEFAULT_PORT = 6667
DEFAULT_TLS_PORT = 6697
MIN_PORT = 1
MAX_PORT = 65535


## Errors.

class Error(Exception):
    """ Base class for all ircbus errors. """
    pass


class ProtocolViolation(Error):
    """ An error that occurred while parsing or constructing an IRC message that violates the IRC protocol. """
    def __init__(self, msg, message=None):
        super().__init__(msg)
        self.irc_message = message


class PrefixError(ProtocolViolation):
    """ The message prefix is empty or malformed. """
    pass


class CommandError(ProtocolViolation):
    """ The message command is missing or is neither a verb nor a three-digit numeric. """
    pass


class ParamError(ProtocolViolation):
    """ A message parameter is out of place, malformed or there are too many of them. """
    pass


class InvalidPort(Error):
    def __init__(self, port):
        super().__init__('Port out of range ({min}-{max}): {port}'.format(min=MIN_PORT, max=MAX_PORT, port=port))
        self.port = port


class AlreadyConnected(Error):
    def __init__(self, connection):
        super().__init__('Connection to {h}:{p} has already been opened or closed, create a new one.'.format(
            h=connection.hostname, p=connection.port))
        self.connection = connection


## Configuration.

class IOConfig:
    """
    Input/output settings for a single connection.
    Passed explicitly to a Connection, which hands the encodings to the parser and the wait time to its I/O loops.
    """

    def __init__(self, encoding=DEFAULT_ENCODING, fallback_encoding=FALLBACK_ENCODING,
                 wait_time=WAIT_TIME, connect_timeout=CONNECT_TIMEOUT):
        if wait_time <= 0:
            raise ValueError('wait_time has to be positive, got {}'.format(wait_time))
        self.encoding = encoding
        self.fallback_encoding = fallback_encoding
        self.wait_time = wait_time
        self.connect_timeout = connect_timeout

    def __repr__(self):
        return '{cls}(encoding={e!r}, fallback_encoding={f!r}, wait_time={w!r}, connect_timeout={c!r})'.format(
            cls=self.__class__.__name__, e=self.encoding, f=self.fallback_encoding,
            w=self.wait_time, c=self.connect_timeout)


## Limits.

PARAMETER_LIMIT = 15
MESSAGE_LENGTH_LIMIT = 512
# Incoming bytes buffered without a line separator before the partial line is thrown away.
RECEIVE_BUFFER_LIMIT = 32 * MESSAGE_LENGTH_LIMIT


## Modes, prefixes.

# A channel mode change starting with one of these applies to every nickname in its parameters.
OPERATOR_GRANT = '+o'
OPERATOR_REVOKE = '-o'
CHANNEL_PREFIXES = { '#', '&', '+', '!' }
NICKNAME_PREFIXES = collections.OrderedDict([
    ('@', 'o'),
    ('+', 'v')
])
OPERATOR_PREFIX = '@'


## Numerics.

RPL_WELCOME = '001'
RPL_NAMREPLY = '353'
RPL_ENDOFNAMES = '366'


## Message parsing.

LINE_SEPARATOR = '\r\n'
MINIMAL_LINE_SEPARATOR = '\n'

FORBIDDEN_CHARACTERS = { '\r', '\n', '\0' }
USER_SEPARATOR = '!'
HOST_SEPARATOR = '@'

ARGUMENT_SEPARATOR = re.compile(' +', re.UNICODE)
COMMAND_PATTERN = re.compile('^([a-zA-Z]+|[0-9]{3})$', re.UNICODE)
NUMERIC_PATTERN = re.compile('^[0-9]{3}$')
TRAILING_PREFIX = ':'
PREFIX_SIGIL = ':'


def is_channel(name):
    """ Check if given argument looks like a channel name. """
    return bool(name) and name[0] in CHANNEL_PREFIXES
