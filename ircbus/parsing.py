## parsing.py
# IRC message parsing and construction.
import collections

from . import protocol

__all__ = ['Message', 'parse_user', 'parse_names']


class Message(collections.namedtuple('Message', ['prefix', 'command', 'params'])):
    """
    A single IRC protocol line: an optional prefix, a command and up to 15 parameters.
    Messages are validated on construction and are immutable afterwards.
    """
    __slots__ = ()

    def __new__(cls, command, params=(), prefix=None):
        params = tuple(params)
        _validate_prefix(prefix)
        _validate_command(command)
        _validate_params(params)
        return super().__new__(cls, prefix, command, params)

    def __getnewargs__(self):
        return (self.command, self.params, self.prefix)

    def __repr__(self):
        return '{cls}(command={c!r}, params={p!r}, prefix={s!r})'.format(
            cls=self.__class__.__name__, c=self.command, p=self.params, s=self.prefix)

    def __str__(self):
        return self.construct()

    @property
    def is_numeric(self):
        """ Whether this message is a numeric reply. """
        return bool(protocol.NUMERIC_PATTERN.match(self.command))

    @classmethod
    def parse(cls, line, encoding=protocol.DEFAULT_ENCODING, fallback_encoding=protocol.FALLBACK_ENCODING):
        """
        Parse given line into IRC message structure.
        Accepts either bytes, which are decoded using `encoding`, or an already decoded string.
        Returns a Message or raises a ProtocolViolation subclass.
        """
        if isinstance(line, bytes):
            try:
                message = line.decode(encoding)
            except UnicodeDecodeError:
                # Try our fallback encoding.
                message = line.decode(fallback_encoding)
        else:
            message = line

        # Strip message separator.
        if message.endswith(protocol.LINE_SEPARATOR):
            message = message[:-len(protocol.LINE_SEPARATOR)]
        elif message.endswith(protocol.MINIMAL_LINE_SEPARATOR):
            message = message[:-len(protocol.MINIMAL_LINE_SEPARATOR)]

        # Format: (:prefix )? command parameter*
        if message.startswith(protocol.PREFIX_SIGIL):
            prefix, _, rest = message[len(protocol.PREFIX_SIGIL):].partition(' ')
            if not prefix:
                raise protocol.PrefixError('Improper IRC message format: empty prefix.', message=message)
        else:
            prefix, rest = None, message

        command, _, raw_params = rest.lstrip(' ').partition(' ')
        if not command:
            raise protocol.CommandError('Improper IRC message format: missing command.', message=message)

        # Format: (word )*(:sentence)?
        params = []
        raw_params = raw_params.lstrip(' ')
        while raw_params:
            if raw_params.startswith(protocol.TRAILING_PREFIX):
                params.append(raw_params[len(protocol.TRAILING_PREFIX):])
                break
            param, _, raw_params = raw_params.partition(' ')
            params.append(param)
            raw_params = raw_params.lstrip(' ')

        return cls(command, params, prefix=prefix)

    def construct(self):
        """ Construct a raw IRC line, without line separator. """
        message = self.command

        for idx, param in enumerate(self.params):
            # Trailing parameter?
            if idx + 1 == len(self.params) and _needs_trailing_prefix(param):
                message += ' ' + protocol.TRAILING_PREFIX + param
            else:
                message += ' ' + param

        # Prepend prefix.
        if self.prefix is not None:
            message = protocol.PREFIX_SIGIL + self.prefix + ' ' + message

        return message


def _needs_trailing_prefix(param):
    return not param or ' ' in param or param.startswith(protocol.TRAILING_PREFIX)


def _has_forbidden_characters(value):
    return any(ch in value for ch in protocol.FORBIDDEN_CHARACTERS)


def _validate_prefix(prefix):
    if prefix is None:
        return
    if not isinstance(prefix, str) or not prefix:
        raise protocol.PrefixError('Message prefix has to be a non-empty string.', message=prefix)
    if ' ' in prefix or prefix.startswith(protocol.PREFIX_SIGIL) or _has_forbidden_characters(prefix):
        raise protocol.PrefixError('Message prefix contains a space, sigil or forbidden character.', message=prefix)


def _validate_command(command):
    if not isinstance(command, str) or not command:
        raise protocol.CommandError('Message command is missing.', message=command)
    if not protocol.COMMAND_PATTERN.match(command):
        raise protocol.CommandError('The command does not follow the command pattern ({pat})'.format(
            pat=protocol.COMMAND_PATTERN.pattern), message=command)


def _validate_params(params):
    if len(params) > protocol.PARAMETER_LIMIT:
        raise protocol.ParamError('Too many parameters ({len} > {max}).'.format(
            len=len(params), max=protocol.PARAMETER_LIMIT), message=' '.join(map(str, params)))

    for idx, param in enumerate(params):
        if not isinstance(param, str):
            raise protocol.ParamError('Message parameters have to be strings, got {}.'.format(type(param).__name__),
                                      message=param)
        if _has_forbidden_characters(param):
            raise protocol.ParamError('Parameter contains forbidden characters ({chs}).'.format(
                chs=', '.join(repr(ch) for ch in sorted(protocol.FORBIDDEN_CHARACTERS))), message=param)
        if idx + 1 < len(params) and _needs_trailing_prefix(param):
            raise protocol.ParamError('Only the final parameter of an IRC message can be trailing and thus be empty, '
                                      'contain spaces, or start with a colon.', message=param)


# Parsing.

def parse_user(raw):
    """ Parse nick(!user(@host)?)? structure. """
    nick = raw
    user = None
    host = None

    # Attempt to extract host.
    if protocol.HOST_SEPARATOR in raw:
        raw, host = raw.split(protocol.HOST_SEPARATOR, 1)
        nick = raw
    # Attempt to extract user.
    if protocol.USER_SEPARATOR in raw:
        nick, user = raw.split(protocol.USER_SEPARATOR, 1)

    return nick, user, host


def parse_names(payload, prefixes=protocol.NICKNAME_PREFIXES):
    """
    Parse a space-separated NAMES payload into (nickname, prefixes) tuples.
    Multiple leading prefixes are accepted, as sent by servers with multi-prefix enabled.
    """
    names = []
    for entry in payload.split(' '):
        if not entry:
            continue
        nickname = entry.lstrip(''.join(prefixes))
        if not nickname:
            continue
        names.append((nickname, set(entry[:len(entry) - len(nickname)])))
    return names
