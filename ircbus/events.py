## events.py
# Typed events published on an EventBus.
#
# Receive events wrap a parsed inbound Message, send events wrap a Message a handler wants transmitted.
# Handlers declare interest in a variant by defining a method named after the variant's HANDLER attribute.
from . import parsing, protocol

__all__ = [
    'Event', 'LifecycleEvent', 'ReceiveEvent', 'SendEvent', 'Connected', 'Disconnected',
    'ReceiveJoin', 'ReceivePart', 'ReceiveKick', 'ReceiveNick', 'ReceiveMode', 'ReceiveChannelMode',
    'ReceiveUserMode', 'ReceiveReply', 'ReceivePing', 'ReceivePrivmsg', 'ReceiveNotice', 'ReceiveTopic',
    'ReceiveQuit', 'ReceiveInvite',
    'SendRaw', 'SendPing', 'SendPong', 'SendPass', 'SendNick', 'SendUser', 'SendJoin', 'SendPart', 'SendTopic',
    'SendMode', 'SendKick', 'SendPrivmsg', 'SendNotice', 'SendQuit',
    'RECEIVE_EVENTS', 'create_event'
]


class Event:
    """ Base class of everything published on an EventBus. """
    HANDLER = None

    def __repr__(self):
        return '<{cls}>'.format(cls=self.__class__.__name__)


## Lifecycle.

class LifecycleEvent(Event):
    """ Connection state change, fanned out to handlers like a receive event. """
    def __init__(self, connection):
        self.connection = connection


class Connected(LifecycleEvent):
    HANDLER = 'on_connect'


class Disconnected(LifecycleEvent):
    HANDLER = 'on_disconnect'

    def __init__(self, connection, expected):
        super().__init__(connection)
        self.expected = expected


## Messages.

class MessageEvent(Event):
    COMMAND = None

    def __init__(self, message):
        self._message = message

    @property
    def message(self):
        return self._message

    @property
    def params(self):
        return self._message.params

    def _param(self, index, default=None):
        params = self._message.params
        return params[index] if len(params) > index else default

    def __repr__(self):
        return '<{cls} {msg!r}>'.format(cls=self.__class__.__name__, msg=self._message)


class ReceiveEvent(MessageEvent):
    """ An inbound message. Its command has to match the variant's COMMAND. """
    MIN_PARAMS = 0

    def __init__(self, message):
        if self.COMMAND is not None and message.command.upper() != self.COMMAND:
            raise protocol.CommandError('{cls} requires command {expected}, got {actual}.'.format(
                cls=self.__class__.__name__, expected=self.COMMAND, actual=message.command), message=message.command)
        if len(message.params) < self.MIN_PARAMS:
            raise protocol.ParamError('{cls} requires at least {min} parameters, got {len}.'.format(
                cls=self.__class__.__name__, min=self.MIN_PARAMS, len=len(message.params)), message=str(message))
        super().__init__(message)

    @property
    def prefix(self):
        return self._message.prefix

    @property
    def nickname(self):
        """ Nickname (or server name) this message originated from, if known. """
        if self._message.prefix is None:
            return None
        return parsing.parse_user(self._message.prefix)[0]


class ReceiveJoin(ReceiveEvent):
    COMMAND = 'JOIN'
    HANDLER = 'on_join'
    MIN_PARAMS = 1

    @property
    def channel(self):
        return self.params[0]

    @property
    def joiner(self):
        return self.nickname


class ReceivePart(ReceiveEvent):
    COMMAND = 'PART'
    HANDLER = 'on_part'
    MIN_PARAMS = 1

    @property
    def channel(self):
        return self.params[0]

    @property
    def parter(self):
        return self.nickname

    @property
    def reason(self):
        return self._param(1)


class ReceiveKick(ReceiveEvent):
    COMMAND = 'KICK'
    HANDLER = 'on_kick'
    MIN_PARAMS = 2

    @property
    def channel(self):
        return self.params[0]

    @property
    def kicked(self):
        return self.params[1]

    @property
    def kicker(self):
        return self.nickname

    @property
    def comment(self):
        return self._param(2)


class ReceiveNick(ReceiveEvent):
    COMMAND = 'NICK'
    HANDLER = 'on_nick'
    MIN_PARAMS = 1

    @property
    def old_nickname(self):
        return self.nickname

    @property
    def new_nickname(self):
        return self.params[0]


class ReceiveMode(ReceiveEvent):
    """ A mode change. Dispatched as either ReceiveChannelMode or ReceiveUserMode depending on the target. """
    COMMAND = 'MODE'
    MIN_PARAMS = 1

    @property
    def target(self):
        return self.params[0]

    @property
    def flags(self):
        return self._param(1, '')

    @property
    def flag_params(self):
        return list(self.params[2:])


class ReceiveChannelMode(ReceiveMode):
    HANDLER = 'on_channel_mode'


class ReceiveUserMode(ReceiveMode):
    HANDLER = 'on_user_mode'

    @property
    def target_nick(self):
        return self.target


class ReceiveReply(ReceiveEvent):
    """ A numeric reply. The numeric is available as `code`. """
    HANDLER = 'on_reply'

    def __init__(self, message):
        if not message.is_numeric:
            raise protocol.CommandError('{cls} requires a numeric command, got {actual}.'.format(
                cls=self.__class__.__name__, actual=message.command), message=message.command)
        super().__init__(message)

    @property
    def code(self):
        return self._message.command

    @property
    def target(self):
        return self._param(0)


class ReceivePing(ReceiveEvent):
    COMMAND = 'PING'
    HANDLER = 'on_ping'
    MIN_PARAMS = 1

    @property
    def server(self):
        return self.params[0]


class ReceivePrivmsg(ReceiveEvent):
    COMMAND = 'PRIVMSG'
    HANDLER = 'on_privmsg'
    MIN_PARAMS = 2

    @property
    def target(self):
        return self.params[0]

    @property
    def text(self):
        return self.params[1]


class ReceiveNotice(ReceivePrivmsg):
    COMMAND = 'NOTICE'
    HANDLER = 'on_notice'


class ReceiveTopic(ReceiveEvent):
    COMMAND = 'TOPIC'
    HANDLER = 'on_topic'
    MIN_PARAMS = 1

    @property
    def channel(self):
        return self.params[0]

    @property
    def topic(self):
        return self._param(1, '')


class ReceiveQuit(ReceiveEvent):
    COMMAND = 'QUIT'
    HANDLER = 'on_quit'

    @property
    def reason(self):
        return self._param(0)


class ReceiveInvite(ReceiveEvent):
    COMMAND = 'INVITE'
    HANDLER = 'on_invite'
    MIN_PARAMS = 2

    @property
    def target(self):
        return self.params[0]

    @property
    def channel(self):
        return self.params[1]


class SendEvent(MessageEvent):
    """ An outbound message. Construction validates the message, so invalid input raises before anything is sent. """
    def __init__(self, *params):
        super().__init__(parsing.Message(self.COMMAND, [param for param in params if param is not None]))


class SendRaw(SendEvent):
    """ Any command without a dedicated variant. """
    def __init__(self, command, *params):
        MessageEvent.__init__(self, parsing.Message(command, params))


class SendPing(SendEvent):
    COMMAND = 'PING'

    def __init__(self, server1, server2=None):
        super().__init__(server1, server2)


class SendPong(SendEvent):
    COMMAND = 'PONG'

    def __init__(self, server1, server2=None):
        super().__init__(server1, server2)


class SendPass(SendEvent):
    COMMAND = 'PASS'

    def __init__(self, password):
        super().__init__(password)


class SendNick(SendEvent):
    COMMAND = 'NICK'

    def __init__(self, nickname):
        super().__init__(nickname)


class SendUser(SendEvent):
    COMMAND = 'USER'

    def __init__(self, username, realname, mode='0'):
        super().__init__(username, mode, '*', realname)


class SendJoin(SendEvent):
    COMMAND = 'JOIN'

    def __init__(self, channel, key=None):
        super().__init__(channel, key)


class SendPart(SendEvent):
    COMMAND = 'PART'

    def __init__(self, channel, reason=None):
        super().__init__(channel, reason)


class SendTopic(SendEvent):
    """ Set a channel topic, or query it when no topic is given. """
    COMMAND = 'TOPIC'

    def __init__(self, channel, topic=None):
        super().__init__(channel, topic)


class SendMode(SendEvent):
    COMMAND = 'MODE'

    def __init__(self, target, flags, *params):
        super().__init__(target, flags, *params)


class SendKick(SendEvent):
    COMMAND = 'KICK'

    def __init__(self, channel, nickname, comment=None):
        super().__init__(channel, nickname, comment)


class SendPrivmsg(SendEvent):
    COMMAND = 'PRIVMSG'

    def __init__(self, target, text):
        super().__init__(target, text)


class SendNotice(SendEvent):
    COMMAND = 'NOTICE'

    def __init__(self, target, text):
        super().__init__(target, text)


class SendQuit(SendEvent):
    COMMAND = 'QUIT'

    def __init__(self, reason=None):
        super().__init__(reason)


## Dispatch table.

RECEIVE_EVENTS = {
    variant.COMMAND: variant for variant in (
        ReceiveJoin, ReceivePart, ReceiveKick, ReceiveNick, ReceivePing,
        ReceivePrivmsg, ReceiveNotice, ReceiveTopic, ReceiveQuit, ReceiveInvite
    )
}


def create_event(message):
    """
    Wrap a parsed message in its receive event variant.
    Returns None for commands without a variant.
    """
    if message.is_numeric:
        return ReceiveReply(message)

    command = message.command.upper()
    if command == ReceiveMode.COMMAND:
        if message.params and protocol.is_channel(message.params[0]):
            return ReceiveChannelMode(message)
        return ReceiveUserMode(message)

    variant = RECEIVE_EVENTS.get(command)
    if variant is None:
        return None
    return variant(message)
