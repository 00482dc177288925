## models.py
# Channel membership tracking.
import enum
import logging
import threading

from . import parsing, protocol

__all__ = ['PrivLevel', 'User', 'Channel']


class PrivLevel(enum.Enum):
    """ A nickname's standing within a channel. """
    Regular = 'regular'
    Op = 'op'


class User:
    """ A nickname and its privilege level within one channel. """
    def __init__(self, nickname, priv_level=PrivLevel.Regular):
        self.nickname = nickname
        self.priv_level = priv_level

    def __repr__(self):
        return 'User(nickname={n!r}, priv_level={p})'.format(n=self.nickname, p=self.priv_level.name)


class Channel:
    """
    Membership state of one joined channel, kept up to date from events on a bus.

    Subscribe an instance to the connection's bus when joining. NAMES replies are authoritative and overwrite
    privilege levels, JOIN only adds unseen nicknames and PART and KICK remove. A mode change whose flags start with
    `+o` or `-o` sets every tracked nickname among its parameters to Op or Regular, and any other mode change
    is left alone.

    Nickname changes are not followed: a renamed user stays tracked under the old nickname
    until the next NAMES reply lists the new one.

    All state is guarded by one lock per channel. Accessors return snapshots.
    """

    def __init__(self, name, key=None):
        if not name:
            raise ValueError('Channel name is required.')
        self.name = name
        self.key = key
        self.logger = logging.getLogger(__name__)
        self._nicks = {}
        self._nicks_lock = threading.RLock()

    def __repr__(self):
        with self._nicks_lock:
            return 'Channel(name={n!r}, key={k!r}, nicks={u!r})'.format(
                n=self.name, k=self.key, u=list(self._nicks.values()))

    def matches_name(self, name):
        """ Whether the given channel name refers to this channel. """
        return self.name == name

    ## Accessors.

    def get_nicks(self):
        """ Nicknames in the channel, regardless of privilege level. """
        with self._nicks_lock:
            return [user.nickname for user in self._nicks.values()]

    def get_regular_nicks(self):
        return self._filter_nicks(PrivLevel.Regular)

    def get_operator_nicks(self):
        return self._filter_nicks(PrivLevel.Op)

    def _filter_nicks(self, priv_level):
        with self._nicks_lock:
            return [user.nickname for user in self._nicks.values() if user.priv_level is priv_level]

    def is_op(self, nick):
        """ True iff nick is in the channel and is an operator there. """
        return self._has_level(nick, PrivLevel.Op)

    def is_regular(self, nick):
        """ True iff nick is in the channel and is not an operator there. """
        return self._has_level(nick, PrivLevel.Regular)

    def _has_level(self, nick, priv_level):
        with self._nicks_lock:
            user = self._nicks.get(nick)
            return user is not None and user.priv_level is priv_level

    ## Mutation.

    def set_nick_as(self, nick, priv_level):
        """ Track nick at the given privilege level, adding it if unseen. """
        with self._nicks_lock:
            user = self._nicks.get(nick)
            if user is None:
                self.logger.debug('%s: new user, adding as %s: %s', self.name, priv_level.name, nick)
                self._nicks[nick] = User(nick, priv_level)
            elif user.priv_level is priv_level:
                self.logger.debug('%s: nick already %s, doing nothing: %s', self.name, priv_level.name, nick)
            else:
                self.logger.debug('%s: changing nick privilege level to %s: %s', self.name, priv_level.name, nick)
                user.priv_level = priv_level

    def remove_nick(self, nick):
        """ Stop tracking nick. Returns whether it was tracked. """
        with self._nicks_lock:
            if self._nicks.pop(nick, None) is None:
                self.logger.debug('%s: nick to be removed was not tracked: %s', self.name, nick)
                return False
            self.logger.debug('%s: removed nick: %s', self.name, nick)
            return True

    ## Event callbacks.

    def on_reply(self, event):
        # RPL_NAMREPLY: <client> <symbol> <channel> :[prefix]<nick>{ [prefix]<nick>}
        if event.code != protocol.RPL_NAMREPLY or len(event.params) < 4:
            return
        if not self.matches_name(event.params[2]):
            return

        with self._nicks_lock:
            self.logger.debug('Processing names reply for channel: %s', self.name)
            for nick, prefixes in parsing.parse_names(event.params[3]):
                if protocol.OPERATOR_PREFIX in prefixes:
                    self.set_nick_as(nick, PrivLevel.Op)
                else:
                    self.set_nick_as(nick, PrivLevel.Regular)

    def on_join(self, event):
        if not self.matches_name(event.channel) or not event.joiner:
            return

        with self._nicks_lock:
            self.logger.debug('Processing join in channel: %s', self.name)
            # Joins never override what we already know.
            if event.joiner not in self._nicks:
                self.set_nick_as(event.joiner, PrivLevel.Regular)

    def on_part(self, event):
        if not self.matches_name(event.channel) or not event.parter:
            return

        self.logger.debug('Processing part in channel: %s', self.name)
        self.remove_nick(event.parter)

    def on_kick(self, event):
        if not self.matches_name(event.channel):
            return

        self.logger.debug('Processing kick in channel: %s', self.name)
        self.remove_nick(event.kicked)

    def on_channel_mode(self, event):
        if not self.matches_name(event.target):
            return

        flags = event.flags
        if flags.startswith(protocol.OPERATOR_GRANT):
            level = PrivLevel.Op
        elif flags.startswith(protocol.OPERATOR_REVOKE):
            level = PrivLevel.Regular
        else:
            return

        with self._nicks_lock:
            self.logger.debug('Processing mode update in channel: %s', self.name)
            for nick in event.flag_params:
                # Mode changes never add nicknames we have not seen.
                if nick not in self._nicks:
                    continue
                self.set_nick_as(nick, level)
