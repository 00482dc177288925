## handlers.py
# Stock handlers that keep a connection alive and registered.
import logging

from . import events, protocol

__all__ = ['PingResponder', 'Registration']

ERR_NICKNAMEINUSE = '433'


class PingResponder:
    """ Answer server PINGs so the server does not time us out. """

    def __init__(self, bus):
        self.bus = bus

    def on_ping(self, event):
        # Respond with a pong.
        self.bus.publish(events.SendPong(*event.params[:2]))


class Registration:
    """
    Perform IRC connection registration once connected: password first, then nickname, then user information.
    While unregistered, a rejected nickname is replaced by the next fallback, or by the first nickname
    with underscores appended once the fallbacks run out.
    """

    def __init__(self, bus, nickname, fallback_nicknames=(), username=None, realname=None, password=None):
        self.bus = bus
        self.logger = logging.getLogger(__name__)
        self._nicknames = [nickname] + list(fallback_nicknames)
        self.username = username or nickname.lower()
        self.realname = realname or nickname
        self.password = password
        self._reset()

    def _reset(self):
        self.registered = False
        self.nickname = None
        self._registration_attempts = 0
        self._attempt_nicknames = self._nicknames[:]

    def on_connect(self, event):
        self._reset()
        self._registration_attempts += 1

        if self.password:
            self.bus.publish(events.SendPass(self.password))
        self._set_nickname(self._attempt_nicknames.pop(0))
        self.bus.publish(events.SendUser(self.username, self.realname))

    def on_disconnect(self, event):
        self.registered = False

    def on_reply(self, event):
        if event.code == protocol.RPL_WELCOME:
            if not self.registered:
                self.registered = True
                # The server tells us which nickname we actually ended up with.
                if event.target:
                    self.nickname = event.target
                self.logger.info('Registered as %s.', self.nickname)
        elif event.code == ERR_NICKNAMEINUSE and not self.registered:
            self._registration_attempts += 1
            # Attempt to set new nickname.
            if self._attempt_nicknames:
                self._set_nickname(self._attempt_nicknames.pop(0))
            else:
                self._set_nickname(
                    self._nicknames[0] + '_' * (self._registration_attempts - len(self._nicknames)))

    def _set_nickname(self, nickname):
        self.logger.debug('Attempting nickname %s.', nickname)
        self.nickname = nickname
        self.bus.publish(events.SendNick(nickname))
