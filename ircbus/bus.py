## bus.py
# Publish/subscribe dispatch of typed events.
import logging
import threading

from . import events, protocol

__all__ = ['EventBus']


class EventBus:
    """
    Dispatches receive events to subscribed handlers and forwards send events to a line sink.

    A handler is any object. It receives an event if it has a callable attribute named after the event's HANDLER,
    e.g. `on_join(event)` for ReceiveJoin. One handler may define any number of such callbacks.
    The sink is called with each serialized outgoing line; a Connection passes its `send` method.
    """

    def __init__(self, sink=None, encoding=protocol.DEFAULT_ENCODING):
        self.logger = logging.getLogger(__name__)
        self.encoding = encoding
        self._sink = sink
        self._handlers = []
        self._handlers_lock = threading.Lock()

    def subscribe(self, handler):
        """ Register handler for dispatch. Subscribing the same handler twice has no effect. """
        with self._handlers_lock:
            if any(existing is handler for existing in self._handlers):
                return
            self._handlers.append(handler)

    def unsubscribe(self, handler):
        """ Remove handler from dispatch. Returns whether it was subscribed. """
        with self._handlers_lock:
            for idx, existing in enumerate(self._handlers):
                if existing is handler:
                    del self._handlers[idx]
                    return True
        return False

    @property
    def handlers(self):
        with self._handlers_lock:
            return list(self._handlers)

    def publish(self, event):
        """
        Publish an event.
        Send events are serialized and handed to the sink, all other events are fanned out to interested handlers.
        Returns whether the sink accepted a send event; for other events, the number of callbacks invoked.
        """
        if isinstance(event, events.SendEvent):
            return self._transmit(event)
        return self._fan_out(event)

    def dispatch(self, message):
        """ Turn a parsed message into its receive event and publish it. Unknown commands are dropped. """
        try:
            event = events.create_event(message)
        except protocol.ProtocolViolation as e:
            self.logger.warning('Dropping malformed %s message: %s', message.command, e)
            return None

        if event is None:
            self.logger.debug('No event for command %s, ignoring.', message.command)
            return None

        self.publish(event)
        return event

    def _fan_out(self, event):
        method = event.HANDLER
        if not method:
            self.logger.warning('Event %r has no handler name, not dispatching.', event)
            return 0

        invoked = 0
        for handler in self.handlers:
            callback = getattr(handler, method, None)
            if not callable(callback):
                continue

            invoked += 1
            try:
                callback(event)
            except Exception:
                self.logger.exception('Failed to execute %s handler of %r.', method, handler)
        return invoked

    def _transmit(self, event):
        line = event.message.construct()
        if len((line + protocol.LINE_SEPARATOR).encode(self.encoding)) > protocol.MESSAGE_LENGTH_LIMIT:
            self.logger.warning('Outgoing message exceeds %d bytes, servers may truncate it: %s',
                                protocol.MESSAGE_LENGTH_LIMIT, line)

        if self._sink is None:
            self.logger.warning('No sink attached, dropping outgoing message: %s', line)
            return False
        return bool(self._sink(line))
