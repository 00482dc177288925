## connection.py
# Socket lifecycle and line-based I/O loops.
import logging
import os.path as path
import queue
import socket
import ssl
import sys
import threading

from . import bus, events, parsing, protocol

__all__ = ['Connection']

DEFAULT_CA_PATHS = {
    'linux': '/etc/ssl/certs',
    'linux2': '/etc/ssl/certs',
    'freebsd': '/etc/ssl/certs'
}

RECEIVE_SIZE = 4096

# Queued on close to wake the writer without waiting out its queue timeout.
_SHUTDOWN = object()


class Connection:
    """
    A TCP connection over the IRC protocol.

    Once connected, a reader thread parses incoming lines and dispatches them on `bus`,
    and a writer thread sends the lines that send events published on `bus` produce.
    A connection can be opened only once: create a new one to retry.
    """

    def __init__(self, hostname, port, tls=False, tls_verify=True, tls_certificate_file=None,
                 tls_certificate_keyfile=None, tls_certificate_password=None, source_address=None, config=None):
        if isinstance(port, bool) or not isinstance(port, int) or not protocol.MIN_PORT <= port <= protocol.MAX_PORT:
            raise protocol.InvalidPort(port)

        self.hostname = hostname
        self.port = port
        self.source_address = source_address
        self.config = config or protocol.IOConfig()

        self.tls = tls
        self.tls_context = None
        self.tls_verify = tls_verify
        self.tls_certificate_file = tls_certificate_file
        self.tls_certificate_keyfile = tls_certificate_keyfile
        self.tls_certificate_password = tls_certificate_password

        self.logger = logging.getLogger(__name__)
        self.bus = bus.EventBus(sink=self.send, encoding=self.config.encoding)
        self.socket = None

        self._outgoing = queue.Queue()
        self._closed = threading.Event()
        self._state_lock = threading.Lock()
        self._opened = False
        self._reader = None
        self._writer = None

    def __repr__(self):
        return '<{cls} {host}:{port}{tls} ({state})>'.format(
            cls=self.__class__.__name__, host=self.hostname, port=self.port, tls=' tls' if self.tls else '',
            state='connected' if self.connected else 'closed' if self.closed else 'new')

    ## Lifecycle.

    def connect(self):
        """
        Connect to target and start the I/O threads.
        Resolution, connection and TLS handshake errors are raised to the caller.
        """
        with self._state_lock:
            if self._opened or self._closed.is_set():
                raise protocol.AlreadyConnected(self)
            self._opened = True

        sock = self._create_socket()
        sock.settimeout(self.config.wait_time)
        with self._state_lock:
            # Closed while we were still connecting.
            if self._closed.is_set():
                sock.close()
                return
            self.socket = sock
        self.logger.info('Connected to %s:%d%s.', self.hostname, self.port, ' over TLS' if self.tls else '')

        self.bus.publish(events.Connected(self))

        name = '{host}:{port}'.format(host=self.hostname, port=self.port)
        self._reader = threading.Thread(target=self._read_forever, name='ircbus-reader[' + name + ']', daemon=True)
        self._writer = threading.Thread(target=self._write_forever, name='ircbus-writer[' + name + ']', daemon=True)
        self._reader.start()
        self._writer.start()

    def _create_socket(self):
        """ Open the socket, wrapped in TLS if so configured. """
        sock = socket.create_connection((self.hostname, self.port), timeout=self.config.connect_timeout,
                                        source_address=self.source_address)
        if not self.tls:
            return sock

        self.tls_context = self.create_tls_context()
        try:
            return self.tls_context.wrap_socket(sock, server_hostname=self.hostname)
        except OSError:
            sock.close()
            raise

    def create_tls_context(self):
        """ Create the context used to transform our regular socket into a TLS socket. """
        tls_context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

        # Load client certificate.
        if self.tls_certificate_file:
            tls_context.load_cert_chain(self.tls_certificate_file, self.tls_certificate_keyfile,
                                        password=self.tls_certificate_password)

        # - Disable compression in order to counter the CRIME attack.
        # - Disable session resumption to maintain perfect forward secrecy.
        for opt in ['NO_COMPRESSION', 'NO_TICKET']:
            if hasattr(ssl, 'OP_' + opt):
                tls_context.options |= getattr(ssl, 'OP_' + opt)

        if self.tls_verify:
            # Load certificate verification paths.
            tls_context.set_default_verify_paths()
            if sys.platform in DEFAULT_CA_PATHS and path.isdir(DEFAULT_CA_PATHS[sys.platform]):
                tls_context.load_verify_locations(capath=DEFAULT_CA_PATHS[sys.platform])

            tls_context.verify_mode = ssl.CERT_REQUIRED
            tls_context.check_hostname = True
        else:
            # check_hostname has to go first, the context refuses CERT_NONE while it is set.
            tls_context.check_hostname = False
            tls_context.verify_mode = ssl.CERT_NONE

        return tls_context

    def close(self):
        """ Close the connection and stop both I/O threads. Closing a closed connection does nothing. """
        self._close(expected=True)

    def _close(self, expected):
        with self._state_lock:
            if self._closed.is_set():
                return False
            self._closed.set()
            sock = self.socket

        # Never opened, nothing to tear down.
        if sock is None:
            return True

        self._outgoing.put(_SHUTDOWN)
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            self.logger.debug('Socket shutdown failed, peer already gone: %s', e)
        sock.close()

        current = threading.current_thread()
        for thread in (self._reader, self._writer):
            if thread is not None and thread is not current:
                thread.join(self.config.wait_time)

        if expected:
            self.logger.info('Disconnected from %s:%d.', self.hostname, self.port)
        else:
            self.logger.error('Unexpectedly disconnected from %s:%d.', self.hostname, self.port)
        self.bus.publish(events.Disconnected(self, expected))
        return True

    @property
    def connected(self):
        """ Whether this connection is open. """
        return self.socket is not None and not self._closed.is_set()

    @property
    def closed(self):
        return self._closed.is_set()

    def wait(self, timeout=None):
        """ Block until the connection is closed. Returns whether it was. """
        return self._closed.wait(timeout)

    ## I/O.

    def send(self, line):
        """ Queue a raw line for sending. Returns False, dropping the line, if the connection is not open. """
        if not self.connected:
            self.logger.warning('Not connected, dropping outgoing message: %s', line)
            return False
        self._outgoing.put(line)
        return True

    def _read_forever(self):
        sock = self.socket
        separator = protocol.MINIMAL_LINE_SEPARATOR.encode()
        buffer = b''
        # Set while the rest of an overlong line still has to be skipped.
        discarding = False

        while not self._closed.is_set():
            try:
                data = sock.recv(RECEIVE_SIZE)
            except socket.timeout:
                continue
            except OSError as e:
                if not self._closed.is_set():
                    self.logger.error('Error reading from %s:%d: %s', self.hostname, self.port, e)
                break

            if not data:
                if not self._closed.is_set():
                    self.logger.warning('Connection closed by %s:%d.', self.hostname, self.port)
                break

            buffer += data
            if separator not in data:
                if len(buffer) > protocol.RECEIVE_BUFFER_LIMIT:
                    if not discarding:
                        self.logger.warning('Discarding line from %s:%d longer than %d bytes.',
                                            self.hostname, self.port, protocol.RECEIVE_BUFFER_LIMIT)
                    buffer = b''
                    discarding = True
                continue

            *lines, buffer = buffer.split(separator)
            if discarding:
                lines = lines[1:]
                discarding = False
            for line in lines:
                self._handle_line(line)

        self._close(expected=False)

    def _handle_line(self, line):
        line = line.rstrip(b'\r')
        if not line:
            return

        try:
            message = parsing.Message.parse(line, encoding=self.config.encoding,
                                            fallback_encoding=self.config.fallback_encoding)
        except protocol.ProtocolViolation as e:
            self.logger.warning('Dropping invalid IRC message from server (%s): %r', e, line)
            return

        self.logger.debug('<< %s', message)
        try:
            self.bus.dispatch(message)
        except Exception:
            self.logger.exception('Failed to dispatch %s message.', message.command)

    def _write_forever(self):
        sock = self.socket

        while not self._closed.is_set():
            try:
                line = self._outgoing.get(timeout=self.config.wait_time)
            except queue.Empty:
                continue
            if line is _SHUTDOWN:
                break

            try:
                sock.sendall((line + protocol.LINE_SEPARATOR).encode(self.config.encoding))
            except OSError as e:
                if not self._closed.is_set():
                    self.logger.error('Error writing to %s:%d: %s', self.hostname, self.port, e)
                break
            self.logger.debug('>> %s', line)

        self._close(expected=False)
