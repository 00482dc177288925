import ircbus
from .mocks import MockServer, MockConnection

# Short enough for the I/O loops to notice a close quickly.
WAIT_TIME = 0.1


def with_connection(connected=True, **options):
    def inner(f):
        def run():
            server = MockServer()
            kwargs = dict(options)
            kwargs.setdefault('config', ircbus.IOConfig(wait_time=WAIT_TIME))
            connection = MockConnection('mock.local', 6667, mock_server=server, **kwargs)
            if connected:
                connection.connect()

            try:
                return f(connection=connection, server=server)
            finally:
                connection.close()
                server.close()

        run.__name__ = f.__name__
        return run
    return inner
