## log.py
# Default logging configuration for ircbus and the bots built on it.
import logging

from tornado.log import LogFormatter

__all__ = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'FATAL', 'FORMAT', 'DATE_FORMAT', 'activate_default_logging']


# Log levels.
FATAL = logging.FATAL
ERROR = logging.ERROR
WARNING = logging.WARNING
INFO = logging.INFO
DEBUG = logging.DEBUG

FORMAT = '%(color)s%(asctime)s.%(msecs)03d [%(threadName)s] %(name)s.%(funcName)s() %(levelname)s:%(end_color)s %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Handlers installed by activate_default_logging(), per logger name.
_installed_handlers = {}


def activate_default_logging(level=DEBUG, file=None, name='ircbus', color=True):
    """
    Install stream (and optionally file) handlers on the named logger using the default format.
    Calling this again replaces the handlers installed by a previous call, leaving any other handlers alone.
    Returns the configured logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in _installed_handlers.pop(name, []):
        logger.removeHandler(handler)
        handler.close()

    handlers = [logging.StreamHandler()]
    handlers[0].setFormatter(LogFormatter(fmt=FORMAT, datefmt=DATE_FORMAT, color=color))
    if file:
        handlers.append(logging.FileHandler(file))
        handlers[1].setFormatter(LogFormatter(fmt=FORMAT, datefmt=DATE_FORMAT, color=False))

    for handler in handlers:
        logger.addHandler(handler)
    _installed_handlers[name] = handlers
    return logger
