"""This module defines logging capabilities for pharos."""

import logging
import sys
import time

from huepy import (bad, red, info as infomsg, yellow, run, grey,
                   que, good, green)

LOG_LEVELS = list(range(5))
DEFAULT_LOG_LEVEL = 3

LEVEL_NAMES = {
    'quiet': 0,
    'error': 1,
    'warning': 2,
    'info': 3,
    'debug': 4}

PYTHON_LEVELS = {
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG}


def get_logger(name):
    """Returns a Python logger writing plain messages to STDOUT.

    Only a single handler is ever attached to a logger, so asking for the
    same name twice does not print messages twice.

    Args:
        name (str): The name of the Logger.

    Returns:
        A Python Logger.
    """

    log = logging.getLogger(name)
    set_level(log, Logger.LOG_LEVEL)

    if not log.handlers:
        sh = logging.StreamHandler(sys.stdout)
        fmt = logging.Formatter("%(message)s")
        sh.setFormatter(fmt)
        log.addHandler(sh)

    return log


def set_level(logger, level):
    """Sets the logging level.

    pharos levels map to the Python levels as follows: 1 is ERROR,
    2 is WARNING, 3 is INFO, 4 is DEBUG and 0 disables the logger.

    Args:
        logger: A Python logger object.
        level (int): The logging level.

    Raises:
        ValueError if log level is unsupported.
    """

    if level not in LOG_LEVELS:
        raise ValueError(f"log level {level} is not supported")

    logger.disabled = level == 0
    if level:
        logger.setLevel(PYTHON_LEVELS[level])


class Singleton(type):
    """Metaclass to implement the Singleton pattern.

    Only used for logging. Calling a class with this metaclass a second
    time re-initializes and returns the instance created by the first call.

    Example:
        >>> log1 = Logger(__name__)
        >>> log2 = Logger("pharos")
        >>> id(log1) == id(log2)
        True
    """
    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super(Singleton, cls).__call__(*args, **kwargs)
        else:
            cls._instances[cls].__init__(*args, **kwargs)

        return cls._instances[cls]


class Logger(metaclass=Singleton):
    """Singleton proxy of logging.Logger with coloured output.

    Set Logger.LOG_LEVEL before use. The levels are:

    .. code:: shell

        * 0 - quiet (no output)
        * 1 - error
        * 2 - warning
        * 3 - info
        * 4 - debug

    All functions except :meth:`.Logger.question` support ``%``-style
    arguments.

    Example:
        >>> log = Logger(__name__)
        >>> log.info("hello world")
        [~] hello world
        >>> log.info("%s %s", "hello", "world")
        [~] hello world

    Attributes:
        LOG_LEVEL (int): The log level to be used across the application.

    Args:
        name (str): The name of the logger.
    """

    LOG_LEVEL = DEFAULT_LOG_LEVEL

    def __init__(self, name):
        self.logger = get_logger(name)

    @property
    def level(self):
        """Returns the Python log level equivalent, 0 if disabled."""
        if not self.logger:
            return None

        if self.logger.disabled:
            return 0

        return self.logger.level

    @level.setter
    def level(self, level):
        try:
            level = LEVEL_NAMES[level]
        except KeyError:
            level = int(level)

        Logger.LOG_LEVEL = level
        set_level(self.logger, level)

    def error(self, msg, *args, color=True, **kwargs):
        """Logs a message on error level, prefixed with ``[-]`` in red."""

        if color:
            msg = bad(red(msg))

        self.logger.error(msg, *args, **kwargs)

    def warning(self, msg, *args, color=True, **kwargs):
        """Logs a message on warning level, prefixed with ``[!]`` in yellow."""

        if color:
            msg = infomsg(yellow(msg))

        self.logger.warning(msg, *args, **kwargs)

    def warn(self, msg, *args, color=True, **kwargs):
        """Alias of :meth:`.Logger.warning`."""

        self.warning(msg, *args, **kwargs, color=color)

    def info(self, msg, *args, color=True, **kwargs):
        """Logs a message on info level, prefixed with ``[~]``."""

        if color:
            msg = run(grey(msg))

        self.logger.info(msg, *args, **kwargs)

    def debug(self, msg, *args, color=True, **kwargs):
        """Logs a message on debug level.

        Coloured messages carry the current timestamp as prefix.

        Example:
            >>> log.debug("test")
            [20180612-155611] test
        """

        if color:
            now = time.strftime("%Y%m%d-%H%M%S")
            msg = grey(f"[{now}] {msg}")

        self.logger.debug(msg, *args, **kwargs)

    def success(self, msg, *args, color=True, **kwargs):
        """Indicates a success on info level, prefixed with ``[+]``."""

        if color:
            msg = good(green(msg))

        self.logger.info(msg, *args, **kwargs)

    @staticmethod
    def question(msg, color=True):
        """Outputs a question.

        Questions ignore the log level and are always printed.
        """

        if color:
            msg = que(msg)

        print(msg)


class HostLogger:  # pylint: disable=too-few-public-methods
    """Prefix every message with the address of the host it concerns.

    Args:
        address (str): the host address used as prefix
        logger (Logger): the logger to write to, defaults to the pharos one
    """

    def __init__(self, address, logger=None):
        self.address = address
        self.logger = logger or Logger(__name__)

    def _fmt(self, msg):
        return f"{self.address}: {msg}"

    def info(self, msg, *args):
        """info level"""
        self.logger.info(self._fmt(msg), *args)

    def debug(self, msg, *args):
        """debug level"""
        self.logger.debug(self._fmt(msg), *args)

    def success(self, msg, *args):
        """success on info level"""
        self.logger.success(self._fmt(msg), *args)

    def warning(self, msg, *args):
        """warning level"""
        self.logger.warning(self._fmt(msg), *args)

    def error(self, msg, *args):
        """error level"""
        self.logger.error(self._fmt(msg), *args)
