import io
import unittest.mock

import pytest

from pharos.util.logger import (Logger, HostLogger, LOG_LEVELS,
                                DEFAULT_LOG_LEVEL)


@pytest.fixture(autouse=True)
def reset_level():
    yield
    Logger.LOG_LEVEL = DEFAULT_LOG_LEVEL
    Logger("pharos").level = DEFAULT_LOG_LEVEL


def test_logger_default_state():
    assert Logger.LOG_LEVEL == DEFAULT_LOG_LEVEL


def test_logger_creation():
    for i in LOG_LEVELS:
        Logger.LOG_LEVEL = i
        log = Logger("test")
        assert log is not None
        assert log.LOG_LEVEL == i


def test_logger_is_a_singleton():
    assert Logger("pharos") is Logger("pharos.ssh")


def test_logger_fail():
    for i in [-1, 100, 23, 42]:
        Logger.LOG_LEVEL = i
        assert Logger.LOG_LEVEL == i

        with pytest.raises(ValueError):
            Logger("test")


def test_level_by_name():
    log = Logger("test")

    log.level = "debug"
    assert Logger.LOG_LEVEL == 4
    assert log.level == 10

    log.level = "0"
    assert log.level == 0


def test_quiet():
    log = Logger("test-quiet")
    log.level = 0

    with unittest.mock.patch('sys.stdout', new_callable=io.StringIO) as out:
        log.error("nothing to see")

    assert out.getvalue() == ""


# Run tests with -s to verify the output:
# py.test -s tests/test_logger.py
def test_level_logging():
    for i in LOG_LEVELS:
        Logger.LOG_LEVEL = i
        log = Logger("test")

        msg = "The quick brown fox jumps over the lazy dog"
        msg2 = "-123.00"

        log.error(msg)
        log.error("%s: %s", msg, msg2, color=False)
        log.warning(msg)
        log.warn("%s: %s", msg, msg2, color=False)
        log.info(msg)
        log.info("%s: %s", msg, msg2)
        log.debug(msg)
        log.debug("%s: %s", msg, msg2, color=False)
        log.question(msg)
        log.success("%s: %s", msg, msg2)


def test_host_logger():
    logger = unittest.mock.Mock()
    log = HostLogger("192.0.2.1", logger=logger)

    log.info("Initializing control plane ...")
    log.debug("hash %s", "sha256:abc")
    log.success("done")
    log.warning("careful")
    log.error("failed")

    logger.info.assert_called_once_with(
        "192.0.2.1: Initializing control plane ...")
    logger.debug.assert_called_once_with("192.0.2.1: hash %s", "sha256:abc")
    logger.success.assert_called_once_with("192.0.2.1: done")
    logger.warning.assert_called_once_with("192.0.2.1: careful")
    logger.error.assert_called_once_with("192.0.2.1: failed")
